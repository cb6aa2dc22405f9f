import io
import logging
import struct

from PIL import Image

from .errors import IconConversionError

JPEG_SIGNATURE = b"\xff\xd8\xff"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

logger = logging.getLogger(__name__)


def is_jpeg(data: bytes) -> bool:
    # The bare three-byte signature counts too; Pillow then rejects it.
    return data[:3] == JPEG_SIGNATURE


def normalize_icon(data: bytes) -> bytes:
    """Convert a JPEG icon to an 8-bit RGB PNG; anything else is returned as-is.

    Only JPEG input is converted. Alpha, color profiles and other metadata of
    the source are not carried over.
    """
    if not is_jpeg(data):
        return data

    try:
        with Image.open(io.BytesIO(data)) as img:
            rgb = img.convert("RGB")
        # Rebuild from raw samples so nothing but the pixels survives.
        pixels = Image.frombytes("RGB", rgb.size, rgb.tobytes())
        output = io.BytesIO()
        pixels.save(output, format="PNG")
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise IconConversionError(f"Failed to convert icon: {e}") from e

    logger.debug(f"Converted JPEG icon {pixels.size[0]}x{pixels.size[1]} to PNG")
    return output.getvalue()


def _iter_png_chunks(data: bytes):
    offset = 8
    while offset + 8 <= len(data):
        chunk_length = struct.unpack('>I', data[offset:offset + 4])[0]
        chunk_type = data[offset + 4:offset + 8]
        yield offset, chunk_length, chunk_type
        offset += chunk_length + 12


def is_ios_optimized_png(data: bytes) -> bool:
    """Check if the PNG is iOS-optimized by looking for CgBI chunk."""
    if len(data) < 8 or data[:8] != PNG_SIGNATURE:
        return False
    return any(chunk_type == b'CgBI' for _, _, chunk_type in _iter_png_chunks(data))


def strip_cgbi_chunk(data: bytes) -> bytes:
    """Remove the CgBI chunk from an iOS-optimized PNG.

    The pixel data itself is left untouched.
    """
    if not is_ios_optimized_png(data):
        return data
    for offset, chunk_length, chunk_type in _iter_png_chunks(data):
        if chunk_type == b'CgBI':
            return data[:offset] + data[offset + chunk_length + 12:]
    return data
