import io
import logging
import stat
import time
import zipfile
import zlib
from dataclasses import dataclass
from typing import IO, Iterator, List

from .errors import ArchiveEntryReadError, ArchiveParseError, ArchiveWriteError

PAYLOAD_PREFIX = "Payload/"
INFO_PLIST_SUFFIX = ".app/Info.plist"
BUNDLE_EXTENSION = ".app"
ENTRY_MODE = 0o755

# Errors zipfile may raise while inflating or verifying an entry.
READ_ERRORS = (zipfile.BadZipFile, zlib.error, OSError, EOFError,
               RuntimeError, NotImplementedError)
WRITE_ERRORS = (zipfile.LargeZipFile, zlib.error, OSError, RuntimeError, ValueError)

logger = logging.getLogger(__name__)


def slash_count(name: str) -> int:
    return name.count("/")


def is_bundle_level(name: str) -> bool:
    """True for names directly inside Payload/<container>/."""
    return slash_count(name) == 2


def is_info_plist(name: str) -> bool:
    return (
        is_bundle_level(name)
        and name.startswith(PAYLOAD_PREFIX)
        and name.endswith(INFO_PLIST_SUFFIX)
    )


def container_of(name: str) -> str:
    return name.split("/")[1]


@dataclass(frozen=True)
class ArchiveEntry:
    index: int
    name: str
    size: int

    @property
    def is_dir(self) -> bool:
        return self.name.endswith("/")


class IpaArchive:
    """Read-only, indexed view of a zip archive held in memory.

    Entries can be iterated any number of times and each entry's content can
    be re-read independently.
    """

    def __init__(self, data: bytes):
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data), "r")
        except (zipfile.BadZipFile, OSError, ValueError, EOFError) as e:
            raise ArchiveParseError(f"Failed to parse zip: {e}") from e
        self._infos = self._zip.infolist()
        self.entries = [
            ArchiveEntry(index=i, name=info.filename, size=info.file_size)
            for i, info in enumerate(self._infos)
        ]

    def __enter__(self) -> "IpaArchive":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> ArchiveEntry:
        return self.entries[index]

    def __iter__(self) -> Iterator[ArchiveEntry]:
        return iter(self.entries)

    def names(self) -> List[str]:
        return [entry.name for entry in self.entries]

    def total_size(self) -> int:
        return sum(entry.size for entry in self.entries)

    def read(self, entry: ArchiveEntry) -> bytes:
        try:
            return self._zip.read(self._infos[entry.index])
        except READ_ERRORS as e:
            raise ArchiveEntryReadError(f"Failed to read {entry.name}: {e}") from e

    def iter_chunks(self, entry: ArchiveEntry, chunk_size: int) -> Iterator[bytes]:
        try:
            with self._zip.open(self._infos[entry.index]) as src:
                while True:
                    chunk = src.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk
        except READ_ERRORS as e:
            raise ArchiveEntryReadError(f"Failed to read {entry.name}: {e}") from e


class IpaWriter:
    """In-memory destination archive, DEFLATE at a fixed level."""

    def __init__(self, compression_level: int):
        self.compression_level = compression_level
        self._buffer = io.BytesIO()
        self._zip = zipfile.ZipFile(
            self._buffer, "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=compression_level,
        )

    def add_directory(self, name: str) -> None:
        try:
            self._zip.mkdir(name, mode=ENTRY_MODE)
        except WRITE_ERRORS as e:
            raise ArchiveWriteError(f"Failed to add directory {name}: {e}") from e

    def _file_info(self, name: str) -> zipfile.ZipInfo:
        zinfo = zipfile.ZipInfo(name, date_time=time.localtime(time.time())[:6])
        zinfo.compress_type = zipfile.ZIP_DEFLATED
        zinfo._compresslevel = self.compression_level
        # 0755 for every file; the bundle executable needs the x bit.
        zinfo.external_attr = (stat.S_IFREG | ENTRY_MODE) << 16
        return zinfo

    def open_file(self, name: str, size_hint: int = 0) -> IO[bytes]:
        try:
            return self._zip.open(
                self._file_info(name), "w",
                force_zip64=size_hint * 1.05 > zipfile.ZIP64_LIMIT,
            )
        except WRITE_ERRORS as e:
            raise ArchiveWriteError(f"Failed to start file {name}: {e}") from e

    def write_file(self, name: str, data: bytes) -> None:
        with self.open_file(name, len(data)) as dst:
            try:
                dst.write(data)
            except WRITE_ERRORS as e:
                raise ArchiveWriteError(f"Failed to write file {name}: {e}") from e

    def finish(self) -> bytes:
        try:
            self._zip.close()
        except WRITE_ERRORS as e:
            raise ArchiveWriteError(f"Failed to finish zip: {e}") from e
        return self._buffer.getvalue()

    def discard(self) -> None:
        # Drop everything written so far; the buffer is never returned.
        try:
            self._zip.close()
        except WRITE_ERRORS:
            logger.debug("Ignoring error while closing a discarded archive")
        self._buffer = io.BytesIO()
