"""Shared fixtures: IPA archives and images built in memory."""

from __future__ import annotations

import io
import plistlib
import zipfile

import pytest
from PIL import Image

APP_DIR = "Payload/Demo.app/"
INFO_PLIST = f"{APP_DIR}Info.plist"
ICON_ENTRY = f"{APP_DIR}AppIcon60x60@2x.png"


def build_zip(entries: list[tuple[str, bytes | None]]) -> bytes:
    """Zip ``(name, data)`` pairs in order; ``data=None`` declares a directory."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries:
            if data is None:
                zf.mkdir(name)
            else:
                zf.writestr(name, data)
    return buffer.getvalue()


def read_entry(zip_bytes: bytes, name: str) -> bytes:
    with zipfile.ZipFile(io.BytesIO(zip_bytes)) as zf:
        return zf.read(name)


def entry_names(zip_bytes: bytes) -> list[str]:
    with zipfile.ZipFile(io.BytesIO(zip_bytes)) as zf:
        return zf.namelist()


@pytest.fixture
def info_dict() -> dict:
    return {
        "CFBundleName": "Demo",
        "CFBundleDisplayName": "Demo App",
        "CFBundleIdentifier": "com.example.demo",
        "CFBundleShortVersionString": "1.2.3",
        "MinimumOSVersion": "14.0",
        "CFBundleIcons": {
            "CFBundlePrimaryIcon": {
                "CFBundleIconFiles": ["AppIcon60x60"],
                "CFBundleIconName": "AppIcon",
            }
        },
        "CFBundleURLTypes": [{"CFBundleURLSchemes": ["demo"]}],
    }


@pytest.fixture
def xml_plist(info_dict) -> bytes:
    return plistlib.dumps(info_dict, fmt=plistlib.FMT_XML)


@pytest.fixture
def binary_plist(info_dict) -> bytes:
    return plistlib.dumps(info_dict, fmt=plistlib.FMT_BINARY)


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (8, 8), (255, 0, 0, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (20, 10), (0, 128, 255)).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def make_ipa(png_bytes):
    """Factory for a small IPA around the given Info.plist bytes."""

    def _make(plist_bytes: bytes | None, with_icon: bool = True) -> bytes:
        entries: list[tuple[str, bytes | None]] = [
            ("Payload/", None),
            (APP_DIR, None),
        ]
        if plist_bytes is not None:
            entries.append((INFO_PLIST, plist_bytes))
        entries.append((f"{APP_DIR}Demo", b"\xcf\xfa\xed\xfe" + b"\x00" * 256))
        if with_icon:
            entries.append((ICON_ENTRY, png_bytes))
        entries.append((f"{APP_DIR}Frameworks/Lib.framework/Lib", b"lib" * 100))
        entries.append((f"{APP_DIR}Base.lproj/Main.strings", b'"key" = "value";'))
        return build_zip(entries)

    return _make


@pytest.fixture
def sample_ipa(make_ipa, xml_plist) -> bytes:
    return make_ipa(xml_plist)
