"""Tests for the zip reader/writer adapters and IPA path helpers."""

from __future__ import annotations

import io
import zipfile

import pytest

from ipapatch.archive import (
    IpaArchive,
    IpaWriter,
    container_of,
    is_bundle_level,
    is_info_plist,
)
from ipapatch.errors import ArchiveEntryReadError, ArchiveParseError
from tests.conftest import build_zip


class TestPathHelpers:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Payload/Demo.app/Info.plist", True),
            ("Payload/Demo.app/PlugIns/Ext.appex/Info.plist", False),
            ("Payload/Demo.app/Watch/Info.plist", False),
            ("Other/Demo.app/Info.plist", False),
            ("Payload/Demo/Info.plist", False),
            ("Payload/Demo.app/Info.plist.bak", False),
        ],
    )
    def test_is_info_plist(self, name, expected):
        assert is_info_plist(name) is expected

    def test_bundle_level(self):
        assert is_bundle_level("Payload/Demo.app/Demo")
        assert is_bundle_level("Payload/Demo.app/")
        assert not is_bundle_level("Payload/Demo.app")

    def test_container_of(self):
        assert container_of("Payload/Demo.app/Info.plist") == "Demo.app"


class TestIpaArchive:
    @pytest.fixture
    def archive(self):
        data = build_zip([
            ("Payload/", None),
            ("Payload/A.app/Data", b"0123456789"),
            ("Payload/A.app/Empty", b""),
        ])
        with IpaArchive(data) as archive:
            yield archive

    def test_entries(self, archive):
        assert len(archive) == 3
        assert archive.names() == ["Payload/", "Payload/A.app/Data", "Payload/A.app/Empty"]
        assert archive[0].is_dir
        assert not archive[1].is_dir
        assert archive[1].size == 10
        assert archive.total_size() == 10

    def test_can_iterate_twice(self, archive):
        assert [e.name for e in archive] == [e.name for e in archive]

    def test_read_and_reread(self, archive):
        assert archive.read(archive[1]) == b"0123456789"
        assert archive.read(archive[1]) == b"0123456789"

    def test_iter_chunks(self, archive):
        chunks = list(archive.iter_chunks(archive[1], 4))
        assert chunks == [b"0123", b"4567", b"89"]
        assert list(archive.iter_chunks(archive[2], 4)) == []

    @pytest.mark.parametrize("data", [b"", b"PK\x03\x04 definitely not a zip"])
    def test_not_a_zip(self, data):
        with pytest.raises(ArchiveParseError):
            IpaArchive(data)

    def test_corrupt_entry(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_STORED) as zf:
            zf.writestr("Payload/A.app/Data", b"hello world")
        data = buffer.getvalue().replace(b"hello world", b"HELLO WORLD")

        with IpaArchive(data) as archive:
            with pytest.raises(ArchiveEntryReadError, match="Payload/A.app/Data"):
                archive.read(archive[0])
            with pytest.raises(ArchiveEntryReadError):
                list(archive.iter_chunks(archive[0], 4))


class TestIpaWriter:
    def test_writes_deflated_archive(self):
        writer = IpaWriter(9)
        writer.add_directory("Payload/")
        writer.write_file("Payload/A.app/Info.plist", b"<plist/>")
        with writer.open_file("Payload/A.app/Data", 6) as dst:
            dst.write(b"abc")
            dst.write(b"def")
        data = writer.finish()

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist() == ["Payload/", "Payload/A.app/Info.plist", "Payload/A.app/Data"]
            assert zf.getinfo("Payload/").is_dir()
            assert zf.read("Payload/A.app/Data") == b"abcdef"
            assert zf.getinfo("Payload/A.app/Data").compress_type == zipfile.ZIP_DEFLATED
