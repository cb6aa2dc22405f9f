import logging
from contextlib import closing
from typing import Optional

from .archive import (
    PAYLOAD_PREFIX, WRITE_ERRORS, ArchiveEntry, IpaArchive, IpaWriter, container_of,
    is_info_plist,
)
from .config import Settings
from .errors import ArchiveWriteError, ContainerNotFoundError, ValidationError
from .icon import normalize_icon
from .manifest import (
    KEY_BUNDLE_ID, KEY_DOCUMENT_BROWSER, KEY_FILE_SHARING, KEY_MIN_OS, KEY_NAME,
    KEY_URL_TYPES, KEY_VERSION, InfoPlist, parse_plist,
)
from .progress import ProgressSink, ProgressTracker

ICON_FILE_NAME = "icon_app_patched.png"
MIN_COMPRESSION_LEVEL = 1
MAX_COMPRESSION_LEVEL = 9


def clamp_compression_level(level: int) -> int:
    return min(MAX_COMPRESSION_LEVEL, max(MIN_COMPRESSION_LEVEL, level))


class IpaPatcher:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.logger = logging.getLogger(self.__class__.__name__)

    def create(
        self,
        zip_bytes: bytes,
        icon_bytes: bytes,
        app_name: str,
        app_bundle_id: str,
        app_version: str,
        plist: str,
        remove_device_limit: bool = False,
        remove_url_schemes: bool = False,
        open_file_share: bool = False,
        zip_level: Optional[int] = None,
        progress: Optional[ProgressSink] = None,
    ) -> bytes:
        for field, value in (("app_name", app_name), ("app_bundle_id", app_bundle_id),
                             ("app_version", app_version), ("plist", plist)):
            if not value or not value.strip():
                raise ValidationError(f"{field} required")

        icon = normalize_icon(icon_bytes) if icon_bytes else None

        info_plist = parse_plist(plist)
        info_plist.insert(KEY_NAME, app_name)
        info_plist.insert(KEY_BUNDLE_ID, app_bundle_id)
        info_plist.insert(KEY_VERSION, app_version)
        self._apply_options(info_plist, remove_device_limit, remove_url_schemes,
                            open_file_share, icon is not None)
        info_plist_bytes = info_plist.to_xml()

        level = clamp_compression_level(
            self.settings.compression_level if zip_level is None else zip_level
        )
        with IpaArchive(zip_bytes) as archive:
            return self._rewrite(archive, info_plist_bytes, icon, level, progress)

    def _apply_options(self, info_plist: InfoPlist, remove_device_limit: bool,
                       remove_url_schemes: bool, open_file_share: bool,
                       has_icon: bool) -> None:
        if remove_device_limit:
            info_plist.insert(KEY_MIN_OS, self.settings.minimum_os_version)
        if remove_url_schemes:
            info_plist.insert(KEY_URL_TYPES, [])
        if open_file_share:
            info_plist.insert(KEY_FILE_SHARING, True)
            info_plist.insert(KEY_DOCUMENT_BROWSER, True)
        if has_icon:
            info_plist.set_primary_icon(ICON_FILE_NAME)

    def _rewrite(self, archive: IpaArchive, info_plist_bytes: bytes,
                 icon: Optional[bytes], level: int,
                 progress: Optional[ProgressSink]) -> bytes:
        tracker = ProgressTracker(archive.total_size(), progress)
        self.logger.info(
            f"Rewriting {len(archive)} entries ({tracker.total} bytes) at level {level}"
        )

        writer = IpaWriter(level)
        try:
            container_name = None
            for entry in archive:
                if entry.is_dir:
                    writer.add_directory(entry.name)
                    tracker.advance(entry.size)
                    continue

                if is_info_plist(entry.name):
                    if container_name is None:
                        container_name = container_of(entry.name)
                    self.logger.info(f"Replacing {entry.name}")
                    writer.write_file(entry.name, info_plist_bytes)
                    # Counted at its original size, the same size the total uses.
                    tracker.advance(entry.size)
                    tracker.report()
                    continue

                self._copy_entry(archive, entry, writer, tracker)

            if container_name is None:
                raise ContainerNotFoundError("Failed to find .app container with Info.plist")

            if icon is not None:
                icon_path = f"{PAYLOAD_PREFIX}{container_name}/{ICON_FILE_NAME}"
                self.logger.info(f"Adding icon {icon_path} ({len(icon)} bytes)")
                writer.write_file(icon_path, icon)

            result = writer.finish()
        except Exception:
            writer.discard()
            raise

        self.logger.info(f"Wrote {len(result)} bytes")
        return result

    def _copy_entry(self, archive: IpaArchive, entry: ArchiveEntry, writer: IpaWriter,
                    tracker: ProgressTracker) -> None:
        self.logger.debug(f"Copying {entry.name} ({entry.size} bytes)")
        with writer.open_file(entry.name, entry.size) as dst, \
                closing(archive.iter_chunks(entry, self.settings.chunk_size)) as chunks:
            for chunk in chunks:
                try:
                    dst.write(chunk)
                except WRITE_ERRORS as e:
                    raise ArchiveWriteError(f"Failed to write {entry.name}: {e}") from e
                tracker.advance(len(chunk))
                tracker.report()


def create(
    zip_bytes: bytes,
    icon_bytes: bytes,
    app_name: str,
    app_bundle_id: str,
    app_version: str,
    plist: str,
    remove_device_limit: bool = False,
    remove_url_schemes: bool = False,
    open_file_share: bool = False,
    zip_level: int = 6,
    progress: Optional[ProgressSink] = None,
    settings: Optional[Settings] = None,
) -> bytes:
    """Rewrite an IPA with new identity fields and an optional new icon.

    Returns the bytes of the new archive. ``zip_level`` is clamped to 1-9 and
    ``progress`` receives whole percentages as source bytes are copied.
    """
    return IpaPatcher(settings).create(
        zip_bytes, icon_bytes, app_name, app_bundle_id, app_version, plist,
        remove_device_limit=remove_device_limit,
        remove_url_schemes=remove_url_schemes,
        open_file_share=open_file_share,
        zip_level=zip_level,
        progress=progress,
    )
