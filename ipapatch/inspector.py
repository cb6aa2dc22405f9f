import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .archive import IpaArchive, container_of, is_info_plist
from .errors import ManifestNotFoundError
from .locator import icon_candidates, resolve_icon
from .manifest import AppMetadata, is_xml_plist, parse_plist
from .progress import ProgressSink


@dataclass(frozen=True)
class AppInfo:
    app_name: str
    app_display_name: str
    app_bundle_id: str
    app_version: str
    app_min_os_version: str
    app_icon: bytes
    plist: str

    @property
    def metadata(self) -> AppMetadata:
        return AppMetadata(
            app_name=self.app_name,
            app_display_name=self.app_display_name,
            app_bundle_id=self.app_bundle_id,
            app_version=self.app_version,
            app_min_os_version=self.app_min_os_version,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class IpaInspector:
    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def inspect(self, zip_bytes: bytes) -> AppInfo:
        with IpaArchive(zip_bytes) as archive:
            plist_entry = next(
                (entry for entry in archive if not entry.is_dir and is_info_plist(entry.name)),
                None,
            )
            if plist_entry is None:
                raise ManifestNotFoundError("Failed to find Info.plist")

            container_name = container_of(plist_entry.name)
            self.logger.info(f"Found {plist_entry.name}")
            plist_bytes = archive.read(plist_entry)
            if not plist_bytes:
                raise ManifestNotFoundError(f"Failed to find Info.plist: {plist_entry.name} is empty")
            info_plist = parse_plist(plist_bytes)
            metadata = AppMetadata.from_plist(info_plist)

            if is_xml_plist(plist_bytes):
                plist_text = plist_bytes.decode("utf-8", errors="replace")
            else:
                plist_text = info_plist.to_xml().decode("utf-8")

            icon = b""
            candidates = icon_candidates(info_plist)
            icon_name = resolve_icon(candidates, archive.names(), container_name)
            if icon_name is not None:
                icon_entry = next(entry for entry in archive if entry.name == icon_name)
                icon = archive.read(icon_entry)
                self.logger.info(f"Using icon {icon_name} ({len(icon)} bytes)")
            elif candidates:
                self.logger.warning(f"No archive entry matches icon files {candidates}")

        return AppInfo(app_icon=icon, plist=plist_text, **metadata.to_dict())


def parser(zip_bytes: bytes, progress: Optional[ProgressSink] = None) -> AppInfo:
    """Read metadata, icon and manifest text from an IPA.

    ``progress`` is accepted for symmetry with :func:`ipapatch.create` and is
    currently unused.
    """
    return IpaInspector().inspect(zip_bytes)
