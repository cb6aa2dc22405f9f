import plistlib
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Union
from xml.parsers.expat import ExpatError

from .errors import ManifestParseError, ManifestWriteError

XML_SIGNATURE = b"<?xml"

# Keys read or written by this package.
KEY_NAME = "CFBundleName"
KEY_DISPLAY_NAME = "CFBundleDisplayName"
KEY_BUNDLE_ID = "CFBundleIdentifier"
KEY_VERSION = "CFBundleShortVersionString"
KEY_MIN_OS = "MinimumOSVersion"
KEY_URL_TYPES = "CFBundleURLTypes"
KEY_FILE_SHARING = "UIFileSharingEnabled"
KEY_DOCUMENT_BROWSER = "UISupportsDocumentBrowser"
KEY_ICONS = "CFBundleIcons"
KEY_PRIMARY_ICON = "CFBundlePrimaryIcon"
KEY_ICON_FILES = "CFBundleIconFiles"
KEY_ICON_NAME = "CFBundleIconName"


class InfoPlist:
    """An Info.plist document with a dictionary root.

    Getters are lenient: a missing key and a key holding a value of the wrong
    type both come back as ``None``.
    """

    def __init__(self, root: Dict[str, Any]):
        self.root = root

    def __contains__(self, key: str) -> bool:
        return key in self.root

    def insert(self, key: str, value: Any) -> None:
        self.root[key] = value

    def get_string(self, key: str) -> Optional[str]:
        value = self.root.get(key)
        return value if isinstance(value, str) else None

    def get_bool(self, key: str) -> Optional[bool]:
        value = self.root.get(key)
        return value if isinstance(value, bool) else None

    def get_dict(self, key: str) -> Optional[Dict[str, Any]]:
        value = self.root.get(key)
        return value if isinstance(value, dict) else None

    def get_string_list(self, key: str) -> Optional[List[str]]:
        return _string_list(self.root.get(key))

    def nested_icon_files(self) -> List[str]:
        """CFBundleIcons -> CFBundlePrimaryIcon -> CFBundleIconFiles."""
        icons = self.get_dict(KEY_ICONS) or {}
        primary = icons.get(KEY_PRIMARY_ICON)
        if not isinstance(primary, dict):
            return []
        return _string_list(primary.get(KEY_ICON_FILES)) or []

    def flat_icon_files(self) -> List[str]:
        return self.get_string_list(KEY_ICON_FILES) or []

    def set_primary_icon(self, file_name: str) -> None:
        """Replace the whole icon descriptor with one pointing at ``file_name``."""
        icon_name = file_name.rsplit(".", 1)[0]
        self.insert(KEY_ICONS, {
            KEY_PRIMARY_ICON: {
                KEY_ICON_FILES: [file_name],
                KEY_ICON_NAME: icon_name,
            }
        })

    def to_xml(self) -> bytes:
        try:
            return plistlib.dumps(self.root, fmt=plistlib.FMT_XML, sort_keys=False)
        except (TypeError, ValueError, OverflowError) as e:
            raise ManifestWriteError(f"Failed to write xml: {e}") from e


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, str)]


def parse_plist(data: Union[bytes, str]) -> InfoPlist:
    """Parse a binary or XML property list into an :class:`InfoPlist`."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        root = plistlib.loads(data)
    except (plistlib.InvalidFileException, ExpatError, ValueError, TypeError,
            KeyError, IndexError, OverflowError) as e:
        raise ManifestParseError(f"Failed to parse plist: {e}") from e
    if not isinstance(root, dict):
        raise ManifestParseError(
            f"Failed to parse plist: root is {type(root).__name__}, expected dict"
        )
    return InfoPlist(root)


def is_xml_plist(data: bytes) -> bool:
    return data.startswith(XML_SIGNATURE)


@dataclass(frozen=True)
class AppMetadata:
    app_name: str = ""
    app_display_name: str = ""
    app_bundle_id: str = ""
    app_version: str = ""
    app_min_os_version: str = ""

    @classmethod
    def from_plist(cls, plist: InfoPlist) -> "AppMetadata":
        return cls(
            app_name=plist.get_string(KEY_NAME) or "",
            app_display_name=plist.get_string(KEY_DISPLAY_NAME) or "",
            app_bundle_id=plist.get_string(KEY_BUNDLE_ID) or "",
            app_version=plist.get_string(KEY_VERSION) or "",
            app_min_os_version=plist.get_string(KEY_MIN_OS) or "",
        )

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)
