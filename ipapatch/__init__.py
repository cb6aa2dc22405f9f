"""Read and rewrite iOS application archives (IPA files)."""

from .config import Settings, load_settings
from .errors import (
    ArchiveEntryReadError,
    ArchiveParseError,
    ArchiveWriteError,
    ConfigError,
    ContainerNotFoundError,
    IconConversionError,
    IpaPatchError,
    ManifestNotFoundError,
    ManifestParseError,
    ManifestWriteError,
    ValidationError,
)
from .inspector import AppInfo, IpaInspector, parser
from .patcher import ICON_FILE_NAME, IpaPatcher, create

__version__ = "0.1.0"

__all__ = [
    "AppInfo",
    "ArchiveEntryReadError",
    "ArchiveParseError",
    "ArchiveWriteError",
    "ConfigError",
    "ContainerNotFoundError",
    "ICON_FILE_NAME",
    "IconConversionError",
    "IpaInspector",
    "IpaPatchError",
    "IpaPatcher",
    "ManifestNotFoundError",
    "ManifestParseError",
    "ManifestWriteError",
    "Settings",
    "ValidationError",
    "create",
    "load_settings",
    "parser",
]
