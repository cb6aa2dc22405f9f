"""Exceptions raised by ipapatch.

Every failure aborts the whole call; callers get a single descriptive message
from ``str(error)``.
"""


class IpaPatchError(Exception):
    """Base class for all ipapatch errors."""


class ValidationError(IpaPatchError):
    """A required input is missing or blank."""


class ConfigError(IpaPatchError):
    """The settings file could not be read."""


class ManifestParseError(IpaPatchError):
    """Info.plist is neither a binary nor an XML property list."""


class ManifestWriteError(IpaPatchError):
    """Info.plist could not be serialized."""


class ArchiveParseError(IpaPatchError):
    """The input is not a readable zip archive."""


class ArchiveEntryReadError(IpaPatchError):
    """An entry of the source archive could not be read."""


class ArchiveWriteError(IpaPatchError):
    """The destination archive could not be written."""


class IconConversionError(IpaPatchError):
    """The replacement icon could not be converted to PNG."""


class ManifestNotFoundError(IpaPatchError):
    """No Payload/<Name>.app/Info.plist entry exists in the archive."""


class ContainerNotFoundError(IpaPatchError):
    """The .app container directory could not be determined."""
