import logging
from typing import Iterable, List, Optional

from .archive import BUNDLE_EXTENSION, PAYLOAD_PREFIX, is_bundle_level
from .manifest import InfoPlist

ICON_SUFFIX = ".png"

logger = logging.getLogger(__name__)


def icon_candidates(plist: InfoPlist) -> List[str]:
    """Icon file names declared by the manifest.

    Nested CFBundleIcons entries come first, then the flat CFBundleIconFiles
    list; the result is sorted in descending order so the lookup is
    deterministic.
    """
    candidates = plist.nested_icon_files() + plist.flat_icon_files()
    return sorted(candidates, reverse=True)


def _matches(entry_name: str, candidate: str, container_name: str) -> bool:
    if entry_name == f"{PAYLOAD_PREFIX}{container_name}/{candidate}":
        return True
    # Build tools append device and scale suffixes (AppIcon60x60@2x.png).
    return (
        entry_name.startswith(PAYLOAD_PREFIX)
        and f"{BUNDLE_EXTENSION}/{candidate}" in entry_name
        and entry_name.endswith(ICON_SUFFIX)
    )


def resolve_icon(candidates: List[str], entry_names: Iterable[str],
                 container_name: str) -> Optional[str]:
    """Return the first bundle-level entry matching any candidate, or None."""
    if not candidates:
        return None
    for entry_name in entry_names:
        if not is_bundle_level(entry_name):
            continue
        for candidate in candidates:
            if _matches(entry_name, candidate, container_name):
                logger.debug(f"Icon candidate {candidate} matched {entry_name}")
                return entry_name
    return None
