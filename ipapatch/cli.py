#!/usr/bin/env python3
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import DEFAULT_CONFIG_FILE, Settings, load_settings, write_template
from .errors import IpaPatchError
from .icon import is_ios_optimized_png, strip_cgbi_chunk
from .inspector import parser
from .manifest import parse_plist
from .patcher import IpaPatcher


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=_level(level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )


def build_parser() -> argparse.ArgumentParser:
    arg_parser = argparse.ArgumentParser(prog="ipapatch", description="Inspect and patch IPA files")
    arg_parser.add_argument("--config", help=f"Settings file (default: ./{DEFAULT_CONFIG_FILE})")
    arg_parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = arg_parser.add_subparsers(dest="command", required=True)

    inspect = subparsers.add_parser("inspect", help="Print app metadata as JSON")
    inspect.add_argument("ipa", help="Path to the IPA file")
    inspect.add_argument("--icon-out", help="Write the app icon to this path")
    inspect.add_argument("--strip-cgbi", action="store_true",
                         help="Remove the CgBI chunk from an iOS-optimized icon before writing it")
    inspect.add_argument("--plist-out", help="Write Info.plist as XML to this path")

    patch = subparsers.add_parser("patch", help="Rewrite app name, bundle id, version and icon")
    patch.add_argument("ipa", help="Path to the IPA file")
    patch.add_argument("--output", "-o", required=True, help="Path of the patched IPA")
    patch.add_argument("--name", required=True, help="New CFBundleName")
    patch.add_argument("--bundle-id", required=True, help="New CFBundleIdentifier")
    patch.add_argument("--version", required=True, help="New CFBundleShortVersionString")
    patch.add_argument("--plist", help="Info.plist to start from (default: the one in the IPA)")
    patch.add_argument("--icon", help="Replacement icon (PNG or JPEG)")
    patch.add_argument("--remove-device-limit", action="store_true",
                       help="Lower MinimumOSVersion to the configured floor")
    patch.add_argument("--remove-url-schemes", action="store_true", help="Clear CFBundleURLTypes")
    patch.add_argument("--file-sharing", action="store_true",
                       help="Enable UIFileSharingEnabled and UISupportsDocumentBrowser")
    patch.add_argument("--level", type=int, help="Compression level 1-9 (default from settings)")

    init_config = subparsers.add_parser("init-config", help="Write a settings template")
    init_config.add_argument("path", nargs="?", default=DEFAULT_CONFIG_FILE)
    return arg_parser


def run_inspect(args: argparse.Namespace, logger: logging.Logger) -> int:
    info = parser(Path(args.ipa).read_bytes())

    if args.icon_out:
        if not info.app_icon:
            logger.warning("No icon found, skipping --icon-out")
        else:
            icon = info.app_icon
            if args.strip_cgbi and is_ios_optimized_png(icon):
                logger.info("Removing CgBI chunk from iOS-optimized icon")
                icon = strip_cgbi_chunk(icon)
            Path(args.icon_out).write_bytes(icon)
            logger.info(f"Icon written to {args.icon_out}")

    if args.plist_out:
        Path(args.plist_out).write_text(info.plist, encoding='utf-8')
        logger.info(f"Info.plist written to {args.plist_out}")

    summary = info.metadata.to_dict()
    summary["app_icon_size"] = len(info.app_icon)
    print(json.dumps(summary, indent=2, ensure_ascii=False))
    return 0


def run_patch(args: argparse.Namespace, settings: Settings, logger: logging.Logger) -> int:
    zip_bytes = Path(args.ipa).read_bytes()

    if args.plist:
        plist = parse_plist(Path(args.plist).read_bytes()).to_xml().decode('utf-8')
    else:
        plist = parser(zip_bytes).plist

    icon_bytes = Path(args.icon).read_bytes() if args.icon else b""

    def log_progress(percent: int) -> None:
        logger.info(f"Progress: {percent}%")

    result = IpaPatcher(settings).create(
        zip_bytes, icon_bytes, args.name, args.bundle_id, args.version, plist,
        remove_device_limit=args.remove_device_limit,
        remove_url_schemes=args.remove_url_schemes,
        open_file_share=args.file_sharing,
        zip_level=args.level,
        progress=log_progress,
    )
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result)
    logger.info(f"Patched IPA written to {output}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "INFO")
    logger = logging.getLogger("ipapatch")

    try:
        if args.command == "init-config":
            write_template(args.path)
            return 0

        settings = load_settings(args.config)
        if not args.verbose:
            logging.getLogger().setLevel(_level(settings.log_level))

        if args.command == "inspect":
            return run_inspect(args, logger)
        return run_patch(args, settings, logger)
    except IpaPatchError as e:
        logger.error(str(e))
        return 1
    except OSError as e:
        logger.error(f"I/O error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
