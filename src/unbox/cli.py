"""Command line interface for unbox."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import toml
from pydantic import ValidationError

from . import __version__
from .common import ConfigLoader, UnboxError, setup_logging
from .config import UnboxConfig
from .formats import ArchiveType
from .unboxer import Unboxer

# Application name derived from package name
_package = __package__ or "unbox"
APP_NAME = _package.split('.')[0]

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="unbox",
        description="Unpack archives into exactly one new file or folder"
    )
    parser.add_argument(
        "archives",
        nargs="*",
        type=Path,
        metavar="ARCHIVE",
        help="Archives to unpack"
    )
    parser.add_argument(
        "--analyze",
        action="store_true",
        help="Print the detected format of each archive without unpacking"
    )
    parser.add_argument(
        "--list-formats",
        action="store_true",
        help="List supported archive formats and exit"
    )
    parser.add_argument(
        "--skip-unknown",
        action="store_true",
        help="Skip files that are not supported archives"
    )
    parser.add_argument(
        "-C", "--destination",
        type=Path,
        help="Directory to unpack into (default: current directory)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="TOML config file, applied over the system and user config"
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not show the progress display"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    return parser


def apply_overrides(config: UnboxConfig, args: argparse.Namespace) -> UnboxConfig:
    """Apply command line flags on top of the loaded configuration."""
    if args.destination is not None:
        config.extraction.destination = str(args.destination)
    if args.skip_unknown:
        config.extraction.skip_unknown = True
    if args.no_progress:
        config.progress.enabled = False
    if args.log_level:
        config.logging.level = args.log_level
    return config


def describe_error(error: BaseException) -> str:
    """Render an exception together with its cause chain."""
    parts = [str(error)]
    seen = {id(error)}
    cause = error.__cause__ or error.__context__
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        parts.append(f"caused by: {cause}")
        cause = cause.__cause__ or cause.__context__
    return "\n  ".join(parts)


def list_formats_command() -> int:
    """Print the supported archive formats."""
    print("Supported file formats:")
    for archive_type in ArchiveType:
        print(f"- {archive_type.display_name}")
    return 0


def analyze_command(unboxer: Unboxer, archives: List[Path]) -> int:
    """Print the detected format of every input."""
    for path, archive_type in unboxer.analyze(archives):
        if archive_type is not None:
            print(f"{path}: {archive_type.display_name}")
        elif not unboxer.skip_unknown:
            print(f"{path}: unsupported")
    return 0


def unpack_command(unboxer: Unboxer, archives: List[Path]) -> int:
    """Unpack every input and print the published paths.

    Returns:
        Exit code (0 for success)
    """
    try:
        unboxer.unpack_all(archives, on_published=lambda path: print(path, flush=True))
    except UnboxError as e:
        logger.error(describe_error(e))
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 1
    except Exception as e:
        logger.exception(f"Unpacking failed: {e}")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the unbox command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_formats:
        return list_formats_command()

    if not args.archives:
        parser.print_help()
        return 2

    loader = ConfigLoader(app_name=APP_NAME, config_class=UnboxConfig)
    try:
        config = loader.load(config_file=args.config)
    except (ValidationError, toml.TomlDecodeError, OSError) as e:
        print(f"unbox: invalid configuration: {e}", file=sys.stderr)
        return 1
    config = apply_overrides(config, args)

    setup_logging(
        level=config.logging.level,
        format=config.logging.format,
        log_file=Path(config.logging.file) if config.logging.file else None
    )

    unboxer = Unboxer.from_config(config)

    if args.analyze:
        return analyze_command(unboxer, args.archives)
    return unpack_command(unboxer, args.archives)


if __name__ == "__main__":
    sys.exit(main())
