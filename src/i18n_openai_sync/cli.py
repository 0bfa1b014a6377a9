"""Command-line interface for i18n-openai-sync."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from . import __version__
from .app import SyncApplication
from .config import load_settings
from .logger import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="i18n-openai-sync",
        description="Watch i18n JSON locale files and translate new strings into sibling locales using OpenAI's API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Watch ./public/locales/<locale>/<namespace>.json files under the current project
  i18n-openai-sync .

  # Custom locale layout and fixed 4-space indentation
  i18n-openai-sync ./app -g "src/i18n/*/*.json" -i 4

  # Scan and load translation files once, then exit
  i18n-openai-sync . --once

Environment Variables:
  OPENAI_API_KEY              Your OpenAI API key (required for translation)
  OPENAI_TRANSLATION_MODEL    Model used for translation (default: gpt-5-mini)
  I18N_SYNC_ENABLED           Set to 'false' to pause synchronization
        """,
    )

    parser.add_argument(
        "workspace",
        type=Path,
        help="Path to the workspace root to watch",
    )

    parser.add_argument(
        "-g",
        "--locales-glob",
        type=str,
        action="append",
        dest="locales_globs",
        metavar="GLOB",
        help="Glob (relative to the workspace) matching locale files laid out as "
        "<locale>/<namespace>.json. Can be specified multiple times "
        "(default: **/locales/*/*.json)",
    )

    parser.add_argument(
        "-i",
        "--indent",
        type=int,
        default=None,
        dest="indentation",
        help="Indentation width used when rewriting locale files "
        "(default: keep each file's own indentation)",
    )

    parser.add_argument(
        "--grace-delay",
        type=float,
        default=None,
        help="Seconds to ignore watcher events for a file after writing it (default: 0.5)",
    )

    parser.add_argument(
        "--cache-file",
        type=Path,
        default=None,
        help="SQLite file holding cached translations",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Scan and load locale files, report what is tracked, and exit",
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


async def _run(app: SyncApplication, once: bool) -> None:
    if once:
        await app.initialize(watch=False)
        await app.shutdown()
        return
    await app.run_forever()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)

    # Validate workspace directory
    if not args.workspace.is_dir():
        print(f"Error: Directory does not exist: {args.workspace}", file=sys.stderr)
        return 1

    try:
        settings = load_settings(
            workspace=args.workspace.resolve(),
            locales_globs=args.locales_globs,
            indentation=args.indentation,
            grace_delay=args.grace_delay,
            cache_file=args.cache_file,
            log_level=args.log_level,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level, settings.log_file)

    try:
        asyncio.run(_run(SyncApplication(settings), args.once))
        return 0
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
