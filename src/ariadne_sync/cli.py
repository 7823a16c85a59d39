"""Command-line entry point for one tracker <-> Notion sync run.

Exit status is 0 when the run completes (record-level errors are listed in
the report) and 1 on any fatal error.
"""

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

from . import __version__
from .config import load_config
from .config_loader import load_hierarchical_config
from .config_schema import build_config
from .errors import SyncError
from .logger import setup_logging
from .sync.engine import SyncEngine, SyncOptions
from .sync.reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ariadne-sync",
        description="Bidirectional incremental sync between the local job tracker and Notion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview what a sync would do
  ariadne-sync --dry-run

  # Regular incremental sync (pull, then push)
  ariadne-sync

  # Push every record regardless of stored hashes
  ariadne-sync --push-only --full

  # Archive Notion pages of records deleted locally
  ariadne-sync --apply-deletes

  # Scheduled run: log to a file only, print nothing
  ariadne-sync --background --log-file ~/.cache/ariadne-sync.log

Note: conflicts are resolved in favour of the local copy.
        """,
    )

    modes = parser.add_argument_group("run modes")
    modes.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview changes without modifying local files, the sync map or Notion",
    )
    modes.add_argument(
        "--pull-only", action="store_true", help="Only pull Notion -> local"
    )
    modes.add_argument(
        "--push-only",
        action="store_true",
        help="Only push local -> Notion (incremental)",
    )
    modes.add_argument(
        "--full",
        action="store_true",
        help="Ignore hashes and edit times, sync everything",
    )
    modes.add_argument(
        "--apply-deletes",
        action="store_true",
        help="Archive Notion pages of records deleted locally",
    )

    parser.add_argument(
        "--data-dir",
        help="Directory holding tracker.json, network.json and tasks.json "
        "(takes precedence over ARIADNE_DATA_DIR and config files)",
    )
    parser.add_argument(
        "--api-key",
        help="Override the Notion API key"
        " (visible in process list -- prefer NOTION_API_KEY env var)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON instead of text",
    )
    parser.add_argument(
        "--background",
        action="store_true",
        help="Log to a file only and print nothing (for schedulers)",
    )
    parser.add_argument("--log-file", help="Log file path")
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"ariadne-sync version {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(
        mode="background" if args.background else "cli",
        debug=args.debug,
        log_file=args.log_file,
    )

    options = SyncOptions(
        dry_run=args.dry_run,
        pull_only=args.pull_only,
        push_only=args.push_only,
        full=args.full,
        apply_deletes=args.apply_deletes,
    )

    try:
        options.validate()
        load_dotenv()
        unified = build_config(load_hierarchical_config())
        config = load_config(
            api_key=args.api_key,
            data_dir=args.data_dir,
            debug=args.debug,
            unified=unified,
        )
        if config.debug and not args.debug:
            logging.getLogger().setLevel(logging.DEBUG)
        report = SyncEngine(config).run(options)
    except SyncError as exc:
        if args.background:
            logger.error("Fatal: %s", exc)
        else:
            logger.debug("Sync aborted", exc_info=True)
            print(f"Fatal: {exc}", file=sys.stderr)
        return 1

    if args.background:
        return 0
    if args.json:
        print(json.dumps(report_to_json(report), indent=2))
    elif report.dry_run:
        print(format_dry_run_preview(report))
    else:
        print(format_sync_report(report))
    return 0


if __name__ == "__main__":
    sys.exit(main())
