from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from squarelink.adapters.reports import summary_lines
from squarelink.adapters.square import SquareCsvError
from squarelink.app import import_customers, verify_registry
from squarelink.config import (
    AutoLinkTier,
    ConfigurationError,
    MatchingConfig,
    configure_logging,
    level_for_verbosity,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile Square customers with the registry")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeat for SQL statements)",
    )
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data dir)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    customers = subparsers.add_parser("customers", help="Import Square customer exports")
    customers.add_argument(
        "files",
        nargs="+",
        type=Path,
        help="One or more Square customer export CSV files",
    )
    customers.add_argument(
        "--report-dir",
        type=Path,
        help="Directory for the CSV reports (defaults to config)",
    )
    customers.add_argument(
        "--no-reports",
        action="store_true",
        help="Do not write CSV reports",
    )
    customers.add_argument(
        "--min-confidence",
        type=str,
        choices=[tier.value for tier in AutoLinkTier],
        help="Signals allowed for auto-linking (defaults to SQUARELINK_AUTO_LINK_TIER)",
    )
    customers.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Count ambiguous auto-link matches as errors",
    )
    customers.add_argument(
        "--dry-run",
        action="store_true",
        help="Reconcile and write reports without changing the registry",
    )

    subparsers.add_parser("verify", help="Report registry health counters")

    return parser.parse_args(list(argv))


def _build_config(args: argparse.Namespace) -> MatchingConfig:
    base = MatchingConfig.from_environment()
    tier = AutoLinkTier.parse(args.min_confidence) if args.min_confidence else base.auto_link_tier
    strict = base.strict if args.strict is None else args.strict
    return MatchingConfig(
        organization_indicators=base.organization_indicators,
        placeholder_names=base.placeholder_names,
        placeholder_prefix=base.placeholder_prefix,
        auto_link_tier=tier,
        strict=strict,
    )


def _check_files(files: Sequence[Path]) -> None:
    for path in files:
        if not path.is_file():
            raise ValueError(f"Customer export not found: {path}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    config: MatchingConfig | None = None
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(
            level=level_for_verbosity(parsed_args.verbose),
            sql_echo=parsed_args.verbose > 1,
        )
        if parsed_args.command == "customers":
            _check_files(parsed_args.files)
            config = _build_config(parsed_args)
    except (ValueError, ConfigurationError):
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "customers":
            outcome = import_customers(
                parsed_args.files,
                config=config,
                report_dir=parsed_args.report_dir,
                write_report_files=not parsed_args.no_reports,
                dry_run=parsed_args.dry_run,
                database_uri=parsed_args.database_uri,
            )
            for line in summary_lines(outcome.reconciliation, report_dir=outcome.report_dir):
                log.info(line)
            if outcome.applied is None:
                log.info("dry_run=true registry unchanged")
            else:
                log.info(
                    "applied writes=%s mapping_conflicts=%s",
                    outcome.applied.total_writes,
                    outcome.applied.mapping_conflicts,
                )
        elif parsed_args.command == "verify":
            health = verify_registry(database_uri=parsed_args.database_uri)
            for line in health.lines():
                log.info(line)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except SquareCsvError:
        log.exception("Invalid customer export")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during import")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()
