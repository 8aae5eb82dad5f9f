"""Command-line entry point: ``data-completeness run ...``."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date

import structlog
from pydantic import ValidationError

from data_completeness import __version__
from data_completeness.config import LOG_LEVELS, AuthorizationFanout, CompletenessSettings
from data_completeness.errors import CompletenessError
from data_completeness.io.tabular import (
    format_table,
    load_authorizations,
    load_census,
    load_events,
    write_rows,
)
from data_completeness.logging_config import configure_logging
from data_completeness.pipeline.completeness_pipeline import CompletenessPipeline

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 2


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an ISO date (YYYY-MM-DD): {value}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="data-completeness",
        description="Claims, HIE and authorization capture rates for inpatient events",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="compute capture rates from CSV inputs")
    run.add_argument("--events", required=True, help="inpatient events CSV")
    run.add_argument("--census", required=True, help="monthly patient census CSV")
    run.add_argument("--authorizations", required=True, help="authorization spans CSV")
    run.add_argument("--cutoff", type=_iso_date, help="earliest admit date included")
    run.add_argument("--output", help="write the result table to this CSV path")
    run.add_argument(
        "--auth-fanout",
        choices=[f.value for f in AuthorizationFanout],
        help="how to link events overlapping several authorizations",
    )
    run.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="fail instead of excluding rows missing required fields",
    )
    run.add_argument("--report", help="write the run summary (validation, lineage) as JSON")
    run.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, help="logging threshold")
    run.add_argument("--json-logs", action="store_true", default=None, help="emit JSON log lines")

    return parser


def run_command(args: argparse.Namespace) -> int:
    overrides = {
        key: value
        for key, value in {
            "log_level": args.log_level,
            "json_logs": args.json_logs,
        }.items()
        if value is not None
    }
    try:
        settings = CompletenessSettings(**overrides)
    except ValidationError as e:
        configure_logging()
        logger.error("invalid_settings", error=str(e), error_count=e.error_count())
        print(f"error: invalid settings: {e}", file=sys.stderr)
        return EXIT_FAILURE
    configure_logging(settings.log_level, settings.json_logs)

    try:
        events = load_events(args.events)
        census = load_census(args.census)
        authorizations = load_authorizations(args.authorizations)

        result = CompletenessPipeline(settings=settings).run(
            events,
            census,
            authorizations,
            cutoff_date=args.cutoff,
            authorization_fanout=args.auth_fanout,
            strict=args.strict,
        )
    except CompletenessError as e:
        logger.error("completeness_run_aborted", error=str(e), error_type=type(e).__name__)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    if args.output:
        write_rows(result.rows, args.output)
    else:
        print(format_table(result.rows))

    if args.report:
        with open(args.report, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2)

    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "run":
        return run_command(args)
    return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
