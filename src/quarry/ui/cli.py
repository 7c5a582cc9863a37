from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from threading import Event
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from sqlalchemy import create_engine

from quarry.adapters.csv import IMPORT_ORDER, plan_sources
from quarry.adapters.sqlalchemy import SqlTableRowSource, startup
from quarry.app import run_import
from quarry.config import (
    ConfigurationError,
    SourceFileError,
    configure_logging,
    get_import_config,
    require_env_vars,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from quarry.domain.pipeline import ImportReport
    from quarry.domain.ports import RowSource

log = logging.getLogger(__name__)

SOURCE_URI_ENV = "QUARRY_SOURCE_URI"

_cancel_event = Event()


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Rows per committed batch (defaults to config)",
    )
    parser.add_argument(
        "--actor",
        type=str,
        default=None,
        help="Name of the person imported records are attributed to (defaults to config)",
    )
    parser.add_argument(
        "--database-uri",
        type=str,
        default=None,
        help="Destination database URI (defaults to QUARRY_DATABASE_URI or the local data dir)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log batch commits, session resets and SQL statements",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="quarry", description="Import tabular data without creating duplicates"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    files = subparsers.add_parser("import", help="Import delimited files")
    files.add_argument(
        "paths",
        nargs="+",
        type=Path,
        metavar="PATH",
        help="Files named after their layout, e.g. family.csv or individual_2024.csv",
    )
    files.add_argument(
        "--category",
        dest="categories",
        action="append",
        choices=IMPORT_ORDER,
        default=None,
        help="Only import files of this category (repeatable)",
    )
    _add_run_options(files)

    table = subparsers.add_parser("import-table", help="Import a raw extracted database table")
    table.add_argument("category", choices=IMPORT_ORDER, help="Layout of the table rows")
    table.add_argument("table", type=str, help="Name of the table to scan")
    table.add_argument(
        "--source-uri",
        type=str,
        default=None,
        help=f"Database holding the table (defaults to {SOURCE_URI_ENV})",
    )
    table.add_argument("--schema", type=str, default=None, help="Schema of the table")
    table.add_argument(
        "--order-by",
        action="append",
        default=None,
        metavar="COLUMN",
        help="Scan order; use the group key column so groups arrive together (repeatable)",
    )
    _add_run_options(table)

    subparsers.add_parser("categories", help="List import categories in import order")

    return parser.parse_args(list(argv))


def _table_source(args: argparse.Namespace) -> RowSource:
    source_uri = args.source_uri or require_env_vars([SOURCE_URI_ENV])[SOURCE_URI_ENV]
    return SqlTableRowSource(
        create_engine(source_uri),
        args.table,
        schema=args.schema,
        order_by=tuple(args.order_by or ()),
    )


def _log_report(report: ImportReport) -> None:
    for summary in report.summaries:
        log.info(
            "%s [%s] %s: seen=%s committed=%s skipped=%s not_imported=%s entities=%s",
            summary.source,
            summary.category,
            summary.state,
            summary.rows_seen,
            summary.rows_committed,
            summary.rows_skipped,
            summary.rows_not_imported,
            summary.entities_committed,
        )
        if summary.reopened_groups:
            log.warning(
                "%s: %d group(s) were not contiguous in the input",
                summary.source,
                summary.reopened_groups,
            )
    aborted = report.aborted
    if aborted is not None:
        log.error(
            "Import aborted in %s after line %s: %s",
            aborted.source,
            aborted.last_committed_row,
            aborted.abort_reason,
        )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    verbose = getattr(parsed_args, "verbose", False)
    configure_logging(verbose=verbose)

    if parsed_args.command == "categories":
        for tag in IMPORT_ORDER:
            print(tag)  # noqa: T201
        return

    sources: list[tuple[str, RowSource]] | None = None
    try:
        config = get_import_config(
            batch_size=parsed_args.batch_size,
            import_actor=parsed_args.actor,
            source_paths=tuple(getattr(parsed_args, "paths", ())),
            selected_categories=tuple(getattr(parsed_args, "categories", None) or ()),
        )
        if parsed_args.command == "import":
            missing = [str(path) for path in config.source_paths if not path.is_file()]
            if missing:
                raise SourceFileError(missing)  # noqa: TRY301
            plan_sources(config.source_paths, categories=config.selected_categories)
        else:
            sources = [(parsed_args.category, _table_source(parsed_args))]
    except ConfigurationError:
        log.exception("CLI validation error")
        sys.exit(2)

    _cancel_event.clear()
    signal(SIGINT, sigint_handler)
    try:
        if parsed_args.database_uri:
            startup(database_uri=parsed_args.database_uri, force=True)
        report = run_import(config, sources=sources, cancel_event=_cancel_event)
    except Exception:
        log.exception("Fatal error during import")
        sys.exit(1)

    _log_report(report)
    if not report.succeeded:
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Cancel the running import at the next row; a second Ctrl+C exits at once."""
    if _cancel_event.is_set():
        log.info("Closed by user (Ctrl+C)")
        sys.exit(1)
    log.info("Cancelling import (Ctrl+C again to exit immediately)")
    _cancel_event.set()


if __name__ == "__main__":
    main()
