"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from threading import Event, Thread
from typing import TYPE_CHECKING

from quarry.adapters.csv import CsvRowSource, create_builder, plan_sources
from quarry.adapters.sqlalchemy import (
    SqlAlchemyReferenceQuery,
    SqlAlchemySeedQuery,
    is_started,
    orm_session_factory,
    persistence_session_factory,
    startup,
)
from quarry.domain.pipeline import ImportPipeline, ImportReport, ImportRun

if TYPE_CHECKING:
    from collections.abc import Sequence

    from quarry.config import ImportConfig
    from quarry.domain.pipeline import ProgressReporter
    from quarry.domain.ports import ReferenceQuery, RowSource, SeedQuery, SessionFactory


log = getLogger(__name__)


def run_import(
    config: ImportConfig,
    *,
    reporter: ProgressReporter | None = None,
    session_factory: SessionFactory | None = None,
    seed_query: SeedQuery | None = None,
    reference_query: ReferenceQuery | None = None,
    sources: Sequence[tuple[str, RowSource]] | None = None,
    cancel_event: Event | None = None,
) -> ImportReport:
    """Import each source in dependency order, stopping after the first aborted one.

    Without explicit ports the configured SQLAlchemy adapter is used, started
    on demand. ``sources`` pairs registry tags with row sources and replaces
    the files named by ``config``.
    """

    if session_factory is None or seed_query is None or reference_query is None:
        if not is_started():
            startup()
        orm_factory = orm_session_factory()
        session_factory = session_factory or persistence_session_factory(orm_factory)
        seed_query = seed_query or SqlAlchemySeedQuery(orm_factory)
        reference_query = reference_query or SqlAlchemyReferenceQuery(orm_factory)

    if sources is None:
        planned = plan_sources(config.source_paths, categories=config.selected_categories)
        sources = [(tag, CsvRowSource(path)) for tag, path in planned]
    if not sources:
        log.warning("No sources to import")

    run = ImportRun.start(actor_name=config.import_actor, references=reference_query)
    log.info(
        "Starting import of %d source(s): batch_size=%s, actor=%s",
        len(sources),
        config.batch_size,
        config.import_actor,
    )
    report = ImportReport()
    for tag, source in sources:
        pipeline = ImportPipeline(
            run=run,
            builder=create_builder(tag),
            session_factory=session_factory,
            seed_query=seed_query,
            batch_size=config.batch_size,
            reporter=reporter,
            cancel_event=cancel_event,
        )
        summary = pipeline.run(source)
        report.add(summary)
        if summary.aborted:
            log.error("Stopping after %s: %s", summary.source, summary.abort_reason)
            break

    log.info(
        "Finished import: committed=%s, skipped=%s, not_imported=%s",
        run.rows_committed,
        run.rows_skipped,
        run.rows_not_imported,
    )
    return report


class RunHandle:
    """A run executing on a background thread.

    The caller learns about progress only through the reporter passed to
    ``start_import``; ``result`` re-raises anything the run raised.
    """

    def __init__(self, config: ImportConfig, **options: object) -> None:
        self.cancel_event = Event()
        self._config = config
        self._options = options
        self._report: ImportReport | None = None
        self._error: Exception | None = None
        self._thread = Thread(target=self._run, name="quarry-import", daemon=True)

    def start(self) -> RunHandle:
        self._thread.start()
        return self

    def _run(self) -> None:
        try:
            self._report = run_import(
                self._config,
                cancel_event=self.cancel_event,
                **self._options,  # pyright: ignore[reportArgumentType]
            )
        except Exception as exc:  # noqa: BLE001
            log.exception("Background import failed")
            self._error = exc

    def cancel(self) -> None:
        """Ask the run to stop before its next row."""

        self.cancel_event.set()

    @property
    def done(self) -> bool:
        return not self._thread.is_alive()

    def wait(self, timeout: float | None = None) -> bool:
        self._thread.join(timeout)
        return self.done

    def result(self, timeout: float | None = None) -> ImportReport:
        if not self.wait(timeout):
            raise TimeoutError("Import still running")
        if self._error is not None:
            raise self._error
        if self._report is None:
            raise RuntimeError("Import finished without a report")
        return self._report


def start_import(
    config: ImportConfig,
    *,
    reporter: ProgressReporter | None = None,
    session_factory: SessionFactory | None = None,
    seed_query: SeedQuery | None = None,
    reference_query: ReferenceQuery | None = None,
    sources: Sequence[tuple[str, RowSource]] | None = None,
) -> RunHandle:
    """Start ``run_import`` on a background thread and return its handle."""

    return RunHandle(
        config,
        reporter=reporter,
        session_factory=session_factory,
        seed_query=seed_query,
        reference_query=reference_query,
        sources=sources,
    ).start()
