"""The import pipeline state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from quarry.domain.pipeline.accumulator import BatchAccumulator
from quarry.domain.pipeline.candidates import BuildResult, Unit
from quarry.domain.pipeline.commit import CommitEngine
from quarry.domain.pipeline.errors import (
    CommitFailedError,
    DuplicateRegistrationError,
    PipelineError,
    RowConversionError,
    RowSourceError,
    RunAbortedError,
    UnresolvedRelationshipError,
)
from quarry.domain.pipeline.progress import LoggingProgressReporter, ProgressTracker
from quarry.domain.pipeline.session import SessionLifecycleManager

if TYPE_CHECKING:
    from collections.abc import Iterator
    from threading import Event

    from quarry.domain.pipeline.builder import EntityBuilder
    from quarry.domain.pipeline.context import ImportRun
    from quarry.domain.pipeline.progress import ProgressReporter
    from quarry.domain.pipeline.rows import RawRow
    from quarry.domain.ports.persistence import SeedQuery, SessionFactory
    from quarry.domain.ports.sources import RowSource


log = getLogger(__name__)

CANCELLED = "cancelled"


class PipelineState(StrEnum):
    IDLE = "idle"
    SEEDING = "seeding"
    STREAMING = "streaming"
    FLUSHING = "flushing"
    RESETTING = "resetting"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(slots=True)
class ImportSummary:
    """Outcome of importing one source.

    ``rows_seen == rows_committed + rows_skipped + rows_not_imported`` holds
    whenever the pipeline is not mid-row.
    """

    source: str
    category: str
    state: PipelineState = PipelineState.IDLE
    rows_seen: int = 0
    rows_committed: int = 0
    rows_skipped: int = 0
    rows_not_imported: int = 0
    entities_committed: int = 0
    batches_committed: int = 0
    errors: list[str] = field(default_factory=list[str])
    last_committed_row: int | None = None
    abort_reason: str | None = None
    reopened_groups: int = 0

    @property
    def aborted(self) -> bool:
        return self.state is PipelineState.ABORTED

    @property
    def completed(self) -> bool:
        return self.state is PipelineState.COMPLETED

    @property
    def is_balanced(self) -> bool:
        return self.rows_seen == self.rows_committed + self.rows_skipped + self.rows_not_imported


@dataclass(slots=True)
class ImportReport:
    """Summaries of every source processed by one run, in processing order."""

    summaries: list[ImportSummary] = field(default_factory=list[ImportSummary])

    def add(self, summary: ImportSummary) -> None:
        self.summaries.append(summary)

    @property
    def aborted(self) -> ImportSummary | None:
        return next((summary for summary in self.summaries if summary.aborted), None)

    @property
    def succeeded(self) -> bool:
        return self.aborted is None

    @property
    def rows_committed(self) -> int:
        return sum(summary.rows_committed for summary in self.summaries)

    @property
    def rows_skipped(self) -> int:
        return sum(summary.rows_skipped for summary in self.summaries)

    def raise_for_abort(self) -> None:
        summary = self.aborted
        if summary is not None:
            raise RunAbortedError(summary)


class _Cancelled(Exception):  # noqa: N818
    pass


class ImportPipeline:
    """Streams one source through a builder into the store.

    One pipeline handles one source; the ``ImportRun`` it receives is shared
    by the pipelines of a run. Rows flow builder → accumulator → commit →
    identity index, with a flush whenever the accumulator reaches the batch
    size at a group boundary. A session reset is offered after each flush
    and after every ``batch_size`` rows.
    """

    def __init__(
        self,
        *,
        run: ImportRun,
        builder: EntityBuilder,
        session_factory: SessionFactory,
        seed_query: SeedQuery,
        batch_size: int,
        reporter: ProgressReporter | None = None,
        cancel_event: Event | None = None,
    ) -> None:
        self.run_context = run
        self.builder = builder
        self.batch_size = batch_size
        self.sessions = SessionLifecycleManager(session_factory, threshold=batch_size)
        self.commit_engine = CommitEngine(self.sessions)
        self.accumulator = BatchAccumulator(batch_size)
        self._seed_query = seed_query
        self._reporter: ProgressReporter = reporter or LoggingProgressReporter()
        self._cancel_event = cancel_event
        self._lookups = run.lookups(self.accumulator)
        self._rows_since_reset = 0
        self._summary: ImportSummary | None = None
        self.state = PipelineState.IDLE

    def run(self, source: RowSource) -> ImportSummary:
        summary = ImportSummary(source=source.name, category=self.builder.tag)
        self._summary = summary
        tracker = ProgressTracker(
            self._reporter,
            interval=self.batch_size,
            total=source.size_hint(),
            label=self.builder.tag,
        )
        try:
            self._transition(PipelineState.SEEDING)
            self.run_context.identities.seed(self._seed_query, self.builder.seed_categories)
            tracker.start(self.run_context.existing_count(self.builder.seed_categories[:1]))

            self._transition(PipelineState.STREAMING)
            for row in _read(source):
                if self._cancel_event is not None and self._cancel_event.is_set():
                    raise _Cancelled
                self._process(row)
                tracker.advance(summary.rows_seen)
            if self._cancel_event is not None and self._cancel_event.is_set():
                raise _Cancelled

            trailing = self.builder.finish(self._lookups)
            if trailing is not None and not trailing.skip and not trailing.is_empty:
                self.accumulator.add(Unit(trailing))
            self._flush()
        except _Cancelled:
            log.info("Import of %s cancelled after %d rows", source.name, summary.rows_seen)
            self._abort(CANCELLED)
        except (
            CommitFailedError,
            UnresolvedRelationshipError,
            DuplicateRegistrationError,
            RowSourceError,
        ) as exc:
            log.exception("Import of %s aborted", source.name)
            self._abort(str(exc))
        except MemoryError:
            log.critical("Import of %s ran out of memory", source.name)
            self._abort("out of memory")
        else:
            self._transition(PipelineState.COMPLETED)
            tracker.finish(summary.rows_committed, summary.rows_skipped)
        finally:
            summary.reopened_groups = self.accumulator.reopened_groups
            self.sessions.close()
            self._fold_into_run(summary)
        log.info(
            "%s: %d seen, %d committed, %d skipped, %d not imported (%s)",
            source.name,
            summary.rows_seen,
            summary.rows_committed,
            summary.rows_skipped,
            summary.rows_not_imported,
            summary.state,
        )
        return summary

    def _process(self, row: RawRow) -> None:
        summary = self._require_summary()
        summary.rows_seen += 1
        self._rows_since_reset += 1
        result = self._build(row)
        if result.skip:
            self._skip(row, result.reason or "skipped")
        else:
            unit = Unit(result, row.line_number)
            try:
                if self.accumulator.should_flush(unit.group_key):
                    self._flush()
                self.accumulator.add(unit)
            except PipelineError:
                summary.rows_not_imported += 1
                raise
        if self._rows_since_reset >= self.batch_size:
            self._offer_reset()

    def _build(self, row: RawRow) -> BuildResult:
        try:
            return self.builder.build(row, self._lookups)
        except RowConversionError as exc:
            return BuildResult.skipped(str(exc))

    def _skip(self, row: RawRow, reason: str) -> None:
        summary = self._require_summary()
        summary.rows_skipped += 1
        message = f"line {row.line_number}: {reason}"
        summary.errors.append(message)
        log.info("Skipped %s", message)

    def _flush(self) -> None:
        if self.accumulator.is_empty:
            return
        summary = self._require_summary()
        self._transition(PipelineState.FLUSHING)
        batch = self.accumulator.drain()
        try:
            result = self.commit_engine.commit(batch)
        except PipelineError:
            summary.rows_not_imported += batch.row_count
            raise

        summary.rows_committed += result.row_count
        summary.entities_committed += result.persisted_count
        summary.batches_committed += 1
        if batch.last_line is not None:
            summary.last_committed_row = batch.last_line
        for identity in result.new_identities:
            self.run_context.identities.register(
                identity.category, identity.external_key, identity.durable_id
            )
        log.debug(
            "Committed batch %d: %d rows, %d entities",
            summary.batches_committed,
            result.row_count,
            result.persisted_count,
        )

        self._offer_reset()

    def _offer_reset(self) -> None:
        self._transition(PipelineState.RESETTING)
        if self.sessions.maybe_reset(self._rows_since_reset, safe=self.accumulator.is_empty):
            self._rows_since_reset = 0
        self._transition(PipelineState.STREAMING)

    def _abort(self, reason: str) -> None:
        summary = self._require_summary()
        dropped = self.accumulator.drain()
        summary.rows_not_imported += dropped.row_count
        summary.abort_reason = reason
        summary.errors.append(f"aborted: {reason}")
        self._transition(PipelineState.ABORTED)

    def _fold_into_run(self, summary: ImportSummary) -> None:
        run = self.run_context
        run.rows_seen += summary.rows_seen
        run.rows_committed += summary.rows_committed
        run.rows_skipped += summary.rows_skipped
        run.rows_not_imported += summary.rows_not_imported

    def _transition(self, state: PipelineState) -> None:
        log.debug("%s: %s -> %s", self.builder.tag, self.state, state)
        self.state = state
        if self._summary is not None:
            self._summary.state = state

    def _require_summary(self) -> ImportSummary:
        if self._summary is None:
            raise RuntimeError("pipeline is not running")
        return self._summary


def _read(source: RowSource) -> Iterator[RawRow]:
    """Iterate ``source``, reporting any read failure as ``RowSourceError``."""

    iterator = iter(source)
    while True:
        try:
            row = next(iterator)
        except StopIteration:
            return
        except RowSourceError:
            raise
        except (OSError, ValueError) as exc:
            raise RowSourceError(f"Reading {source.name} failed: {exc}") from exc
        yield row
