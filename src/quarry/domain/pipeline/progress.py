"""Coarse and fine progress notifications."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable


log = getLogger(__name__)

COARSE_FACTOR = 10


@runtime_checkable
class ProgressReporter(Protocol):
    def report_coarse(self, percent: int, message: str) -> None: ...

    def report_fine(self, completed: int, message: str) -> None: ...


class LoggingProgressReporter:
    """Default reporter: coarse progress at INFO, fine progress at DEBUG."""

    def report_coarse(self, percent: int, message: str) -> None:
        log.info("[%3d%%] %s", percent, message)

    def report_fine(self, completed: int, message: str) -> None:
        log.debug("%d rows: %s", completed, message)


@dataclass(slots=True)
class CallbackProgressReporter:
    """Forwards notifications to plain callables, e.g. a UI's update hooks."""

    on_coarse: Callable[[int, str], None] | None = None
    on_fine: Callable[[int, str], None] | None = None

    def report_coarse(self, percent: int, message: str) -> None:
        if self.on_coarse is not None:
            self.on_coarse(percent, message)

    def report_fine(self, completed: int, message: str) -> None:
        if self.on_fine is not None:
            self.on_fine(completed, message)


class ProgressTracker:
    """Decides when to notify: fine every ``interval`` rows, coarse ten times as rarely."""

    def __init__(
        self,
        reporter: ProgressReporter,
        *,
        interval: int,
        total: int | None = None,
        label: str = "row",
    ) -> None:
        self._reporter = reporter
        self._interval = max(interval, 1)
        self._total = total if total and total > 0 else None
        self._label = label

    def percent(self, completed: int) -> int:
        if self._total is None:
            return 0
        return min(100, completed * 100 // self._total)

    def start(self, existing: int) -> None:
        self._reporter.report_coarse(
            0, f"Starting {self._label} import ({existing:,} already imported)."
        )

    def advance(self, completed: int) -> None:
        if completed % (self._interval * COARSE_FACTOR) == 0:
            self._reporter.report_coarse(
                self.percent(completed), f"{completed:,} {self._label} rows processed."
            )
        if completed % self._interval == 0:
            self._reporter.report_fine(completed, f"{completed:,} {self._label} rows processed.")

    def finish(self, committed: int, skipped: int) -> None:
        self._reporter.report_coarse(
            100,
            f"{self._label.capitalize()} import complete: {committed:,} rows imported, "
            f"{skipped:,} skipped.",
        )
