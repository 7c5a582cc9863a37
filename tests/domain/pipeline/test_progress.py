from __future__ import annotations

import logging

import pytest

from quarry.domain.pipeline import (
    CallbackProgressReporter,
    LoggingProgressReporter,
    ProgressReporter,
    ProgressTracker,
)

from tests.helpers.pipeline import RecordingReporter


def test_tracker_reports_fine_every_interval_and_coarse_ten_times_as_rarely() -> None:
    reporter = RecordingReporter()
    tracker = ProgressTracker(reporter, interval=2, total=40, label="family")

    tracker.start(existing=5)
    for completed in range(1, 41):
        tracker.advance(completed)
    tracker.finish(committed=38, skipped=2)

    assert [completed for completed, _ in reporter.fine] == list(range(2, 41, 2))
    assert [percent for percent, _ in reporter.coarse] == [0, 50, 100, 100]
    assert reporter.coarse[0][1] == "Starting family import (5 already imported)."
    assert reporter.coarse[-1][1] == "Family import complete: 38 rows imported, 2 skipped."


def test_percent_is_zero_without_size_hint() -> None:
    tracker = ProgressTracker(RecordingReporter(), interval=1, total=None)

    assert tracker.percent(500) == 0


def test_percent_is_capped() -> None:
    tracker = ProgressTracker(RecordingReporter(), interval=1, total=10)

    assert tracker.percent(15) == 100


def test_callback_reporter_forwards_notifications() -> None:
    coarse: list[tuple[int, str]] = []
    fine: list[tuple[int, str]] = []
    reporter = CallbackProgressReporter(
        on_coarse=lambda percent, message: coarse.append((percent, message)),
        on_fine=lambda completed, message: fine.append((completed, message)),
    )

    reporter.report_coarse(10, "ten")
    reporter.report_fine(3, "three")
    CallbackProgressReporter().report_fine(1, "ignored")

    assert coarse == [(10, "ten")]
    assert fine == [(3, "three")]
    assert isinstance(reporter, ProgressReporter)


def test_logging_reporter_logs_coarse_at_info(caplog: pytest.LogCaptureFixture) -> None:
    reporter = LoggingProgressReporter()

    with caplog.at_level(logging.INFO, logger="quarry.domain.pipeline.progress"):
        reporter.report_coarse(40, "halfway there")
        reporter.report_fine(7, "fine detail")

    assert "[ 40%] halfway there" in caplog.text
    assert "fine detail" not in caplog.text
