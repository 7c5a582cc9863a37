"""Error taxonomy for the import pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quarry.domain.model import Category
    from quarry.domain.pipeline.driver import ImportSummary


class PipelineError(RuntimeError):
    """Base class for failures raised by the import pipeline."""


class RowConversionError(PipelineError, ValueError):
    """Raised when a row value cannot be converted to the declared type."""

    def __init__(self, column: str | int, value: object, expected: str) -> None:
        super().__init__(f"column {column!r}: cannot read {value!r} as {expected}")
        self.column = column
        self.value = value
        self.expected = expected


class RowSourceError(PipelineError):
    """Raised when the row source cannot produce the next row."""


class DuplicateRegistrationError(PipelineError):
    """Raised when an external key would be registered twice in one category."""

    def __init__(self, category: Category, external_key: str, existing: object) -> None:
        super().__init__(
            f"{category} key {external_key!r} already registered (existing: {existing!r})"
        )
        self.category = category
        self.external_key = external_key


class UnresolvedRelationshipError(PipelineError):
    """Raised when an edge points at a candidate that will not be committed with it."""


class CommitFailedError(PipelineError):
    """Raised when a batch could not be committed after retrying."""

    def __init__(self, message: str, *, attempts: int, row_count: int) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.row_count = row_count


class RunAbortedError(PipelineError):
    """Raised for callers that prefer an exception over an aborted summary."""

    def __init__(self, summary: ImportSummary) -> None:
        super().__init__(
            f"Import of {summary.source} aborted after line {summary.last_committed_row}: "
            f"{summary.abort_reason}"
        )
        self.summary = summary
