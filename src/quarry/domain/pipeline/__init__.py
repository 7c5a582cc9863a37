"""Batched, deduplicating, relationship-aware commit pipeline."""

from __future__ import annotations

from quarry.domain.pipeline.accumulator import BatchAccumulator
from quarry.domain.pipeline.builder import ALREADY_IMPORTED, EntityBuilder, Lookups, PendingView
from quarry.domain.pipeline.candidates import (
    AnyCandidate,
    Batch,
    BuildResult,
    CandidateEntity,
    DurableRef,
    EntityRef,
    RelationshipEdge,
    Unit,
    link,
)
from quarry.domain.pipeline.commit import CommitEngine, CommitResult, NewIdentity
from quarry.domain.pipeline.context import ImportActor, ImportRun, ReferenceCache
from quarry.domain.pipeline.driver import (
    CANCELLED,
    ImportPipeline,
    ImportReport,
    ImportSummary,
    PipelineState,
)
from quarry.domain.pipeline.errors import (
    CommitFailedError,
    DuplicateRegistrationError,
    PipelineError,
    RowConversionError,
    RowSourceError,
    RunAbortedError,
    UnresolvedRelationshipError,
)
from quarry.domain.pipeline.identity import IdentityIndex, IdentityLookup, normalize_external_key
from quarry.domain.pipeline.progress import (
    CallbackProgressReporter,
    LoggingProgressReporter,
    ProgressReporter,
    ProgressTracker,
)
from quarry.domain.pipeline.rows import DATE_FORMATS, RawRow, parse_date
from quarry.domain.pipeline.session import SessionLifecycleManager

__all__ = [  # noqa: RUF022
    # rows and identity
    "DATE_FORMATS",
    "RawRow",
    "parse_date",
    "IdentityIndex",
    "IdentityLookup",
    "normalize_external_key",
    # candidates
    "AnyCandidate",
    "Batch",
    "BuildResult",
    "CandidateEntity",
    "DurableRef",
    "EntityRef",
    "RelationshipEdge",
    "Unit",
    "link",
    # builder contract and context
    "ALREADY_IMPORTED",
    "EntityBuilder",
    "Lookups",
    "PendingView",
    "ImportActor",
    "ImportRun",
    "ReferenceCache",
    # stages
    "BatchAccumulator",
    "CommitEngine",
    "CommitResult",
    "NewIdentity",
    "SessionLifecycleManager",
    "CallbackProgressReporter",
    "LoggingProgressReporter",
    "ProgressReporter",
    "ProgressTracker",
    # driver
    "CANCELLED",
    "ImportPipeline",
    "ImportReport",
    "ImportSummary",
    "PipelineState",
    # errors
    "CommitFailedError",
    "DuplicateRegistrationError",
    "PipelineError",
    "RowConversionError",
    "RowSourceError",
    "RunAbortedError",
    "UnresolvedRelationshipError",
]
