"""Candidate entities, relationship edges and the units and batches built from them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

    from quarry.domain.model import Category, Entity


@dataclass(frozen=True, slots=True)
class DurableRef:
    """Reference to a record that already exists in the store."""

    category: Category
    durable_id: int


@dataclass(eq=False, slots=True)
class CandidateEntity[TEntity: Entity]:
    """An unpersisted domain object awaiting its batch commit.

    Candidates compare by identity. ``durable_id`` stays ``None`` until the
    commit that persists the candidate succeeds.
    """

    entity: TEntity
    register: bool = True
    durable_id: int | None = None

    @property
    def category(self) -> Category:
        return self.entity.category

    @property
    def external_key(self) -> str | None:
        return getattr(self.entity, "external_key", None)

    @property
    def is_durable(self) -> bool:
        return self.durable_id is not None

    @property
    def registers_identity(self) -> bool:
        return self.register and self.external_key is not None

    def ref(self) -> DurableRef:
        if self.durable_id is None:
            raise ValueError(f"{self.category} candidate {self.external_key!r} is not committed")
        return DurableRef(self.category, self.durable_id)


type AnyCandidate = CandidateEntity[Any]
type EntityRef = AnyCandidate | DurableRef


@dataclass(frozen=True, slots=True)
class RelationshipEdge:
    """``source.entity.<field>`` must hold the durable id of ``target``."""

    source: AnyCandidate
    field: str
    target: EntityRef

    def __post_init__(self) -> None:
        if not hasattr(self.source.entity, self.field):
            raise ValueError(f"{type(self.source.entity).__name__} has no field {self.field!r}")


def link(
    source: AnyCandidate, field_name: str, target: EntityRef | None
) -> tuple[RelationshipEdge, ...]:
    """Return the edge for ``target`` or nothing when the target is unknown."""

    if target is None:
        return ()
    return (RelationshipEdge(source, field_name, target),)


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Everything one row contributes, or the reason it contributes nothing."""

    candidates: tuple[AnyCandidate, ...] = ()
    edges: tuple[RelationshipEdge, ...] = ()
    group_key: str | None = None
    skip: bool = False
    reason: str | None = None

    @classmethod
    def skipped(cls, reason: str, *, group_key: str | None = None) -> BuildResult:
        return cls(group_key=group_key, skip=True, reason=reason)

    @property
    def is_empty(self) -> bool:
        return not self.candidates


@dataclass(frozen=True, slots=True)
class Unit:
    """The build result of one source row; never split across batches.

    ``line_number`` is ``None`` for trailing units a builder emits after the
    source is exhausted; those do not count as rows.
    """

    result: BuildResult
    line_number: int | None = None

    @property
    def candidates(self) -> tuple[AnyCandidate, ...]:
        return self.result.candidates

    @property
    def edges(self) -> tuple[RelationshipEdge, ...]:
        return self.result.edges

    @property
    def group_key(self) -> str | None:
        return self.result.group_key

    @property
    def is_row(self) -> bool:
        return self.line_number is not None


@dataclass(frozen=True, slots=True)
class Batch:
    units: tuple[Unit, ...] = ()

    def __len__(self) -> int:
        return len(self.units)

    def __bool__(self) -> bool:
        return bool(self.units)

    def iter_candidates(self) -> Iterator[AnyCandidate]:
        for unit in self.units:
            yield from unit.candidates

    def iter_edges(self) -> Iterator[RelationshipEdge]:
        for unit in self.units:
            yield from unit.edges

    @property
    def row_count(self) -> int:
        return sum(1 for unit in self.units if unit.is_row)

    @property
    def first_line(self) -> int | None:
        return next((u.line_number for u in self.units if u.line_number is not None), None)

    @property
    def last_line(self) -> int | None:
        return next(
            (u.line_number for u in reversed(self.units) if u.line_number is not None), None
        )
