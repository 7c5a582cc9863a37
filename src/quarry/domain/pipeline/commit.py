"""Atomic persistence of one batch with identifier harvesting and a single retry."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from quarry.domain.pipeline.candidates import CandidateEntity, DurableRef
from quarry.domain.pipeline.errors import CommitFailedError, UnresolvedRelationshipError
from quarry.domain.ports.persistence import PersistenceError

if TYPE_CHECKING:
    from quarry.domain.model import Category
    from quarry.domain.pipeline.candidates import AnyCandidate, Batch, EntityRef, RelationshipEdge
    from quarry.domain.pipeline.session import SessionLifecycleManager
    from quarry.domain.ports.persistence import PersistenceSession


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NewIdentity:
    category: Category
    external_key: str
    durable_id: int


@dataclass(frozen=True, slots=True)
class CommitResult:
    persisted_count: int
    row_count: int
    new_identities: tuple[NewIdentity, ...] = ()


class CommitEngine:
    """Writes a batch in one transaction.

    Candidates are written in dependency waves: every candidate whose edge
    targets already have ids is staged and flushed together, and the ids the
    store hands back resolve the edges of the next wave. A transient store
    failure rolls the transaction back and retries the whole batch once on a
    fresh session.
    """

    def __init__(self, sessions: SessionLifecycleManager, *, max_attempts: int = 2) -> None:
        self._sessions = sessions
        self._max_attempts = max_attempts
        self.attempts = 0

    def commit(self, batch: Batch) -> CommitResult:
        if not batch:
            return CommitResult(persisted_count=0, row_count=0)

        candidates = list(batch.iter_candidates())
        edges = _edges_by_source(batch)
        _check_closed(candidates, edges)

        last_error: PersistenceError | None = None
        for attempt in range(1, self._max_attempts + 1):
            self.attempts += 1
            try:
                assigned = self._write(self._sessions.current, candidates, edges)
            except PersistenceError as exc:
                last_error = exc
                log.warning(
                    "Commit of lines %s-%s failed (attempt %d/%d): %s",
                    batch.first_line,
                    batch.last_line,
                    attempt,
                    self._max_attempts,
                    exc,
                )
                self._sessions.discard()
                continue

            for candidate in candidates:
                candidate.durable_id = assigned[id(candidate)]
            return CommitResult(
                persisted_count=len(candidates),
                row_count=batch.row_count,
                new_identities=tuple(
                    NewIdentity(candidate.category, candidate.external_key, candidate.durable_id)
                    for candidate in candidates
                    if candidate.registers_identity
                ),
            )

        raise CommitFailedError(
            f"Batch covering lines {batch.first_line}-{batch.last_line} failed after "
            f"{self._max_attempts} attempts: {last_error}",
            attempts=self._max_attempts,
            row_count=batch.row_count,
        ) from last_error

    def _write(
        self,
        session: PersistenceSession,
        candidates: list[AnyCandidate],
        edges: dict[int, list[RelationshipEdge]],
    ) -> dict[int, int]:
        assigned: dict[int, int] = {}
        remaining = candidates
        try:
            with session.bulk_writes():
                while remaining:
                    wave = [
                        candidate
                        for candidate in remaining
                        if all(
                            _resolve(edge.target, assigned) is not None
                            for edge in edges.get(id(candidate), ())
                        )
                    ]
                    if not wave:
                        raise UnresolvedRelationshipError(
                            f"{len(remaining)} candidates form a relationship cycle"
                        )
                    for candidate in wave:
                        for edge in edges.get(id(candidate), ()):
                            setattr(candidate.entity, edge.field, _resolve(edge.target, assigned))
                    session.bulk_add([candidate.entity for candidate in wave])
                    ids = session.save_changes()
                    if len(ids) != len(wave):
                        raise PersistenceError(
                            f"store returned {len(ids)} ids for {len(wave)} staged entities"
                        )
                    assigned.update(zip((id(c) for c in wave), ids, strict=True))
                    written = {id(candidate) for candidate in wave}
                    remaining = [c for c in remaining if id(c) not in written]
            session.commit()
        except Exception:
            session.rollback()
            raise
        return assigned


def _edges_by_source(batch: Batch) -> dict[int, list[RelationshipEdge]]:
    grouped: dict[int, list[RelationshipEdge]] = {}
    for edge in batch.iter_edges():
        grouped.setdefault(id(edge.source), []).append(edge)
    return grouped


def _check_closed(
    candidates: list[AnyCandidate], edges: dict[int, list[RelationshipEdge]]
) -> None:
    members = {id(candidate) for candidate in candidates}
    for source_edges in edges.values():
        for edge in source_edges:
            target = edge.target
            if isinstance(target, DurableRef) or target.is_durable:
                continue
            if id(target) not in members:
                raise UnresolvedRelationshipError(
                    f"edge {edge.field!r} points at a {target.category} outside the batch"
                )


def _resolve(target: EntityRef, assigned: dict[int, int]) -> int | None:
    if isinstance(target, CandidateEntity):
        if target.durable_id is not None:
            return target.durable_id
        return assigned.get(id(target))
    return target.durable_id
