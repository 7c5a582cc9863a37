"""Buffer of build units awaiting commit; decides where a batch may end."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from quarry.domain.pipeline.candidates import Batch, CandidateEntity
from quarry.domain.pipeline.errors import DuplicateRegistrationError, UnresolvedRelationshipError

if TYPE_CHECKING:
    from quarry.domain.model import Category
    from quarry.domain.pipeline.candidates import AnyCandidate, Unit


log = getLogger(__name__)


class BatchAccumulator:
    """Collects units until the row threshold is reached at a group boundary.

    A group is the run of consecutive units sharing a group key. Groups are
    never split: ``should_flush`` only answers yes when the next unit starts a
    different group, so a group larger than the threshold makes the batch
    grow until the group ends.
    """

    def __init__(self, threshold: int) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self.reopened_groups = 0
        self._units: list[Unit] = []
        self._members: set[int] = set()
        self._pending: dict[tuple[Category, str], AnyCandidate] = {}
        self._current_group: str | None = None
        self._closed_groups: set[str] = set()

    def __len__(self) -> int:
        return len(self._units)

    @property
    def is_empty(self) -> bool:
        return not self._units

    @property
    def row_count(self) -> int:
        return sum(1 for unit in self._units if unit.is_row)

    @property
    def current_group(self) -> str | None:
        return self._current_group

    def add(self, unit: Unit) -> None:
        unit_members = {id(candidate) for candidate in unit.candidates}
        for edge in unit.edges:
            if id(edge.source) not in unit_members:
                raise UnresolvedRelationshipError(
                    f"line {unit.line_number}: edge {edge.field!r} starts outside its unit"
                )
            target = edge.target
            if not isinstance(target, CandidateEntity) or target.is_durable:
                continue
            if id(target) not in unit_members and id(target) not in self._members:
                raise UnresolvedRelationshipError(
                    f"line {unit.line_number}: {edge.field!r} points at a "
                    f"{target.category} that is neither stored nor buffered"
                )
        for candidate in unit.candidates:
            if not candidate.registers_identity:
                continue
            key = (candidate.category, candidate.external_key)
            if key in self._pending:
                raise DuplicateRegistrationError(candidate.category, key[1], self._pending[key])
        self._enter_group(unit.group_key)
        self._units.append(unit)
        self._members |= unit_members
        for candidate in unit.candidates:
            if candidate.registers_identity:
                self._pending[(candidate.category, candidate.external_key)] = candidate

    def should_flush(self, next_group_key: str | None) -> bool:
        """Return whether the buffer must be committed before the next unit is added."""

        if len(self._units) < self.threshold:
            return False
        if next_group_key is None or self._current_group is None:
            return True
        return next_group_key != self._current_group

    def drain(self) -> Batch:
        batch = Batch(tuple(self._units))
        self._close_current()
        self._units.clear()
        self._members.clear()
        self._pending.clear()
        return batch

    def pending(self, category: Category, external_key: str) -> AnyCandidate | None:
        return self._pending.get((category, external_key))

    def group_units(self, group_key: str | None) -> tuple[tuple[AnyCandidate, ...], ...]:
        """Return the candidates of each buffered unit in ``group_key``, in row order."""

        if group_key is None:
            return ()
        return tuple(unit.candidates for unit in self._units if unit.group_key == group_key)

    def group_candidates(self, group_key: str | None) -> tuple[AnyCandidate, ...]:
        return tuple(c for candidates in self.group_units(group_key) for c in candidates)

    def _enter_group(self, group_key: str | None) -> None:
        if group_key == self._current_group:
            return
        self._close_current()
        if group_key is not None and group_key in self._closed_groups:
            self.reopened_groups += 1
            log.warning(
                "Group %r reappeared after it was closed; input is not grouped contiguously",
                group_key,
            )
        self._current_group = group_key

    def _close_current(self) -> None:
        if self._current_group is not None:
            self._closed_groups.add(self._current_group)
        self._current_group = None
