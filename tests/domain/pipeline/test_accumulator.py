from __future__ import annotations

import logging

import pytest

from quarry.domain.model import Category, Family, FamilyMember, FamilyRole, Person
from quarry.domain.pipeline import (
    BatchAccumulator,
    BuildResult,
    CandidateEntity,
    DuplicateRegistrationError,
    DurableRef,
    RelationshipEdge,
    Unit,
    UnresolvedRelationshipError,
    link,
)


def _person_unit(key: str, group: str | None, line: int) -> Unit:
    person = CandidateEntity(Person(external_key=key, first_name=key, last_name="Test"))
    return Unit(BuildResult(candidates=(person,), group_key=group), line)


def test_should_flush_waits_for_threshold_and_group_boundary() -> None:
    accumulator = BatchAccumulator(2)

    accumulator.add(_person_unit("a", "F1", 2))
    assert not accumulator.should_flush("F1")
    accumulator.add(_person_unit("b", "F1", 3))
    assert not accumulator.should_flush("F1")
    accumulator.add(_person_unit("c", "F1", 4))

    assert accumulator.should_flush("F2")
    assert accumulator.should_flush(None)
    assert len(accumulator) == 3


def test_ungrouped_units_flush_at_threshold() -> None:
    accumulator = BatchAccumulator(2)
    accumulator.add(_person_unit("a", None, 2))
    assert not accumulator.should_flush(None)
    accumulator.add(_person_unit("b", None, 3))

    assert accumulator.should_flush(None)


def test_drain_returns_units_in_order_and_clears_buffer() -> None:
    accumulator = BatchAccumulator(5)
    units = [_person_unit(key, "F1", line) for line, key in enumerate("abc", start=2)]
    for unit in units:
        accumulator.add(unit)

    batch = accumulator.drain()

    assert batch.units == tuple(units)
    assert batch.row_count == 3
    assert (batch.first_line, batch.last_line) == (2, 4)
    assert accumulator.is_empty
    assert accumulator.current_group is None
    assert accumulator.pending(Category.PERSON, "a") is None


def test_pending_candidates_are_visible_until_drained() -> None:
    accumulator = BatchAccumulator(5)
    unit = _person_unit("a", "F1", 2)
    accumulator.add(unit)

    assert accumulator.pending(Category.PERSON, "a") is unit.candidates[0]
    assert accumulator.group_candidates("F1") == unit.candidates
    assert accumulator.group_units("F1") == (unit.candidates,)
    assert accumulator.group_units("F2") == ()
    assert accumulator.group_units(None) == ()


def test_edge_to_buffered_candidate_is_accepted() -> None:
    accumulator = BatchAccumulator(5)
    family = CandidateEntity(Family(external_key="F1", name="Smith"))
    accumulator.add(Unit(BuildResult(candidates=(family,), group_key="F1"), 2))
    member = CandidateEntity(FamilyMember(role=FamilyRole.ADULT), register=False)

    accumulator.add(
        Unit(BuildResult(candidates=(member,), edges=link(member, "family_id", family)), 3)
    )

    assert len(accumulator) == 2


def test_edge_to_durable_ref_is_accepted() -> None:
    accumulator = BatchAccumulator(5)
    member = CandidateEntity(FamilyMember(role=FamilyRole.ADULT), register=False)
    edges = link(member, "family_id", DurableRef(Category.FAMILY, 7))

    accumulator.add(Unit(BuildResult(candidates=(member,), edges=edges), 2))

    assert len(accumulator) == 1


def test_edge_to_unknown_candidate_is_rejected() -> None:
    accumulator = BatchAccumulator(5)
    stray = CandidateEntity(Family(external_key="F9", name="Nobody"))
    member = CandidateEntity(FamilyMember(role=FamilyRole.ADULT), register=False)

    with pytest.raises(UnresolvedRelationshipError):
        accumulator.add(
            Unit(BuildResult(candidates=(member,), edges=link(member, "family_id", stray)), 2)
        )
    assert accumulator.is_empty


def test_edge_must_start_inside_its_unit() -> None:
    accumulator = BatchAccumulator(5)
    outsider = CandidateEntity(FamilyMember(role=FamilyRole.ADULT), register=False)
    family = CandidateEntity(Family(external_key="F1", name="Smith"))
    edge = RelationshipEdge(outsider, "family_id", family)

    with pytest.raises(UnresolvedRelationshipError):
        accumulator.add(Unit(BuildResult(candidates=(family,), edges=(edge,)), 2))


def test_duplicate_pending_key_is_rejected() -> None:
    accumulator = BatchAccumulator(5)
    accumulator.add(_person_unit("a", "F1", 2))

    with pytest.raises(DuplicateRegistrationError):
        accumulator.add(_person_unit("a", "F1", 3))


def test_reopened_group_is_counted(caplog: pytest.LogCaptureFixture) -> None:
    accumulator = BatchAccumulator(10)
    accumulator.add(_person_unit("a", "F1", 2))
    accumulator.add(_person_unit("b", "F2", 3))

    with caplog.at_level(logging.WARNING):
        accumulator.add(_person_unit("c", "F1", 4))

    assert accumulator.reopened_groups == 1
    assert "not grouped contiguously" in caplog.text


def test_group_closed_by_drain_counts_when_reopened() -> None:
    accumulator = BatchAccumulator(1)
    accumulator.add(_person_unit("a", "F1", 2))
    accumulator.drain()

    accumulator.add(_person_unit("b", "F1", 3))

    assert accumulator.reopened_groups == 1


def test_threshold_must_be_positive() -> None:
    with pytest.raises(ValueError, match="threshold"):
        BatchAccumulator(0)
