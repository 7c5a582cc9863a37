from __future__ import annotations

import pytest

from quarry.domain.model import Category, Family, FamilyMember, FamilyRole, Person
from quarry.domain.pipeline import (
    Batch,
    BuildResult,
    CandidateEntity,
    CommitEngine,
    CommitFailedError,
    DurableRef,
    RelationshipEdge,
    SessionLifecycleManager,
    Unit,
    UnresolvedRelationshipError,
    link,
)

from tests.helpers.pipeline import FakeStore


def _engine(store: FakeStore, threshold: int = 10) -> tuple[CommitEngine, SessionLifecycleManager]:
    sessions = SessionLifecycleManager(store.session_factory, threshold=threshold)
    return CommitEngine(sessions), sessions


def _family_unit(family_key: str, person_key: str, line: int) -> Unit:
    family = CandidateEntity(Family(external_key=family_key, name=f"Family {family_key}"))
    person = CandidateEntity(Person(external_key=person_key, first_name="A", last_name="B"))
    member = CandidateEntity(FamilyMember(role=FamilyRole.ADULT), register=False)
    edges = (
        *link(member, "family_id", family),
        *link(member, "person_id", person),
        *link(person, "giving_family_id", family),
    )
    return Unit(
        BuildResult(candidates=(member, person, family), edges=edges, group_key=family_key), line
    )


def test_commit_resolves_edges_in_dependency_waves(store: FakeStore) -> None:
    engine, _ = _engine(store)
    unit = _family_unit("F1", "P1", 2)
    member, person, family = unit.candidates

    result = engine.commit(Batch((unit,)))

    assert [type(entity) for entity in store.waves[0]] == [Family]
    assert [type(entity) for entity in store.waves[1]] == [Person]
    assert [type(entity) for entity in store.waves[2]] == [FamilyMember]
    assert member.entity.family_id == family.durable_id
    assert member.entity.person_id == person.durable_id
    assert person.entity.giving_family_id == family.durable_id
    assert result.persisted_count == 3
    assert result.row_count == 1
    assert store.commits == 1


def test_new_identities_follow_source_order(store: FakeStore) -> None:
    engine, _ = _engine(store)
    batch = Batch((_family_unit("F1", "P1", 2), _family_unit("F2", "P2", 3)))

    result = engine.commit(batch)

    keys = [(identity.category, identity.external_key) for identity in result.new_identities]
    assert keys == [
        (Category.PERSON, "P1"),
        (Category.FAMILY, "F1"),
        (Category.PERSON, "P2"),
        (Category.FAMILY, "F2"),
    ]


def test_durable_targets_are_written_directly(store: FakeStore) -> None:
    engine, _ = _engine(store)
    member = CandidateEntity(FamilyMember(role=FamilyRole.CHILD), register=False)
    edges = link(member, "family_id", DurableRef(Category.FAMILY, 77))

    engine.commit(Batch((Unit(BuildResult(candidates=(member,), edges=edges), 2),)))

    assert member.entity.family_id == 77
    assert member.is_durable


def test_failure_is_retried_once_on_a_fresh_session(store: FakeStore) -> None:
    store.fail_on_save = {2}
    engine, sessions = _engine(store)
    unit = _family_unit("F1", "P1", 2)

    result = engine.commit(Batch((unit,)))

    assert engine.attempts == 2
    assert store.rollbacks == 1
    assert sessions.created == 2
    assert result.persisted_count == 3
    assert len(store.committed) == 3
    assert all(candidate.is_durable for candidate in unit.candidates)


def test_second_failure_raises_and_leaves_nothing_committed(store: FakeStore) -> None:
    store.fail_on_save = {2, 4}
    engine, _ = _engine(store)
    unit = _family_unit("F1", "P1", 2)

    with pytest.raises(CommitFailedError) as excinfo:
        engine.commit(Batch((unit,)))

    assert excinfo.value.attempts == 2
    assert excinfo.value.row_count == 1
    assert store.committed == []
    assert store.rollbacks == 2
    assert all(candidate.durable_id is None for candidate in unit.candidates)
    assert all(candidate.entity.id is None for candidate in unit.candidates)


def test_relationship_cycle_is_rejected(store: FakeStore) -> None:
    engine, _ = _engine(store)
    first = CandidateEntity(Person(external_key="P1", first_name="A", last_name="B"))
    second = CandidateEntity(Family(external_key="F1", name="Cycle"))
    edges = (
        RelationshipEdge(first, "giving_family_id", second),
        RelationshipEdge(second, "campus_id", first),
    )
    batch = Batch((Unit(BuildResult(candidates=(first, second), edges=edges), 2),))

    with pytest.raises(UnresolvedRelationshipError, match="cycle"):
        engine.commit(batch)
    assert store.rollbacks == 1
    assert store.committed == []


def test_edge_leaving_the_batch_is_rejected_before_writing(store: FakeStore) -> None:
    engine, _ = _engine(store)
    outside = CandidateEntity(Family(external_key="F9", name="Elsewhere"))
    member = CandidateEntity(FamilyMember(role=FamilyRole.ADULT), register=False)
    batch = Batch(
        (Unit(BuildResult(candidates=(member,), edges=link(member, "family_id", outside)), 2),)
    )

    with pytest.raises(UnresolvedRelationshipError):
        engine.commit(batch)
    assert store.save_calls == 0


def test_empty_batch_commits_nothing(store: FakeStore) -> None:
    engine, _ = _engine(store)

    result = engine.commit(Batch())

    assert result.persisted_count == 0
    assert store.sessions_opened == 0
