from __future__ import annotations

import logging

import pytest

from quarry.domain.model import Category, Family, FamilyMember, FamilyRole
from quarry.domain.pipeline import (
    BatchAccumulator,
    BuildResult,
    CandidateEntity,
    DurableRef,
    ImportRun,
    ReferenceCache,
    RelationshipEdge,
    Unit,
    link,
)

from tests.helpers.pipeline import FakeReferenceQuery, make_campus


def test_start_resolves_actor_and_loads_campuses() -> None:
    query = FakeReferenceQuery(campus_records=(make_campus(),), people={"Jane Doe": 5})

    run = ImportRun.start(actor_name="Jane Doe", references=query)

    assert run.actor.person_id == 5
    assert run.references.campus_id("main") == 1
    assert run.started_at.tzinfo is not None


def test_start_warns_when_actor_is_unknown(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        run = ImportRun.start(actor_name="Nobody", references=FakeReferenceQuery())

    assert run.actor.person_id is None
    assert "'Nobody' not found" in caplog.text


def test_reference_cache_matches_names_codes_and_prefixes() -> None:
    cache = ReferenceCache(
        campuses=(make_campus(1, "Main", "MN"), make_campus(2, "North Side", "NS"))
    )

    assert cache.campus_id(" north side ") == 2
    assert cache.campus_id("ns") == 2
    assert cache.campus_id("South") is None
    assert cache.campus_id(None) is None
    assert cache.campus_id_by_prefix("North Side Offering 2024-01-07") == 2
    assert cache.campus_id_by_prefix("MN 2024-01-07") == 1
    assert cache.campus_id_by_prefix("Online") is None
    campus = cache.campus_by_prefix("NS Building Fund")
    assert campus is not None
    assert campus.name == "North Side"


def test_lookups_prefer_committed_records_over_pending() -> None:
    run = ImportRun.start(actor_name="Admin")
    run.identities.register(Category.FAMILY, "F1", 10)
    accumulator = BatchAccumulator(5)
    pending = CandidateEntity(Family(external_key="F2", name="Pending"))
    accumulator.add(Unit(BuildResult(candidates=(pending,), group_key="F2"), 2))
    lookups = run.lookups(accumulator)

    assert lookups.resolve(Category.FAMILY, "F1") == DurableRef(Category.FAMILY, 10)
    assert lookups.resolve(Category.FAMILY, "F2") is pending
    assert lookups.resolve(Category.FAMILY, "F3") is None
    assert lookups.is_imported(Category.FAMILY, "F1")
    assert lookups.is_buffered(Category.FAMILY, "F2")
    assert lookups.group_candidates("F2") == (pending,)
    assert lookups.actor_id is None


def test_candidate_ref_requires_commit() -> None:
    candidate = CandidateEntity(Family(external_key="F1", name="Smith"))

    with pytest.raises(ValueError, match="not committed"):
        candidate.ref()
    candidate.durable_id = 3

    assert candidate.ref() == DurableRef(Category.FAMILY, 3)
    assert candidate.registers_identity


def test_link_skips_unknown_targets_and_checks_fields() -> None:
    member = CandidateEntity(FamilyMember(role=FamilyRole.ADULT), register=False)

    assert link(member, "family_id", None) == ()
    assert not member.registers_identity
    with pytest.raises(ValueError, match="no field"):
        RelationshipEdge(member, "campus_id", DurableRef(Category.CAMPUS, 1))
