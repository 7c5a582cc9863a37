from __future__ import annotations

from datetime import date
from pathlib import Path  # noqa: TC003
from threading import Event
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker  # noqa: TC002

from quarry.adapters.sqlalchemy.mappings import TABLE_BY_CATEGORY, known_relationship_table
from quarry.app import run_import, start_import
from quarry.config import ConfigurationError, ImportConfig
from quarry.domain.model import (
    Category,
    FinancialAccount,
    FinancialTransaction,
    RelationshipRole,
)
from quarry.domain.pipeline import PipelineState

from tests.helpers.pipeline import (
    FakeReferenceQuery,
    FakeSeedQuery,
    FakeStore,
    ListRowSource,
    RecordingReporter,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from quarry.domain.pipeline import ImportReport
    from quarry.domain.ports import RowSource

THIS_YEAR = date.today().year

FILES = {
    "family.csv": (
        "FamilyId,FamilyName,Campus,Address,City\n"
        "1,Smith,Main,1 Main St,Springfield\n"
        "2,Jones,,,\n"
    ),
    "individual.csv": (
        "PersonId,FamilyId,FirstName,LastName,FamilyRole,DateOfBirth,School,Shirt Size\n"
        f"10,1,Ann,Smith,Adult,{THIS_YEAR - 40}-01-01,Lincoln High,L\n"
        f"11,1,Cy,Smith,Child,{THIS_YEAR - 9}-01-01,Lincoln High,\n"
        f"12,1,Vic,Guest,Visitor,{THIS_YEAR - 12}-01-01,,\n"
        "20,2,Bo,Jones,Adult,,,M\n"
    ),
    "batch.csv": "BatchID,BatchName,BatchDate,BatchAmount\n5,Sunday,2024-01-07,100.00\n",
    "contribution.csv": (
        "ContributionID,ContributionBatchID,IndividualID,Amount,ContributionTypeName,FundName,"
        "SubFundName\n"
        "900,5,10,60.00,Cash,General,\n"
        "901,5,20,40.00,Check,General,Building\n"
        "902,,10,5.00,,,\n"
    ),
    "pledge.csv": (
        "PledgeId,IndividualID,FundName,TotalPledge,PledgeFrequencyName\n"
        "70,10,General,500.00,Monthly\n"
        "71,99,General,100.00,\n"
    ),
    "metrics.csv": (
        "MetricCampus,MetricName,MetricValue,MetricService,MetricCategory\n"
        "Main,Attendance,120,2024-01-07,Worship\n"
        "Main,Attendance,80,2024-01-14,Worship\n"
    ),
}


def _write_files(directory: Path) -> tuple[Path, ...]:
    paths: list[Path] = []
    # listed last-to-first; the run sorts them into dependency order
    for name, content in reversed(FILES.items()):
        path = directory / name
        path.write_text(content, encoding="utf-8")
        paths.append(path)
    return tuple(paths)


def _counts(factory: sessionmaker[Session]) -> dict[Category, int]:
    with factory() as session:
        return {
            category: session.execute(select(func.count()).select_from(table)).scalar_one()
            for category, table in TABLE_BY_CATEGORY.items()
        }


def test_run_import_loads_all_files_into_the_store(
    sqlite_adapter: sessionmaker[Session], tmp_path: Path
) -> None:
    config = ImportConfig(batch_size=2).with_sources(*_write_files(tmp_path))

    report = run_import(config, reporter=RecordingReporter())

    assert report.succeeded
    assert [summary.category for summary in report.summaries] == [
        "family",
        "individual",
        "metrics",
        "batch",
        "contribution",
        "pledge",
    ]
    assert all(summary.state is PipelineState.COMPLETED for summary in report.summaries)
    assert report.rows_committed == 13
    assert report.rows_skipped == 1
    counts = _counts(sqlite_adapter)
    assert counts[Category.CAMPUS] == 1
    assert counts[Category.FAMILY] == 3
    assert counts[Category.PERSON] == 4
    assert counts[Category.FAMILY_MEMBER] == 4
    assert counts[Category.LOCATION] == 1
    assert counts[Category.KNOWN_RELATIONSHIP] == 6
    assert counts[Category.BATCH] == 2
    assert counts[Category.CONTRIBUTION] == 3
    assert counts[Category.ACCOUNT] == 2
    assert counts[Category.PLEDGE] == 1
    assert counts[Category.ATTRIBUTE] == 2
    assert counts[Category.ATTRIBUTE_VALUE] == 4
    assert counts[Category.METRIC] == 1
    assert counts[Category.METRIC_VALUE] == 2
    with sqlite_adapter() as session:
        transactions = session.execute(select(FinancialTransaction)).scalars().all()
        accounts = session.execute(select(FinancialAccount)).scalars().all()
        roles = session.execute(select(known_relationship_table.c.role)).scalars().all()
    assert all(transaction.batch_id is not None for transaction in transactions)
    by_key = {account.external_key: account for account in accounts}
    assert by_key["General/Building General"].parent_account_id == by_key["General"].id
    assert sorted(t.account_id is not None for t in transactions) == [False, True, True]
    assert roles.count(RelationshipRole.INVITED_BY) == 2


def test_second_run_commits_nothing(
    sqlite_adapter: sessionmaker[Session], tmp_path: Path
) -> None:
    config = ImportConfig(batch_size=3).with_sources(*_write_files(tmp_path))
    run_import(config)
    before = _counts(sqlite_adapter)

    report = run_import(config)

    assert report.succeeded
    assert report.rows_committed == 0
    assert report.rows_skipped == 14
    assert _counts(sqlite_adapter) == before


def test_selected_categories_limit_the_run(
    sqlite_adapter: sessionmaker[Session], tmp_path: Path
) -> None:
    config = ImportConfig(selected_categories=("batch",)).with_sources(*_write_files(tmp_path))

    report = run_import(config)

    assert [summary.category for summary in report.summaries] == ["batch"]
    assert _counts(sqlite_adapter)[Category.BATCH] == 2


def _run(
    store: FakeStore, sources: Sequence[tuple[str, RowSource]], cancel_event: Event | None = None
) -> ImportReport:
    return run_import(
        ImportConfig(),
        session_factory=store.session_factory,
        seed_query=FakeSeedQuery(),
        reference_query=FakeReferenceQuery(),
        sources=sources,
        cancel_event=cancel_event,
    )


def test_run_stops_after_first_aborted_source(store: FakeStore) -> None:
    sources = [
        ("family", ListRowSource([{"FamilyId": "1"}], name="family.csv", fail_after=0)),
        ("batch", ListRowSource([{"BatchID": "1"}], name="batch.csv")),
    ]

    report = _run(store, sources)

    assert [summary.source for summary in report.summaries] == ["family.csv"]
    assert report.aborted is report.summaries[0]


def test_start_import_runs_in_background(store: FakeStore) -> None:
    sources = [("batch", ListRowSource([{"BatchID": "1"}, {"BatchID": "2"}]))]

    handle = start_import(
        ImportConfig(),
        session_factory=store.session_factory,
        seed_query=FakeSeedQuery(),
        reference_query=FakeReferenceQuery(),
        sources=sources,
    )
    report = handle.result(timeout=10)

    assert handle.done
    assert report.rows_committed == 2
    assert len(store.committed) == 3


def test_background_errors_are_reraised(store: FakeStore) -> None:
    sources = [("attendance", ListRowSource([]))]

    handle = start_import(
        ImportConfig(),
        session_factory=store.session_factory,
        seed_query=FakeSeedQuery(),
        reference_query=FakeReferenceQuery(),
        sources=sources,
    )

    with pytest.raises(ConfigurationError, match="attendance"):
        handle.result(timeout=10)


def test_cancelled_run_is_reported_as_aborted(store: FakeStore) -> None:
    sources = [("batch", ListRowSource([{"BatchID": str(n)} for n in range(5)]))]
    cancel = Event()
    cancel.set()

    report = _run(store, sources, cancel)

    assert report.aborted is not None
    assert report.aborted.abort_reason == "cancelled"
    assert store.committed == []
