"""Read-only queries used to seed the identity index and the reference cache."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select

from quarry.adapters.sqlalchemy.mappings import TABLE_BY_CATEGORY, campus_table, person_table
from quarry.domain.ports.persistence import CampusRecord

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.orm import Session, sessionmaker

    from quarry.domain.model import Category


log = getLogger(__name__)


class SqlAlchemySeedQuery:
    """Streams ``(external_key, id)`` pairs of previously imported rows."""

    def __init__(self, session_factory: sessionmaker[Session], *, chunk_size: int = 1000) -> None:
        self._session_factory = session_factory
        self._chunk_size = chunk_size

    def existing_keys(self, category: Category) -> Iterator[tuple[str, int]]:
        table = TABLE_BY_CATEGORY[category]
        if "external_key" not in table.c:
            return
        stmt = (
            select(table.c.external_key, table.c.id)
            .where(table.c.external_key.is_not(None))
            .order_by(table.c.id)
            .execution_options(yield_per=self._chunk_size)
        )
        with self._session_factory() as session:
            for external_key, durable_id in session.execute(stmt):
                yield external_key, durable_id


class SqlAlchemyReferenceQuery:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def campuses(self) -> list[CampusRecord]:
        stmt = select(campus_table.c.id, campus_table.c.name, campus_table.c.short_code)
        with self._session_factory() as session:
            return [
                CampusRecord(id=row.id, name=row.name, short_code=row.short_code)
                for row in session.execute(stmt.order_by(campus_table.c.id))
            ]

    def find_person_id(self, full_name: str) -> int | None:
        """Match ``"First Last"`` or ``"Last, First"`` against first or nick names."""

        first, last = _split_name(full_name)
        if not first or not last:
            return None
        stmt = (
            select(person_table.c.id)
            .where(func.lower(person_table.c.last_name) == last.casefold())
            .where(
                or_(
                    func.lower(person_table.c.first_name) == first.casefold(),
                    func.lower(person_table.c.nick_name) == first.casefold(),
                )
            )
            .order_by(person_table.c.id)
            .limit(1)
        )
        with self._session_factory() as session:
            person_id = session.execute(stmt).scalar_one_or_none()
        if person_id is None:
            log.debug("No person matches %r", full_name)
        return person_id


def _split_name(full_name: str) -> tuple[str, str]:
    if "," in full_name:
        last, _, first = full_name.partition(",")
        return first.strip(), last.strip()
    first, _, last = full_name.strip().partition(" ")
    return first.strip(), last.strip()
