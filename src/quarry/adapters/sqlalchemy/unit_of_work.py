"""SQLAlchemy adapter state and the persistence session used by the commit pipeline."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Self

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from quarry.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from quarry.config.storage import get_database_config
from quarry.domain.ports.persistence import PersistenceError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from quarry.domain.model import Entity
    from quarry.domain.ports.persistence import SessionFactory


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy adapter is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call quarry.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a session."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, mappers, tables and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        database = get_database_config(uri=database_uri)
        engine = create_engine(database.uri, echo=database.echo)
    start_mappers()
    create_all_tables(engine)
    _STATE.engine = engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


def orm_session_factory() -> sessionmaker[Session]:
    return _STATE.session_factory


class SqlAlchemyPersistenceSession:
    """Persistence session over one ORM ``Session``.

    Ids are read back from the flushed entities in staging order. On rollback
    the ids handed out during the transaction are cleared again, so the same
    entities can be written through a fresh session.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self._staged: list[Entity] = []
        self._written: list[Entity] = []

    def bulk_add(self, entities: Sequence[Entity]) -> None:
        self.session.add_all(entities)
        self._staged.extend(entities)

    def save_changes(self) -> list[int]:
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"flush failed: {exc}") from exc
        ids: list[int] = []
        for entity in self._staged:
            if entity.id is None:
                raise PersistenceError(f"{type(entity).__name__} was flushed without an id")
            ids.append(entity.id)
        self._written.extend(self._staged)
        self._staged.clear()
        return ids

    @contextmanager
    def bulk_writes(self) -> Iterator[None]:
        with self.session.no_autoflush:
            yield

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"commit failed: {exc}") from exc
        self._written.clear()

    def rollback(self) -> None:
        try:
            self.session.rollback()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"rollback failed: {exc}") from exc
        finally:
            for entity in (*self._written, *self._staged):
                entity.id = None
            self._written.clear()
            self._staged.clear()

    def dispose(self) -> None:
        self.session.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.dispose()
        return False


def persistence_session_factory(
    factory: sessionmaker[Session] | None = None,
) -> SessionFactory:
    """Return a factory producing persistence sessions bound to the adapter engine."""

    orm_factory = factory or _STATE.session_factory

    def _open() -> SqlAlchemyPersistenceSession:
        return SqlAlchemyPersistenceSession(orm_factory())

    return _open


if TYPE_CHECKING:
    from quarry.domain.ports.persistence import PersistenceSession

    _session_check: PersistenceSession = SqlAlchemyPersistenceSession(Session())
