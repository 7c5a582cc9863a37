"""SQLAlchemy adapter package for quarry."""

from __future__ import annotations

from .mappings import (
    CLASS_BY_CATEGORY,
    TABLE_BY_CATEGORY,
    create_all_tables,
    mapper_registry,
    start_mappers,
)
from .queries import SqlAlchemyReferenceQuery, SqlAlchemySeedQuery
from .table_source import SqlTableRowSource
from .unit_of_work import (
    SqlAlchemyPersistenceSession,
    StartupError,
    configured_engine,
    is_started,
    orm_session_factory,
    persistence_session_factory,
    shutdown,
    startup,
)

__all__ = [
    "CLASS_BY_CATEGORY",
    "TABLE_BY_CATEGORY",
    "SqlAlchemyPersistenceSession",
    "SqlAlchemyReferenceQuery",
    "SqlAlchemySeedQuery",
    "SqlTableRowSource",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "orm_session_factory",
    "persistence_session_factory",
    "shutdown",
    "start_mappers",
    "startup",
]
