"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    CampusRecord,
    PersistenceError,
    PersistenceSession,
    ReferenceQuery,
    SeedQuery,
    SessionFactory,
)
from .sources import RowSource

__all__ = [
    "CampusRecord",
    "PersistenceError",
    "PersistenceSession",
    "ReferenceQuery",
    "RowSource",
    "SeedQuery",
    "SessionFactory",
]
