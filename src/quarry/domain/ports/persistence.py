"""Ports for persisting candidate batches and querying existing data."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from contextlib import AbstractContextManager

    from quarry.domain.model import Category, Entity


class PersistenceError(RuntimeError):
    """Raised by adapters when the store rejects a write or fails transiently."""


@runtime_checkable
class PersistenceSession(Protocol):
    """A unit of persistence work owned by the pipeline driver thread."""

    def bulk_add(self, entities: Sequence[Entity]) -> None:
        """Stage ``entities`` for insertion in the current transaction."""
        ...

    def save_changes(self) -> list[int]:
        """Write staged entities and return their assigned ids in staging order."""
        ...

    def bulk_writes(self) -> AbstractContextManager[None]:
        """Suspend change-tracking side effects while a batch is written."""
        ...

    def commit(self) -> None: ...

    def rollback(self) -> None:
        """Discard the transaction and clear ids assigned during it."""
        ...

    def dispose(self) -> None: ...


type SessionFactory = Callable[[], PersistenceSession]


@runtime_checkable
class SeedQuery(Protocol):
    """Read-only bulk query over previously imported records."""

    def existing_keys(self, category: Category) -> Iterable[tuple[str, int]]:
        """Return ``(external_key, durable_id)`` pairs for ``category``."""
        ...


@dataclass(frozen=True, slots=True)
class CampusRecord:
    id: int
    name: str
    short_code: str | None = None

    def matches(self, value: str) -> bool:
        needle = value.strip().casefold()
        if self.name.casefold() == needle:
            return True
        return self.short_code is not None and self.short_code.casefold() == needle


@runtime_checkable
class ReferenceQuery(Protocol):
    """Read-only lookups for reference data loaded once per run."""

    def campuses(self) -> Sequence[CampusRecord]: ...

    def find_person_id(self, full_name: str) -> int | None: ...
