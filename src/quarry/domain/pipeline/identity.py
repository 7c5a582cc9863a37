"""In-memory index from external keys to store-assigned ids."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from quarry.domain.pipeline.errors import DuplicateRegistrationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from quarry.domain.model import Category
    from quarry.domain.ports.persistence import SeedQuery


log = getLogger(__name__)


class IdentityLookup(Protocol):
    """Read-only face of the index handed to entity builders."""

    def lookup(self, category: Category, external_key: str | None) -> int | None: ...


def normalize_external_key(value: object) -> str | None:
    """Return the canonical string form of a source key, ``None`` if blank."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return str(value)
        value = int(value)
    text = str(value).strip()
    return text or None


class IdentityIndex:
    """Maps ``(category, external_key)`` to the durable id of the imported record.

    The index must be seeded from the destination before the first row is
    processed; an unseeded index over a non-empty store silently allows
    duplicates. Only the pipeline driver writes to it, after a commit.
    """

    def __init__(self) -> None:
        self._entries: dict[Category, dict[str, int]] = {}
        self._seeded: set[Category] = set()

    def seed(self, query: SeedQuery, categories: Iterable[Category]) -> int:
        """Load existing keys for each category not seeded yet; return the count loaded."""

        loaded = 0
        for category in categories:
            if category in self._seeded:
                continue
            bucket = self._bucket(category)
            for raw_key, durable_id in query.existing_keys(category):
                key = normalize_external_key(raw_key)
                if key is None:
                    continue
                if key in bucket:
                    log.warning(
                        "Duplicate %s key %r in destination (ids %s and %s); keeping the first",
                        category,
                        key,
                        bucket[key],
                        durable_id,
                    )
                    continue
                bucket[key] = durable_id
                loaded += 1
            self._seeded.add(category)
            log.info("Seeded %d existing %s keys", len(bucket), category)
        return loaded

    def lookup(self, category: Category, external_key: str | None) -> int | None:
        if external_key is None:
            return None
        bucket = self._entries.get(category)
        if bucket is None:
            return None
        return bucket.get(external_key)

    def register(self, category: Category, external_key: str, durable_id: int) -> None:
        bucket = self._bucket(category)
        existing = bucket.get(external_key)
        if existing is not None:
            raise DuplicateRegistrationError(category, external_key, existing)
        bucket[external_key] = durable_id

    def keys(self, category: Category) -> tuple[str, ...]:
        return tuple(self._entries.get(category, {}))

    def count(self, category: Category) -> int:
        return len(self._entries.get(category, {}))

    def is_seeded(self, category: Category) -> bool:
        return category in self._seeded

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:  # noqa: PLR2004
            return False
        category, external_key = item
        bucket = self._entries.get(category)
        return bucket is not None and external_key in bucket

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._entries.values())

    def _bucket(self, category: Category) -> dict[str, int]:
        if category not in self._entries:
            self._entries[category] = {}
        return self._entries[category]
