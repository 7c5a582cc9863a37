"""
Base building blocks:
store-assigned identity and the category discriminator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from quarry.domain.model.enums import Category


@dataclass(eq=False, kw_only=True)
class Entity:
    """Durable identity is assigned by the store when the entity is committed."""

    id: int | None = None

    # class-level discriminator; subclasses must override
    CATEGORY: ClassVar[Category]

    @property
    def category(self) -> Category:
        return self.CATEGORY


@dataclass(eq=False, kw_only=True)
class ExternallyKeyedEntity(Entity):
    """Entity carrying the source system's identifier for dedup lookups."""

    external_key: str | None = None
