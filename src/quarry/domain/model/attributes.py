"""Free-form person attributes and the values people hold for them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from quarry.domain.model.entity import Entity, ExternallyKeyedEntity
from quarry.domain.model.enums import Category


@dataclass(eq=False, kw_only=True)
class Attribute(ExternallyKeyedEntity):
    """A person attribute; its external key is the name without whitespace."""

    CATEGORY: ClassVar[Category] = Category.ATTRIBUTE

    name: str
    description: str | None = None
    created_by_id: int | None = None


@dataclass(eq=False, kw_only=True)
class AttributeValue(Entity):
    CATEGORY: ClassVar[Category] = Category.ATTRIBUTE_VALUE

    value: str
    attribute_id: int | None = None
    person_id: int | None = None
