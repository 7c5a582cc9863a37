"""Reference data shared by import domains."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from quarry.domain.model.entity import ExternallyKeyedEntity
from quarry.domain.model.enums import Category


@dataclass(eq=False, kw_only=True)
class Campus(ExternallyKeyedEntity):
    CATEGORY: ClassVar[Category] = Category.CAMPUS

    name: str
    short_code: str | None = None
