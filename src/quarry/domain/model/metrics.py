"""Metrics and their dated measurements."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar

from quarry.domain.model.entity import ExternallyKeyedEntity
from quarry.domain.model.enums import Category


@dataclass(eq=False, kw_only=True)
class Metric(ExternallyKeyedEntity):
    """A named measure, keyed by its title."""

    CATEGORY: ClassVar[Category] = Category.METRIC

    title: str
    subtitle: str | None = None
    created_at: datetime | None = None
    created_by_id: int | None = None


@dataclass(eq=False, kw_only=True)
class MetricValue(ExternallyKeyedEntity):
    """One measurement of a metric.

    Sources carry no id for a measurement, so the external key is derived
    from the metric title, the service date, the campus and the label.
    """

    CATEGORY: ClassVar[Category] = Category.METRIC_VALUE

    value: Decimal | None = None
    value_date: date | None = None
    label: str | None = None
    metric_id: int | None = None
    campus_id: int | None = None
    created_at: datetime | None = None
    created_by_id: int | None = None
