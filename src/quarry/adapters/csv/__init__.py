"""Delimited-file adapters: row source, row schemas and the builder registry."""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from quarry.adapters.csv.builders import (
    BatchBuilder,
    ContributionBuilder,
    CsvEntityBuilder,
    FamilyBuilder,
    IndividualBuilder,
    MetricsBuilder,
    PledgeBuilder,
)
from quarry.adapters.csv.reader import CsvRowSource
from quarry.config import UnknownCategoryError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from quarry.domain.pipeline import EntityBuilder


# Registration order is import order: later layouts resolve keys committed by earlier ones.
BUILDER_REGISTRY: Final[Mapping[str, Callable[[], EntityBuilder]]] = MappingProxyType(
    {
        FamilyBuilder.tag: FamilyBuilder,
        IndividualBuilder.tag: IndividualBuilder,
        MetricsBuilder.tag: MetricsBuilder,
        BatchBuilder.tag: BatchBuilder,
        ContributionBuilder.tag: ContributionBuilder,
        PledgeBuilder.tag: PledgeBuilder,
    }
)

IMPORT_ORDER: Final[tuple[str, ...]] = tuple(BUILDER_REGISTRY)


def create_builder(tag: str) -> EntityBuilder:
    try:
        factory = BUILDER_REGISTRY[tag]
    except KeyError:
        raise UnknownCategoryError(f"Unknown import category {tag!r}", IMPORT_ORDER) from None
    return factory()


def category_for_path(path: Path | str) -> str:
    """Return the registry tag a file belongs to, from its file name prefix."""

    name = Path(path).name.casefold()
    for tag in sorted(BUILDER_REGISTRY, key=len, reverse=True):
        if name.startswith(tag):
            return tag
    raise UnknownCategoryError(
        f"Cannot tell the import category of {Path(path).name!r}",
        (f"{tag}*" for tag in IMPORT_ORDER),
    )


def plan_sources(
    paths: Iterable[Path | str], *, categories: Iterable[str] = ()
) -> list[tuple[str, Path]]:
    """Pair each path with its category and sort them into import order.

    Paths of a category outside ``categories`` are dropped; an empty
    ``categories`` keeps everything.
    """

    selected = set(categories)
    unknown = sorted(selected.difference(BUILDER_REGISTRY))
    if unknown:
        raise UnknownCategoryError(
            f"Unknown import categories: {', '.join(unknown)}", IMPORT_ORDER
        )
    planned = [(category_for_path(path), Path(path)) for path in paths]
    if selected:
        planned = [(tag, path) for tag, path in planned if tag in selected]
    return sorted(planned, key=lambda item: IMPORT_ORDER.index(item[0]))


__all__ = [
    "BUILDER_REGISTRY",
    "IMPORT_ORDER",
    "BatchBuilder",
    "ContributionBuilder",
    "CsvEntityBuilder",
    "CsvRowSource",
    "FamilyBuilder",
    "IndividualBuilder",
    "MetricsBuilder",
    "PledgeBuilder",
    "category_for_path",
    "create_builder",
    "plan_sources",
]
