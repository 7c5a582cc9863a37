"""Ports for the external row sources feeding an import."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator

    from quarry.domain.pipeline.rows import RawRow


@runtime_checkable
class RowSource(Protocol):
    """Forward-only, single-consumer, finite sequence of rows.

    Iterating consumes the source. Implementations raise ``RowSourceError`` when
    a read fails or when iterated a second time.
    """

    @property
    def name(self) -> str: ...

    def __iter__(self) -> Iterator[RawRow]: ...

    def size_hint(self) -> int | None:
        """Return the expected number of rows, ``None`` when unknown."""
        ...
