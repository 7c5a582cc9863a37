"""Typed, immutable access to raw source rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Final

from quarry.domain.pipeline.errors import RowConversionError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

DATE_FORMATS: Final[tuple[str, ...]] = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y")


@dataclass(frozen=True, slots=True)
class RawRow:
    """One source row, addressed by position or by column name.

    ``column_index`` is shared by all rows of a source. Typed getters return
    ``None`` for absent or blank values and raise ``RowConversionError`` for
    values that are present but malformed.
    """

    values: tuple[object, ...]
    column_index: Mapping[str, int] = field(default_factory=dict[str, int])
    line_number: int = 0

    @classmethod
    def from_sequence(
        cls,
        values: Sequence[object],
        columns: Sequence[str] = (),
        *,
        line_number: int = 0,
    ) -> RawRow:
        return cls(
            values=tuple(values),
            column_index={name: index for index, name in enumerate(columns)},
            line_number=line_number,
        )

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, key: int | str) -> object:
        if isinstance(key, str):
            return self.values[self.column_index[key]]
        return self.values[key]

    def get(self, key: int | str, default: object = None) -> object:
        try:
            value = self[key]
        except (IndexError, KeyError):
            return default
        return default if value is None else value

    def as_mapping(self) -> dict[str, object]:
        return {
            name: self.values[index]
            for name, index in self.column_index.items()
            if index < len(self.values)
        }

    def text(self, key: int | str) -> str | None:
        value = self.get(key)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def decimal(self, key: int | str) -> Decimal | None:
        value = self.get(key)
        if value is None or isinstance(value, Decimal):
            return value
        text = self.text(key)
        if text is None:
            return None
        try:
            return Decimal(text.replace(",", "").lstrip("$"))
        except InvalidOperation as exc:
            raise RowConversionError(key, value, "decimal") from exc

    def date(self, key: int | str, formats: Sequence[str] = DATE_FORMATS) -> date | None:
        value = self.get(key)
        if isinstance(value, datetime):
            return value.date()
        if value is None or isinstance(value, date):
            return value
        text = self.text(key)
        if text is None:
            return None
        parsed = parse_date(text, formats)
        if parsed is None:
            raise RowConversionError(key, value, "date")
        return parsed


def parse_date(text: str, formats: Sequence[str] = DATE_FORMATS) -> date | None:
    """Parse ``text`` with the first matching format, ``None`` if none match."""

    candidate = text.strip()
    for fmt in formats:
        try:
            return datetime.strptime(candidate, fmt).date()  # noqa: DTZ007
        except ValueError:
            continue
    return None
