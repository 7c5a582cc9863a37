"""Delimited-file row source."""

from __future__ import annotations

import csv
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from quarry.domain.pipeline import RawRow, RowSourceError

if TYPE_CHECKING:
    from collections.abc import Iterator


log = getLogger(__name__)


class CsvRowSource:
    """Reads a delimited file with a header row, one ``RawRow`` per record.

    ``line_number`` is the physical line the record ends on, so the first data
    row of a file is line 2. Blank lines are ignored.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        delimiter: str = ",",
        encoding: str = "utf-8-sig",
    ) -> None:
        self.path = Path(path)
        self.delimiter = delimiter
        self.encoding = encoding
        self._consumed = False

    @property
    def name(self) -> str:
        return self.path.name

    def size_hint(self) -> int | None:
        try:
            with self.path.open("rb") as handle:
                lines = sum(chunk.count(b"\n") for chunk in iter(lambda: handle.read(1 << 16), b""))
        except OSError:
            log.debug("Could not count lines of %s", self.path, exc_info=True)
            return None
        return max(lines - 1, 0)

    def __iter__(self) -> Iterator[RawRow]:
        if self._consumed:
            raise RowSourceError(f"{self.name} has already been read")
        self._consumed = True
        return self._read()

    def _read(self) -> Iterator[RawRow]:
        try:
            with self.path.open(newline="", encoding=self.encoding) as handle:
                reader = csv.reader(handle, delimiter=self.delimiter)
                header = next(reader, None)
                if header is None:
                    raise RowSourceError(f"{self.name} is empty; a header row is required")
                column_index = {column.strip(): index for index, column in enumerate(header)}
                log.debug("%s columns: %s", self.name, ", ".join(column_index))
                for values in reader:
                    if not values:
                        continue
                    yield RawRow(tuple(values), column_index, reader.line_num)
        except (csv.Error, UnicodeDecodeError, OSError) as exc:
            raise RowSourceError(f"Reading {self.name} failed: {exc}") from exc
