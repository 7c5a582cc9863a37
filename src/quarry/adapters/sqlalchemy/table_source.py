"""Row source scanning a raw extracted table."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import MetaData, Table, func, select
from sqlalchemy.exc import SQLAlchemyError

from quarry.domain.pipeline.errors import RowSourceError
from quarry.domain.pipeline.rows import RawRow

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from sqlalchemy.engine import Engine


log = getLogger(__name__)


class SqlTableRowSource:
    """Streams the rows of ``table`` in ``order_by`` order.

    Ordering by the group key column is how a caller delivers contiguous
    groups from a table that is not stored that way. ``line_number`` is the
    1-based position in the scan.
    """

    def __init__(
        self,
        engine: Engine,
        table: str | Table,
        *,
        order_by: Sequence[str] = (),
        schema: str | None = None,
        chunk_size: int = 1000,
    ) -> None:
        self._engine = engine
        self._table_ref = table
        self._schema = schema
        self._order_by = tuple(order_by)
        self._chunk_size = chunk_size
        self._table: Table | None = None
        self._consumed = False

    @property
    def name(self) -> str:
        if isinstance(self._table_ref, Table):
            return self._table_ref.fullname
        return self._table_ref if self._schema is None else f"{self._schema}.{self._table_ref}"

    def size_hint(self) -> int | None:
        try:
            with self._engine.connect() as connection:
                return connection.execute(
                    select(func.count()).select_from(self._resolve())
                ).scalar_one()
        except SQLAlchemyError:
            log.debug("Could not count rows of %s", self.name, exc_info=True)
            return None

    def __iter__(self) -> Iterator[RawRow]:
        if self._consumed:
            raise RowSourceError(f"{self.name} has already been read")
        self._consumed = True
        return self._scan()

    def _scan(self) -> Iterator[RawRow]:
        try:
            table = self._resolve()
            unknown = [name for name in self._order_by if name not in table.c]
            if unknown:
                raise RowSourceError(f"{self.name} has no column(s) {', '.join(unknown)}")
            stmt = select(table).order_by(*(table.c[name] for name in self._order_by))
            column_index = {column.name: index for index, column in enumerate(table.columns)}
            with self._engine.connect() as connection:
                result = connection.execution_options(
                    stream_results=True, yield_per=self._chunk_size
                ).execute(stmt)
                for line_number, row in enumerate(result, start=1):
                    yield RawRow(tuple(row), column_index, line_number)
        except SQLAlchemyError as exc:
            raise RowSourceError(f"Reading {self.name} failed: {exc}") from exc

    def _resolve(self) -> Table:
        if self._table is None:
            if isinstance(self._table_ref, Table):
                self._table = self._table_ref
            else:
                self._table = Table(
                    self._table_ref, MetaData(), schema=self._schema, autoload_with=self._engine
                )
        return self._table
