from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest

from quarry.adapters.csv import CsvRowSource
from quarry.domain.pipeline import RowSourceError


def _write(path: Path, text: str, encoding: str = "utf-8") -> Path:
    path.write_text(text, encoding=encoding)
    return path


def test_reads_rows_by_header_name(tmp_path: Path) -> None:
    path = _write(tmp_path / "family.csv", "\ufeffFamilyId , FamilyName\n1,Smith\n\n2,Jones\n")
    source = CsvRowSource(path)

    rows = list(source)

    assert source.name == "family.csv"
    assert [row["FamilyId"] for row in rows] == ["1", "2"]
    assert [row.text("FamilyName") for row in rows] == ["Smith", "Jones"]
    assert [row.line_number for row in rows] == [2, 4]


def test_size_hint_counts_data_lines(tmp_path: Path) -> None:
    path = _write(tmp_path / "batch.csv", "BatchID\n1\n2\n3\n")

    assert CsvRowSource(path).size_hint() == 3
    assert CsvRowSource(tmp_path / "missing.csv").size_hint() is None


def test_custom_delimiter(tmp_path: Path) -> None:
    path = _write(tmp_path / "batch.txt", "BatchID|BatchName\n7|Sunday\n")

    rows = list(CsvRowSource(path, delimiter="|"))

    assert rows[0].as_mapping() == {"BatchID": "7", "BatchName": "Sunday"}


def test_source_is_single_pass(tmp_path: Path) -> None:
    source = CsvRowSource(_write(tmp_path / "family.csv", "FamilyId\n1\n"))
    list(source)

    with pytest.raises(RowSourceError, match="already been read"):
        iter(source)


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("", "header row is required"),
        (b"FamilyId\n\xff\xfe\n", "failed"),
    ],
)
def test_read_failures_raise_row_source_error(
    tmp_path: Path, content: str | bytes, message: str
) -> None:
    path = tmp_path / "family.csv"
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)

    with pytest.raises(RowSourceError, match=message):
        list(CsvRowSource(path))


def test_missing_file_raises_row_source_error(tmp_path: Path) -> None:
    with pytest.raises(RowSourceError, match="missing.csv"):
        list(CsvRowSource(tmp_path / "missing.csv"))
