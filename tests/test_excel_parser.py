"""Tests for the in-memory workbook parser."""

from __future__ import annotations

from datetime import datetime

import pytest

from parsers.excel_parser import ExcelParser, WorkbookResult
from parsers.file_parser import FileParserFactory, XLS_MIME_TYPE, XLSX_MIME_TYPE
from utils.exceptions import NotFoundError, UnreadableFileError, UnsupportedFileTypeError


def test_parse_builds_tables_and_metadata(sales_workbook: bytes) -> None:
    result = ExcelParser().parse(sales_workbook)

    assert result.success is True
    assert result.workbook.sheet_names == ["Sales", "Notes"]
    assert result.workbook.sheet_count == 2
    assert result.workbook.total_rows == 7

    sales = result.sheets["Sales"]
    assert sales.headers == ["Month", "Region", "Revenue", "Units"]
    assert sales.row_count == 6
    assert sales.rows[0] == {"Month": "Jan", "Region": "North", "Revenue": 100, "Units": 10}
    assert result.metadata["file_size"] == len(sales_workbook)


def test_dates_are_materialized_as_datetimes(sales_workbook: bytes) -> None:
    result = ExcelParser().parse(sales_workbook)

    value = result.sheets["Notes"].rows[0]["Date"]
    assert isinstance(value, datetime)
    assert (value.year, value.month, value.day) == (2024, 1, 15)


def test_blank_cells_become_none(make_workbook) -> None:
    content = make_workbook({"Data": [
        ["A", "B", "C"],
        [1, None, 3],
        ["x"],
    ]})

    table = ExcelParser().parse(content).sheets["Data"]

    assert table.rows[0] == {"A": 1, "B": None, "C": 3}
    assert table.rows[1] == {"A": "x", "B": None, "C": None}


def test_blank_header_cells_are_synthesized(make_workbook) -> None:
    content = make_workbook({"Data": [
        ["Name", None, "Score"],
        ["a", 1, 2],
    ]})

    table = ExcelParser().parse(content).sheets["Data"]

    assert table.headers == ["Name", "Column_2", "Score"]


def test_total_columns_is_max_not_sum(make_workbook) -> None:
    content = make_workbook({
        "Narrow": [["a", "b", "c"], [1, 2, 3]],
        "Wide": [["a", "b", "c", "d", "e"], [1, 2, 3, 4, 5], [6, 7, 8, 9, 10]],
    })

    result = ExcelParser().parse(content)

    assert result.workbook.total_columns == 5
    assert result.workbook.total_rows == 3


def test_sheet_order_follows_the_workbook(make_workbook) -> None:
    content = make_workbook({
        "Zeta": [["x"], [1]],
        "Alpha": [["y"], [2]],
        "Mid": [["z"], [3]],
    })

    result = ExcelParser().parse(content)

    assert result.workbook.sheet_names == ["Zeta", "Alpha", "Mid"]
    assert list(result.sheets) == ["Zeta", "Alpha", "Mid"]


def test_empty_sheet_has_no_rows(make_workbook) -> None:
    content = make_workbook({"Data": [["a"], [1]], "Empty": []})

    result = ExcelParser().parse(content)

    assert result.success is True
    assert result.sheets["Empty"].row_count == 0
    assert result.workbook.total_rows == 1


@pytest.mark.parametrize("content", [b"", b"definitely not a spreadsheet", b"PK\x03\x04broken zip"])
def test_unreadable_bytes_return_a_failure(content: bytes) -> None:
    result = ExcelParser().parse(content)

    assert result.success is False
    assert result.error_message
    assert result.workbook is None
    assert result.sheets == {}


def test_get_info_lists_sheets(sales_workbook: bytes) -> None:
    info = ExcelParser().get_info(sales_workbook)

    assert info == {"sheet_names": ["Sales", "Notes"], "sheet_count": 2}


def test_get_info_rejects_garbage() -> None:
    with pytest.raises(UnreadableFileError):
        ExcelParser().get_info(b"garbage")


def test_extract_sheet(sales_workbook: bytes) -> None:
    table = ExcelParser().extract_sheet(sales_workbook, "Notes")

    assert table.headers == ["Note", "Date"]
    assert table.row_count == 1

    with pytest.raises(NotFoundError):
        ExcelParser().extract_sheet(sales_workbook, "Missing")


def test_first_sheet_uses_workbook_order(make_workbook) -> None:
    result = ExcelParser().parse(make_workbook({"B": [["b"], [1]], "A": [["a"], [2]]}))

    assert result.first_sheet().headers == ["b"]
    assert WorkbookResult.failure("boom").first_sheet() is None


@pytest.mark.parametrize("file_type", ["xls", "XLSX", XLS_MIME_TYPE, XLSX_MIME_TYPE])
def test_factory_accepts_spreadsheet_types(file_type: str) -> None:
    assert isinstance(FileParserFactory().get_parser(file_type), ExcelParser)


@pytest.mark.parametrize("file_type", ["csv", "text/csv", "", None])
def test_factory_rejects_other_types(file_type) -> None:
    with pytest.raises(UnsupportedFileTypeError):
        FileParserFactory().get_parser(file_type)


def test_sparse_integer_column_keeps_integer_values(make_workbook) -> None:
    content = make_workbook({"Years": [
        [1, 2021, 2022],
        [3, None, 7],
        [5, 6, None],
    ]})

    table = ExcelParser().parse(content).sheets["Years"]

    assert table.headers == ["1", "2021", "2022"]
    assert table.rows == [
        {"1": 3, "2021": None, "2022": 7},
        {"1": 5, "2021": 6, "2022": None},
    ]
    assert isinstance(table.rows[1]["2021"], int)
