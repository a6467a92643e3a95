"""
Spreadsheet parsing service.

This module opens uploaded spreadsheet files and turns every sheet into
headers, per-column data types, a short preview, and structured rows ready
for persistence.

Formats:
- .xlsx via openpyxl (read-only, cached cell values)
- .xls via xlrd
- .csv via the standard library csv reader (one sheet named "Sheet1")

Readers normalize every cell to its display string first, so that type
inference sees the same text for the same value regardless of format.
"""
import csv
import os
from collections.abc import Iterable, Iterator
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time
from pathlib import Path

import openpyxl
import xlrd

from app.config import settings
from app.logging_config import setup_logging
from app.services.exceptions import SheetParseError, UnsupportedFormatError, WorkbookParseError
from app.services.type_inference import (
    DEFAULT_SAMPLE_SIZE,
    CellValue,
    ColumnType,
    classify_column,
    coerce_value,
)

SUPPORTED_EXTENSIONS = (".xlsx", ".xls", ".csv")
DEFAULT_PREVIEW_ROWS = 5
CSV_SHEET_NAME = "Sheet1"

# One cell may be as large as the whole upload
CSV_FIELD_SIZE_LIMIT = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024

logger = setup_logging()


@dataclass
class SheetSummary:
    """Metadata for one worksheet, embedded in the file record."""
    name: str
    row_count: int
    column_count: int
    headers: list[str]
    data_preview: list[list[str]]
    data_types: list[str]
    is_empty: bool
    error: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ParsedRow:
    """One data row mapped onto the sheet headers."""
    values: dict[str, CellValue]
    validation_status: str = "valid"
    validation_errors: list[dict] = field(default_factory=list)


@dataclass
class ParsedSheet:
    summary: SheetSummary
    rows: list[ParsedRow] = field(default_factory=list)


@dataclass
class ParsedWorkbook:
    """Complete parse result for one spreadsheet file."""
    sheets: list[ParsedSheet]
    total_sheets: int
    file_info: dict

    @property
    def total_rows(self) -> int:
        return sum(sheet.summary.row_count for sheet in self.sheets)

    @property
    def total_columns(self) -> int:
        return max((sheet.summary.column_count for sheet in self.sheets), default=0)

    def summaries(self) -> list[dict]:
        return [sheet.summary.to_dict() for sheet in self.sheets]


def _empty_summary(name: str, error: str | None = None) -> SheetSummary:
    return SheetSummary(
        name=name,
        row_count=0,
        column_count=0,
        headers=[],
        data_preview=[],
        data_types=[],
        is_empty=True,
        error=error,
    )


def cell_to_text(value: object) -> str:
    """
    Render a cell value as the string a spreadsheet would display.

    Examples:
        >>> cell_to_text(3.0)
        '3'
        >>> cell_to_text(datetime(2024, 1, 15))
        '2024-01-15'
        >>> cell_to_text(True)
        'TRUE'
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    # bool first: bool is a subclass of int
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def _is_blank_row(row: list[str]) -> bool:
    return all(cell == "" for cell in row)


def _cell_at(row: list[str], index: int) -> str:
    return row[index] if index < len(row) else ""


def _normalize_grid(rows: Iterable[Iterable[object]]) -> list[list[str]]:
    """
    Convert raw rows to strings, skip leading blank rows, and trim trailing
    columns that are empty in every row.
    """
    grid = [[cell_to_text(cell) for cell in row] for row in rows]

    start = 0
    while start < len(grid) and _is_blank_row(grid[start]):
        start += 1
    grid = grid[start:]

    width = 0
    for row in grid:
        for index in range(len(row) - 1, -1, -1):
            if row[index] != "":
                width = max(width, index + 1)
                break

    return [row[:width] for row in grid]


def _build_headers(header_row: list[str], width: int) -> list[str]:
    """
    Trim header cells and name empty ones after their own position.

    Every empty header gets ``Column_<n>`` from its own 1-based index, so two
    blank headers never share a synthetic name.
    """
    headers = []
    for index in range(width):
        header = _cell_at(header_row, index).strip()
        headers.append(header or f"Column_{index + 1}")
    return headers


def _build_row(row: list[str], headers: list[str], column_types: list[ColumnType]) -> ParsedRow:
    values: dict[str, CellValue] = {}
    issues = []

    for index, header in enumerate(headers):
        raw = _cell_at(row, index)
        value, conforms = coerce_value(raw, column_types[index])
        values[header] = value
        if not conforms:
            issues.append({
                "column": header,
                "message": f"Expected {column_types[index].value}, got '{raw}'",
                "type": "type_mismatch",
            })

    return ParsedRow(
        values=values,
        validation_status="warning" if issues else "valid",
        validation_errors=issues,
    )


def parse_sheet(
    name: str,
    rows: Iterable[Iterable[object]],
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    preview_rows: int = DEFAULT_PREVIEW_ROWS,
) -> ParsedSheet:
    """
    Parse one worksheet into a summary and structured rows.

    The first non-blank row is the header row. Blank data rows are dropped.
    Any failure, including one raised while reading ``rows``, is contained:
    the sheet comes back empty with ``error`` set.

    Args:
        name: Sheet name
        rows: Cell rows in sheet order (may be a lazy iterator)
        sample_size: Non-empty values examined per column for type inference
        preview_rows: Number of data rows kept in the preview

    Returns:
        ParsedSheet with its SheetSummary and ParsedRow list
    """
    try:
        grid = _normalize_grid(rows)
        if not grid:
            return ParsedSheet(summary=_empty_summary(name))

        width = max(len(row) for row in grid)
        headers = _build_headers(grid[0], width)

        data_rows = [row for row in grid[1:] if not _is_blank_row(row)]
        if not data_rows:
            return ParsedSheet(summary=_empty_summary(name))

        column_types = [
            classify_column(
                [_cell_at(row, index) for row in data_rows],
                sample_size=sample_size,
            )
            for index in range(len(headers))
        ]

        preview = [
            [_cell_at(row, index) for index in range(len(headers))]
            for row in data_rows[:preview_rows]
        ]

        parsed_rows = [_build_row(row, headers, column_types) for row in data_rows]

        summary = SheetSummary(
            name=name,
            row_count=len(data_rows),
            column_count=len(headers),
            headers=headers,
            data_preview=preview,
            data_types=[column_type.value for column_type in column_types],
            is_empty=False,
        )
        return ParsedSheet(summary=summary, rows=parsed_rows)

    except Exception as e:
        logger.warning(f"Failed to parse sheet '{name}': {str(e)}", exc_info=True)
        return ParsedSheet(summary=_empty_summary(name, error=str(e)))


# Format readers


def _iter_xlsx_rows(workbook, sheet_name: str) -> Iterator[list[str]]:
    worksheet = workbook[sheet_name]
    if not hasattr(worksheet, "iter_rows"):
        raise SheetParseError(sheet_name, "sheet holds no cells (chart sheet)")
    for row in worksheet.iter_rows(values_only=True):
        yield [cell_to_text(value) for value in row]


def _xls_cell_to_text(cell, datemode: int) -> str:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return ""
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return cell_to_text(xlrd.xldate_as_datetime(cell.value, datemode))
        except Exception as e:
            logger.warning(f"Date conversion failed for value {cell.value!r}: {str(e)}")
            return cell_to_text(cell.value)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return cell_to_text(bool(cell.value))
    if cell.ctype == xlrd.XL_CELL_ERROR:
        return xlrd.error_text_from_code.get(cell.value, "#ERROR")
    return cell_to_text(cell.value)


def _iter_xls_rows(book, sheet_index: int) -> Iterator[list[str]]:
    sheet = book.sheet_by_index(sheet_index)
    for row_index in range(sheet.nrows):
        yield [_xls_cell_to_text(cell, book.datemode) for cell in sheet.row(row_index)]


def _iter_csv_rows(file_path: str) -> Iterator[list[str]]:
    # utf-8-sig drops the BOM Excel writes; undecodable bytes are replaced
    with open(file_path, newline="", encoding="utf-8-sig", errors="replace") as handle:
        yield from csv.reader(handle)


def _parse_xlsx(file_path: str, **options) -> list[ParsedSheet]:
    workbook = openpyxl.load_workbook(file_path, read_only=True, data_only=True)
    try:
        return [
            parse_sheet(name, _iter_xlsx_rows(workbook, name), **options)
            for name in workbook.sheetnames
        ]
    finally:
        workbook.close()


def _parse_xls(file_path: str, **options) -> list[ParsedSheet]:
    book = xlrd.open_workbook(file_path, on_demand=True)
    try:
        return [
            parse_sheet(name, _iter_xls_rows(book, index), **options)
            for index, name in enumerate(book.sheet_names())
        ]
    finally:
        book.release_resources()


def _parse_csv(file_path: str, **options) -> list[ParsedSheet]:
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Spreadsheet file not found: {file_path}")

    csv.field_size_limit(CSV_FIELD_SIZE_LIMIT)
    # Read up front: the file is the only sheet, so a reader error fails the file
    rows = list(_iter_csv_rows(file_path))
    return [parse_sheet(CSV_SHEET_NAME, rows, **options)]


_READERS = {
    ".xlsx": _parse_xlsx,
    ".xls": _parse_xls,
    ".csv": _parse_csv,
}


def parse_file(
    file_path: str,
    original_name: str,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    preview_rows: int = DEFAULT_PREVIEW_ROWS,
) -> ParsedWorkbook:
    """
    Parse a spreadsheet file and return every sheet in workbook order.

    Args:
        file_path: Path to the stored file
        original_name: Client filename; its extension selects the reader
        sample_size: Non-empty values examined per column for type inference
        preview_rows: Number of data rows kept in each sheet preview

    Returns:
        ParsedWorkbook with one ParsedSheet per sheet

    Raises:
        UnsupportedFormatError: If the extension is not .xlsx, .xls or .csv
        WorkbookParseError: If the file cannot be opened or read
    """
    extension = Path(original_name).suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(extension)

    try:
        sheets = _READERS[extension](
            file_path, sample_size=sample_size, preview_rows=preview_rows
        )
        file_size = os.path.getsize(file_path)
    except Exception as e:
        logger.error(f"Failed to parse spreadsheet file {original_name}: {str(e)}")
        raise WorkbookParseError(f"Failed to parse spreadsheet file: {str(e)}") from e

    return ParsedWorkbook(
        sheets=sheets,
        total_sheets=len(sheets),
        file_info={
            "original_name": original_name,
            "file_path": file_path,
            "file_size": file_size,
        },
    )
