"""
Column type inference service.

This module classifies the dominant value type of a spreadsheet column from a
sample of its cells, and converts individual cell strings into the typed
values stored with each parsed row.

Every cell is tested in a strict order: boolean literal, finite number,
date-shaped string, and finally plain string. The type with the highest
count over the sample wins.
"""
import enum
import math
import re
from collections import Counter
from collections.abc import Iterable
from datetime import date

DEFAULT_SAMPLE_SIZE = 100

# Cell values carried in row mappings. Dates keep their display string; the
# column's ColumnType says how to read them.
CellValue = str | int | float | bool | None


class ColumnType(str, enum.Enum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


# Equal counts are resolved in this order
TIE_BREAK_ORDER = (
    ColumnType.STRING,
    ColumnType.NUMBER,
    ColumnType.DATE,
    ColumnType.BOOLEAN,
)

TRUE_LITERALS = frozenset({"true", "1", "yes", "y"})
FALSE_LITERALS = frozenset({"false", "0", "no", "n"})
BOOLEAN_LITERALS = TRUE_LITERALS | FALSE_LITERALS

_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_RADIX_RE = re.compile(r"^0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$")

_DATE_PATTERNS = (
    re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})$"),  # YYYY-MM-DD
    re.compile(r"^(?P<month>\d{2})/(?P<day>\d{2})/(?P<year>\d{4})$"),  # MM/DD/YYYY
    re.compile(r"^(?P<month>\d{2})-(?P<day>\d{2})-(?P<year>\d{4})$"),  # MM-DD-YYYY
    re.compile(r"^(?P<month>\d{1,2})/(?P<day>\d{1,2})/(?P<year>\d{2,4})$"),  # M/D/YY(YY)
    re.compile(r"^(?P<month>\d{1,2})-(?P<day>\d{1,2})-(?P<year>\d{2,4})$"),  # M-D-YY(YY)
)


def parse_number(text: str) -> int | float | None:
    """
    Parse a trimmed cell string as a finite number.

    Accepts decimal and exponent notation with an optional sign, and
    0x / 0o / 0b integer literals. Whole numbers are returned as int.

    Returns:
        The parsed number, or None when the text is not a finite number.
    """
    if _RADIX_RE.match(text):
        return int(text, 0)

    if not _DECIMAL_RE.match(text):
        return None

    number = float(text)
    if not math.isfinite(number):
        return None
    if number.is_integer() and abs(number) < 2**53:
        return int(number)
    return number


def parse_date(text: str) -> date | None:
    """
    Parse a trimmed cell string shaped like one of the supported date formats.

    Two-digit years map to 2000-2049 and 1950-1999. The day must exist in
    the month (no rollover of 02/30 into March).
    """
    for pattern in _DATE_PATTERNS:
        match = pattern.match(text)
        if match is None:
            continue

        year_text = match.group("year")
        year = int(year_text)
        if len(year_text) == 2:
            year += 2000 if year < 50 else 1900

        try:
            return date(year, int(match.group("month")), int(match.group("day")))
        except ValueError:
            return None

    return None


def classify_value(value: object) -> ColumnType | None:
    """
    Classify a single cell value.

    Returns:
        The value's ColumnType, or None for blank cells (which are not
        counted toward any type).
    """
    text = str(value).strip()
    if text == "":
        return None

    if text.lower() in BOOLEAN_LITERALS:
        return ColumnType.BOOLEAN
    if parse_number(text) is not None:
        return ColumnType.NUMBER
    if parse_date(text) is not None:
        return ColumnType.DATE
    return ColumnType.STRING


def classify_column(
    values: Iterable[object],
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> ColumnType:
    """
    Determine the most likely data type for a column.

    Only the first ``sample_size`` non-empty values are examined, which bounds
    the cost on very long columns.

    Args:
        values: Raw cell values of one column, in row order
        sample_size: Maximum number of non-empty values to examine

    Returns:
        The type with the highest count. Ties resolve in TIE_BREAK_ORDER
        (string, number, date, boolean). An empty column is a string column.

    Examples:
        >>> classify_column(["1", "2", "3"])
        <ColumnType.NUMBER: 'number'>
        >>> classify_column([])
        <ColumnType.STRING: 'string'>
    """
    non_empty = [value for value in values if value is not None and value != ""]
    sample = non_empty[:sample_size]

    counts: Counter[ColumnType] = Counter()
    for value in sample:
        value_type = classify_value(value)
        if value_type is not None:
            counts[value_type] += 1

    # max() keeps the first maximal element, so iteration order is the tie-break
    best = max(TIE_BREAK_ORDER, key=lambda column_type: counts[column_type])
    if counts[best] == 0:
        return ColumnType.STRING
    return best


def coerce_value(raw: object, column_type: ColumnType) -> tuple[CellValue, bool]:
    """
    Convert a cell into the typed value stored for its column.

    Blank cells are kept as empty strings and always conform. Numbers become
    int/float, booleans become bool; date and string cells keep their text.

    Returns:
        Tuple of (value, conforms). When the cell does not match the column
        type the original value is returned with conforms=False.
    """
    if raw is None:
        return "", True

    text = str(raw).strip()
    if text == "":
        return "", True

    if column_type == ColumnType.NUMBER:
        number = parse_number(text)
        if number is None:
            return raw, False
        return number, True

    if column_type == ColumnType.BOOLEAN:
        lowered = text.lower()
        if lowered in TRUE_LITERALS:
            return True, True
        if lowered in FALSE_LITERALS:
            return False, True
        return raw, False

    if column_type == ColumnType.DATE:
        return raw, parse_date(text) is not None

    return raw, True
