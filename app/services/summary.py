"""
Sheet summary statistics service.

Computes per-column statistics over stored rows using NumPy vectorized
operations: numeric aggregates for number columns and distinct-value counts
for string columns.
"""
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from app.services.type_inference import ColumnType

SAMPLE_VALUE_COUNT = 10


@dataclass
class SheetStatistics:
    """Result of a sheet summary calculation."""

    total_records: int
    columns: dict[str, dict] = field(default_factory=dict)


def _numeric_values(rows: Sequence[Mapping[str, Any]], header: str) -> np.ndarray:
    values = [
        row.get(header)
        for row in rows
        if isinstance(row.get(header), (int, float)) and not isinstance(row.get(header), bool)
    ]
    array = np.asarray(values, dtype=np.float64)
    return array[~np.isnan(array)]


def _string_values(rows: Sequence[Mapping[str, Any]], header: str) -> list[str]:
    return [
        row.get(header)
        for row in rows
        if isinstance(row.get(header), str) and row.get(header)
    ]


def summarize_numeric(values: np.ndarray) -> dict:
    """min, max, avg, count and total of a 1-D float array (non-empty)."""
    return {
        "min": float(np.min(values)),
        "max": float(np.max(values)),
        "avg": float(np.mean(values)),
        "count": int(values.size),
        "total": float(np.sum(values)),
    }


def summarize_strings(values: list[str]) -> dict:
    # dict.fromkeys keeps first-seen order
    unique_values = list(dict.fromkeys(values))
    return {
        "unique_count": len(unique_values),
        "total_count": len(values),
        "sample_values": unique_values[:SAMPLE_VALUE_COUNT],
    }


def summarize_rows(
    rows: Sequence[Mapping[str, Any]],
    headers: Sequence[str],
    data_types: Sequence[str],
) -> SheetStatistics:
    """
    Calculate summary statistics for one sheet.

    Number columns report min/max/avg/count/total over their numeric cells;
    string columns report unique and total counts plus up to ten sample
    values. Date and boolean columns, and columns with no qualifying cells,
    are left out.

    Args:
        rows: Row mappings of the sheet
        headers: The sheet's headers
        data_types: Column types parallel to ``headers``

    Returns:
        SheetStatistics keyed by header
    """
    result = SheetStatistics(total_records=len(rows))

    for index, header in enumerate(headers):
        column_type = data_types[index] if index < len(data_types) else ColumnType.STRING.value

        if column_type == ColumnType.NUMBER.value:
            values = _numeric_values(rows, header)
            if values.size > 0:
                result.columns[header] = summarize_numeric(values)

        elif column_type == ColumnType.STRING.value:
            strings = _string_values(rows, header)
            if strings:
                result.columns[header] = summarize_strings(strings)

    return result
