"""
Chart data preparation.

Reshapes stored sheet rows into the point format each chart kind expects,
and describes a sheet's columns for axis selection. Everything here is pure:
rows come in as plain ``{header: value}`` mappings and are never mutated.
"""
import re
from collections.abc import Mapping, Sequence
from typing import Any

from app.services.type_inference import ColumnType

POINT_CHARTS = frozenset({"line", "bar", "scatter"})
GROUPED_CHARTS = frozenset({"pie", "doughnut"})
SCATTER_3D = "3d-scatter"
BAR_3D = "3d-bar"

CHART_TYPES = sorted(POINT_CHARTS | GROUPED_CHARTS | {SCATTER_3D, BAR_3D})

UNKNOWN_LABEL = "Unknown"

SUITABLE_AXES = {
    ColumnType.NUMBER.value: ["x", "y", "z"],
    ColumnType.STRING.value: ["x", "label"],
    ColumnType.DATE.value: ["x", "y"],
    ColumnType.BOOLEAN.value: ["x", "y"],
}

# Longest numeric prefix, the way a browser's parseFloat reads it
_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def display_value(value: Any) -> str:
    """
    String form of a stored cell for labels and grouping keys.

    Examples:
        >>> display_value(3.0)
        '3'
        >>> display_value(True)
        'true'
        >>> display_value(None)
        ''
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_float(value: Any) -> float:
    """
    Read a numeric value from a stored cell, falling back to 0.

    Strings are read up to their longest numeric prefix ("12kg" -> 12.0).
    Booleans, blanks and non-numeric text give 0.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)

    match = _LEADING_NUMBER_RE.match(str(value))
    if not match:
        return 0.0
    return float(match.group(1))


def _point(row: Mapping[str, Any], x_column: str, y_column: str) -> dict:
    x = row.get(x_column)
    return {"x": x, "y": row.get(y_column), "label": display_value(x)}


def _group_totals(
    rows: Sequence[Mapping[str, Any]],
    x_column: str,
    y_column: str,
) -> list[dict]:
    totals: dict[str, float] = {}
    for row in rows:
        label = display_value(row.get(x_column)) or UNKNOWN_LABEL
        totals[label] = totals.get(label, 0.0) + parse_float(row.get(y_column))

    grand_total = sum(totals.values())
    return [
        {
            "label": label,
            "value": value,
            "percentage": round(value / grand_total * 100, 2) if grand_total else 0,
        }
        for label, value in totals.items()
    ]


def prepare_chart_data(
    rows: Sequence[Mapping[str, Any]],
    chart_kind: str | None,
    x_column: str | None,
    y_column: str | None,
    headers: Sequence[str],
) -> list[dict]:
    """
    Build plot-ready points for one chart.

    Args:
        rows: Row mappings in sheet order
        chart_kind: line, bar, scatter, pie, doughnut, 3d-scatter or 3d-bar;
            anything else is treated like a line chart
        x_column: Header used for x (and for grouping in pie/doughnut)
        y_column: Header used for y (summed in pie/doughnut)
        headers: The sheet's headers

    Returns:
        Points in row order; pie and doughnut return one entry per distinct
        x label in first-seen order. Empty when an axis is missing or not a
        header of the sheet.
    """
    if not x_column or not y_column:
        return []
    if x_column not in headers or y_column not in headers:
        return []

    if chart_kind in GROUPED_CHARTS:
        return _group_totals(rows, x_column, y_column)

    if chart_kind == SCATTER_3D:
        z_column = headers[2] if len(headers) > 2 else y_column
        return [
            {**_point(row, x_column, y_column), "z": row.get(z_column) or 0}
            for row in rows
        ]

    if chart_kind == BAR_3D:
        # Bars are laid out along z by the renderer
        return [{**_point(row, x_column, y_column), "z": 0} for row in rows]

    return [_point(row, x_column, y_column) for row in rows]


def describe_columns(headers: Sequence[str], data_types: Sequence[str]) -> list[dict]:
    """
    Describe each column of a sheet for axis selection.

    Repeated header names get a numbered display name ("Total (2)") so every
    entry is distinguishable; ``name`` keeps the stored header.
    """
    columns = []
    seen: dict[str, int] = {}

    for index, header in enumerate(headers):
        occurrence = seen.get(header, 0) + 1
        seen[header] = occurrence

        column_type = data_types[index] if index < len(data_types) else ColumnType.STRING.value
        columns.append({
            "name": header,
            "display_name": f"{header} ({occurrence})" if occurrence > 1 else header,
            "type": column_type,
            "suitable_for": SUITABLE_AXES.get(column_type, ["x", "y"]),
            "original_index": index,
        })

    return columns
