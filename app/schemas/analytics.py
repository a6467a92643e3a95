"""
Analytics API schemas.

Column catalogue, chart data and summary statistics responses.
"""
from typing import Any

from pydantic import BaseModel


class ColumnInfo(BaseModel):
    """A sheet column as offered for axis selection."""

    name: str
    """Header name as stored on the rows."""

    display_name: str
    """Header name, numbered when the header repeats (e.g. "Total (2)")."""

    type: str
    suitable_for: list[str]
    """Axes the column can be mapped to (x, y, z, label)."""

    original_index: int


class ColumnsResponseData(BaseModel):
    file_id: str
    selected_sheet: str
    available_sheets: list[str]
    columns: list[ColumnInfo]


class ChartDataResponseData(BaseModel):
    file_id: str
    sheet_name: str
    chart_type: str
    x_axis: str | None
    y_axis: str | None
    headers: list[str]
    total_records: int
    """Number of rows the points were built from."""

    data: list[dict[str, Any]]

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "file_id": "a3b8f2d4e1c9",
                    "sheet_name": "Sheet1",
                    "chart_type": "bar",
                    "x_axis": "month",
                    "y_axis": "revenue",
                    "headers": ["month", "revenue"],
                    "total_records": 2,
                    "data": [
                        {"x": "Jan", "y": 1200, "label": "Jan"},
                        {"x": "Feb", "y": 950, "label": "Feb"},
                    ],
                }
            ]
        }
    }


class SummaryResponseData(BaseModel):
    file_id: str
    sheet_name: str
    total_records: int
    headers: list[str]
    data_types: list[str]
    summary: dict[str, dict[str, Any]]
    """Per-column statistics keyed by header name."""
