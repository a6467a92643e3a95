"""
Analytics API endpoints.

Column catalogue, chart data and summary statistics for the sheets of an
uploaded file. All three read the rows stored by the ingestion job.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.dependencies.auth import get_current_user_id
from app.logging_config import setup_logging
from app.models.uploaded_file import UploadedFile
from app.schemas.analytics import (
    ChartDataResponseData,
    ColumnInfo,
    ColumnsResponseData,
    SummaryResponseData,
)
from app.schemas.common import APIResponse, ErrorResponse
from app.services.charts import CHART_TYPES, describe_columns, prepare_chart_data
from app.services.files import find_sheet_summary, get_sheet_rows, resolve_sheet_name
from app.services.summary import summarize_rows
from app.utils.authorization import get_readable_file

router = APIRouter(prefix="/analytics", tags=["analytics"])

ERROR_RESPONSES = {
    403: {"model": ErrorResponse, "description": "Access denied"},
    404: {"model": ErrorResponse, "description": "Unknown file or no sheet data"},
}

logger = setup_logging()


def _no_sheet_data() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "success": False,
            "error": "Not Found",
            "message": "No data found for the specified sheet",
        },
    )


def _require_sheet(file: UploadedFile, sheet_name: str | None) -> str:
    resolved = resolve_sheet_name(file, sheet_name)
    if resolved is None:
        raise _no_sheet_data()
    return resolved


@router.get(
    "/columns/{file_id}",
    response_model=APIResponse[ColumnsResponseData],
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
)
def get_columns_endpoint(
    file_id: str,
    sheet_name: str | None = Query(None, description="Defaults to the first sheet."),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    List a sheet's columns with their inferred types, for axis selection.

    Raises:
        HTTPException 403: Access denied.
        HTTPException 404: Unknown file, or the sheet has no data.
    """
    file = get_readable_file(db, file_id, user_id)
    selected_sheet = _require_sheet(file, sheet_name)

    summary = find_sheet_summary(file, selected_sheet)
    if summary is None or summary.get("is_empty"):
        raise _no_sheet_data()

    columns = describe_columns(summary["headers"], summary["data_types"])

    return APIResponse(
        success=True,
        data=ColumnsResponseData(
            file_id=file.file_id,
            selected_sheet=selected_sheet,
            available_sheets=[sheet["name"] for sheet in file.sheets or []],
            columns=[ColumnInfo(**column) for column in columns],
        ),
    )


@router.get(
    "/chart-data/{file_id}",
    response_model=APIResponse[ChartDataResponseData],
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
)
def get_chart_data_endpoint(
    file_id: str,
    sheet_name: str | None = Query(None, description="Defaults to the first sheet."),
    chart_type: str = Query(
        "bar",
        description=f"One of {', '.join(CHART_TYPES)}; other values chart as line.",
    ),
    x_axis: str | None = Query(None, description="Header used for x."),
    y_axis: str | None = Query(None, description="Header used for y."),
    limit: int = Query(
        settings.CHART_DATA_DEFAULT_LIMIT,
        ge=1,
        le=settings.CHART_DATA_MAX_LIMIT,
        description="Maximum number of rows to chart.",
    ),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Get plot-ready points for one chart.

    Points are built from the first `limit` rows of the sheet. An axis that
    is missing or not a header of the sheet yields an empty `data` list.

    **Example:**
    ```bash
    curl "http://localhost:8000/api/v1/analytics/chart-data/a3b8f2d4e1c9?chart_type=pie&x_axis=region&y_axis=sales" \\
      -H "Authorization: Bearer <jwt>"
    ```
    """
    file = get_readable_file(db, file_id, user_id)
    selected_sheet = _require_sheet(file, sheet_name)

    rows = get_sheet_rows(db, file, selected_sheet, limit=limit)
    if not rows:
        raise _no_sheet_data()

    headers = rows[0].headers or []
    data = prepare_chart_data(
        [row.data for row in rows], chart_type, x_axis, y_axis, headers
    )

    logger.info(
        f"Chart data: file_id={file.file_id}, sheet={selected_sheet}, "
        f"chart_type={chart_type}, points={len(data)}"
    )

    return APIResponse(
        success=True,
        data=ChartDataResponseData(
            file_id=file.file_id,
            sheet_name=selected_sheet,
            chart_type=chart_type,
            x_axis=x_axis,
            y_axis=y_axis,
            headers=headers,
            total_records=len(rows),
            data=data,
        ),
    )


@router.get(
    "/summary/{file_id}",
    response_model=APIResponse[SummaryResponseData],
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
)
def get_summary_endpoint(
    file_id: str,
    sheet_name: str | None = Query(None, description="Defaults to the first sheet."),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Per-column summary statistics for one sheet."""
    file = get_readable_file(db, file_id, user_id)
    selected_sheet = _require_sheet(file, sheet_name)

    rows = get_sheet_rows(db, file, selected_sheet)
    if not rows:
        raise _no_sheet_data()

    headers = rows[0].headers or []
    data_types = rows[0].data_types or []
    statistics = summarize_rows([row.data for row in rows], headers, data_types)

    return APIResponse(
        success=True,
        data=SummaryResponseData(
            file_id=file.file_id,
            sheet_name=selected_sheet,
            total_records=statistics.total_records,
            headers=headers,
            data_types=data_types,
            summary=statistics.columns,
        ),
    )
