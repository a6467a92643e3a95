"""
File API endpoints.

This module provides the spreadsheet upload endpoint and the endpoints for
listing, reading, updating, sharing and deleting uploaded files.
"""
import math

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies.auth import get_current_user_id
from app.dependencies.ingestion import get_ingestion_queue
from app.dependencies.storage import get_storage
from app.logging_config import setup_logging
from app.models.uploaded_file import FileStatus
from app.schemas.common import APIResponse, ErrorResponse
from app.schemas.files import (
    DataRowItem,
    FileListItem,
    FileListResponseData,
    FileMetadata,
    FileRowsResponseData,
    FileShareRequest,
    FileShareResponseData,
    FileUpdateRequest,
    FileUploadResponseData,
    PaginationData,
)
from app.services.exceptions import UploadValidationError
from app.services.files import (
    LIST_SCOPES,
    SORT_COLUMNS,
    delete_file,
    get_rows,
    list_files,
    share_file,
    touch_last_accessed,
    update_file,
)
from app.services.ingestion import accept_upload
from app.services.task_queue import IngestionQueue
from app.storage.base import StorageBackend
from app.storage.exceptions import StorageError
from app.utils.authorization import get_owned_file, get_readable_file

router = APIRouter(prefix="/files", tags=["files"])

logger = setup_logging()


def _pagination(page: int, limit: int, total: int) -> PaginationData:
    return PaginationData(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.post(
    "/upload",
    response_model=APIResponse[FileUploadResponseData],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Upload rejected"},
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    },
)
async def upload_file(
    file: list[UploadFile] | None = File(
        None,
        description="Exactly one .xlsx, .xls or .csv file (max 50MB).",
    ),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    queue: IngestionQueue = Depends(get_ingestion_queue),
):
    """
    Upload a spreadsheet for ingestion.

    The file is validated, stored and recorded with status `processing`;
    parsing continues in the background. Poll `GET /files/{file_id}` for the
    final status (`completed` or `error`).

    **Request (multipart/form-data):**
    - file: The spreadsheet (.xlsx, .xls or .csv)

    **Example:**
    ```bash
    curl -X POST http://localhost:8000/api/v1/files/upload \\
      -H "Authorization: Bearer <jwt>" \\
      -F "file=@report.xlsx"
    ```

    Raises:
        HTTPException 400: Missing or multiple files, wrong extension or media
            type, or file over the size limit.
        HTTPException 500: The file could not be stored.
    """
    # 1. Exactly one file
    if not file or len(file) != 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "success": False,
                "error": "Bad Request",
                "message": "Please upload exactly one file",
            },
        )
    upload = file[0]

    # 2. Validate, store and record
    try:
        uploaded_file = await accept_upload(db, storage, upload, user_id)
    except UploadValidationError as e:
        logger.warning(f"Upload rejected for user_id={user_id}: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "success": False,
                "error": "Bad Request",
                "message": e.message,
            },
        )
    except StorageError as e:
        logger.error(f"Failed to store upload: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "success": False,
                "error": "Internal Server Error",
                "message": "Failed to store uploaded file",
            },
        )

    response_data = FileUploadResponseData(
        file_id=uploaded_file.file_id,
        filename=uploaded_file.filename,
        original_name=uploaded_file.original_name,
        status=uploaded_file.status,
    )

    # 3. Parse off the request path
    queue.submit(uploaded_file.id, uploaded_file.file_path, uploaded_file.original_name)

    return APIResponse(success=True, data=response_data)


@router.get(
    "",
    response_model=APIResponse[FileListResponseData],
    status_code=status.HTTP_200_OK,
)
def list_files_endpoint(
    scope: str = Query("all", pattern=f"^({'|'.join(LIST_SCOPES)})$"),
    status_filter: FileStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=255),
    sort_by: str = Query("uploaded_at", pattern=f"^({'|'.join(SORT_COLUMNS)})$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    List files owned by or shared with the current user.

    `scope` selects owned files, files shared with the user, or both.
    """
    files, total = list_files(
        db,
        user_id,
        scope=scope,
        status=status_filter,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )

    return APIResponse(
        success=True,
        data=FileListResponseData(
            files=[FileListItem.model_validate(f) for f in files],
            pagination=_pagination(page, limit, total),
        ),
    )


@router.get(
    "/{file_id}",
    response_model=APIResponse[FileMetadata],
    status_code=status.HTTP_200_OK,
)
def get_file_endpoint(
    file_id: str,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Get one file's metadata: status, counts and per-sheet summaries.

    Raises:
        HTTPException 403: The file is private and not shared with the user.
        HTTPException 404: Unknown file.
    """
    file = get_readable_file(db, file_id, user_id)
    touch_last_accessed(db, file)
    return APIResponse(success=True, data=FileMetadata.model_validate(file))


@router.get(
    "/{file_id}/data",
    response_model=APIResponse[FileRowsResponseData],
    status_code=status.HTTP_200_OK,
)
def get_file_rows_endpoint(
    file_id: str,
    sheet_name: str | None = Query(None, description="Only rows of this sheet."),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Get a file's stored rows in row order, paginated."""
    file = get_readable_file(db, file_id, user_id)
    rows, total = get_rows(db, file, sheet_name=sheet_name, page=page, limit=limit)

    return APIResponse(
        success=True,
        data=FileRowsResponseData(
            file_id=file.file_id,
            sheet_name=sheet_name,
            rows=[DataRowItem.model_validate(row) for row in rows],
            pagination=_pagination(page, limit, total),
        ),
    )


@router.put(
    "/{file_id}",
    response_model=APIResponse[FileMetadata],
    status_code=status.HTTP_200_OK,
)
def update_file_endpoint(
    file_id: str,
    request: FileUpdateRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Update description, tags or visibility. Owner only."""
    file = get_owned_file(db, file_id, user_id)
    file = update_file(db, file, request.model_dump(exclude_unset=True))
    return APIResponse(success=True, data=FileMetadata.model_validate(file))


@router.post(
    "/{file_id}/share",
    response_model=APIResponse[FileShareResponseData],
    status_code=status.HTTP_200_OK,
)
def share_file_endpoint(
    file_id: str,
    request: FileShareRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Share a file with another user. Owner only."""
    file = get_owned_file(db, file_id, user_id)

    if request.user_id == user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "success": False,
                "error": "Bad Request",
                "message": "Cannot share a file with its owner",
            },
        )

    share = share_file(db, file, request.user_id, request.permission)
    return APIResponse(
        success=True,
        data=FileShareResponseData(
            file_id=file.file_id,
            user_id=share.user_id,
            permission=share.permission,
        ),
    )


@router.delete(
    "/{file_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={409: {"model": ErrorResponse, "description": "File is still being processed"}},
)
async def delete_file_endpoint(
    file_id: str,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    """
    Delete a file, its rows and its shares. Owner only.

    Raises:
        HTTPException 409: The file is still being processed.
    """
    file = get_owned_file(db, file_id, user_id)

    if file.status == FileStatus.PROCESSING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "success": False,
                "error": "Conflict",
                "message": "File is still being processed",
            },
        )

    await delete_file(db, storage, file)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
