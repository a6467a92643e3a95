"""
File API schemas.

This module defines Pydantic schemas for the uploaded file endpoints:
upload, listing, metadata, stored rows, metadata updates and sharing.
"""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.models.data_row import ValidationStatus
from app.models.file_share import SharePermission
from app.models.uploaded_file import AccessLevel, FileStatus


class SheetSummaryData(BaseModel):
    """Parsed metadata for one worksheet."""

    name: str
    row_count: int
    column_count: int
    headers: list[str]
    """Header names, one per column."""

    data_preview: list[list[str]]
    """Up to the first five data rows as display strings."""

    data_types: list[str]
    """Inferred column types, parallel to headers."""

    is_empty: bool = False
    error: str | None = None
    """Why the sheet could not be parsed, when it could not."""


class FileUploadResponseData(BaseModel):
    """Response data for an accepted upload."""

    file_id: str
    filename: str
    """Stored filename (file_id plus the original extension)."""

    original_name: str
    status: FileStatus

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "file_id": "a3b8f2d4e1c9",
                    "filename": "a3b8f2d4e1c9.xlsx",
                    "original_name": "Q3 Report.xlsx",
                    "status": "processing",
                }
            ]
        }
    }


class FileListItem(BaseModel):
    """One file in a listing (without sheet details)."""

    file_id: str
    original_name: str
    file_size: int
    mime_type: str
    owner_id: int
    status: FileStatus
    processing_error: str | None = None
    total_rows: int
    total_columns: int
    description: str | None = None
    tags: list[str] = []
    is_public: bool
    access_level: AccessLevel
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class FileMetadata(FileListItem):
    """Full metadata for one file."""

    filename: str
    sheets: list[SheetSummaryData] = []
    processing_time_ms: int
    last_accessed_at: datetime | None = None
    updated_at: datetime | None = None


class PaginationData(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class FileListResponseData(BaseModel):
    files: list[FileListItem]
    pagination: PaginationData


class DataRowItem(BaseModel):
    """A stored data row."""

    sheet_name: str
    row_index: int
    """1-based position within the sheet."""

    data: dict[str, Any]
    """Header name to cell value."""

    validation_status: ValidationStatus
    validation_errors: list[dict] = []

    model_config = {"from_attributes": True}


class FileRowsResponseData(BaseModel):
    file_id: str
    sheet_name: str | None
    rows: list[DataRowItem]
    pagination: PaginationData


class FileUpdateRequest(BaseModel):
    """Owner-editable file metadata. Omitted fields are left unchanged."""

    description: str | None = Field(None, max_length=2000)
    tags: list[str] | None = Field(None, max_length=50)
    is_public: bool | None = None
    access_level: AccessLevel | None = None


class FileShareRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    """User to grant access to."""

    permission: SharePermission = SharePermission.READ


class FileShareResponseData(BaseModel):
    file_id: str
    user_id: int
    permission: SharePermission
