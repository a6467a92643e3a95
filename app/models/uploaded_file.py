"""
Uploaded spreadsheet database model.

This module defines the UploadedFile model for storing uploaded spreadsheet
metadata: stored file information, processing lifecycle, per-sheet summaries
produced by the parser, and sharing settings.
"""
import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, DateTime, Enum, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from app.database import Base

if TYPE_CHECKING:
    from app.models.data_row import DataRow
    from app.models.file_share import FileShare


class FileStatus(str, enum.Enum):
    """Processing lifecycle of an uploaded file."""

    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    def can_transition_to(self, target: "FileStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[FileStatus, frozenset[FileStatus]] = {
    FileStatus.UPLOADING: frozenset({FileStatus.PROCESSING}),
    FileStatus.PROCESSING: frozenset({FileStatus.COMPLETED, FileStatus.ERROR}),
    FileStatus.COMPLETED: frozenset(),
    FileStatus.ERROR: frozenset(),
}


class AccessLevel(str, enum.Enum):
    PRIVATE = "private"
    SHARED = "shared"
    PUBLIC = "public"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class UploadedFile(Base):
    """
    Uploaded spreadsheet file.

    Attributes:
        id: Primary key
        file_id: Public identifier used in URLs (12-character base62)
        filename: Stored filename (file_id + original extension)
        original_name: Filename as provided by the client
        file_path: Storage path of the uploaded bytes
        file_size: File size in bytes
        mime_type: Declared media type of the upload
        owner_id: ID of the uploading user (issued by the auth service)
        status: Processing status (uploading, processing, completed, error)
        processing_error: Error message when status is error
        total_rows: Sum of data rows across all sheets
        total_columns: Widest sheet's column count
        sheets: Ordered list of sheet summaries (name, counts, headers,
            preview, data types)
        description: Free-form description set by the owner
        tags: List of tags set by the owner
        is_public: Whether any authenticated user may read the file
        access_level: private, shared or public
        processing_time_ms: Wall time of the processing job
        uploaded_at: Upload timestamp
        last_accessed_at: Last time the file metadata was fetched
        updated_at: Last modification timestamp
    """

    __tablename__ = "uploaded_files"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    file_id: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    filename: Mapped[str] = mapped_column(String(255))
    original_name: Mapped[str] = mapped_column(String(255))
    file_path: Mapped[str] = mapped_column(String(500))
    file_size: Mapped[int] = mapped_column(BigInteger)
    mime_type: Mapped[str] = mapped_column(String(255))
    owner_id: Mapped[int] = mapped_column(Integer, index=True)
    status: Mapped[FileStatus] = mapped_column(
        Enum(FileStatus, name="filestatus", values_callable=_enum_values),
        default=FileStatus.UPLOADING,
    )
    processing_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_rows: Mapped[int] = mapped_column(Integer, default=0)
    total_columns: Mapped[int] = mapped_column(Integer, default=0)
    sheets: Mapped[list[dict]] = mapped_column(JSON, default=list)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    access_level: Mapped[AccessLevel] = mapped_column(
        Enum(AccessLevel, name="accesslevel", values_callable=_enum_values),
        default=AccessLevel.PRIVATE,
    )
    processing_time_ms: Mapped[int] = mapped_column(Integer, default=0)
    uploaded_at: Mapped[datetime] = mapped_column(server_default=func.now())
    last_accessed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )

    rows: Mapped[list["DataRow"]] = relationship(
        "DataRow",
        back_populates="file",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    shares: Mapped[list["FileShare"]] = relationship(
        "FileShare",
        back_populates="file",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_uploaded_files_owner_uploaded_at", "owner_id", "uploaded_at"),
        Index("idx_uploaded_files_status", "status"),
        Index("idx_uploaded_files_is_public", "is_public"),
    )

    def __repr__(self) -> str:
        return f"<UploadedFile(id={self.id}, file_id={self.file_id}, status={self.status})>"
