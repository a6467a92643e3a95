"""
Parsed spreadsheet row database model.

One DataRow is one data row of one sheet of one uploaded file. Rows are
written in bulk by the ingestion job and never modified afterwards.
"""
import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from app.database import Base

if TYPE_CHECKING:
    from app.models.uploaded_file import UploadedFile


class ValidationStatus(str, enum.Enum):
    VALID = "valid"
    WARNING = "warning"
    ERROR = "error"


class DataRow(Base):
    """
    Attributes:
        id: Primary key
        file_id: Owning UploadedFile primary key
        sheet_name: Sheet the row belongs to
        row_index: 1-based position of the row within its sheet
        data: Mapping of header name to cell value
        headers: Copy of the sheet headers
        data_types: Copy of the sheet column types (parallel to headers)
        searchable_text: Lowercase blob of the row's values
        validation_status: valid, warning or error
        validation_errors: List of {column, message, type} issues
        processed_at: Insert timestamp
    """

    __tablename__ = "data_rows"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    file_id: Mapped[int] = mapped_column(
        ForeignKey("uploaded_files.id", ondelete="CASCADE")
    )
    sheet_name: Mapped[str] = mapped_column(String(255))
    row_index: Mapped[int] = mapped_column(Integer)
    data: Mapped[dict] = mapped_column(JSON)
    headers: Mapped[list[str]] = mapped_column(JSON, default=list)
    data_types: Mapped[list[str]] = mapped_column(JSON, default=list)
    searchable_text: Mapped[str] = mapped_column(Text, default="")
    validation_status: Mapped[ValidationStatus] = mapped_column(
        Enum(
            ValidationStatus,
            name="validationstatus",
            values_callable=lambda e: [member.value for member in e],
        ),
        default=ValidationStatus.VALID,
    )
    validation_errors: Mapped[list[dict]] = mapped_column(JSON, default=list)
    processed_at: Mapped[datetime] = mapped_column(server_default=func.now())

    file: Mapped["UploadedFile"] = relationship("UploadedFile", back_populates="rows")

    __table_args__ = (
        UniqueConstraint("file_id", "sheet_name", "row_index", name="uq_data_rows_file_sheet_row"),
        Index("idx_data_rows_file_validation", "file_id", "validation_status"),
    )

    def __repr__(self) -> str:
        return f"<DataRow(id={self.id}, file_id={self.file_id}, sheet={self.sheet_name}, row={self.row_index})>"
