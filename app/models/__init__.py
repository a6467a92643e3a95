from app.models.data_row import DataRow, ValidationStatus
from app.models.file_share import FileShare, SharePermission
from app.models.uploaded_file import AccessLevel, FileStatus, UploadedFile

__all__ = [
    "AccessLevel",
    "DataRow",
    "FileShare",
    "FileStatus",
    "SharePermission",
    "UploadedFile",
    "ValidationStatus",
]
