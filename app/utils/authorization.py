"""
Authorization utilities for uploaded files.

Reads are allowed to the owner, to users the file is shared with, and to
anyone when the file is public. Writes (update, share, delete) are allowed
to the owner only.
"""
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models.uploaded_file import UploadedFile
from app.services.files import get_file, get_share


def can_read(db: Session, file: UploadedFile, user_id: int) -> bool:
    if file.owner_id == user_id or file.is_public:
        return True
    return get_share(db, file, user_id) is not None


def get_file_or_404(db: Session, file_id: str) -> UploadedFile:
    file = get_file(db, file_id)
    if file is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "success": False,
                "error": "Not Found",
                "message": "File not found",
            },
        )
    return file


def get_readable_file(db: Session, file_id: str, user_id: int) -> UploadedFile:
    """
    Fetch a file the user may read.

    Raises:
        HTTPException: 404 if the file does not exist, 403 if access is denied
    """
    file = get_file_or_404(db, file_id)
    if not can_read(db, file, user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "success": False,
                "error": "Forbidden",
                "message": "Access denied",
            },
        )
    return file


def get_owned_file(db: Session, file_id: str, user_id: int) -> UploadedFile:
    """
    Fetch a file the user owns.

    Raises:
        HTTPException: 404 if the file does not exist, 403 if the user is not
            the owner
    """
    file = get_file_or_404(db, file_id)
    if file.owner_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "success": False,
                "error": "Forbidden",
                "message": "Only the file owner can modify this file",
            },
        )
    return file
