"""
Uploaded file queries and management.

Read helpers return ORM records (or None) and leave HTTP concerns to the API
layer; access checks live in ``app.utils.authorization``.
"""
from datetime import datetime, timezone

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from app.logging_config import setup_logging
from app.models.data_row import DataRow
from app.models.file_share import FileShare, SharePermission
from app.models.uploaded_file import AccessLevel, FileStatus, UploadedFile
from app.storage.base import StorageBackend
from app.storage.exceptions import FileNotFoundError as StoredFileNotFoundError

logger = setup_logging()

LIST_SCOPES = ("owned", "shared", "all")

SORT_COLUMNS = {
    "uploaded_at": UploadedFile.uploaded_at,
    "original_name": UploadedFile.original_name,
    "file_size": UploadedFile.file_size,
    "status": UploadedFile.status,
}


def get_file(db: Session, file_id: str) -> UploadedFile | None:
    return db.execute(
        select(UploadedFile).where(UploadedFile.file_id == file_id)
    ).scalar_one_or_none()


def get_share(db: Session, file: UploadedFile, user_id: int) -> FileShare | None:
    return db.get(FileShare, (file.id, user_id))


def list_files(
    db: Session,
    user_id: int,
    scope: str = "all",
    status: FileStatus | None = None,
    search: str | None = None,
    sort_by: str = "uploaded_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> tuple[list[UploadedFile], int]:
    """
    List files owned by or shared with a user.

    Args:
        db: Database session
        user_id: Requesting user
        scope: "owned", "shared" or "all" (owned plus shared)
        status: Only files in this status
        search: Case-insensitive match on original name or description
        sort_by: One of SORT_COLUMNS
        sort_order: "asc" or "desc"
        page: 1-based page number
        limit: Page size

    Returns:
        Tuple of (files on the requested page, total matching files)
    """
    shared_ids = select(FileShare.file_id).where(FileShare.user_id == user_id)

    if scope == "owned":
        visibility = UploadedFile.owner_id == user_id
    elif scope == "shared":
        visibility = UploadedFile.id.in_(shared_ids)
    else:
        visibility = or_(UploadedFile.owner_id == user_id, UploadedFile.id.in_(shared_ids))

    query = select(UploadedFile).where(visibility)

    if status is not None:
        query = query.where(UploadedFile.status == status)

    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(
                func.lower(UploadedFile.original_name).like(pattern),
                func.lower(UploadedFile.description).like(pattern),
            )
        )

    total = db.execute(
        select(func.count()).select_from(query.subquery())
    ).scalar_one()

    sort_column = SORT_COLUMNS.get(sort_by, UploadedFile.uploaded_at)
    ordering = sort_column.asc() if sort_order == "asc" else sort_column.desc()
    files = db.execute(
        query.order_by(ordering, UploadedFile.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()

    return list(files), total


def touch_last_accessed(db: Session, file: UploadedFile) -> None:
    file.last_accessed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(file)


def resolve_sheet_name(file: UploadedFile, sheet_name: str | None) -> str | None:
    """The requested sheet, or the file's first sheet when none is given."""
    if sheet_name:
        return sheet_name
    if file.sheets:
        return file.sheets[0].get("name")
    return None


def find_sheet_summary(file: UploadedFile, sheet_name: str) -> dict | None:
    for summary in file.sheets or []:
        if summary.get("name") == sheet_name:
            return summary
    return None


def get_rows(
    db: Session,
    file: UploadedFile,
    sheet_name: str | None = None,
    page: int = 1,
    limit: int = 100,
) -> tuple[list[DataRow], int]:
    """
    One page of a file's rows, ordered by row index.

    Returns:
        Tuple of (rows, total rows matching the sheet filter)
    """
    query = select(DataRow).where(DataRow.file_id == file.id)
    if sheet_name:
        query = query.where(DataRow.sheet_name == sheet_name)

    total = db.execute(
        select(func.count()).select_from(query.subquery())
    ).scalar_one()

    rows = db.execute(
        query.order_by(DataRow.row_index.asc(), DataRow.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()

    return list(rows), total


def get_sheet_rows(
    db: Session,
    file: UploadedFile,
    sheet_name: str,
    limit: int | None = None,
) -> list[DataRow]:
    """Rows of one sheet in row order, optionally capped at ``limit``."""
    query = (
        select(DataRow)
        .where(DataRow.file_id == file.id, DataRow.sheet_name == sheet_name)
        .order_by(DataRow.row_index.asc(), DataRow.id.asc())
    )
    if limit is not None:
        query = query.limit(limit)
    return list(db.execute(query).scalars().all())


def update_file(db: Session, file: UploadedFile, changes: dict) -> UploadedFile:
    """
    Apply owner-editable metadata changes.

    Only description, tags, is_public and access_level are accepted; keys
    missing from ``changes`` are left untouched.
    """
    for field in ("description", "tags", "is_public", "access_level"):
        if field in changes:
            setattr(file, field, changes[field])

    # Keep the public flag and the access level in agreement
    if "access_level" in changes and "is_public" not in changes:
        file.is_public = file.access_level == AccessLevel.PUBLIC
    elif "is_public" in changes and "access_level" not in changes and file.is_public:
        file.access_level = AccessLevel.PUBLIC

    db.commit()
    db.refresh(file)
    return file


def share_file(
    db: Session,
    file: UploadedFile,
    user_id: int,
    permission: SharePermission = SharePermission.READ,
) -> FileShare:
    """Grant (or change) a user's access to a file."""
    share = get_share(db, file, user_id)
    if share is None:
        share = FileShare(file_id=file.id, user_id=user_id, permission=permission)
        db.add(share)
    else:
        share.permission = permission

    if file.access_level == AccessLevel.PRIVATE:
        file.access_level = AccessLevel.SHARED

    db.commit()
    db.refresh(share)

    logger.info(
        f"File {file.file_id} shared with user_id={user_id} ({permission.value})"
    )
    return share


async def delete_file(db: Session, storage: StorageBackend, file: UploadedFile) -> None:
    """
    Delete a file record together with its rows and shares, then its bytes.

    Stored bytes are removed after the database commit; a failure there is
    logged only.
    """
    file_key = file.filename
    file_id = file.file_id

    db.execute(delete(DataRow).where(DataRow.file_id == file.id))
    db.execute(delete(FileShare).where(FileShare.file_id == file.id))
    db.delete(file)
    db.commit()

    try:
        await storage.delete_file(file_key)
    except StoredFileNotFoundError:
        logger.warning(f"Stored bytes for file {file_id} were already gone")
    except Exception as e:
        logger.error(f"Failed to delete stored file for {file_id}: {str(e)}")

    logger.info(f"File deleted: file_id={file_id}")
