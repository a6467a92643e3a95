"""
Spreadsheet ingestion service.

This module implements the upload-to-rows pipeline:

1. ``validate_upload`` / ``accept_upload`` run inside the upload request:
   the file is checked, streamed to storage and recorded with status
   ``processing``. The request returns right after.
2. ``FileProcessor.process`` runs later, off the request path (see
   ``app.services.task_queue``): it parses the workbook, writes DataRows in
   sequential batches and finalizes the record to ``completed`` or ``error``.

A file record only ever moves uploading -> processing -> completed|error.
The final update is conditional on the record still being ``processing``, so
a job that lost a race (e.g. it was timed out) cannot overwrite the outcome.
"""
import threading
import time
from collections.abc import AsyncIterator
from pathlib import Path

from fastapi import UploadFile
from sqlalchemy import delete, insert, select, update
from sqlalchemy.orm import Session

from app.config import settings
from app.database import Database
from app.logging_config import setup_logging
from app.models.data_row import DataRow, ValidationStatus
from app.models.uploaded_file import FileStatus, UploadedFile
from app.services.exceptions import (
    InvalidStatusTransitionError,
    ProcessingCancelledError,
    UploadValidationError,
)
from app.services.spreadsheet import ParsedSheet, parse_file
from app.storage.base import StorageBackend
from app.storage.exceptions import FileSizeExceededError
from app.utils.ids import generate_file_id, stored_filename

logger = setup_logging()

READ_CHUNK_SIZE = 64 * 1024  # 64KB


def validate_upload(filename: str, content_type: str | None, size: int | None = None) -> str:
    """
    Check an upload against the extension, media type and size rules.

    Args:
        filename: Client filename
        content_type: Declared media type
        size: Declared size in bytes, when the client sent one

    Returns:
        The lowercased file extension

    Raises:
        UploadValidationError: If any rule is violated
    """
    extension = Path(filename).suffix.lower()
    if extension not in settings.ALLOWED_SPREADSHEET_EXTENSIONS:
        raise UploadValidationError(
            "Only Excel files (.xlsx, .xls) and CSV files (.csv) are allowed"
        )

    if content_type not in settings.ALLOWED_SPREADSHEET_CONTENT_TYPES:
        raise UploadValidationError(
            "Invalid file type. Only Excel and CSV files are allowed"
        )

    max_size_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if size is not None and size > max_size_bytes:
        raise UploadValidationError(
            f"File size too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB}MB"
        )

    return extension


def transition_status(file: UploadedFile, target: FileStatus) -> None:
    """
    Move a file record to ``target``.

    Raises:
        InvalidStatusTransitionError: If the move would regress or skip a state
    """
    current = FileStatus(file.status)
    if not current.can_transition_to(target):
        raise InvalidStatusTransitionError(current.value, target.value)
    file.status = target


class UploadStream:
    """Async iterator over an UploadFile that counts the bytes it yields."""

    def __init__(self, upload: UploadFile, chunk_size: int = READ_CHUNK_SIZE):
        self._upload = upload
        self._chunk_size = chunk_size
        self.bytes_read = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._upload.read(self._chunk_size)
            if not chunk:
                break
            self.bytes_read += len(chunk)
            yield chunk


async def discard_stored_file(storage: StorageBackend, file_key: str) -> None:
    """Best-effort removal of stored bytes; failures are logged only."""
    try:
        if storage.file_exists(file_key):
            await storage.delete_file(file_key)
    except Exception as e:
        logger.error(f"Failed to clean up stored file {file_key}: {str(e)}")


async def accept_upload(
    db: Session,
    storage: StorageBackend,
    upload: UploadFile,
    owner_id: int,
) -> UploadedFile:
    """
    Validate an upload, store its bytes and create its file record.

    The record is committed with status ``processing``; parsing happens
    later. If anything fails after bytes were written, they are removed.

    Returns:
        The committed UploadedFile

    Raises:
        UploadValidationError: If the upload breaks an upload rule
        StorageError: If the bytes cannot be stored
    """
    original_name = upload.filename or ""
    content_type = upload.content_type or ""
    validate_upload(original_name, content_type, upload.size)

    file_id = generate_file_id()
    file_key = stored_filename(file_id, original_name)
    stream = UploadStream(upload)

    try:
        file_path = await storage.save_file(file_key, stream, content_type)
    except FileSizeExceededError as e:
        # Storage has already removed the partial file
        logger.warning(f"Upload rejected: {str(e)}")
        raise UploadValidationError(
            f"File size too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB}MB"
        ) from e

    try:
        uploaded_file = UploadedFile(
            file_id=file_id,
            filename=file_key,
            original_name=original_name,
            file_path=file_path,
            file_size=stream.bytes_read,
            mime_type=content_type,
            owner_id=owner_id,
            status=FileStatus.UPLOADING,
            sheets=[],
            tags=[],
        )
        db.add(uploaded_file)
        db.flush()

        transition_status(uploaded_file, FileStatus.PROCESSING)
        db.commit()
        db.refresh(uploaded_file)

    except Exception as e:
        logger.error(f"Failed to record upload {original_name}: {str(e)}", exc_info=True)
        db.rollback()
        await discard_stored_file(storage, file_key)
        raise

    logger.info(
        f"Upload accepted: file_id={file_id}, original_name={original_name}, "
        f"size={stream.bytes_read}, owner_id={owner_id}"
    )
    return uploaded_file


def _searchable_text(values: dict) -> str:
    return " ".join(
        str(value) for value in values.values() if value is not None and value != ""
    ).lower()


def persist_sheet_rows(
    db: Session,
    file_pk: int,
    sheet: ParsedSheet,
    batch_size: int,
    cancel_event: threading.Event | None = None,
) -> list[int]:
    """
    Insert a sheet's rows as DataRows in sequential batches.

    Each batch is committed before the next one starts. Row indices are
    1-based and follow sheet order.

    Returns:
        The size of every batch issued, in order

    Raises:
        ProcessingCancelledError: If ``cancel_event`` is set between batches
    """
    summary = sheet.summary
    batch_sizes = []

    for start in range(0, len(sheet.rows), batch_size):
        if cancel_event is not None and cancel_event.is_set():
            raise ProcessingCancelledError(f"Processing of file {file_pk} was cancelled")

        batch = [
            {
                "file_id": file_pk,
                "sheet_name": summary.name,
                "row_index": row_index,
                "data": row.values,
                "headers": summary.headers,
                "data_types": summary.data_types,
                "searchable_text": _searchable_text(row.values),
                "validation_status": ValidationStatus(row.validation_status),
                "validation_errors": row.validation_errors,
            }
            for row_index, row in enumerate(
                sheet.rows[start:start + batch_size], start=start + 1
            )
        ]
        db.execute(insert(DataRow), batch)
        db.commit()
        batch_sizes.append(len(batch))

    return batch_sizes


class FileProcessor:
    """
    Runs the parse-and-persist phase for one uploaded file at a time.

    Methods here are synchronous and open their own sessions from the
    injected Database, so they can run in a worker thread.
    """

    def __init__(
        self,
        database: Database,
        batch_size: int = settings.INGESTION_BATCH_SIZE,
        sample_size: int = settings.TYPE_INFERENCE_SAMPLE_SIZE,
        preview_rows: int = settings.PREVIEW_ROW_COUNT,
    ):
        self.database = database
        self.batch_size = batch_size
        self.sample_size = sample_size
        self.preview_rows = preview_rows

    def process(
        self,
        file_pk: int,
        file_path: str,
        original_name: str,
        cancel_event: threading.Event | None = None,
    ) -> FileStatus:
        """
        Parse the file, persist its rows and finalize the record.

        Errors never propagate: they end up in the record's status and
        ``processing_error``.

        Returns:
            The status the record ended in
        """
        start_time = time.monotonic()
        db = self.database.session()

        try:
            logger.info(f"File {file_pk}: Starting processing of {original_name}")

            workbook = parse_file(
                file_path,
                original_name,
                sample_size=self.sample_size,
                preview_rows=self.preview_rows,
            )

            rows_written = 0
            for sheet in workbook.sheets:
                if sheet.summary.is_empty:
                    continue
                batch_sizes = persist_sheet_rows(
                    db, file_pk, sheet, self.batch_size, cancel_event
                )
                rows_written += sum(batch_sizes)
                logger.info(
                    f"File {file_pk}: Stored {sum(batch_sizes)} rows for sheet "
                    f"'{sheet.summary.name}' in {len(batch_sizes)} batches"
                )

            processing_time_ms = int((time.monotonic() - start_time) * 1000)
            result = db.execute(
                update(UploadedFile)
                .where(
                    UploadedFile.id == file_pk,
                    UploadedFile.status == FileStatus.PROCESSING,
                )
                .values(
                    status=FileStatus.COMPLETED,
                    total_rows=workbook.total_rows,
                    total_columns=workbook.total_columns,
                    sheets=workbook.summaries(),
                    processing_time_ms=processing_time_ms,
                )
            )
            db.commit()

            if result.rowcount != 1:
                # The record left processing while we worked (timeout, delete)
                logger.warning(
                    f"File {file_pk}: No longer processing, discarding {rows_written} stored rows"
                )
                self._delete_rows(db, file_pk)
                db.commit()
                return self._current_status(db, file_pk) or FileStatus.ERROR

            logger.info(
                f"File {file_pk}: Completed processing. Sheets: {workbook.total_sheets}, "
                f"Rows: {workbook.total_rows}, Time: {processing_time_ms}ms"
            )
            return FileStatus.COMPLETED

        except Exception as e:
            db.rollback()
            logger.error(f"File {file_pk}: Processing failed: {str(e)}", exc_info=True)
            self.record_failure(file_pk, str(e) or e.__class__.__name__)
            return FileStatus.ERROR

        finally:
            db.close()

    def record_failure(self, file_pk: int, message: str) -> None:
        """
        Move a processing file to ``error`` and drop any rows written for it.

        Status change and row cleanup share one transaction. A file that
        already completed is left untouched, rows included.

        A failure here is logged and swallowed: the job has nobody to report to.
        """
        db = self.database.session()
        try:
            db.execute(
                update(UploadedFile)
                .where(
                    UploadedFile.id == file_pk,
                    UploadedFile.status == FileStatus.PROCESSING,
                )
                .values(status=FileStatus.ERROR, processing_error=message)
            )
            # A completed file keeps its rows; an errored one owns none
            if self._current_status(db, file_pk) != FileStatus.COMPLETED:
                self._delete_rows(db, file_pk)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(
                f"File {file_pk}: Failed to record error state: {str(e)}", exc_info=True
            )
        finally:
            db.close()

    @staticmethod
    def _delete_rows(db: Session, file_pk: int) -> None:
        db.execute(delete(DataRow).where(DataRow.file_id == file_pk))

    @staticmethod
    def _current_status(db: Session, file_pk: int) -> FileStatus | None:
        return db.execute(
            select(UploadedFile.status).where(UploadedFile.id == file_pk)
        ).scalar_one_or_none()
