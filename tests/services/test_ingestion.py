"""
Tests for the ingestion service: upload acceptance, batch persistence and
file processing outcomes.
"""
import io
import itertools
import logging
import os
import threading

import pytest
from sqlalchemy import func, select
from starlette.datastructures import Headers, UploadFile

from app.models.data_row import DataRow
from app.models.uploaded_file import FileStatus, UploadedFile
from app.services import ingestion, spreadsheet
from app.services.exceptions import InvalidStatusTransitionError, UploadValidationError
from app.services.ingestion import (
    FileProcessor,
    accept_upload,
    persist_sheet_rows,
    transition_status,
    validate_upload,
)
from app.services.spreadsheet import parse_sheet
from app.utils.ids import generate_file_id
from tests.constants import CSV_CONTENT_TYPE, XLSX_CONTENT_TYPE


class _UnavailableSession:
    def execute(self, *args, **kwargs):
        raise RuntimeError("database is unavailable")

    def rollback(self):
        pass

    def close(self):
        pass


class _UnavailableDatabase:
    def session(self):
        return _UnavailableSession()


def _upload(data: bytes, filename: str, content_type: str = CSV_CONTENT_TYPE) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        size=len(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def _create_file(db, path, original_name="data.csv", status=FileStatus.PROCESSING) -> UploadedFile:
    file_id = generate_file_id()
    uploaded_file = UploadedFile(
        file_id=file_id,
        filename=f"{file_id}.csv",
        original_name=original_name,
        file_path=str(path),
        file_size=os.path.getsize(path) if os.path.exists(path) else 0,
        mime_type=CSV_CONTENT_TYPE,
        owner_id=1,
        status=status,
        sheets=[],
        tags=[],
    )
    db.add(uploaded_file)
    db.commit()
    db.refresh(uploaded_file)
    return uploaded_file


def _reload(db, file_pk: int) -> UploadedFile:
    db.expire_all()
    return db.get(UploadedFile, file_pk)


def _row_count(db, file_pk: int) -> int:
    return db.execute(
        select(func.count()).select_from(DataRow).where(DataRow.file_id == file_pk)
    ).scalar_one()


# validate_upload


def test_validate_upload_accepts_spreadsheets():
    assert validate_upload("Report.XLSX", XLSX_CONTENT_TYPE, 1024) == ".xlsx"
    assert validate_upload("data.csv", CSV_CONTENT_TYPE) == ".csv"
    assert validate_upload("old.xls", "application/vnd.ms-excel") == ".xls"


@pytest.mark.parametrize(
    "filename, content_type, size",
    [
        ("notes.txt", "text/plain", 10),
        ("data.csv", "application/pdf", 10),
        ("data.pdf", CSV_CONTENT_TYPE, 10),
        ("data.csv", CSV_CONTENT_TYPE, 50 * 1024 * 1024 + 1),
        ("data.csv", None, 10),
    ],
)
def test_validate_upload_rejects(filename, content_type, size):
    with pytest.raises(UploadValidationError):
        validate_upload(filename, content_type, size)


# Status transitions


def test_transition_status_allows_forward_moves():
    uploaded_file = UploadedFile(status=FileStatus.UPLOADING)

    transition_status(uploaded_file, FileStatus.PROCESSING)
    transition_status(uploaded_file, FileStatus.COMPLETED)

    assert uploaded_file.status == FileStatus.COMPLETED


@pytest.mark.parametrize(
    "current, target",
    [
        (FileStatus.UPLOADING, FileStatus.COMPLETED),
        (FileStatus.COMPLETED, FileStatus.PROCESSING),
        (FileStatus.ERROR, FileStatus.COMPLETED),
        (FileStatus.PROCESSING, FileStatus.UPLOADING),
    ],
)
def test_transition_status_rejects_regressions_and_skips(current, target):
    uploaded_file = UploadedFile(status=current)

    with pytest.raises(InvalidStatusTransitionError):
        transition_status(uploaded_file, target)


# accept_upload


@pytest.mark.asyncio
async def test_accept_upload_stores_bytes_and_records_processing(db, storage):
    data = b"a,b\n1,10\n2,20\n"

    uploaded_file = await accept_upload(db, storage, _upload(data, "Numbers.CSV"), owner_id=7)

    assert uploaded_file.status == FileStatus.PROCESSING
    assert uploaded_file.owner_id == 7
    assert uploaded_file.original_name == "Numbers.CSV"
    assert uploaded_file.filename == f"{uploaded_file.file_id}.csv"
    assert uploaded_file.file_size == len(data)
    with open(uploaded_file.file_path, "rb") as f:
        assert f.read() == data


@pytest.mark.asyncio
async def test_accept_upload_rejection_creates_nothing(db, storage, tmp_path):
    with pytest.raises(UploadValidationError):
        await accept_upload(db, storage, _upload(b"x", "notes.txt", "text/plain"), owner_id=1)

    assert db.execute(select(func.count()).select_from(UploadedFile)).scalar_one() == 0
    assert not (tmp_path / "storage").exists() or not any((tmp_path / "storage").rglob("*.*"))


@pytest.mark.asyncio
async def test_accept_upload_oversize_stream_is_a_validation_error(db, tmp_path):
    from app.storage.local import LocalStorageBackend

    small_storage = LocalStorageBackend(base_path=str(tmp_path / "small"), max_size_mb=1)
    data = b"a\n" + b"1\n" * (600 * 1024)
    upload = UploadFile(
        file=io.BytesIO(data),
        filename="big.csv",
        headers=Headers({"content-type": CSV_CONTENT_TYPE}),
    )

    with pytest.raises(UploadValidationError) as exc_info:
        await accept_upload(db, small_storage, upload, owner_id=1)

    assert "File size too large" in exc_info.value.message
    assert not any((tmp_path / "small").rglob("*.csv"))


@pytest.mark.asyncio
async def test_accept_upload_removes_bytes_when_record_fails(db, storage, tmp_path, monkeypatch):
    def failing_flush(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(db, "flush", failing_flush)

    with pytest.raises(RuntimeError):
        await accept_upload(db, storage, _upload(b"a\n1\n", "data.csv"), owner_id=1)

    assert not any((tmp_path / "storage").rglob("*.csv"))


# persist_sheet_rows


def test_persist_sheet_rows_issues_sequential_batches(db, tmp_path):
    uploaded_file = _create_file(db, tmp_path / "big.csv")
    grid = [["n", "label"]] + [[str(i), f"row {i}"] for i in range(1, 2501)]
    sheet = parse_sheet("Sheet1", grid)

    batch_sizes = persist_sheet_rows(db, uploaded_file.id, sheet, batch_size=1000)

    assert batch_sizes == [1000, 1000, 500]
    indices = db.execute(
        select(DataRow.row_index)
        .where(DataRow.file_id == uploaded_file.id)
        .order_by(DataRow.row_index)
    ).scalars().all()
    assert indices == list(range(1, 2501))


def test_persist_sheet_rows_stores_denormalized_sheet_metadata(db, tmp_path):
    uploaded_file = _create_file(db, tmp_path / "small.csv")
    sheet = parse_sheet("People", [["Name", "Age"], ["Ann", "30"], ["Bo", "unknown"], ["Cy", "41"]])

    persist_sheet_rows(db, uploaded_file.id, sheet, batch_size=1000)

    rows = db.execute(
        select(DataRow).where(DataRow.file_id == uploaded_file.id).order_by(DataRow.row_index)
    ).scalars().all()
    assert rows[0].data == {"Name": "Ann", "Age": 30}
    assert rows[0].headers == ["Name", "Age"]
    assert rows[0].data_types == ["string", "number"]
    assert rows[0].searchable_text == "ann 30"
    assert rows[1].validation_status.value == "warning"
    assert rows[1].validation_errors[0]["column"] == "Age"


# FileProcessor


def test_process_completes_csv(database, db, tmp_path):
    path = tmp_path / "numbers.csv"
    path.write_text("a,b\n1,10\n2,20\n3,30\n")
    uploaded_file = _create_file(db, path, original_name="numbers.csv")

    status = FileProcessor(database).process(uploaded_file.id, str(path), "numbers.csv")

    assert status == FileStatus.COMPLETED
    record = _reload(db, uploaded_file.id)
    assert record.status == FileStatus.COMPLETED
    assert record.total_rows == 3
    assert record.total_columns == 2
    assert len(record.sheets) == 1
    assert record.sheets[0]["headers"] == ["a", "b"]
    assert record.sheets[0]["data_types"] == ["number", "number"]
    assert record.processing_error is None
    assert _row_count(db, uploaded_file.id) == 3


def test_process_corrupt_xlsx_ends_in_error_without_rows(database, db, tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"PK\x03\x04 definitely not a workbook")
    uploaded_file = _create_file(db, path, original_name="broken.xlsx")

    status = FileProcessor(database).process(uploaded_file.id, str(path), "broken.xlsx")

    assert status == FileStatus.ERROR
    record = _reload(db, uploaded_file.id)
    assert record.status == FileStatus.ERROR
    assert record.processing_error.startswith("Failed to parse spreadsheet file")
    assert _row_count(db, uploaded_file.id) == 0


def test_process_does_not_overwrite_a_final_status(database, db, tmp_path):
    path = tmp_path / "late.csv"
    path.write_text("a\n1\n2\n")
    uploaded_file = _create_file(db, path, original_name="late.csv", status=FileStatus.ERROR)

    status = FileProcessor(database).process(uploaded_file.id, str(path), "late.csv")

    assert status == FileStatus.ERROR
    assert _reload(db, uploaded_file.id).status == FileStatus.ERROR
    assert _row_count(db, uploaded_file.id) == 0


def test_process_stops_between_batches_when_cancelled(database, db, tmp_path):
    path = tmp_path / "rows.csv"
    path.write_text("n\n" + "\n".join(str(i) for i in range(10, 60)) + "\n")
    uploaded_file = _create_file(db, path, original_name="rows.csv")
    cancel_event = threading.Event()
    cancel_event.set()

    status = FileProcessor(database, batch_size=10).process(
        uploaded_file.id, str(path), "rows.csv", cancel_event
    )

    assert status == FileStatus.ERROR
    record = _reload(db, uploaded_file.id)
    assert "cancelled" in record.processing_error
    assert _row_count(db, uploaded_file.id) == 0


def test_record_failure_keeps_completed_files_and_their_rows(database, db, tmp_path):
    path = tmp_path / "done.csv"
    path.write_text("a,b\n1,10\n2,20\n3,30\n")
    uploaded_file = _create_file(db, path, original_name="done.csv")
    processor = FileProcessor(database)
    assert processor.process(uploaded_file.id, str(path), "done.csv") == FileStatus.COMPLETED

    processor.record_failure(uploaded_file.id, "Processing timed out after 300 seconds")

    record = _reload(db, uploaded_file.id)
    assert record.status == FileStatus.COMPLETED
    assert record.processing_error is None
    assert record.total_rows == 3
    assert _row_count(db, uploaded_file.id) == 3


def test_record_failure_drops_rows_stored_after_the_file_errored(database, db, tmp_path):
    path = tmp_path / "late.csv"
    path.write_text("n\n1\n2\n")
    uploaded_file = _create_file(db, path, status=FileStatus.ERROR)
    # A batch committed by a worker that had not yet seen its cancellation
    persist_sheet_rows(db, uploaded_file.id, parse_sheet("Sheet1", [["n"], ["1"], ["2"]]), 1000)

    FileProcessor(database).record_failure(uploaded_file.id, "Processing was cancelled")

    assert _row_count(db, uploaded_file.id) == 0


def test_record_failure_marks_processing_file_as_error(database, db, tmp_path):
    path = tmp_path / "stuck.csv"
    path.write_text("n\n1\n")
    uploaded_file = _create_file(db, path)
    persist_sheet_rows(db, uploaded_file.id, parse_sheet("Sheet1", [["n"], ["1"]]), 1000)

    FileProcessor(database).record_failure(uploaded_file.id, "Processing timed out after 300 seconds")

    record = _reload(db, uploaded_file.id)
    assert record.status == FileStatus.ERROR
    assert record.processing_error == "Processing timed out after 300 seconds"
    assert _row_count(db, uploaded_file.id) == 0


def test_record_failure_logs_and_swallows_database_errors(caplog):
    processor = FileProcessor(_UnavailableDatabase())

    with caplog.at_level(logging.ERROR):
        processor.record_failure(7, "Failed to parse spreadsheet file: bad zip")

    assert "File 7: Failed to record error state: database is unavailable" in caplog.text


def test_process_failure_after_a_committed_batch_leaves_no_rows(database, db, tmp_path, monkeypatch):
    path = tmp_path / "rows.csv"
    path.write_text("n\n" + "\n".join(str(i) for i in range(1, 26)) + "\n")
    uploaded_file = _create_file(db, path, original_name="rows.csv")
    rows_prepared = itertools.count(1)
    searchable_text = ingestion._searchable_text

    def fail_in_second_batch(values):
        if next(rows_prepared) > 15:
            raise RuntimeError("disk I/O error")
        return searchable_text(values)

    monkeypatch.setattr(ingestion, "_searchable_text", fail_in_second_batch)

    status = FileProcessor(database, batch_size=10).process(uploaded_file.id, str(path), "rows.csv")

    assert status == FileStatus.ERROR
    record = _reload(db, uploaded_file.id)
    assert record.status == FileStatus.ERROR
    assert record.processing_error == "disk I/O error"
    assert _row_count(db, uploaded_file.id) == 0


def test_process_unreadable_csv_ends_in_error(database, db, tmp_path, monkeypatch):
    monkeypatch.setattr(spreadsheet, "CSV_FIELD_SIZE_LIMIT", 1000)
    path = tmp_path / "wide.csv"
    path.write_text("a,b\n1," + "x" * 2000 + "\n2,y\n")
    uploaded_file = _create_file(db, path, original_name="wide.csv")

    status = FileProcessor(database).process(uploaded_file.id, str(path), "wide.csv")

    assert status == FileStatus.ERROR
    record = _reload(db, uploaded_file.id)
    assert record.processing_error.startswith("Failed to parse spreadsheet file")
    assert "field larger than field limit" in record.processing_error
    assert _row_count(db, uploaded_file.id) == 0
