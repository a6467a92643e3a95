import pytest
from fastapi import HTTPException

from app.models.file_share import FileShare
from app.models.uploaded_file import FileStatus, UploadedFile
from app.utils.authorization import can_read, get_owned_file, get_readable_file

OWNER = 1
RECIPIENT = 2
STRANGER = 3


@pytest.fixture
def uploaded_file(db):
    uploaded_file = UploadedFile(
        file_id="a3b8f2d4e1c9",
        filename="a3b8f2d4e1c9.csv",
        original_name="data.csv",
        file_path="/tmp/a3b8f2d4e1c9.csv",
        file_size=10,
        mime_type="text/csv",
        owner_id=OWNER,
        status=FileStatus.COMPLETED,
        sheets=[],
        tags=[],
    )
    db.add(uploaded_file)
    db.commit()
    db.add(FileShare(file_id=uploaded_file.id, user_id=RECIPIENT))
    db.commit()
    db.refresh(uploaded_file)
    return uploaded_file


def test_can_read(db, uploaded_file):
    assert can_read(db, uploaded_file, OWNER)
    assert can_read(db, uploaded_file, RECIPIENT)
    assert not can_read(db, uploaded_file, STRANGER)


def test_public_file_is_readable_by_anyone(db, uploaded_file):
    uploaded_file.is_public = True
    db.commit()

    assert can_read(db, uploaded_file, STRANGER)


def test_get_readable_file_denies_strangers(db, uploaded_file):
    with pytest.raises(HTTPException) as exc_info:
        get_readable_file(db, uploaded_file.file_id, STRANGER)

    assert exc_info.value.status_code == 403


def test_get_readable_file_unknown_id(db):
    with pytest.raises(HTTPException) as exc_info:
        get_readable_file(db, "doesnotexist", OWNER)

    assert exc_info.value.status_code == 404


def test_share_recipient_cannot_modify(db, uploaded_file):
    assert get_owned_file(db, uploaded_file.file_id, OWNER).id == uploaded_file.id

    with pytest.raises(HTTPException) as exc_info:
        get_owned_file(db, uploaded_file.file_id, RECIPIENT)

    assert exc_info.value.status_code == 403
