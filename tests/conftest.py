import os

# Settings are read at import time; these must exist before app modules load
os.environ.setdefault("DATABASE_URL", "sqlite:///./spreadsheet_api_test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-spreadsheet-api")

import pytest
from fastapi.testclient import TestClient

from app.database import Database
from app.dependencies.storage import get_storage
from app.main import create_app
from app.services.jwt import create_access_token
from app.storage.local import LocalStorageBackend


@pytest.fixture
def database(tmp_path):
    """A fresh SQLite database per test, with every table created."""
    database = Database(f"sqlite:///{tmp_path / 'test.db'}")
    database.connect()
    database.create_all()

    yield database

    database.close()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorageBackend(base_path=str(tmp_path / "storage"))


@pytest.fixture
def client(database, storage):
    """Test client bound to the test database and storage."""
    app = create_app(database=database)
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a user id."""

    def _headers(user_id: int = 1) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers
