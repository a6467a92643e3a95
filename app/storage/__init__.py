"""
Storage for uploaded spreadsheet bytes.

Only the local filesystem backend exists today; endpoints depend on the
``StorageBackend`` interface through ``app.dependencies.storage``.
"""

from app.storage.base import StorageBackend
from app.storage.exceptions import FileNotFoundError, FileSizeExceededError, StorageError
from app.storage.local import LocalStorageBackend

__all__ = [
    "FileNotFoundError",
    "FileSizeExceededError",
    "LocalStorageBackend",
    "StorageBackend",
    "StorageError",
]
