"""
Storage dependency injection for FastAPI.

Endpoints receive a StorageBackend through ``get_storage`` so tests can swap
in a backend rooted in a temp directory.
"""
from app.config import settings
from app.storage import LocalStorageBackend, StorageBackend


def get_storage() -> StorageBackend:
    """
    Return storage backend based on configuration.

    Raises:
        ValueError: If STORAGE_BACKEND is not supported
    """
    if settings.STORAGE_BACKEND == "local":
        return LocalStorageBackend(
            base_path=settings.STORAGE_BASE_PATH,
            max_size_mb=settings.MAX_UPLOAD_SIZE_MB,
        )

    raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")
