"""
Local filesystem storage implementation.

This module provides a local filesystem implementation of the storage backend
with async file operations and an S3-compatible directory structure.
"""
import os
from pathlib import Path
from typing import AsyncIterator

import aiofiles

from app.config import settings
from app.storage.base import StorageBackend
from app.storage.exceptions import FileNotFoundError, FileSizeExceededError, StorageError

WRITE_CHUNK_SIZE = 64 * 1024  # 64KB


class LocalStorageBackend(StorageBackend):
    """
    Local filesystem storage with async operations.

    Uses sharded directory structure for efficient file organization:
    <base_path>/spreadsheets/<prefix>/<file_key>

    This structure maps directly to S3 buckets for easy migration.
    """

    def __init__(self, base_path: str | None = None, max_size_mb: int | None = None):
        """
        Args:
            base_path: Base directory for file storage (default from config)
            max_size_mb: Maximum file size in MB (default from config)
        """
        self.base_path = Path(base_path or settings.STORAGE_BASE_PATH)
        self.max_size_bytes = (max_size_mb or settings.MAX_UPLOAD_SIZE_MB) * 1024 * 1024

    async def save_file(
        self,
        file_key: str,
        file_stream: AsyncIterator[bytes],
        content_type: str,
    ) -> str:
        """
        Stream file to disk in chunks (async).

        The size limit is checked while streaming, so an oversize upload is
        rejected without ever being fully written.

        Returns:
            Full file path where file was saved

        Raises:
            FileSizeExceededError: If file exceeds maximum size
            StorageError: If save operation fails
        """
        file_path = self._get_file_path(file_key)
        self._ensure_directory_exists(file_path)

        total_size = 0

        try:
            async with aiofiles.open(file_path, "wb") as f:
                async for chunk in file_stream:
                    total_size += len(chunk)

                    if total_size > self.max_size_bytes:
                        raise FileSizeExceededError(total_size, self.max_size_bytes)

                    await f.write(chunk)

        except Exception as e:
            # Clean up partial file on error
            self._remove_quietly(file_path)
            if isinstance(e, StorageError):
                raise
            raise StorageError(f"Failed to save file: {str(e)}") from e

        return str(file_path)

    async def delete_file(self, file_key: str) -> None:
        file_path = self._get_file_path(file_key)

        if not os.path.exists(file_path):
            raise FileNotFoundError(file_key)

        try:
            os.remove(file_path)
        except OSError as e:
            raise StorageError(f"Failed to delete file: {str(e)}") from e

        # Clean up empty shard directory
        try:
            file_path.parent.rmdir()
        except OSError:
            # Directory not empty, ignore
            pass

    def file_exists(self, file_key: str) -> bool:
        return os.path.exists(self._get_file_path(file_key))

    def _get_file_path(self, file_key: str) -> Path:
        """
        Calculate file path using sharded structure.

        Structure: <base_path>/spreadsheets/<prefix>/<file_key>
        Example: app/storage/data/spreadsheets/a3/a3b8f2d4e1c9.xlsx
        """
        # Use first 2 characters as prefix for sharding
        prefix = file_key[:2] if len(file_key) >= 2 else file_key
        return self.base_path / "spreadsheets" / prefix / file_key

    def _ensure_directory_exists(self, file_path: Path) -> None:
        file_path.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _remove_quietly(file_path: Path) -> None:
        try:
            file_path.unlink(missing_ok=True)
        except OSError:
            pass
