"""
Storage backend interface for uploaded spreadsheet bytes.

The ingestion pipeline writes an upload as it streams in and keeps the
returned path for the parser. The bytes are deleted with the file record.
"""
from abc import ABC, abstractmethod
from typing import AsyncIterator


class StorageBackend(ABC):
    """
    Where uploaded spreadsheets live between upload and deletion.

    Files are addressed by their storage key, the stored filename
    (``<file_id><ext>``, e.g. ``a3b8f2d4e1c9.xlsx``).
    """

    @abstractmethod
    async def save_file(
        self,
        file_key: str,
        file_stream: AsyncIterator[bytes],
        content_type: str,
    ) -> str:
        """
        Write an upload chunk by chunk.

        Implementations enforce their size limit while streaming and leave
        nothing behind when the write fails.

        Returns:
            Path the parser can open

        Raises:
            FileSizeExceededError: The stream passed the size limit
            StorageError: The bytes could not be written
        """

    @abstractmethod
    async def delete_file(self, file_key: str) -> None:
        """
        Raises:
            FileNotFoundError: No bytes stored under ``file_key``
            StorageError: The bytes could not be removed
        """

    @abstractmethod
    def file_exists(self, file_key: str) -> bool:
        ...
