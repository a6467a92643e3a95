"""
Storage-specific exceptions.

Raised by storage backends while saving, locating or deleting uploaded
spreadsheet bytes.
"""


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class FileSizeExceededError(StorageError):
    """Raised when uploaded file exceeds maximum size limit."""

    def __init__(self, file_size: int, max_size: int):
        self.file_size = file_size
        self.max_size = max_size
        super().__init__(
            f"File size ({file_size} bytes) exceeds maximum allowed size ({max_size} bytes)"
        )


class FileNotFoundError(StorageError):
    """Raised when requested file is not found in storage."""

    def __init__(self, file_key: str):
        self.file_key = file_key
        super().__init__(f"File not found: {file_key}")
