"""
Ingestion pipeline exceptions.

Validation errors are raised synchronously to the uploading client. Parse and
processing errors never reach a client directly: the ingestion job records
them on the file's status instead.
"""


class UploadValidationError(Exception):
    """Raised when an upload is rejected before any file record is created."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class WorkbookParseError(Exception):
    """Raised when a spreadsheet file cannot be opened or read."""


class UnsupportedFormatError(WorkbookParseError):
    """Raised when the file extension is not a supported spreadsheet format."""

    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"Unsupported file format: {extension or '(none)'}")


class SheetParseError(Exception):
    """Raised while parsing a single sheet; contained to that sheet."""

    def __init__(self, sheet_name: str, message: str):
        self.sheet_name = sheet_name
        super().__init__(f"Failed to parse sheet '{sheet_name}': {message}")


class InvalidStatusTransitionError(Exception):
    """Raised when a file status change would regress or skip a state."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid file status transition: {current} -> {target}")


class ProcessingTimeoutError(Exception):
    """Raised when a processing job exceeds its deadline."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Processing timed out after {timeout_seconds:g} seconds")


class ProcessingCancelledError(Exception):
    """Raised inside a worker thread once its job has been cancelled."""
