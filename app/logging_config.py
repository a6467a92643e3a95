"""
Application logging configuration.

Request handlers and background ingestion jobs log through one named logger,
so a file's lifecycle (queued, parsed, batches stored, finalized) reads as a
single stream. Messages identify files by primary key or public file_id.
"""
import logging
import sys

from app.config import settings

LOGGER_NAME = "spreadsheet_api"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging() -> logging.Logger:
    """
    Return the application logger, attaching its stdout handler on first use.

    The level comes from ``LOG_LEVEL``; unknown level names fall back to INFO.
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Modules call this at import time; only the first call configures
    if logger.handlers:
        return logger

    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    return logger
