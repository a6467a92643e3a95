from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from app.api.v1.router import router as v1_router
from app.config import settings
from app.database import Database
from app.logging_config import setup_logging
from app.services.ingestion import FileProcessor
from app.services.task_queue import IngestionQueue

# Setup application logging
logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    database: Database = app.state.database
    database.connect()

    processor = FileProcessor(
        database,
        batch_size=settings.INGESTION_BATCH_SIZE,
        sample_size=settings.TYPE_INFERENCE_SAMPLE_SIZE,
        preview_rows=settings.PREVIEW_ROW_COUNT,
    )
    app.state.ingestion_queue = IngestionQueue(
        processor,
        max_concurrency=settings.MAX_CONCURRENT_PROCESSING,
        timeout_seconds=settings.PROCESSING_TIMEOUT_SECONDS,
    )
    logger.info("Application started")

    yield

    await app.state.ingestion_queue.drain(timeout=settings.SHUTDOWN_DRAIN_SECONDS)
    if app.state.owns_database:
        database.close()
    logger.info("Application stopped")


async def http_exception_handler(request: Request, exc: HTTPException):
    """Unwrap the 'detail' field from HTTPException responses."""
    content = exc.detail

    if isinstance(content, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content=content
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": "Unauthorized" if exc.status_code == 401 else "Error",
            "message": content
        }
    )


async def generic_exception_handler(request: Request, exc: Exception):
    # Stack trace goes to the log, never to the client
    logger.error(
        f"Unhandled exception: {exc.__class__.__name__}: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
        },
    )


def create_app(database: Database | None = None) -> FastAPI:
    """
    Build the API application.

    Args:
        database: Database handle to use; when omitted one is built from
            DATABASE_URL and closed again on shutdown
    """
    app = FastAPI(title="Spreadsheet Analytics API", lifespan=lifespan)

    app.state.owns_database = database is None
    app.state.database = database or Database(settings.DATABASE_URL)

    app.include_router(v1_router, prefix="/api/v1")

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app


app = create_app()
