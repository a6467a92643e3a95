"""
In-process ingestion job queue.

Uploads hand their parse-and-persist phase to an ``IngestionQueue``. Each job
runs ``FileProcessor.process`` in a worker thread, under a concurrency limit
and a per-job deadline. Handles are kept per file so callers (and tests) can
await a job, and the application drains outstanding jobs on shutdown.
"""
import asyncio
import threading

from app.config import settings
from app.logging_config import setup_logging
from app.models.uploaded_file import FileStatus
from app.services.exceptions import ProcessingTimeoutError
from app.services.ingestion import FileProcessor

logger = setup_logging()


class IngestionQueue:
    """
    Runs ingestion jobs on the current event loop.

    Args:
        processor: FileProcessor used by every job
        max_concurrency: Number of jobs allowed to parse at the same time
        timeout_seconds: Per-job deadline, counted once the job starts;
            None disables it
    """

    def __init__(
        self,
        processor: FileProcessor,
        max_concurrency: int = settings.MAX_CONCURRENT_PROCESSING,
        timeout_seconds: float | None = settings.PROCESSING_TIMEOUT_SECONDS,
    ):
        self.processor = processor
        self.timeout_seconds = timeout_seconds
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: dict[int, asyncio.Task] = {}

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, file_pk: int, file_path: str, original_name: str) -> asyncio.Task:
        """
        Schedule processing for an accepted upload.

        Must be called from a running event loop. The returned task resolves
        to the FileStatus the record ended in.
        """
        task = asyncio.get_running_loop().create_task(
            self._run(file_pk, file_path, original_name),
            name=f"ingest-file-{file_pk}",
        )
        self._tasks[file_pk] = task
        task.add_done_callback(lambda _: self._tasks.pop(file_pk, None))

        logger.info(f"File {file_pk}: Queued for processing")
        return task

    def get(self, file_pk: int) -> asyncio.Task | None:
        return self._tasks.get(file_pk)

    async def _run(self, file_pk: int, file_path: str, original_name: str) -> FileStatus:
        cancel_event = threading.Event()

        try:
            async with self._semaphore:
                return await asyncio.wait_for(
                    asyncio.to_thread(
                        self.processor.process,
                        file_pk,
                        file_path,
                        original_name,
                        cancel_event,
                    ),
                    timeout=self.timeout_seconds,
                )

        except asyncio.TimeoutError:
            message = str(ProcessingTimeoutError(self.timeout_seconds))
            logger.error(f"File {file_pk}: {message}")
            # Outcome is recorded before the worker is released
            await asyncio.to_thread(self.processor.record_failure, file_pk, message)
            cancel_event.set()
            return FileStatus.ERROR

        except asyncio.CancelledError:
            logger.warning(f"File {file_pk}: Processing cancelled")
            try:
                await asyncio.to_thread(
                    self.processor.record_failure,
                    file_pk,
                    "Processing was cancelled before completion",
                )
            finally:
                cancel_event.set()
            raise

    async def drain(self, timeout: float | None = settings.SHUTDOWN_DRAIN_SECONDS) -> None:
        """
        Wait for outstanding jobs, cancelling any still running after ``timeout``.

        Cancelled jobs leave their files in ``error``.
        """
        tasks = list(self._tasks.values())
        if not tasks:
            return

        logger.info(f"Waiting for {len(tasks)} ingestion job(s) to finish")
        _, still_running = await asyncio.wait(tasks, timeout=timeout)

        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning(f"Cancelled {len(still_running)} unfinished ingestion job(s)")
            await asyncio.gather(*still_running, return_exceptions=True)
