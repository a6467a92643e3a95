from fastapi import Request

from app.services.task_queue import IngestionQueue


def get_ingestion_queue(request: Request) -> IngestionQueue:
    """The queue created by the application lifespan."""
    return request.app.state.ingestion_queue
