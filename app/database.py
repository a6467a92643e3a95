from collections.abc import Generator

from fastapi import Request
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    pass


class Database:
    """
    Explicit handle on the relational store that holds file records and rows.

    The handle is constructed once (application lifespan or test fixture),
    connected, and passed to whatever needs it: request dependencies and the
    ingestion queue. Nothing in the application reaches for a module-level
    engine.
    """

    def __init__(self, url: str):
        self.url = url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    def connect(self) -> None:
        if self._engine is not None:
            return

        connect_args = {}
        if self.url.startswith("sqlite"):
            # Ingestion jobs use their own sessions from worker threads
            connect_args["check_same_thread"] = False

        self._engine = create_engine(self.url, connect_args=connect_args)
        # Callers commit explicitly, one batch at a time
        self._session_factory = sessionmaker(
            bind=self._engine, autocommit=False, autoflush=False
        )

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database is not connected")
        return self._session_factory()

    def create_all(self) -> None:
        """Create every table known to the models (tests and local runs)."""
        # Import models so they register on Base.metadata
        import app.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Generator[Session, None, None]:
    db = get_database(request).session()
    try:
        # FastAPI resumes here after the endpoint returns, so the
        # session is always released back to the pool
        yield db
    finally:
        db.close()
