"""Database engine and helpers.

This module builds the SQLModel/SQLAlchemy engine that owns the shared
connection pool. The engine is created once by the application lifespan,
stored on `app.state` and disposed at shutdown; request handlers receive
a `Session` bound to it through the `get_session` dependency.

The default store is a local SQLite file (`backend/records.db`); set
`DATABASE_URL` to a PostgreSQL URL for a pooled server deployment.
"""

from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from .config import settings
from . import models  # noqa: F401  (registers table metadata)


def build_engine(database_url: Optional[str] = None) -> Engine:
    """Create the engine for `database_url` (defaults to settings).

    SQLite engines allow cross-thread use since FastAPI runs sync
    handlers in a threadpool; server databases get a sized pool with
    pre-ping so dropped connections are replaced transparently.
    """
    url = database_url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def create_db_and_tables(engine: Engine) -> None:
    """Create database tables using SQLModel metadata.

    Intended for local development and tests; the call is idempotent and
    never alters existing tables.
    """
    SQLModel.metadata.create_all(engine)


def ping(engine: Engine):
    """Run a trivial query and return its result (connectivity check)."""
    with engine.connect() as conn:
        return conn.execute(text("SELECT CURRENT_TIMESTAMP")).scalar()


def get_session(request: Request) -> Iterator[Session]:
    """Yield a database `Session` for FastAPI dependency injection.

    The session is bound to the engine created at application startup
    and is closed when the request scope finishes.
    """
    with Session(request.app.state.engine) as session:
        yield session
