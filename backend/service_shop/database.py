"""Database engine and helpers.

This module builds the SQLModel/SQLAlchemy engine from `Settings` and
provides the per-request session dependency. SQLite is the default
backend; any SQLAlchemy URL works through `DATABASE_URL`.
"""

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from .config import Settings
# imported for table registration on SQLModel.metadata
from . import models  # noqa: F401


def make_engine(settings: Settings) -> Engine:
    """Create the engine with a bounded wait on locks or pooled connections."""
    url = settings.DATABASE_URL
    if url.startswith('sqlite'):
        return create_engine(
            url,
            echo=False,
            connect_args={'check_same_thread': False, 'timeout': settings.DB_TIMEOUT_SECONDS},
        )
    return create_engine(url, echo=False, pool_pre_ping=True, pool_timeout=settings.DB_TIMEOUT_SECONDS)


def create_db_and_tables(engine: Engine):
    """Create database tables using SQLModel metadata.

    This also acts as the startup connectivity check: an unreachable
    database raises here, before the API accepts requests.
    """
    SQLModel.metadata.create_all(engine)


def get_session(request: Request):
    """Yield a database `Session` for FastAPI dependency injection.

    The engine comes from the application state so every app instance
    (including test apps) keeps its own database.
    """
    with Session(request.app.state.engine) as session:
        yield session
