"""
VidTube - Database Configuration

SQLModel database setup with connection pooling.
Supports PostgreSQL (production) and SQLite (development).

Every store access is bounded by STORE_TIMEOUT_SECONDS and surfaces as
UnavailableError when the store does not answer in time.

Usage:
    from vidtube.auth.database import get_engine, init_db

    engine = get_engine()
    init_db(engine)  # Creates tables
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from vidtube.config import settings
from vidtube.errors import UnavailableError


logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """
    Get database URL from settings.

    Returns:
        PostgreSQL or SQLite connection string
    """
    if settings.DATABASE_URL:
        return settings.DATABASE_URL

    # Default to SQLite for local development
    return "sqlite:///./vidtube.db"


def get_engine(
    database_url: Optional[str] = None,
    echo: bool = False,
    timeout: Optional[float] = None,
):
    """
    Create SQLAlchemy engine with appropriate configuration.

    Args:
        database_url: Override database URL
        echo: Log SQL statements
        timeout: Seconds to wait on a locked database or an exhausted pool

    Returns:
        SQLAlchemy Engine
    """
    url = database_url or get_database_url()
    timeout = settings.STORE_TIMEOUT_SECONDS if timeout is None else timeout

    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            # In-memory databases live on one shared connection
            return create_engine(
                url,
                echo=echo,
                connect_args=connect_args,
                poolclass=StaticPool,
            )
        return create_engine(url, echo=echo, connect_args=connect_args)

    # PostgreSQL configuration with connection pooling
    return create_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=timeout,
        connect_args={
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        },
    )


def init_db(engine) -> None:
    """
    Initialize database tables.

    Safe to call multiple times (uses CREATE IF NOT EXISTS).
    """
    # Import models to register them with SQLModel
    from vidtube.auth.models import User  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session_factory(engine):
    """
    Create a session factory bound to engine.

    Returns:
        Callable that creates new database sessions
    """
    def session_factory() -> Session:
        return Session(engine)

    return session_factory


@contextmanager
def store_guard(db: Session, operation: str) -> Iterator[None]:
    """
    Map store timeouts and connection failures to UnavailableError.

    The session is rolled back so it stays usable by the caller.
    """
    try:
        yield
    except (OperationalError, PoolTimeoutError) as e:
        db.rollback()
        logger.error("Store operation %s failed: %s", operation, type(e).__name__)
        raise UnavailableError(
            "Service temporarily unavailable",
            reason=f"{operation}: {e}",
        ) from e
