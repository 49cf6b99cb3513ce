"""
Database connection management for devlog.

Provides engine construction, session management and transaction support.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from devlog.config import settings
from devlog.exceptions import StoreConnectionError

logger = logging.getLogger(__name__)


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINT works with pysqlite."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # pragma: no cover
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # pragma: no cover
        conn.exec_driver_sql("BEGIN")


def sqlite_database_path(url: str) -> Path | None:
    """Return the file path of a SQLite URL, or None for memory/other backends."""
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite"):
        return None
    if not parsed.database or parsed.database == ":memory:":
        return None
    return Path(parsed.database).expanduser()


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    SQLite engines get ``check_same_thread=False`` and savepoint support;
    in-memory SQLite uses a single shared connection.

    Args:
        url: SQLAlchemy database URL
        echo: Log SQL statements

    Returns:
        Engine: Configured SQLAlchemy engine
    """
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if sqlite_database_path(url) is None:
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
        _enable_sqlite_savepoints(engine)
        return engine

    return create_engine(url, echo=echo, pool_pre_ping=True)


# Create engine instance (singleton pattern)
engine = create_db_engine(settings.database_url)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_session() -> Session:
    """
    Get a new database session.

    Returns:
        Session: A new SQLAlchemy session
    """
    return SessionLocal()


@contextmanager
def db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic cleanup.

    Commits on success, rolls back on exception.

    Yields:
        Session: A SQLAlchemy session

    Example:
        >>> with db_session() as db:
        >>>     codebase = CodebaseRepository(db).get_by_path("/src/app")
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Engine | None = None) -> None:
    """
    Create all tables.

    Schema migrations are out of scope; tables are created if missing.

    Raises:
        StoreConnectionError: If the store cannot be reached
    """
    from devlog.models.db import Base

    target = bind or engine
    db_path = sqlite_database_path(str(target.url))
    if db_path is not None:
        db_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        Base.metadata.create_all(bind=target)
    except Exception as e:
        raise StoreConnectionError(str(e), operation="initialize store") from e


def check_connection() -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        with db_session() as db:
            db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
