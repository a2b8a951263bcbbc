"""
SQLite engine and session management for the publisher's local state.

This module provides SQLite-specific database connectivity with:
- Session-per-operation pattern
- NullPool connection pooling to avoid SQLite locking issues
- SQLite optimization settings (WAL mode, timeouts)

Nothing is created at import time: the pipeline context builds one engine per
process and hands it to the components that need it.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Callable

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool, StaticPool

from .models import Base
from feedpub.logger import log_function


db_logger = logging.getLogger("database")


@log_function(
    logger_name="database", log_args=True, log_result=True, log_execution_time=False
)
def validate_database_url(url: str) -> tuple[bool, str]:
    """Validate the database URL format and path.

    Returns:
        (True, database path) when usable, ":memory:" for in-memory databases;
        (False, reason) otherwise.
    """
    try:
        parsed = make_url(url)
    except ArgumentError as e:
        return False, f"Invalid database URL format: {e}"

    if parsed.get_backend_name() != "sqlite":
        return False, f"Only SQLite databases are supported, got: {parsed.drivername}"

    db_path = parsed.database
    if not db_path or db_path == ":memory:":
        return True, ":memory:"

    return True, db_path


def optimize_sqlite_connection(dbapi_connection, connection_record):
    """Apply SQLite-specific optimizations when connection is created."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def create_db_engine(url: str) -> Engine:
    """
    Create a SQLAlchemy engine for the cursor store.

    File databases get their parent directory created and use NullPool;
    in-memory databases share one connection (StaticPool) so every session
    sees the same data.

    Raises:
        ValueError: If the URL is not a usable SQLite URL.
    """
    is_valid, db_info = validate_database_url(url)
    if not is_valid:
        db_logger.error(f"Database configuration error: {db_info}")
        raise ValueError(f"Database configuration error: {db_info}")

    if db_info == ":memory:":
        engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        Path(db_info).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            url,
            poolclass=NullPool,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        event.listen(engine, "connect", optimize_sqlite_connection)

    db_logger.info(f"Database configured: {db_info}")
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory bound to engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(
    session_factory: Callable[[], Session],
) -> Generator[Session, None, None]:
    """
    Context manager for database sessions (session-per-operation pattern).

    Rolls back on any error and always closes the session.

    Usage:
        with session_scope(factory) as session:
            session.merge(KeyValue(key="lastId", value="abc"))
            session.commit()
    """
    session = session_factory()
    try:
        db_logger.debug("Database session created")
        yield session

    except OperationalError as e:
        db_logger.error(f"Database operational error: {e}")
        session.rollback()
        raise

    except SQLAlchemyError as e:
        db_logger.error(f"Database error: {e}")
        session.rollback()
        raise

    finally:
        session.close()
        db_logger.debug("Database session closed")


@log_function(logger_name="database", log_execution_time=True)
def check_database_connection(engine: Engine) -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection is successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        db_logger.error(f"Database connection test failed: {e}")
        return False


@log_function(logger_name="database", log_execution_time=True)
def init_database(engine: Engine) -> None:
    """Create all tables defined in the models (no-op for existing tables)."""
    Base.metadata.create_all(bind=engine)
    db_logger.info("Database tables created successfully")
