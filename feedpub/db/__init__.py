"""
Database package for the publisher's local state.

Structure:
- models.py: SQLAlchemy ORM models (KeyValue, TimestampMixin)
- database.py: Engine, session factory and schema initialization
- publication_ledger.py: The durable "last published id" cursor

SQLite is used with the session-per-operation pattern via session_scope().
"""

from .models import Base, KeyValue, TimestampMixin
from .database import (
    create_db_engine,
    make_session_factory,
    session_scope,
    check_database_connection,
    init_database,
)
from .publication_ledger import PublicationLedger, CURSOR_KEY

__all__ = [
    # Models
    "Base",
    "KeyValue",
    "TimestampMixin",
    # Database utilities
    "create_db_engine",
    "make_session_factory",
    "session_scope",
    "check_database_connection",
    "init_database",
    # Cursor
    "PublicationLedger",
    "CURSOR_KEY",
]
