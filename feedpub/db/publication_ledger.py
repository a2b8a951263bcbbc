"""
Durable publication cursor.

The cursor is the id of the last feed item whose every pipeline stage
succeeded. Writing it is the commit point that defines "published".
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from feedpub.errors import CursorError
from feedpub.logger import log_function
from .database import session_scope
from .models import KeyValue


CURSOR_KEY = "lastId"

logger = logging.getLogger("database")


class PublicationLedger:
    """Single-key get/put wrapper over the key_values table."""

    def __init__(self, session_factory: sessionmaker, key: str = CURSOR_KEY):
        self.session_factory = session_factory
        self.key = key

    def get(self) -> str:
        """
        Return the last published item id.

        Raises:
            CursorError: If no cursor was ever written, or the store cannot be read.
        """
        try:
            with session_scope(self.session_factory) as session:
                row = session.get(KeyValue, self.key)
                value = row.value if row is not None else None
        except SQLAlchemyError as e:
            raise CursorError(f"Cursor store unavailable: {e}") from e

        if value is None:
            raise CursorError(f"No cursor stored under '{self.key}'")
        return value

    @log_function(logger_name="database", log_args=True)
    def put(self, item_id: str) -> None:
        """
        Overwrite the cursor with item_id in a single transaction.

        Raises:
            CursorError: If the write fails.
        """
        if not item_id:
            raise ValueError("Cannot store an empty item id as cursor")
        try:
            with session_scope(self.session_factory) as session:
                session.merge(KeyValue(key=self.key, value=item_id))
                session.commit()
        except SQLAlchemyError as e:
            raise CursorError(f"Failed to store cursor '{item_id}': {e}") from e
        logger.info(f"Cursor advanced to {item_id}")
