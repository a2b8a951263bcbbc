"""
SQLAlchemy ORM models for the publisher's local state.

Models:
    KeyValue: A single string value stored under a string key
    TimestampMixin: Provides automatic created_at/updated_at timestamps
"""

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class TimestampMixin:
    """
    Mixin to add automatic timestamp tracking to models.

    Provides:
        created_at: Timestamp when record was created (set automatically)
        updated_at: Timestamp when record was last modified (updated automatically)
    """

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )


class KeyValue(Base, TimestampMixin):
    """
    A persisted key/value pair.

    The publisher stores a single row here, the cursor under key "lastId",
    whose value is the UTF-8 id of the last fully published feed item.
    Rows are overwritten, never deleted.

    Attributes:
        key: Primary key
        value: UTF-8 string value
    """

    __tablename__ = "key_values"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)

    def __repr__(self):
        return f"<KeyValue(key={self.key}, value={self.value})>"
