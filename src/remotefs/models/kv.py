"""Key/value rows served by the SQL backend.

Provides ``KVEntryBase``, a non-table base class.  Subclass with
``table=True`` and a custom ``__tablename__`` to serve a different table.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, LargeBinary
from sqlmodel import Field, SQLModel


class KVEntryBase(SQLModel):
    """Base fields for one stored value. The key is the full path in the store."""

    key: str = Field(primary_key=True)
    value: bytes = Field(default=b"", sa_type=LargeBinary)
    content_type: str = Field(default="")
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )


class KVEntry(KVEntryBase, table=True):
    """Default key/value table — ``remotefs_kv``."""

    __tablename__ = "remotefs_kv"
