"""SQLModel database models for remotefs."""

from remotefs.models.kv import KVEntry, KVEntryBase

__all__ = [
    "KVEntry",
    "KVEntryBase",
]
