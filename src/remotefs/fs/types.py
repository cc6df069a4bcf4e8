"""Value types: FileInfo, ChildEntry, Value, ListPage, PathScope."""

from __future__ import annotations

import stat
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

ZERO_TIME = datetime.min.replace(tzinfo=UTC)
"""Modification time reported when the remote store has none."""

FILE_MODE = 0o444
DIR_MODE = stat.S_IFDIR | 0o555

Clock = Callable[[], datetime]
"""Source of timestamps for values and directories lacking one."""


def zero_clock() -> datetime:
    """Default clock: every unknown timestamp is ``ZERO_TIME``."""
    return ZERO_TIME


class PathScope(str, Enum):
    """Which half of a flat key space a filesystem can see.

    ``ROOTED`` filesystems only see keys beginning with ``/``;
    ``OPAQUE`` filesystems only see keys that do not.
    """

    ROOTED = "rooted"
    OPAQUE = "opaque"

    @classmethod
    def for_root(cls, root: str) -> PathScope:
        return cls.ROOTED if root.startswith("/") else cls.OPAQUE

    def contains(self, key: str) -> bool:
        if self is PathScope.ROOTED:
            return key.startswith("/")
        return not key.startswith("/")


@dataclass
class FileInfo:
    """File/directory metadata returned by ``stat`` and ``read_dir``."""

    name: str
    size: int = 0
    mode: int = FILE_MODE
    modified_at: datetime = ZERO_TIME
    content_type: str = ""
    is_directory: bool = False

    @classmethod
    def directory(cls, name: str, modified_at: datetime = ZERO_TIME) -> FileInfo:
        return cls(name=name, mode=DIR_MODE, modified_at=modified_at, is_directory=True)


@dataclass(frozen=True)
class ChildEntry:
    """One deduplicated, classified child of a synthesized directory."""

    name: str
    is_directory: bool


@dataclass
class Value:
    """A complete remote value plus whatever metadata the backend knows."""

    data: bytes
    modified_at: datetime | None = None
    content_type: str = ""

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ListPage:
    """One page of full keys beneath a prefix.

    ``next_token`` is opaque to the engine; ``None`` marks the final page.
    """

    keys: list[str] = field(default_factory=list)
    next_token: str | None = None
