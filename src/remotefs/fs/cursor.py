"""DirectoryCursor — incremental ``read_dir(n)`` over a materialized child list."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .types import ChildEntry


class DirectoryCursor:
    """Tracks the read offset into a directory's children.

    The offset only moves forward and never passes the end.  ``peek`` and
    ``advance`` are separate so that a caller can resolve a batch before
    committing to it; a failure in between leaves the cursor untouched.
    """

    def __init__(self, children: Sequence[ChildEntry]) -> None:
        self._children = tuple(children)
        self._offset = 0

    def __len__(self) -> int:
        return len(self._children)

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._children) - self._offset

    def peek(self, n: int) -> list[ChildEntry]:
        """Return the next batch without consuming it.

        ``n > 0``: up to *n* entries; raises ``EOFError`` if none remain.
        ``n <= 0``: every remaining entry, possibly none.
        """
        if n > 0:
            if self._offset >= len(self._children):
                raise EOFError("end of directory")
            return list(self._children[self._offset : self._offset + n])
        return list(self._children[self._offset :])

    def advance(self, count: int) -> None:
        if count < 0 or self._offset + count > len(self._children):
            raise ValueError(f"cannot advance cursor by {count} at offset {self._offset}")
        self._offset += count
