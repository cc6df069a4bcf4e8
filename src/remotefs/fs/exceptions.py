"""Universal exception hierarchy for the remotefs filesystem layer.

Backends translate their native failures into these classes as soon as a
remote call returns, so nothing backend-specific reaches callers.  Each
class also derives from the closest built-in exception, which lets callers
catch ``FileNotFoundError`` or ``PermissionError`` as they would locally.
"""

from __future__ import annotations


class RemoteFSError(Exception):
    """Base exception for all remotefs filesystem errors."""

    def __init__(self, detail: str = "", *, op: str | None = None, path: str | None = None) -> None:
        self.detail = detail
        self.op = op
        self.path = path
        super().__init__(self._format())

    def _format(self) -> str:
        prefix = ""
        if self.op and self.path:
            prefix = f"{self.op} {self.path}: "
        elif self.op:
            prefix = f"{self.op}: "
        return prefix + (self.detail or self.default_detail)

    default_detail = "remote filesystem error"

    def with_context(self, op: str, path: str) -> RemoteFSError:
        """Return a copy of this error re-labelled with *op* and *path*."""
        err = type(self)(self.detail, op=op, path=path)
        err.__cause__ = self.__cause__ or self
        return err

    def __str__(self) -> str:
        return self._format()


class PathNotFoundError(RemoteFSError, FileNotFoundError):
    """Raised when a key is absent, or a directory has no children."""

    default_detail = "file does not exist"


class PermissionDeniedError(RemoteFSError, PermissionError):
    """Raised on authentication or authorization failures from the remote store."""

    default_detail = "permission denied"


class InvalidPathError(RemoteFSError, ValueError):
    """Raised for malformed paths or malformed backend parameters."""

    default_detail = "invalid argument"


class InternalError(RemoteFSError):
    """Raised on remote service failures (5xx, transport errors, bad payloads)."""

    default_detail = "internal error"


class IsDirectoryError(RemoteFSError, IsADirectoryError):
    """Raised when reading the content of a node resolved as a directory."""

    default_detail = "is a directory"


class ClosedError(RemoteFSError):
    """Raised when a closed node is used or closed a second time."""

    default_detail = "file already closed"
