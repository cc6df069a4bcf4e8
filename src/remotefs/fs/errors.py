"""Error taxonomy translation helpers shared by the backend bindings."""

from __future__ import annotations

import logging

from .exceptions import (
    InternalError,
    InvalidPathError,
    PathNotFoundError,
    PermissionDeniedError,
    RemoteFSError,
)

logger = logging.getLogger(__name__)

_STATUS_ERRORS: dict[int, type[RemoteFSError]] = {
    400: InvalidPathError,
    401: PermissionDeniedError,
    403: PermissionDeniedError,
    404: PathNotFoundError,
    405: InvalidPathError,
    412: PermissionDeniedError,
    422: InvalidPathError,
}


def error_for_status(status: int, detail: str = "") -> RemoteFSError:
    """Map an HTTP status code to the universal error taxonomy.

    Anything not explicitly listed (including every 5xx) is ``InternalError``.
    """
    cls = _STATUS_ERRORS.get(status, InternalError)
    message = f"HTTP {status}"
    if detail:
        message += f": {detail}"
    return cls(message)


def ensure_remotefs_error(exc: BaseException, *, op: str, path: str) -> RemoteFSError:
    """Label *exc* with *op*/*path*, wrapping foreign exceptions as ``InternalError``.

    Used at the engine boundary so that an untranslated backend exception
    can never escape to callers.
    """
    if isinstance(exc, RemoteFSError):
        if exc.op is None:
            return exc.with_context(op, path)
        return exc
    logger.debug("Untranslated backend error during %s %s", op, path, exc_info=exc)
    err = InternalError(f"{type(exc).__name__}: {exc}", op=op, path=path)
    err.__cause__ = exc
    return err
