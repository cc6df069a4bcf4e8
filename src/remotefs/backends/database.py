"""SQL backend — key/value rows via SQLModel async sessions.

Each row of the key/value table is one leaf; keys may be rooted or opaque.
Listings select every key under the prefix in key order and page through
them with numeric offset continuation tokens.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from remotefs.fs.exceptions import InternalError, InvalidPathError, PathNotFoundError
from remotefs.fs.types import ListPage, Value

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from remotefs.models.kv import KVEntryBase

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 500


def escape_like(prefix: str) -> str:
    """Escape LIKE wildcards so *prefix* matches literally (escape char ``\\``)."""
    return prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DatabaseBackend:
    """Key/value table source.

    Sessions come from *session_factory*, one per operation; the backend
    itself holds only configuration and is safe for concurrent use.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        model: type[KVEntryBase] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        from remotefs.models.kv import KVEntry

        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._session_factory = session_factory
        self._model: type[KVEntryBase] = model or KVEntry
        self.page_size = page_size

    async def get(self, key: str, *, credential: str | None = None) -> Value:
        model = self._model
        try:
            async with self._session_factory() as sess:
                result = await sess.execute(
                    select(model).where(model.key == key)  # type: ignore[arg-type]
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise InternalError(f"database read failed: {exc}") from exc
        if row is None:
            raise PathNotFoundError(f"no such key {key!r}")
        return Value(data=row.value, modified_at=row.updated_at, content_type=row.content_type)

    async def list(
        self,
        prefix: str,
        continuation: str | None = None,
        *,
        limit: int | None = None,
        credential: str | None = None,
    ) -> ListPage:
        try:
            offset = int(continuation) if continuation else 0
        except ValueError as exc:
            raise InvalidPathError(f"malformed continuation token {continuation!r}") from exc
        size = min(limit, self.page_size) if limit else self.page_size

        model = self._model
        stmt = select(model.key).order_by(model.key)  # type: ignore[arg-type]
        # LIKE may ignore case (SQLite); keys outside the prefix are dropped by the caller
        if prefix:
            stmt = stmt.where(
                model.key.like(escape_like(prefix) + "%", escape="\\")  # type: ignore[attr-defined]
            )
        # one extra row tells us whether another page exists
        stmt = stmt.offset(offset).limit(size + 1)

        try:
            async with self._session_factory() as sess:
                result = await sess.execute(stmt)
                keys = list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise InternalError(f"database listing failed: {exc}") from exc

        next_token = str(offset + size) if len(keys) > size else None
        logger.debug("Listed %d keys under %r (offset=%d)", min(len(keys), size), prefix, offset)
        return ListPage(keys=keys[:size], next_token=next_token)
