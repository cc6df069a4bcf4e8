"""MemoryBackend — dict-backed key/value store with paginated listings."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from remotefs.fs.exceptions import InvalidPathError, PathNotFoundError
from remotefs.fs.types import ListPage, Value

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime


class MemoryBackend:
    """In-process key/value store.

    Listings come back in insertion order, ``page_size`` keys at a time,
    with the numeric offset of the next page as continuation token.
    ``calls`` counts every ``get`` and ``list`` made against the store.
    """

    def __init__(
        self,
        data: Mapping[str, bytes | str] | None = None,
        *,
        page_size: int = 100,
        modified_at: datetime | None = None,
        content_type: str = "",
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.page_size = page_size
        self.modified_at = modified_at
        self.content_type = content_type
        self.calls: Counter[str] = Counter()
        self._data: dict[str, bytes] = {}
        for key, value in (data or {}).items():
            self.put(key, value)

    def put(self, key: str, value: bytes | str) -> None:
        self._data[key] = value.encode() if isinstance(value, str) else value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def get(self, key: str, *, credential: str | None = None) -> Value:
        self.calls["get"] += 1
        try:
            data = self._data[key]
        except KeyError:
            raise PathNotFoundError(f"no such key {key!r}") from None
        return Value(data=data, modified_at=self.modified_at, content_type=self.content_type)

    async def list(
        self,
        prefix: str,
        continuation: str | None = None,
        *,
        limit: int | None = None,
        credential: str | None = None,
    ) -> ListPage:
        self.calls["list"] += 1
        try:
            offset = int(continuation) if continuation else 0
        except ValueError:
            raise InvalidPathError(f"malformed continuation token {continuation!r}") from None

        matching = [k for k in self._data if k.startswith(prefix)]
        size = min(limit, self.page_size) if limit else self.page_size
        page = matching[offset : offset + size]
        next_offset = offset + len(page)
        next_token = str(next_offset) if next_offset < len(matching) else None
        return ListPage(keys=page, next_token=next_token)
