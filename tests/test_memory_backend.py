"""Tests for MemoryBackend."""

from __future__ import annotations

import pytest

from remotefs.backends.memory import MemoryBackend
from remotefs.fs.exceptions import InvalidPathError, PathNotFoundError


class TestMemoryBackend:
    async def test_get(self):
        backend = MemoryBackend({"a": "text", "b": b"bytes"})
        assert (await backend.get("a")).data == b"text"
        assert (await backend.get("b")).data == b"bytes"
        assert backend.calls["get"] == 2

    async def test_get_missing(self):
        with pytest.raises(PathNotFoundError):
            await MemoryBackend().get("nope")

    async def test_put_and_delete(self):
        backend = MemoryBackend()
        backend.put("k", "v")
        assert (await backend.get("k")).data == b"v"
        backend.delete("k")
        backend.delete("k")
        with pytest.raises(PathNotFoundError):
            await backend.get("k")

    async def test_pages_in_insertion_order(self):
        backend = MemoryBackend({"p/c": b"", "p/a": b"", "p/b": b"", "q/x": b""}, page_size=2)
        first = await backend.list("p/")
        assert first.keys == ["p/c", "p/a"]
        assert first.next_token == "2"
        second = await backend.list("p/", first.next_token)
        assert second.keys == ["p/b"]
        assert second.next_token is None

    async def test_limit(self):
        backend = MemoryBackend({"p/a": b"", "p/b": b""})
        page = await backend.list("p/", limit=1)
        assert page.keys == ["p/a"]
        assert page.next_token == "1"

    async def test_malformed_token(self):
        with pytest.raises(InvalidPathError):
            await MemoryBackend({"a": b""}).list("", "not-a-number")

    def test_page_size_must_be_positive(self):
        with pytest.raises(ValueError):
            MemoryBackend(page_size=0)
