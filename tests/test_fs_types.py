"""Tests for fs/types.py value types."""

from __future__ import annotations

import stat
from datetime import UTC, datetime

from remotefs.fs.types import (
    DIR_MODE,
    FILE_MODE,
    ZERO_TIME,
    ChildEntry,
    FileInfo,
    ListPage,
    PathScope,
    Value,
    zero_clock,
)


class TestPathScope:
    def test_for_root(self):
        assert PathScope.for_root("/") is PathScope.ROOTED
        assert PathScope.for_root("/app") is PathScope.ROOTED
        assert PathScope.for_root("") is PathScope.OPAQUE
        assert PathScope.for_root("secret") is PathScope.OPAQUE

    def test_rooted_contains_only_rooted_keys(self):
        assert PathScope.ROOTED.contains("/a/b")
        assert not PathScope.ROOTED.contains("a/b")

    def test_opaque_contains_only_relative_keys(self):
        assert PathScope.OPAQUE.contains("a/b")
        assert PathScope.OPAQUE.contains("")
        assert not PathScope.OPAQUE.contains("/a/b")


class TestFileInfo:
    def test_file_defaults(self):
        info = FileInfo(name="f")
        assert info.mode == FILE_MODE == 0o444
        assert info.size == 0
        assert info.modified_at == ZERO_TIME
        assert info.is_directory is False

    def test_directory(self):
        when = datetime(2024, 1, 2, tzinfo=UTC)
        info = FileInfo.directory("d", when)
        assert info.is_directory is True
        assert info.mode == DIR_MODE
        assert stat.S_ISDIR(info.mode)
        assert info.modified_at == when
        assert info.size == 0


class TestValues:
    def test_value_size(self):
        assert Value(data=b"hello").size == 5

    def test_list_page_defaults(self):
        page = ListPage()
        assert page.keys == []
        assert page.next_token is None

    def test_child_entry_is_hashable(self):
        assert len({ChildEntry("a", True), ChildEntry("a", True)}) == 1

    def test_zero_clock(self):
        assert zero_clock() == ZERO_TIME
        assert ZERO_TIME.tzinfo is UTC
