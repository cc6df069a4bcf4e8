"""Tests for the exception hierarchy and taxonomy helpers."""

from __future__ import annotations

import pytest

from remotefs.fs.errors import ensure_remotefs_error, error_for_status
from remotefs.fs.exceptions import (
    ClosedError,
    InternalError,
    InvalidPathError,
    IsDirectoryError,
    PathNotFoundError,
    PermissionDeniedError,
    RemoteFSError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        ("cls", "builtin"),
        [
            pytest.param(PathNotFoundError, FileNotFoundError, id="not-found"),
            pytest.param(PermissionDeniedError, PermissionError, id="permission"),
            pytest.param(InvalidPathError, ValueError, id="invalid"),
            pytest.param(IsDirectoryError, IsADirectoryError, id="is-directory"),
        ],
    )
    def test_builtin_bases(self, cls: type[RemoteFSError], builtin: type[Exception]):
        err = cls("boom")
        assert isinstance(err, RemoteFSError)
        assert isinstance(err, builtin)

    def test_internal_and_closed_are_remotefs_errors(self):
        assert issubclass(InternalError, RemoteFSError)
        assert issubclass(ClosedError, RemoteFSError)

    def test_message_with_op_and_path(self):
        err = PathNotFoundError(op="stat", path="app/db")
        assert str(err) == "stat app/db: file does not exist"

    def test_message_with_detail(self):
        err = InternalError("HTTP 500", op="read")
        assert str(err) == "read: HTTP 500"

    def test_with_context_keeps_type_and_detail(self):
        original = PermissionDeniedError("HTTP 403")
        labelled = original.with_context("read", "secret/x")
        assert type(labelled) is PermissionDeniedError
        assert labelled.detail == "HTTP 403"
        assert labelled.op == "read"
        assert labelled.path == "secret/x"
        assert labelled.__cause__ is original


class TestErrorForStatus:
    @pytest.mark.parametrize(
        ("status", "cls"),
        [
            pytest.param(400, InvalidPathError, id="400"),
            pytest.param(401, PermissionDeniedError, id="401"),
            pytest.param(403, PermissionDeniedError, id="403"),
            pytest.param(404, PathNotFoundError, id="404"),
            pytest.param(412, PermissionDeniedError, id="412"),
            pytest.param(500, InternalError, id="500"),
            pytest.param(503, InternalError, id="503"),
            pytest.param(418, InternalError, id="unlisted"),
        ],
    )
    def test_mapping(self, status: int, cls: type[RemoteFSError]):
        assert type(error_for_status(status)) is cls

    def test_detail_in_message(self):
        err = error_for_status(403, "permission denied")
        assert err.detail == "HTTP 403: permission denied"


class TestEnsureRemoteFSError:
    def test_labels_unlabelled_error(self):
        err = ensure_remotefs_error(PathNotFoundError("gone"), op="stat", path="a")
        assert isinstance(err, PathNotFoundError)
        assert (err.op, err.path) == ("stat", "a")

    def test_keeps_labelled_error(self):
        original = PathNotFoundError(op="read", path="b")
        assert ensure_remotefs_error(original, op="stat", path="a") is original

    def test_wraps_foreign_error(self):
        foreign = KeyError("surprise")
        err = ensure_remotefs_error(foreign, op="read", path="a")
        assert isinstance(err, InternalError)
        assert err.__cause__ is foreign
        assert "KeyError" in err.detail
