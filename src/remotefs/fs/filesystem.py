"""RemoteFileSystem — a read-only directory tree over a flat remote key space."""

from __future__ import annotations

import copy
import inspect
import logging
from typing import TYPE_CHECKING, Any

from .exceptions import InvalidPathError
from .node import LazyNode, NodeContext
from .probe import ListProbe
from .protocol import Authenticator, ListingSource, ValueSource
from .session import SessionManager
from .types import FileInfo, PathScope, zero_clock
from .utils import check_path, join_key, normalize_root, split_name

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .protocol import DirectoryProbe
    from .types import Clock

logger = logging.getLogger(__name__)


class RemoteFileSystem:
    """Projects a remote key/value store as a lazy, read-only filesystem.

    Paths are io/fs style: unrooted, slash-separated, ``.`` for the root.
    Every path maps to the key ``root/path``.  ``root`` also selects the
    scope: a root starting with ``/`` only sees rooted keys, any other root
    only sees opaque (relative) keys.  An explicit ``scope`` must agree with
    ``root``; a rooted scope with an empty root starts at ``/``.

    Usage::

        fsys = RemoteFileSystem(MemoryBackend({"app/db/password": b"s3cret"}))
        async with fsys.open("app") as node:
            for info in await node.read_dir():
                print(info.name, info.is_directory)

    Backends implementing ``Authenticator`` get a shared ``SessionManager``:
    every node opened from this filesystem (or its ``sub`` filesystems)
    holds a reference, and the credential is revoked when the last one
    closes.  Always close nodes.
    """

    def __init__(
        self,
        backend: ValueSource,
        *,
        listing: ListingSource | None = None,
        root: str = "",
        scope: PathScope | None = None,
        probe: DirectoryProbe | None = None,
        authenticator: Authenticator | None = None,
        clock: Clock = zero_clock,
        timeout: float | None = None,
    ) -> None:
        if listing is None:
            if not isinstance(backend, ListingSource):
                raise TypeError(
                    f"{type(backend).__name__} does not implement list(); pass listing="
                )
            listing = backend

        if authenticator is None and isinstance(backend, Authenticator):
            authenticator = backend

        self.root = normalize_root(root)
        if scope is None:
            scope = PathScope.for_root(self.root)
        elif scope is PathScope.ROOTED and not self.root.startswith("/"):
            if self.root:
                raise InvalidPathError(
                    f"root {self.root!r} is opaque but scope is rooted", op="open", path=root
                )
            self.root = "/"
        elif scope is PathScope.OPAQUE and self.root.startswith("/"):
            raise InvalidPathError(
                f"root {self.root!r} is rooted but scope is opaque", op="open", path=root
            )
        self.scope = scope
        self._backend = backend
        self._clock = clock
        self._ctx = NodeContext(
            values=backend,
            listing=listing,
            scope=self.scope,
            probe=probe or getattr(backend, "directory_probe", None) or ListProbe(),
            session=SessionManager(authenticator) if authenticator is not None else None,
            timeout=timeout,
        )

    def __repr__(self) -> str:
        backend = type(self._backend).__name__
        return f"RemoteFileSystem({backend}, root={self.root!r}, scope={self.scope.value})"

    @property
    def session(self) -> SessionManager | None:
        return self._ctx.session

    # ------------------------------------------------------------------
    # Open / Sub
    # ------------------------------------------------------------------

    def open(self, name: str) -> LazyNode:
        """Return an unresolved node for *name*.  No remote call is made."""
        check_path(name, "open")
        if name == ".":
            return LazyNode(
                "",
                self.root,
                self._ctx,
                clock=self._clock,
                info=FileInfo.directory(".", self._clock()),
            )
        directory, base = split_name(name)
        return LazyNode(base, join_key(self.root, directory), self._ctx, clock=self._clock)

    def sub(self, name: str) -> RemoteFileSystem:
        """Return a filesystem rooted at *name*, sharing backend and session."""
        check_path(name, "sub")
        if name == ".":
            return self
        fsys = copy.copy(self)
        fsys.root = join_key(self.root, name)
        return fsys

    # ------------------------------------------------------------------
    # Convenience operations (open, act, close)
    # ------------------------------------------------------------------

    async def stat(self, name: str) -> FileInfo:
        async with self.open(name) as node:
            return await node.stat()

    async def read_file(self, name: str) -> bytes:
        """Return the full content of *name* with a single remote Get."""
        async with self.open(name) as node:
            return await node.read()

    async def read_dir(self, name: str = ".") -> list[FileInfo]:
        """Return every entry of directory *name*, sorted by name."""
        async with self.open(name) as node:
            return await node.read_dir(-1)

    async def walk(self, name: str = ".") -> AsyncIterator[tuple[str, FileInfo]]:
        """Yield ``(path, info)`` for everything beneath *name*, depth first."""
        entries = await self.read_dir(name)
        for info in entries:
            path = info.name if name == "." else f"{name}/{info.name}"
            yield path, info
            if info.is_directory:
                async for item in self.walk(path):
                    yield item

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the backend's client, if it has one."""
        closer: Any = getattr(self._backend, "close", None)
        if closer is None:
            return
        result = closer()
        if inspect.isawaitable(result):
            await result

    async def __aenter__(self) -> RemoteFileSystem:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
