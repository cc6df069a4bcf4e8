"""LazyNode — the state of one opened path.

A node starts unresolved and makes no remote call until its content or
metadata is requested.  The first ``stat``, ``read`` or ``read_dir``
resolves it to a file or a directory (or fails with not-found) and the
result is cached for the node's lifetime:

- ``stat`` tries a Get on the full key; only a not-found result falls back
  to the directory probe.  Any other error is raised as-is.
- ``read`` streams the value fetched by that same Get.
- ``read_dir`` lists the directory once, synthesizes its children, then
  serves them through a ``DirectoryCursor``.

A single node is meant for one caller at a time; opening new nodes from
many tasks concurrently is safe.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from .cursor import DirectoryCursor
from .errors import ensure_remotefs_error
from .exceptions import ClosedError, InvalidPathError, IsDirectoryError, PathNotFoundError
from .probe import ListProbe
from .synthesizer import DirectorySynthesizer, collect_keys
from .types import FILE_MODE, FileInfo, PathScope, zero_clock
from .utils import join_key, list_prefix

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from .protocol import DirectoryProbe, ListingSource, ValueSource
    from .session import SessionManager
    from .types import ChildEntry, Clock

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class NodeContext:
    """Collaborators shared by every node of one filesystem."""

    values: ValueSource
    listing: ListingSource
    scope: PathScope = PathScope.OPAQUE
    probe: DirectoryProbe = field(default_factory=ListProbe)
    session: SessionManager | None = None
    timeout: float | None = None
    """Deadline, in seconds, applied to each remote call."""


class LazyNode:
    """One opened file or directory, identified by ``root`` + ``name``."""

    def __init__(
        self,
        name: str,
        root: str,
        context: NodeContext,
        *,
        clock: Clock = zero_clock,
        info: FileInfo | None = None,
    ) -> None:
        self.name = name
        self.root = root
        self._ctx = context
        self._clock = clock

        self._info = info
        self._body: bytes | None = None
        self._pos = 0
        self._cursor: DirectoryCursor | None = None
        self._closed = False

        # released in close(); must not log in until a remote call needs it
        if context.session is not None:
            context.session.add_ref()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"LazyNode({self.key!r}, {state})"

    @property
    def key(self) -> str:
        """Full remote key of this node."""
        return join_key(self.root, self.name)

    @property
    def display_name(self) -> str:
        return self.name or "."

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LazyNode:
        return self

    async def __aexit__(self, *args: object) -> None:
        if not self._closed:
            await self.close()

    # ------------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------------

    def _check_open(self, op: str) -> None:
        if self._closed:
            raise ClosedError(op=op, path=self.key or ".")

    async def _remote(self, op: str, call: Callable[[str | None], Awaitable[T]]) -> T:
        """Run one remote call under the session credential and deadline."""
        try:
            async with asyncio.timeout(self._ctx.timeout):
                credential = None
                if self._ctx.session is not None:
                    credential = await self._ctx.session.credential()
                return await call(credential)
        except TimeoutError:
            raise
        except Exception as exc:
            raise ensure_remotefs_error(exc, op=op, path=self.key or ".") from exc

    async def _fetch(self, op: str) -> None:
        key = self.key
        value = await self._remote(
            op, lambda credential: self._ctx.values.get(key, credential=credential)
        )
        self._body = value.data
        self._pos = 0
        self._info = FileInfo(
            name=self.display_name,
            size=value.size,
            mode=FILE_MODE,
            modified_at=value.modified_at or self._clock(),
            content_type=value.content_type,
        )

    def _directory_info(self) -> FileInfo:
        return FileInfo.directory(self.display_name, self._clock())

    async def _resolve(self, op: str) -> None:
        key = self.key
        if not self._ctx.scope.contains(key):
            raise PathNotFoundError("key is outside the filesystem scope", op=op, path=key)

        if self._ctx.probe.known_directory(key):
            self._info = self._directory_info()
            return

        try:
            await self._fetch(op)
            return
        except PathNotFoundError:
            pass

        prefix = list_prefix(key)
        is_dir = await self._remote(
            op,
            lambda credential: self._ctx.probe.probe(
                self._ctx.listing, prefix, self._ctx.scope, credential=credential
            ),
        )
        if not is_dir:
            raise PathNotFoundError(op=op, path=key or ".")
        self._info = self._directory_info()

    # ------------------------------------------------------------------
    # Stat / Read
    # ------------------------------------------------------------------

    async def stat(self) -> FileInfo:
        """Return this node's metadata, resolving it on first call."""
        self._check_open("stat")
        if self._info is None:
            await self._resolve("stat")
        assert self._info is not None
        return self._info

    async def read(self, size: int = -1) -> bytes:
        """Read up to *size* bytes (all remaining when negative).

        The full value is fetched on the first read and served from memory
        afterwards.  Returns ``b""`` at end of file.
        """
        self._check_open("read")
        if self._info is None:
            await self._resolve("read")
        assert self._info is not None
        if self._info.is_directory:
            raise IsDirectoryError(op="read", path=self.key or ".")
        if self._body is None:
            await self._fetch("read")
        assert self._body is not None

        end = len(self._body) if size < 0 else min(len(self._body), self._pos + size)
        chunk = self._body[self._pos : end]
        self._pos = end
        return chunk

    # ------------------------------------------------------------------
    # Directories
    # ------------------------------------------------------------------

    def child(self, name: str) -> LazyNode:
        """Construct (but do not resolve) the node for a direct child."""
        return LazyNode(name, self.key, self._ctx, clock=self._clock)

    async def _list_children(self) -> list[ChildEntry]:
        prefix = list_prefix(self.key)
        keys = await self._remote(
            "read_dir",
            lambda credential: collect_keys(self._ctx.listing, prefix, credential=credential),
        )
        children = DirectorySynthesizer(self._ctx.scope).synthesize(prefix, keys)
        if not children:
            # flat stores cannot hold an empty directory
            raise PathNotFoundError("no such directory", op="read_dir", path=self.key or ".")
        return children

    async def _child_info(self, entry: ChildEntry) -> FileInfo:
        if entry.is_directory:
            return FileInfo.directory(entry.name, self._clock())
        child = self.child(entry.name)
        try:
            return await child.stat()
        finally:
            await child.close()

    async def read_dir(self, n: int = -1) -> list[FileInfo]:
        """Read directory entries in lexical order.

        If *n* > 0, return at most *n* entries; once the directory is
        exhausted, raise ``EOFError`` instead of returning an empty list.
        If *n* <= 0, return every remaining entry, possibly none.

        The directory is listed once, on the first call.  File entries are
        stat'ed as they are returned; directory entries cost nothing.
        """
        self._check_open("read_dir")
        if self._info is not None and not self._info.is_directory:
            raise InvalidPathError("not a directory", op="read_dir", path=self.key or ".")

        if self._cursor is None:
            children = await self._list_children()
            self._cursor = DirectoryCursor(children)
            if self._info is None:
                self._info = self._directory_info()

        batch = self._cursor.peek(n)
        infos = [await self._child_info(entry) for entry in batch]
        self._cursor.advance(len(batch))
        return infos

    async def iter_dir(self, batch: int = 100) -> AsyncIterator[FileInfo]:
        """Yield every remaining entry, reading *batch* entries at a time."""
        while True:
            try:
                infos = await self.read_dir(max(batch, 1))
            except EOFError:
                return
            for info in infos:
                yield info

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release this node.  A second close raises ``ClosedError``."""
        if self._closed:
            raise ClosedError(op="close", path=self.key or ".")
        self._closed = True
        self._body = None
        self._cursor = None
        if self._ctx.session is not None:
            await self._ctx.session.release()
