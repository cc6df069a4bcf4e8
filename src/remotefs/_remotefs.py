"""Synchronous facade — the async filesystem behind blocking calls."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any

from remotefs.fs.filesystem import RemoteFileSystem

if TYPE_CHECKING:
    from remotefs.fs.node import LazyNode
    from remotefs.fs.protocol import ValueSource
    from remotefs.fs.types import FileInfo

logger = logging.getLogger(__name__)


class RemoteFile:
    """Blocking handle for one opened path.  Close it (or use ``with``)."""

    def __init__(self, owner: RemoteFS, node: LazyNode) -> None:
        self._owner = owner
        self._node = node

    @property
    def name(self) -> str:
        return self._node.display_name

    def stat(self) -> FileInfo:
        return self._owner._run(self._node.stat())

    def read(self, size: int = -1) -> bytes:
        return self._owner._run(self._node.read(size))

    def read_dir(self, n: int = -1) -> list[FileInfo]:
        """Return up to *n* entries; raises ``EOFError`` once exhausted (n > 0)."""
        return self._owner._run(self._node.read_dir(n))

    def close(self) -> None:
        self._owner._run(self._node.close())

    def __enter__(self) -> RemoteFile:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


class RemoteFS:
    """Blocking API over a ``RemoteFileSystem``.

    Runs a private event loop in a daemon thread, so it works from plain
    sync code, notebooks, or from inside another running event loop.

    Usage::

        with RemoteFS(VaultBackend(auth=AppRoleAuth()), root="secret") as fsys:
            print(fsys.read_file("app/db"))
            for info in fsys.read_dir("app"):
                print(info.name)

    *backend* may also be an already configured ``RemoteFileSystem``, in
    which case keyword options are not accepted.
    """

    def __init__(self, backend: ValueSource | RemoteFileSystem, **options: Any) -> None:
        if isinstance(backend, RemoteFileSystem):
            if options:
                raise TypeError("options cannot be combined with an existing RemoteFileSystem")
            self._fs = backend
        else:
            self._fs = RemoteFileSystem(backend, **options)
        self._closed = False

        # Private event loop in a daemon thread
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._thread.start()

    def _run(self, coro: Any) -> Any:
        """Submit *coro* to the private loop and block for the result."""
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    @property
    def filesystem(self) -> RemoteFileSystem:
        return self._fs

    # ------------------------------------------------------------------
    # Filesystem wrappers (sync)
    # ------------------------------------------------------------------

    def open(self, name: str) -> RemoteFile:
        return RemoteFile(self, self._fs.open(name))

    def stat(self, name: str) -> FileInfo:
        return self._run(self._fs.stat(name))

    def read_file(self, name: str) -> bytes:
        return self._run(self._fs.read_file(name))

    def read_dir(self, name: str = ".") -> list[FileInfo]:
        return self._run(self._fs.read_dir(name))

    def walk(self, name: str = ".") -> list[tuple[str, FileInfo]]:
        """Collect ``(path, info)`` for everything beneath *name*."""

        async def _collect() -> list[tuple[str, FileInfo]]:
            return [item async for item in self._fs.walk(name)]

        return self._run(_collect())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the backend, stop the event loop and join the thread."""
        if self._closed:
            return
        self._closed = True

        try:
            self._run(self._fs.close())
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=5)

    def __enter__(self) -> RemoteFS:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()
