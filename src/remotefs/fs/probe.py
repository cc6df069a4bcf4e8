"""Directory probes — how a filesystem decides that a key is a directory.

Two strategies cover every backend:

- ``ListProbe``: after a Get reports not-found, list the key's prefix with a
  page size of one; any visible key means a directory.
- ``StaticPathProbe``: the store's directory layout is fixed and documented,
  so a predicate over the key decides, with no remote call at all.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .protocol import ListingSource
    from .types import PathScope


class ListProbe:
    """Generic existence probe: single-item listing pages of ``key/``."""

    def known_directory(self, key: str) -> bool:
        return False

    async def probe(
        self,
        listing: ListingSource,
        prefix: str,
        scope: PathScope,
        *,
        credential: str | None = None,
    ) -> bool:
        token: str | None = None
        while True:
            page = await listing.list(prefix, token, limit=1, credential=credential)
            if any(
                scope.contains(key) and key.startswith(prefix) and key != prefix
                for key in page.keys
            ):
                return True
            # only the folder's own marker key came back; look one page further
            if page.next_token is None or page.next_token == token:
                return False
            token = page.next_token


class StaticPathProbe:
    """Structural probe over a fixed set of directory paths.

    *paths* are compared after stripping surrounding slashes; *patterns*
    are regular expressions matched against the same stripped key; an
    optional *predicate* can veto or extend both.
    """

    def __init__(
        self,
        paths: Iterable[str] = (),
        patterns: Iterable[str] = (),
        predicate: Callable[[str], bool] | None = None,
    ) -> None:
        self._paths = frozenset(p.strip("/") for p in paths)
        self._patterns = tuple(re.compile(p) for p in patterns)
        self._predicate = predicate

    def known_directory(self, key: str) -> bool:
        name = key.strip("/")
        if not name:
            return True
        if self._predicate is not None and self._predicate(name):
            return True
        if name in self._paths:
            return True
        return any(p.match(name) for p in self._patterns)

    async def probe(
        self,
        listing: ListingSource,
        prefix: str,
        scope: PathScope,
        *,
        credential: str | None = None,
    ) -> bool:
        return False
