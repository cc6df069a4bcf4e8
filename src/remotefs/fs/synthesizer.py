"""Directory synthesis — flat, paginated key listings to sorted child entries.

Remote stores have no directories, only keys that happen to share a
prefix.  A directory level is synthesized by stripping the directory's own
prefix from every key, keeping the first path segment, and collapsing
duplicates.  Ordering is always lexical, never the backend's.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import InternalError
from .types import ChildEntry

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .protocol import ListingSource
    from .types import PathScope

logger = logging.getLogger(__name__)


class DirectorySynthesizer:
    """Produces the immediate children of one directory from raw keys."""

    def __init__(self, scope: PathScope) -> None:
        self.scope = scope

    def synthesize(self, prefix: str, keys: Iterable[str]) -> list[ChildEntry]:
        """Return deduplicated children of *prefix*, sorted by name.

        Keys outside the scope or outside *prefix* are ignored, as is the
        directory's own key.  A name seen with further path segments is a
        directory, and stays one even if the bare name is also present.
        An empty result means the directory does not exist.
        """
        children: dict[str, bool] = {}
        for key in keys:
            if not self.scope.contains(key) or not key.startswith(prefix):
                continue
            rel = key[len(prefix):]
            if not rel:
                continue
            name, sep, _rest = rel.partition("/")
            if not name:
                continue
            children[name] = children.get(name, False) or bool(sep)

        # str ordering is code point ordering, which matches UTF-8 byte order
        return [ChildEntry(name, children[name]) for name in sorted(children)]


async def collect_keys(
    listing: ListingSource,
    prefix: str,
    *,
    credential: str | None = None,
) -> list[str]:
    """Follow continuation tokens until the final page; return every key.

    Pages are fetched strictly in order.  Nothing is returned unless every
    page succeeded, so callers never observe a partial listing.
    """
    keys: list[str] = []
    token: str | None = None
    pages = 0
    while True:
        page = await listing.list(prefix, token, credential=credential)
        pages += 1
        keys.extend(page.keys)
        if page.next_token is None:
            break
        if page.next_token == token:
            raise InternalError(
                f"listing returned continuation token {token!r} twice",
                op="list",
                path=prefix,
            )
        token = page.next_token
    logger.debug("Listed %d keys under %r in %d page(s)", len(keys), prefix, pages)
    return keys
