"""Capability protocols — the only contact points with remote stores.

A backend binding implements ``ValueSource`` and ``ListingSource`` (usually
on one object).  Stores that need a stateful credential also implement
``Authenticator``; the engine then routes every remote call through a
shared ``SessionManager`` and hands the current credential to the source.

All errors raised from these methods must already belong to the
``remotefs.fs.exceptions`` taxonomy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .types import ListPage, PathScope, Value


@runtime_checkable
class ValueSource(Protocol):
    """Fetches one complete value by full key."""

    async def get(self, key: str, *, credential: str | None = None) -> Value:
        """Return the value stored at *key*.

        Raises ``PathNotFoundError`` when the key does not exist.
        """
        ...


@runtime_checkable
class ListingSource(Protocol):
    """Fetches one page of full keys beneath a prefix."""

    async def list(
        self,
        prefix: str,
        continuation: str | None = None,
        *,
        limit: int | None = None,
        credential: str | None = None,
    ) -> ListPage:
        """Return the page of keys under *prefix* starting at *continuation*.

        *limit* caps the page size (``1`` is used for existence probes).
        A prefix with no keys yields an empty page, not an error.
        """
        ...


@runtime_checkable
class Authenticator(Protocol):
    """Acquires and revokes the credential shared by a filesystem's nodes."""

    async def login(self) -> str: ...

    async def logout(self, credential: str) -> None: ...


@runtime_checkable
class DirectoryProbe(Protocol):
    """Decides whether a key that is not a value is a directory."""

    def known_directory(self, key: str) -> bool:
        """Return True if *key* is structurally a directory (no remote call)."""
        ...

    async def probe(
        self,
        listing: ListingSource,
        prefix: str,
        scope: PathScope,
        *,
        credential: str | None = None,
    ) -> bool:
        """Called after a Get reported not-found; True means *prefix* has children."""
        ...
