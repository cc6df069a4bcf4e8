"""SessionManager — one reference-counted credential per filesystem.

Every node opened from a filesystem takes a reference on open and drops it
on close.  The credential is acquired lazily, on the first remote call that
needs it, and revoked exactly once when the last reference is dropped.
A node that is opened and closed without being read never authenticates.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING

from .errors import ensure_remotefs_error

if TYPE_CHECKING:
    from .protocol import Authenticator

logger = logging.getLogger(__name__)


class SessionManager:
    """Shares one credential across concurrently open nodes.

    The reference count is guarded by a thread lock so that increments and
    decrements are atomic; the login and logout transitions are serialized
    by an asyncio lock so only one task ever performs the remote call.
    """

    def __init__(self, authenticator: Authenticator) -> None:
        self._authenticator = authenticator
        self._refs = 0
        self._refs_lock = threading.Lock()
        self._transition = asyncio.Lock()
        self._token: str | None = None

    @property
    def refs(self) -> int:
        return self._refs

    @property
    def token(self) -> str | None:
        """The currently held credential, or None when logged out."""
        return self._token

    # ------------------------------------------------------------------
    # Reference counting
    # ------------------------------------------------------------------

    def add_ref(self) -> None:
        """Take a reference.  Does not log in."""
        with self._refs_lock:
            self._refs += 1

    def _remove_ref(self) -> int:
        with self._refs_lock:
            if self._refs == 0:
                # close() can only succeed once per node, so this is a caller bug
                raise RuntimeError(
                    "SessionManager.release called with no outstanding references; "
                    "a node was closed without a matching open"
                )
            self._refs -= 1
            return self._refs

    # ------------------------------------------------------------------
    # Credential lifecycle
    # ------------------------------------------------------------------

    async def credential(self) -> str:
        """Return the shared credential, logging in if none is held."""
        token = self._token
        if token is not None:
            return token
        async with self._transition:
            if self._token is None:
                logger.debug("Logging in (%d open reference(s))", self._refs)
                try:
                    self._token = await self._authenticator.login()
                except Exception as exc:
                    raise ensure_remotefs_error(exc, op="login", path="") from exc
            return self._token

    async def release(self) -> None:
        """Drop a reference; revoke the credential when none remain.

        The token is always cleared locally, even when remote revocation
        fails; the revocation error is still raised to the caller.
        """
        if self._remove_ref() > 0:
            return
        async with self._transition:
            # another node may have opened (and logged in) while we waited
            if self._refs > 0 or self._token is None:
                return
            token, self._token = self._token, None
            logger.debug("Last reference released; revoking credential")
            try:
                await self._authenticator.logout(token)
            except Exception as exc:
                logger.warning("Credential revocation failed", exc_info=True)
                raise ensure_remotefs_error(exc, op="logout", path="") from exc
