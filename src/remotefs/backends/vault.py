"""HashiCorp Vault backend — secrets over the Vault HTTP API.

Values are read with ``GET /v1/<key>`` and returned as the JSON encoding
of the secret's ``data``.  Directories are listed with the ``LIST`` verb;
Vault marks sub-directories with a trailing slash.  Keys are opaque
(``secret/app/db``), so filesystems over this backend use a relative root.
A key may carry query parameters (``aws/creds/role?ttl=1h``); they are
sent as the JSON body of a POST instead of a GET.

Requests need a Vault token.  The backend implements ``Authenticator`` by
delegating to an auth method, so ``RemoteFileSystem`` shares one token
between all open nodes and revokes it when the last one closes.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import parse_qsl

import httpx

from remotefs.fs.errors import error_for_status
from remotefs.fs.exceptions import (
    InternalError,
    InvalidPathError,
    PathNotFoundError,
    PermissionDeniedError,
)
from remotefs.fs.types import ListPage, Value

if TYPE_CHECKING:
    from datetime import datetime

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "https://127.0.0.1:8200"


# =============================================================================
# Shared HTTP helpers
# =============================================================================


def _error_details(response: httpx.Response) -> str:
    try:
        errors = response.json().get("errors") or []
    except (ValueError, AttributeError):
        return ""
    return ", ".join(str(e) for e in errors)


async def vault_request(
    client: httpx.AsyncClient,
    method: str,
    path: str,
    *,
    token: str | None = None,
    body: dict[str, Any] | None = None,
) -> httpx.Response:
    """Send one Vault API request, translating failures to remotefs errors."""
    headers = {"X-Vault-Token": token} if token else {}
    url = "/v1/" + path.lstrip("/")
    try:
        response = await client.request(method, url, headers=headers, json=body)
    except httpx.HTTPError as exc:
        raise InternalError(f"{method} {url} failed: {exc}") from exc
    if response.status_code >= 400:
        raise error_for_status(response.status_code, _error_details(response))
    return response


def split_params(key: str) -> tuple[str, dict[str, str]]:
    """Split ``path?name=value&...`` into the path and its parameters."""
    path, sep, query = key.partition("?")
    if not sep:
        return key, {}
    try:
        pairs = parse_qsl(query, keep_blank_values=True, strict_parsing=True)
    except ValueError as exc:
        raise InvalidPathError(f"malformed vault parameters in {key!r}") from exc
    if not pairs or any(not name for name, _ in pairs):
        raise InvalidPathError(f"malformed vault parameters in {key!r}")
    return path, dict(pairs)


def _client_token(response: httpx.Response) -> str:
    try:
        token = response.json()["auth"]["client_token"]
    except (ValueError, KeyError, TypeError) as exc:
        raise InternalError("vault login response did not contain a client token") from exc
    return str(token)


async def _revoke_self(client: httpx.AsyncClient, token: str) -> None:
    await vault_request(client, "POST", "auth/token/revoke-self", token=token)


# =============================================================================
# Auth methods
# =============================================================================


class VaultAuthMethod(Protocol):
    """Acquires and revokes a Vault token using the backend's HTTP client."""

    async def login(self, client: httpx.AsyncClient) -> str: ...

    async def logout(self, client: httpx.AsyncClient, token: str) -> None: ...


def _find_value(value: str | None, envvar: str, default: str = "") -> str:
    return value or os.environ.get(envvar, "") or default


class TokenAuth:
    """Use a fixed token, ``$VAULT_TOKEN``, or ``~/.vault-token``, in that order.

    Logging out only forgets the token; it is not revoked.
    """

    def __init__(self, token: str | None = None, token_file: Path | None = None) -> None:
        self._token = token
        self._token_file = token_file

    async def login(self, client: httpx.AsyncClient) -> str:
        token = _find_value(self._token, "VAULT_TOKEN")
        if token:
            return token
        token_file = self._token_file or Path.home() / ".vault-token"
        try:
            contents = await asyncio.to_thread(token_file.read_text)
            return contents.strip()
        except OSError as exc:
            raise PermissionDeniedError(f"token auth failure: cannot read {token_file}") from exc

    async def logout(self, client: httpx.AsyncClient, token: str) -> None:
        return None


class AppRoleAuth:
    """AppRole login.  Falls back to ``$VAULT_ROLE_ID``/``$VAULT_SECRET_ID``."""

    def __init__(
        self,
        role_id: str | None = None,
        secret_id: str | None = None,
        mount: str | None = None,
    ) -> None:
        self._role_id = role_id
        self._secret_id = secret_id
        self._mount = mount

    async def login(self, client: httpx.AsyncClient) -> str:
        role_id = _find_value(self._role_id, "VAULT_ROLE_ID")
        if not role_id:
            raise PermissionDeniedError("approle auth failure: no role_id provided")
        secret_id = _find_value(self._secret_id, "VAULT_SECRET_ID")
        if not secret_id:
            raise PermissionDeniedError("approle auth failure: no secret_id provided")
        mount = _find_value(self._mount, "VAULT_AUTH_APPROLE_MOUNT", "approle")

        response = await vault_request(
            client,
            "POST",
            f"auth/{mount}/login",
            body={"role_id": role_id, "secret_id": secret_id},
        )
        return _client_token(response)

    async def logout(self, client: httpx.AsyncClient, token: str) -> None:
        await _revoke_self(client, token)


class UserPassAuth:
    """Userpass login.  Falls back to ``$VAULT_AUTH_USERNAME``/``$VAULT_AUTH_PASSWORD``."""

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        mount: str | None = None,
    ) -> None:
        self._username = username
        self._password = password
        self._mount = mount

    async def login(self, client: httpx.AsyncClient) -> str:
        username = _find_value(self._username, "VAULT_AUTH_USERNAME")
        if not username:
            raise PermissionDeniedError("userpass auth failure: no username provided")
        password = _find_value(self._password, "VAULT_AUTH_PASSWORD")
        if not password:
            raise PermissionDeniedError("userpass auth failure: no password provided")
        mount = _find_value(self._mount, "VAULT_AUTH_USERPASS_MOUNT", "userpass")

        response = await vault_request(
            client, "POST", f"auth/{mount}/login/{username}", body={"password": password}
        )
        return _client_token(response)

    async def logout(self, client: httpx.AsyncClient, token: str) -> None:
        await _revoke_self(client, token)


class GitHubAuth:
    """GitHub login.  Falls back to ``$VAULT_AUTH_GITHUB_TOKEN``."""

    def __init__(self, github_token: str | None = None, mount: str | None = None) -> None:
        self._github_token = github_token
        self._mount = mount

    async def login(self, client: httpx.AsyncClient) -> str:
        github_token = _find_value(self._github_token, "VAULT_AUTH_GITHUB_TOKEN")
        if not github_token:
            raise PermissionDeniedError("github auth failure: no token provided")
        mount = _find_value(self._mount, "VAULT_AUTH_GITHUB_MOUNT", "github")

        response = await vault_request(
            client, "POST", f"auth/{mount}/login", body={"token": github_token}
        )
        return _client_token(response)

    async def logout(self, client: httpx.AsyncClient, token: str) -> None:
        await _revoke_self(client, token)


class EnvAuth:
    """Try each auth method in order and remember the first that succeeds.

    The default order is AppRole, GitHub, UserPass, then Token.
    """

    def __init__(self, methods: list[VaultAuthMethod] | None = None) -> None:
        self._methods: list[VaultAuthMethod] = methods or [
            AppRoleAuth(),
            GitHubAuth(),
            UserPassAuth(),
            TokenAuth(),
        ]
        self._chosen: VaultAuthMethod | None = None

    async def login(self, client: httpx.AsyncClient) -> str:
        last_error: Exception | None = None
        for method in self._methods:
            try:
                token = await method.login(client)
            except PermissionDeniedError as exc:
                last_error = exc
                continue
            self._chosen = method
            logger.debug("Authenticated to vault with %s", type(method).__name__)
            return token
        raise PermissionDeniedError(
            f"unable to authenticate with vault by any configured method; last error: {last_error}"
        )

    async def logout(self, client: httpx.AsyncClient, token: str) -> None:
        chosen, self._chosen = self._chosen, None
        if chosen is not None:
            await chosen.logout(client, token)


# =============================================================================
# Backend
# =============================================================================


class VaultBackend:
    """Vault key/value source and token authenticator.

    ``address`` defaults to ``$VAULT_ADDR``; ``auth`` defaults to
    ``EnvAuth()``.  Pass ``transport`` to substitute the HTTP layer.
    """

    def __init__(
        self,
        address: str | None = None,
        *,
        auth: VaultAuthMethod | None = None,
        namespace: str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.address = address or os.environ.get("VAULT_ADDR", DEFAULT_ADDRESS)
        self.auth: VaultAuthMethod = auth or EnvAuth()
        self._headers = dict(headers) if headers else {}
        namespace = namespace or os.environ.get("VAULT_NAMESPACE")
        if namespace:
            self._headers["X-Vault-Namespace"] = namespace
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create the httpx client on first use."""
        if self._client is None:
            kwargs: dict[str, Any] = {
                "base_url": self.address,
                "timeout": self._timeout,
                "headers": self._headers,
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Authenticator
    # ------------------------------------------------------------------

    async def login(self) -> str:
        return await self.auth.login(self._get_client())

    async def logout(self, credential: str) -> None:
        await self.auth.logout(self._get_client(), credential)

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    async def get(self, key: str, *, credential: str | None = None) -> Value:
        """Read a secret.

        Parameters in the key (``aws/creds/role?ttl=1h``) turn the read into
        a POST carrying them as a JSON body, which is how Vault issues
        dynamic secrets.
        """
        path, params = split_params(key)
        method = "POST" if params else "GET"
        response = await vault_request(
            self._get_client(), method, path, token=credential, body=params or None
        )
        try:
            secret = response.json() if response.content else None
        except ValueError as exc:
            raise InternalError(f"failed to parse vault secret at {key!r}") from exc

        data = b""
        if secret is not None:
            data = json.dumps(secret.get("data"), separators=(",", ":")).encode()

        return Value(
            data=data,
            modified_at=_last_modified(response),
            content_type="application/json",
        )

    async def list(
        self,
        prefix: str,
        continuation: str | None = None,
        *,
        limit: int | None = None,
        credential: str | None = None,
    ) -> ListPage:
        # Vault answers a LIST in one response; continuation is never set.
        if "?" in prefix:
            # a parameterized key names a single secret, never a directory
            return ListPage()
        try:
            response = await vault_request(self._get_client(), "LIST", prefix, token=credential)
        except PathNotFoundError:
            return ListPage()
        try:
            keys = response.json()["data"]["keys"]
        except (ValueError, KeyError, TypeError) as exc:
            raise InternalError("keys missing from vault LIST response") from exc
        if not isinstance(keys, list):
            raise InternalError(f"keys returned in unexpected format from vault LIST: {keys!r}")

        full = [prefix + str(k) for k in keys]
        if limit:
            full = full[:limit]
        return ListPage(keys=full)


def _last_modified(response: httpx.Response) -> datetime | None:
    header = response.headers.get("Last-Modified")
    if not header:
        return None
    # best-effort; an unparseable header is ignored
    try:
        return parsedate_to_datetime(header)
    except (TypeError, ValueError):
        return None
