"""Consul KV backend over the Consul HTTP API.

Keys are opaque (``config/app/port``).  Values come from
``GET /v1/kv/<key>`` (base64-encoded in the JSON body); listings from
``GET /v1/kv/<prefix>?keys&separator=/``, which returns the immediate
children with a trailing slash on folders.  The ACL token is static, so
no session is involved.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from typing import Any

import httpx

from remotefs.fs.errors import error_for_status
from remotefs.fs.exceptions import InternalError, PathNotFoundError
from remotefs.fs.types import ListPage, Value

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "http://127.0.0.1:8500"


class ConsulBackend:
    """Consul KV source.

    ``address`` defaults to ``$CONSUL_HTTP_ADDR`` (scheme optional) and
    ``token`` to ``$CONSUL_HTTP_TOKEN``.  ``datacenter`` is passed as the
    ``dc`` query parameter on every request.
    """

    def __init__(
        self,
        address: str | None = None,
        *,
        token: str | None = None,
        datacenter: str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        address = address or os.environ.get("CONSUL_HTTP_ADDR", DEFAULT_ADDRESS)
        if "://" not in address:
            address = "http://" + address
        self.address = address
        self.datacenter = datacenter
        self._headers = dict(headers) if headers else {}
        token = token or os.environ.get("CONSUL_HTTP_TOKEN")
        if token:
            self._headers["X-Consul-Token"] = token
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

    async def _request(self, key: str, params: dict[str, str]) -> httpx.Response:
        if self.datacenter:
            params = {**params, "dc": self.datacenter}
        url = "/v1/kv/" + key.lstrip("/")
        try:
            response = await self._get_client().get(url, params=params)
        except httpx.HTTPError as exc:
            raise InternalError(f"GET {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise error_for_status(response.status_code, response.text.strip())
        return response

    async def get(self, key: str, *, credential: str | None = None) -> Value:
        response = await self._request(key, {})
        try:
            pairs = response.json()
            encoded = pairs[0].get("Value") if pairs else None
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise InternalError(f"unexpected consul response for {key!r}") from exc
        if not pairs:
            raise PathNotFoundError(f"no such key {key!r}")

        try:
            data = base64.b64decode(encoded) if encoded else b""
        except (binascii.Error, TypeError) as exc:
            raise InternalError(f"consul value for {key!r} is not valid base64") from exc
        return Value(data=data)

    async def list(
        self,
        prefix: str,
        continuation: str | None = None,
        *,
        limit: int | None = None,
        credential: str | None = None,
    ) -> ListPage:
        # Consul returns the whole listing at once, so continuation is never set
        # and limit is ignored (the folder key itself may come first).
        try:
            response = await self._request(prefix, {"keys": "", "separator": "/"})
        except PathNotFoundError:
            return ListPage()
        try:
            keys = [str(k) for k in response.json()]
        except (ValueError, TypeError) as exc:
            raise InternalError(f"unexpected consul key listing for {prefix!r}") from exc
        return ListPage(keys=keys)
