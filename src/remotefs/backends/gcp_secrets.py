"""Google Cloud Secret Manager backend, over the REST API.

Secret Manager has a flat namespace: every secret lives directly under
``projects/<project>/secrets/``, so the filesystem is one directory of
files.  Names containing a slash never exist.  A read returns the payload
of the ``latest`` version; its modification time is that version's
``createTime``.

Requests carry an OAuth2 bearer token.  The backend implements
``Authenticator``: the token is the one passed in, ``$GOOGLE_OAUTH_ACCESS_TOKEN``,
or the default service account's token from the metadata server.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import os
import re
from datetime import datetime
from typing import Any

import httpx

from remotefs.backends.gcp_metadata import GCPMetadataBackend
from remotefs.fs.errors import error_for_status
from remotefs.fs.exceptions import InternalError, InvalidPathError, PathNotFoundError
from remotefs.fs.types import ListPage, Value

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://secretmanager.googleapis.com"
MAX_PAGE_SIZE = 25000

_FRACTION = re.compile(r"(\.\d{6})\d+")


def _error_message(response: httpx.Response) -> str:
    try:
        return str(response.json()["error"]["message"])
    except (ValueError, KeyError, TypeError):
        return response.text.strip()


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp with up to nanosecond precision."""
    if not value:
        return None
    value = _FRACTION.sub(r"\1", value.replace("Z", "+00:00"))
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


class GCPSecretManagerBackend:
    """Secret Manager source and bearer-token authenticator.

    ``project`` defaults to ``$GOOGLE_CLOUD_PROJECT``, then to the project
    the metadata server reports.  ``metadata`` is only contacted when the
    token or project is not otherwise configured.
    """

    def __init__(
        self,
        project: str | None = None,
        *,
        access_token: str | None = None,
        metadata: GCPMetadataBackend | None = None,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.project = project or os.environ.get("GOOGLE_CLOUD_PROJECT") or None
        self.endpoint = endpoint.rstrip("/")
        self._access_token = access_token
        self._metadata = metadata
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create the httpx client on first use."""
        if self._client is None:
            kwargs: dict[str, Any] = {"base_url": self.endpoint, "timeout": self._timeout}
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    def _get_metadata(self) -> GCPMetadataBackend:
        if self._metadata is None:
            self._metadata = GCPMetadataBackend()
        return self._metadata

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._metadata is not None:
            await self._metadata.close()

    # ------------------------------------------------------------------
    # Authenticator
    # ------------------------------------------------------------------

    async def login(self) -> str:
        token = self._access_token or os.environ.get("GOOGLE_OAUTH_ACCESS_TOKEN")
        if token:
            return token
        response = await self._get_metadata().fetch("instance/service-accounts/default/token")
        try:
            token = response.json()["access_token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise InternalError("metadata server returned no access token") from exc
        logger.debug("Using the default service account token from the metadata server")
        return str(token)

    async def logout(self, credential: str) -> None:
        # access tokens expire on their own
        return None

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    async def _project(self) -> str:
        if self.project is None:
            response = await self._get_metadata().fetch("project/project-id")
            self.project = response.text.strip()
        if not self.project:
            raise InvalidPathError("no Google Cloud project configured")
        return self.project

    async def _request(
        self, path: str, *, credential: str | None, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {credential}"} if credential else {}
        url = "/v1/" + path
        try:
            response = await self._get_client().get(url, headers=headers, params=params)
        except httpx.HTTPError as exc:
            raise InternalError(f"GET {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise error_for_status(response.status_code, _error_message(response))
        try:
            body = response.json()
        except ValueError as exc:
            raise InternalError(f"unparseable response from {url}") from exc
        if not isinstance(body, dict):
            raise InternalError(f"unexpected response from {url}: {body!r}")
        return body

    async def get(self, key: str, *, credential: str | None = None) -> Value:
        if not key or "/" in key:
            raise PathNotFoundError(f"secret names cannot contain '/': {key!r}")

        resource = f"projects/{await self._project()}/secrets/{key}/versions/latest"
        version, accessed = await asyncio.gather(
            self._request(resource, credential=credential),
            self._request(resource + ":access", credential=credential),
        )
        try:
            data = base64.b64decode(accessed["payload"].get("data", ""), validate=True)
        except (KeyError, AttributeError, binascii.Error) as exc:
            raise InternalError(f"malformed payload for secret {key!r}") from exc

        return Value(data=data, modified_at=parse_timestamp(version.get("createTime")))

    async def list(
        self,
        prefix: str,
        continuation: str | None = None,
        *,
        limit: int | None = None,
        credential: str | None = None,
    ) -> ListPage:
        if prefix:
            # flat namespace: only the root has children
            return ListPage()

        params: dict[str, Any] = {}
        if limit:
            params["pageSize"] = min(limit, MAX_PAGE_SIZE)
        if continuation:
            params["pageToken"] = continuation

        body = await self._request(
            f"projects/{await self._project()}/secrets", credential=credential, params=params
        )
        # name is the full resource name: projects/<project>/secrets/<name>
        keys = [secret["name"].rsplit("/", 1)[-1] for secret in body.get("secrets", [])]
        return ListPage(keys=keys, next_token=body.get("nextPageToken") or None)
