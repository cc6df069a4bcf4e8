"""EC2 instance metadata (IMDS) backend.

Keys are opaque and rooted at the IMDS version prefix: ``meta-data/...``,
``dynamic/...`` and ``user-data``.  IMDS offers no generic way to tell a
document from a directory (both are plain text, with or without a trailing
slash), but the category tree is documented, so directory-ness comes from a
``StaticPathProbe`` over that tree instead of a remote probe.

Requests carry an IMDSv2 session token, acquired with
``PUT /latest/api/token`` through the filesystem's session manager.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from remotefs.fs.errors import error_for_status
from remotefs.fs.exceptions import InternalError, InvalidPathError, PathNotFoundError
from remotefs.fs.probe import StaticPathProbe
from remotefs.fs.types import ListPage, Value

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://169.254.169.254"
TOKEN_TTL_SECONDS = 21600

# https://docs.aws.amazon.com/AWSEC2/latest/UserGuide/instancedata-data-categories.html
IMDS_DIRECTORIES = (
    "meta-data",
    "dynamic",
    "meta-data/autoscaling",
    "meta-data/block-device-mapping",
    "meta-data/events",
    "meta-data/events/maintenance",
    "meta-data/events/recommendations",
    "meta-data/iam",
    "meta-data/iam/security-credentials",
    "meta-data/identity-credentials",
    "meta-data/identity-credentials/ec2",
    "meta-data/identity-credentials/ec2/security-credentials",
    "meta-data/metrics",
    "meta-data/network",
    "meta-data/network/interfaces",
    "meta-data/network/interfaces/macs",
    "meta-data/placement",
    "meta-data/public-keys",
    "meta-data/public-keys/0",
    "meta-data/services",
    "meta-data/spot",
    "meta-data/tags",
    "dynamic/fws",
    "dynamic/instance-identity",
)

# macs/<mac>/ and macs/<mac>/ipv4-associations/ are directories,
# ipv4-associations/<ip> is not
IMDS_DIRECTORY_PATTERNS = (
    r"^meta-data/network/interfaces/macs/[^/]+$",
    r"^meta-data/network/interfaces/macs/[^/]+/ipv4-associations$",
)

ROOT_ENTRIES = ["dynamic/", "meta-data/", "user-data"]

_CATEGORIES = ("meta-data", "dynamic")


def _category(key: str) -> str | None:
    name = key.strip("/")
    if name == "user-data":
        return name
    for category in _CATEGORIES:
        if name == category or name.startswith(category + "/"):
            return category
    return None


class IMDSBackend:
    """Instance metadata source over HTTP.

    ``endpoint`` defaults to ``$AWS_EC2_METADATA_SERVICE_ENDPOINT``.
    """

    directory_probe = StaticPathProbe(IMDS_DIRECTORIES, IMDS_DIRECTORY_PATTERNS)

    def __init__(
        self,
        endpoint: str | None = None,
        *,
        token_ttl: int = TOKEN_TTL_SECONDS,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = (
            endpoint or os.environ.get("AWS_EC2_METADATA_SERVICE_ENDPOINT") or DEFAULT_ENDPOINT
        ).rstrip("/")
        self.token_ttl = token_ttl
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

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, path: str, *, headers: dict[str, str]
    ) -> httpx.Response:
        url = "/latest/" + path
        try:
            response = await self._get_client().request(method, url, headers=headers)
        except httpx.HTTPError as exc:
            raise InternalError(f"{method} {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise error_for_status(response.status_code, response.reason_phrase)
        return response

    # ------------------------------------------------------------------
    # Authenticator
    # ------------------------------------------------------------------

    async def login(self) -> str:
        headers = {"X-aws-ec2-metadata-token-ttl-seconds": str(self.token_ttl)}
        response = await self._request("PUT", "api/token", headers=headers)
        token = response.text.strip()
        if not token:
            raise InternalError("IMDS returned an empty session token")
        logger.debug("Acquired IMDSv2 session token (ttl=%ds)", self.token_ttl)
        return token

    async def logout(self, credential: str) -> None:
        # session tokens expire on their own; there is nothing to revoke
        return None

    # ------------------------------------------------------------------
    # ValueSource / ListingSource
    # ------------------------------------------------------------------

    @staticmethod
    def _headers(credential: str | None) -> dict[str, str]:
        return {"X-aws-ec2-metadata-token": credential} if credential else {}

    async def get(self, key: str, *, credential: str | None = None) -> Value:
        name = key.strip("/")
        if _category(name) is None:
            raise PathNotFoundError(f"invalid prefix for {name!r}")
        response = await self._request("GET", name, headers=self._headers(credential))
        return Value(data=response.content)

    async def list(
        self,
        prefix: str,
        continuation: str | None = None,
        *,
        limit: int | None = None,
        credential: str | None = None,
    ) -> ListPage:
        name = prefix.strip("/")
        if not name:
            # the root can't be listed through IMDS, but its children are fixed
            return ListPage(keys=[prefix + entry for entry in ROOT_ENTRIES])
        if _category(name) in (None, "user-data"):
            raise InvalidPathError(f"invalid prefix for {name!r}")

        response = await self._request("GET", name + "/", headers=self._headers(credential))
        keys = [prefix + line for line in response.text.split("\n") if line]
        return ListPage(keys=keys)
