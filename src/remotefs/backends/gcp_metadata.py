"""GCE metadata server backend.

Keys are opaque: ``instance/...`` and ``project/...`` beneath
``/computeMetadata/v1/``.  Like EC2 metadata, a document and a directory
look the same on the wire, so directory-ness comes from a
``StaticPathProbe`` over the documented tree.  Directory listings are the
newline-separated children the server returns for a trailing-slash
request; sub-directories carry a trailing slash.

Every request needs the ``Metadata-Flavor: Google`` header; no token is
involved.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from remotefs.fs.errors import error_for_status
from remotefs.fs.exceptions import InternalError, PathNotFoundError
from remotefs.fs.probe import StaticPathProbe
from remotefs.fs.types import ListPage, Value

logger = logging.getLogger(__name__)

DEFAULT_HOST = "metadata.google.internal"
API_PREFIX = "/computeMetadata/v1/"

GCE_DIRECTORIES = (
    "instance",
    "project",
    "project/attributes",
    "instance/attributes",
    "instance/disks",
    "instance/network-interfaces",
    "instance/service-accounts",
    "instance/tags",
    "instance/scheduling",
    "instance/licenses",
)

GCE_DIRECTORY_PATTERNS = (
    r"^instance/disks/\d+$",
    r"^instance/network-interfaces/\d+$",
    r"^instance/network-interfaces/\d+/access-configs$",
    r"^instance/network-interfaces/\d+/access-configs/\d+$",
    r"^instance/network-interfaces/\d+/forwarded-ips$",
    r"^instance/service-accounts/[^/]+$",
)

ROOT_ENTRIES = ["instance/", "project/"]


def _in_tree(name: str) -> bool:
    return name.split("/", 1)[0] in ("instance", "project")


class GCPMetadataBackend:
    """Metadata server source over HTTP.

    ``host`` defaults to ``$GCE_METADATA_HOST``, then the well-known
    ``metadata.google.internal``.
    """

    directory_probe = StaticPathProbe(GCE_DIRECTORIES, GCE_DIRECTORY_PATTERNS)

    def __init__(
        self,
        host: str | None = None,
        *,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        host = host or os.environ.get("GCE_METADATA_HOST") or DEFAULT_HOST
        if "://" not in host:
            host = "http://" + host
        self.address = host.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create the httpx client on first use."""
        if self._client is None:
            kwargs: dict[str, Any] = {
                "base_url": self.address,
                "timeout": self._timeout,
                "headers": {"Metadata-Flavor": "Google"},
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self, path: str) -> httpx.Response:
        """GET one metadata path (relative to ``/computeMetadata/v1/``)."""
        url = API_PREFIX + path.lstrip("/")
        try:
            response = await self._get_client().get(url)
        except httpx.HTTPError as exc:
            raise InternalError(f"GET {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise error_for_status(response.status_code, response.text.strip())
        return response

    async def get(self, key: str, *, credential: str | None = None) -> Value:
        if not _in_tree(key):
            raise PathNotFoundError(f"invalid prefix for {key!r}")
        response = await self.fetch(key)
        return Value(data=response.content)

    async def list(
        self,
        prefix: str,
        continuation: str | None = None,
        *,
        limit: int | None = None,
        credential: str | None = None,
    ) -> ListPage:
        if not prefix:
            # the root is not listable on every server version; its children are fixed
            return ListPage(keys=list(ROOT_ENTRIES))
        if not _in_tree(prefix):
            return ListPage()

        response = await self.fetch(prefix.rstrip("/") + "/")
        keys = [prefix + line for line in response.text.split("\n") if line]
        return ListPage(keys=keys)
