"""AWS Systems Manager Parameter Store backend.

Parameter hierarchies start with ``/``, so filesystems over this backend
are rooted.  Listings use recursive ``get_parameters_by_path`` and follow
``NextToken``; the recursive result is collapsed to one directory level by
the synthesizer.
"""

from __future__ import annotations

import logging
from typing import Any

from remotefs.fs.types import ListPage, Value

from ._aws import call_aws, make_client

logger = logging.getLogger(__name__)

# service-side cap for get_parameters_by_path
MAX_PAGE_SIZE = 10


class ParameterStoreBackend:
    """Parameter Store source.  SecureString values are decrypted on read."""

    def __init__(
        self,
        client: Any = None,
        *,
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self._client = client
        self._region = region
        self._endpoint_url = endpoint_url

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = make_client("ssm", region=self._region, endpoint_url=self._endpoint_url)
        return self._client

    async def get(self, key: str, *, credential: str | None = None) -> Value:
        out = await call_aws(self.client.get_parameter, Name=key, WithDecryption=True)
        param = out["Parameter"]
        content_type = "text/plain" if param.get("DataType") == "text" else ""
        return Value(
            data=str(param.get("Value", "")).encode(),
            modified_at=param.get("LastModifiedDate"),
            content_type=content_type,
        )

    async def list(
        self,
        prefix: str,
        continuation: str | None = None,
        *,
        limit: int | None = None,
        credential: str | None = None,
    ) -> ListPage:
        params: dict[str, Any] = {"Path": prefix, "Recursive": True, "WithDecryption": False}
        if continuation:
            params["NextToken"] = continuation
        if limit:
            params["MaxResults"] = min(limit, MAX_PAGE_SIZE)

        out = await call_aws(self.client.get_parameters_by_path, **params)
        keys = [param["Name"] for param in out.get("Parameters", [])]
        return ListPage(keys=keys, next_token=out.get("NextToken"))
