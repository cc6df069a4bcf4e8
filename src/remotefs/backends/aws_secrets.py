"""AWS Secrets Manager backend.

Secret names may be rooted (``/prod/db/password``) or opaque
(``prod/db/password``); the filesystem's root decides which half of the
namespace is visible.  Listings use the ``name`` filter, which matches by
prefix, and follow ``NextToken`` until exhausted.  The opaque root is
listed with the negated filter ``!/`` (every name not starting with ``/``).
"""

from __future__ import annotations

import logging
from typing import Any

from remotefs.fs.types import ListPage, Value

from ._aws import call_aws, make_client

logger = logging.getLogger(__name__)


class SecretsManagerBackend:
    """Secrets Manager source.  Pass ``client`` to supply a boto3 client."""

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
            self._client = make_client(
                "secretsmanager", region=self._region, endpoint_url=self._endpoint_url
            )
        return self._client

    async def get(self, key: str, *, credential: str | None = None) -> Value:
        secret = await call_aws(self.client.get_secret_value, SecretId=key)

        # may be a string or binary
        if secret.get("SecretString") is not None:
            data = secret["SecretString"].encode()
        else:
            data = secret.get("SecretBinary") or b""

        # secret versions are immutable, so the version's creation date is its mtime
        return Value(data=data, modified_at=secret.get("CreatedDate"))

    async def list(
        self,
        prefix: str,
        continuation: str | None = None,
        *,
        limit: int | None = None,
        credential: str | None = None,
    ) -> ListPage:
        name_filter = prefix or "!/"
        params: dict[str, Any] = {"Filters": [{"Key": "name", "Values": [name_filter]}]}
        if continuation:
            params["NextToken"] = continuation
        if limit:
            params["MaxResults"] = limit

        out = await call_aws(self.client.list_secrets, **params)
        keys = [entry["Name"] for entry in out.get("SecretList", [])]
        return ListPage(keys=keys, next_token=out.get("NextToken"))
