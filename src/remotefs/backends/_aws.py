"""Shared AWS helpers: boto3 client construction and error translation."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from remotefs.fs.exceptions import (
    InternalError,
    InvalidPathError,
    PathNotFoundError,
    PermissionDeniedError,
    RemoteFSError,
)

logger = logging.getLogger(__name__)

_ERROR_CODES: dict[str, type[RemoteFSError]] = {
    # not found
    "ResourceNotFoundException": PathNotFoundError,
    "ParameterNotFound": PathNotFoundError,
    "ParameterVersionNotFound": PathNotFoundError,
    # permission
    "AccessDeniedException": PermissionDeniedError,
    "DecryptionFailure": PermissionDeniedError,
    "ExpiredTokenException": PermissionDeniedError,
    "UnrecognizedClientException": PermissionDeniedError,
    # invalid
    "InvalidParameterException": InvalidPathError,
    "InvalidRequestException": InvalidPathError,
    "InvalidParameters": InvalidPathError,
    "InvalidNextTokenException": InvalidPathError,
    "InvalidFilterKey": InvalidPathError,
    "InvalidFilterValue": InvalidPathError,
    "ValidationException": InvalidPathError,
    # internal
    "InternalServiceError": InternalError,
    "InternalServerError": InternalError,
}


def convert_aws_error(exc: Exception) -> RemoteFSError:
    """Convert a botocore exception to the remotefs taxonomy.

    SDK exception types must never leak past a backend.
    """
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code", "")
        message = error.get("Message", "") or str(exc)
        cls = _ERROR_CODES.get(code, InternalError)
        return cls(f"{code}: {message}" if code else message)
    if isinstance(exc, NoCredentialsError):
        return PermissionDeniedError(str(exc))
    return InternalError(f"{type(exc).__name__}: {exc}")


async def call_aws(method: Any, **kwargs: Any) -> Any:
    """Run a blocking boto3 client method in a worker thread."""
    try:
        return await asyncio.to_thread(method, **kwargs)
    except (ClientError, BotoCoreError) as exc:
        raise convert_aws_error(exc) from exc


def make_client(
    service: str,
    *,
    region: str | None = None,
    endpoint_url: str | None = None,
) -> Any:
    """Create a boto3 client; region falls back to ``$AWS_REGION``."""
    kwargs: dict[str, Any] = {}
    region = region or os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION")
    if region:
        kwargs["region_name"] = region
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    logger.debug("Creating boto3 %s client (region=%s)", service, region)
    return boto3.client(service, **kwargs)
