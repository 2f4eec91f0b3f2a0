"""boto3 client construction + botocore error helpers shared by sink readers."""

from __future__ import annotations

import os
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError


THROTTLING_ERROR_CODES = frozenset(
    {
        "ThrottlingException",
        "Throttling",
        "TooManyRequestsException",
        "RequestLimitExceeded",
    }
)
_RATE_EXCEEDED = "Rate exceeded"


def resolve_region(region: str | None) -> str | None:
    return region or os.getenv("AWS_DEFAULT_REGION") or os.getenv("AWS_REGION")


def resolve_endpoint(endpoint_url: str | None) -> str | None:
    return endpoint_url or os.getenv("AWS_ENDPOINT_URL")


def s3_client(*, region: str | None, endpoint_url: str | None = None, path_style: bool | None = None) -> Any:
    config = None
    if path_style:
        config = Config(s3={"addressing_style": "path"})
    return boto3.client(
        "s3",
        region_name=resolve_region(region),
        endpoint_url=resolve_endpoint(endpoint_url),
        config=config,
    )


def logs_client(*, region: str | None, endpoint_url: str | None = None) -> Any:
    return boto3.client(
        "logs",
        region_name=resolve_region(region),
        endpoint_url=resolve_endpoint(endpoint_url),
    )


def is_throttling_error(exc: Exception) -> bool:
    if error_code(exc) in THROTTLING_ERROR_CODES:
        return True
    return _RATE_EXCEEDED in str(exc)


def error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code") or "")
    return exc.__class__.__name__


def error_detail(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Message") or "")[:256]
    return str(exc)[:256]
