"""Sink readers: where delivered log records are read back from."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator, Protocol

from . import aws
from .cloudwatch import CloudWatchSinkReader
from .local import LocalFileSinkReader
from .s3 import S3SinkReader

if TYPE_CHECKING:
    from ..config import ValidatorConfig


class SinkReader(Protocol):
    kind: str
    objects_scanned: int
    malformed_records: int

    def iter_payloads(self) -> Iterator[str]:
        ...


def build_sink_reader(
    config: "ValidatorConfig",
    *,
    s3_client: Any | None = None,
    logs_client: Any | None = None,
) -> SinkReader:
    """Pick the reader for ``config.destination``; clients are built only when not injected."""
    destination = (config.destination or "").lower()
    if destination == "s3":
        client = s3_client or aws.s3_client(
            region=config.region,
            endpoint_url=config.endpoint_url,
            path_style=config.path_style,
        )
        return S3SinkReader(client, bucket=str(config.bucket), prefix=str(config.prefix))
    if destination == "cloudwatch":
        client = logs_client or aws.logs_client(region=config.region, endpoint_url=config.endpoint_url)
        return CloudWatchSinkReader(
            client,
            log_group=str(config.log_group),
            log_stream=str(config.prefix),
            page_limit=config.page_limit,
            page_delay_seconds=config.page_delay_seconds,
            throttle_backoff_seconds=config.throttle_backoff_seconds,
            max_throttle_retries=config.max_throttle_retries,
        )
    if destination == "file":
        return LocalFileSinkReader(Path(str(config.local_root)))
    raise ValueError(f"unsupported destination: {config.destination}")


__all__ = [
    "CloudWatchSinkReader",
    "LocalFileSinkReader",
    "S3SinkReader",
    "SinkReader",
    "build_sink_reader",
]
