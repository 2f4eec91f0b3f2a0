"""CloudWatch Logs sink reader (one log stream, oldest event first)."""

from __future__ import annotations

import logging
import time
from typing import Any, Iterator

from ..contracts import SinkUnavailableError, ThrottlingError
from .aws import error_code, error_detail, is_throttling_error

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 10000
DEFAULT_PAGE_DELAY_SECONDS = 0.1
DEFAULT_THROTTLE_BACKOFF_SECONDS = 5.0
DEFAULT_MAX_THROTTLE_RETRIES = 60


class CloudWatchSinkReader:
    """Pages through ``get_log_events`` following ``nextForwardToken``.

    CloudWatch has no end-of-stream sentinel: the last page hands back the
    same forward token that was sent, so that equality is the stop signal.
    """

    kind = "cloudwatch"
    objects_scanned = 0
    malformed_records = 0

    def __init__(
        self,
        client: Any,
        *,
        log_group: str,
        log_stream: str,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        page_delay_seconds: float = DEFAULT_PAGE_DELAY_SECONDS,
        throttle_backoff_seconds: float = DEFAULT_THROTTLE_BACKOFF_SECONDS,
        max_throttle_retries: int | None = DEFAULT_MAX_THROTTLE_RETRIES,
    ) -> None:
        if not log_group:
            raise ValueError("CloudWatch log group is required")
        if not log_stream:
            raise ValueError("CloudWatch log stream is required")
        self._client = client
        self.log_group = log_group
        self.log_stream = log_stream
        self.page_limit = page_limit
        self.page_delay_seconds = page_delay_seconds
        self.throttle_backoff_seconds = throttle_backoff_seconds
        self.max_throttle_retries = max_throttle_retries
        self.pages_read = 0
        self.throttle_retries = 0

    def iter_payloads(self) -> Iterator[str]:
        forward_token: str | None = None
        while True:
            request: dict[str, Any] = {
                "logGroupName": self.log_group,
                "logStreamName": self.log_stream,
                "startFromHead": True,
                "limit": self.page_limit,
            }
            if forward_token is not None:
                request["nextToken"] = forward_token
                time.sleep(self.page_delay_seconds)
            response = self._get_log_events(request)
            self.pages_read += 1
            for event in response.get("events", []):
                yield str(event.get("message") or "")
            next_token = response.get("nextForwardToken") or None
            if next_token == forward_token:
                logger.info(
                    "CloudWatch stream exhausted group=%s stream=%s pages=%s",
                    self.log_group,
                    self.log_stream,
                    self.pages_read,
                )
                return
            forward_token = next_token

    def _get_log_events(self, request: dict[str, Any]) -> dict[str, Any]:
        attempt = 0
        while True:
            try:
                return self._client.get_log_events(**request)
            except Exception as exc:
                if not is_throttling_error(exc):
                    raise SinkUnavailableError(
                        f"CLOUDWATCH_GET_LOG_EVENTS_FAILED:group={self.log_group} stream={self.log_stream} "
                        f"code={error_code(exc)} detail={error_detail(exc)}"
                    ) from exc
                if self.max_throttle_retries is not None and attempt >= self.max_throttle_retries:
                    raise ThrottlingError(
                        f"CLOUDWATCH_THROTTLE_RETRIES_EXHAUSTED:group={self.log_group} "
                        f"stream={self.log_stream} retries={attempt} detail={error_detail(exc)}"
                    ) from exc
                attempt += 1
                self.throttle_retries += 1
                logger.warning(
                    "CloudWatch throttled retry %s/%s group=%s stream=%s backoff=%.1fs",
                    attempt,
                    self.max_throttle_retries if self.max_throttle_retries is not None else "unbounded",
                    self.log_group,
                    self.log_stream,
                    self.throttle_backoff_seconds,
                )
                time.sleep(self.throttle_backoff_seconds)
