"""Object-store sink reader (S3 objects holding concatenated JSON records)."""

from __future__ import annotations

from contextlib import closing
import logging
from typing import Any, Iterator

from botocore.exceptions import BotoCoreError

from ..contracts import MalformedRecordError, SinkUnavailableError
from .aws import error_code, error_detail
from .json_stream import DEFAULT_CHUNK_SIZE, iter_record_logs

logger = logging.getLogger(__name__)


class S3SinkReader:
    kind = "s3"

    def __init__(
        self,
        client: Any,
        *,
        bucket: str,
        prefix: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if not bucket:
            raise ValueError("S3 bucket is required")
        self._client = client
        self.bucket = bucket
        self.prefix = prefix
        self.chunk_size = chunk_size
        self.objects_scanned = 0
        self.malformed_records = 0
        self.pages_listed = 0

    def iter_payloads(self) -> Iterator[str]:
        for key in self.iter_keys():
            yield from self._iter_object(key)

    def iter_keys(self) -> Iterator[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        pages = iter(paginator.paginate(Bucket=self.bucket, Prefix=self.prefix))
        while True:
            page = self._next_page(pages)
            if page is None:
                return
            self.pages_listed += 1
            for item in page.get("Contents", []):
                key = item.get("Key")
                if key:
                    yield key
            if page.get("IsTruncated") and not page.get("NextContinuationToken"):
                raise SinkUnavailableError(
                    f"S3_CONTINUATION_TOKEN_MISSING:bucket={self.bucket} page={self.pages_listed}"
                )

    def _next_page(self, pages: Iterator[dict[str, Any]]) -> dict[str, Any] | None:
        try:
            return next(pages)
        except StopIteration:
            return None
        except Exception as exc:
            raise SinkUnavailableError(
                f"S3_LIST_FAILED:bucket={self.bucket} prefix={self.prefix} "
                f"code={error_code(exc)} detail={error_detail(exc)}"
            ) from exc

    def _iter_object(self, key: str) -> Iterator[str]:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except Exception as exc:
            raise SinkUnavailableError(
                f"S3_GET_OBJECT_FAILED:s3://{self.bucket}/{key} "
                f"code={error_code(exc)} detail={error_detail(exc)}"
            ) from exc
        self.objects_scanned += 1
        logger.debug("S3 object opened key=%s size=%s", key, response.get("ContentLength"))
        with closing(response["Body"]) as body:
            try:
                for log in iter_record_logs(body, chunk_size=self.chunk_size, source=key):
                    if isinstance(log, MalformedRecordError):
                        self._skip(key, log)
                        continue
                    yield log
            except (BotoCoreError, OSError) as exc:
                raise SinkUnavailableError(
                    f"S3_READ_OBJECT_FAILED:s3://{self.bucket}/{key} detail={error_detail(exc)}"
                ) from exc

    def _skip(self, key: str, exc: MalformedRecordError) -> None:
        self.malformed_records += 1
        logger.warning("[TEST ERROR] Malformed log entry key=%s error=%s", key, exc)
