from __future__ import annotations

import io
import json
from typing import Iterator

import pytest
from botocore.exceptions import ClientError

from log_validator.contracts import SinkUnavailableError
from log_validator.sinks.s3 import S3SinkReader


def _client_error(code: str, message: str, operation: str = "S3Operation") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation_name=operation)


def _body(*logs: str) -> bytes:
    return b"".join(json.dumps({"Log": log}).encode("utf-8") for log in logs)


class _ListObjectsPaginator:
    """Walks list_objects_v2 continuation tokens the way botocore does."""

    def __init__(self, client: "_PaginatingClient") -> None:
        self.client = client

    def paginate(self, **kwargs: object) -> Iterator[dict[str, object]]:
        self.client.paginate_calls.append(dict(kwargs))
        token: object = None
        while True:
            request = dict(kwargs)
            if token:
                request["ContinuationToken"] = token
            page = self.client.list_objects_v2(**request)
            yield page
            token = page.get("NextContinuationToken")
            if not page.get("IsTruncated") or not token:
                return


class _PaginatingClient:
    def __init__(self) -> None:
        self.paginate_calls: list[dict[str, object]] = []

    def get_paginator(self, operation_name: str) -> _ListObjectsPaginator:
        assert operation_name == "list_objects_v2"
        return _ListObjectsPaginator(self)

    def list_objects_v2(self, **kwargs: object) -> dict[str, object]:
        raise NotImplementedError


class _FakeS3Client(_PaginatingClient):
    def __init__(self, pages: list[dict[str, object]], objects: dict[str, bytes]) -> None:
        super().__init__()
        self.pages = pages
        self.objects = objects
        self.list_calls: list[dict[str, object]] = []
        self.bodies: dict[str, io.BytesIO] = {}

    def list_objects_v2(self, **kwargs: object) -> dict[str, object]:
        self.list_calls.append(dict(kwargs))
        return self.pages[len(self.list_calls) - 1]

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, object]:
        if Key not in self.objects:
            raise _client_error("NoSuchKey", "The specified key does not exist.", "GetObject")
        body = io.BytesIO(self.objects[Key])
        self.bodies[Key] = body
        return {"Body": body, "ContentLength": len(self.objects[Key])}


def test_s3_reader_follows_continuation_tokens_through_last_page() -> None:
    client = _FakeS3Client(
        pages=[
            {"Contents": [{"Key": "logs/a"}], "IsTruncated": True, "NextContinuationToken": "t1"},
            {"Contents": [{"Key": "logs/b"}], "IsTruncated": True, "NextContinuationToken": "t2"},
            {"Contents": [{"Key": "logs/c"}], "IsTruncated": False},
        ],
        objects={
            "logs/a": _body("00000001_1639151827578_x", "00000002_1639151827578_x"),
            "logs/b": _body("00000003_1639151827578_x"),
            "logs/c": _body("00000004_1639151827578_x"),
        },
    )
    reader = S3SinkReader(client, bucket="bench-bucket", prefix="logs/", chunk_size=16)

    logs = list(reader.iter_payloads())

    assert [log[:8] for log in logs] == ["00000001", "00000002", "00000003", "00000004"]
    assert reader.objects_scanned == 3
    assert reader.pages_listed == 3
    assert "ContinuationToken" not in client.list_calls[0]
    assert client.list_calls[1]["ContinuationToken"] == "t1"
    assert client.list_calls[2]["ContinuationToken"] == "t2"
    assert all(call["Prefix"] == "logs/" for call in client.list_calls)
    assert client.paginate_calls == [{"Bucket": "bench-bucket", "Prefix": "logs/"}]
    assert all(body.closed for body in client.bodies.values())


def test_s3_reader_counts_objects_without_records() -> None:
    client = _FakeS3Client(
        pages=[{"Contents": [{"Key": "logs/empty"}, {"Key": "logs/one"}], "IsTruncated": False}],
        objects={"logs/empty": b"", "logs/one": _body("00000009_1639151827578_x")},
    )
    reader = S3SinkReader(client, bucket="bench-bucket", prefix="logs/")
    assert list(reader.iter_payloads()) == ["00000009_1639151827578_x"]
    assert reader.objects_scanned == 2


def test_s3_reader_handles_empty_listing() -> None:
    client = _FakeS3Client(pages=[{"IsTruncated": False, "KeyCount": 0}], objects={})
    reader = S3SinkReader(client, bucket="bench-bucket", prefix="nothing/")
    assert list(reader.iter_payloads()) == []
    assert reader.objects_scanned == 0


def test_s3_reader_skips_malformed_json_and_keeps_cursor() -> None:
    payload = _body("00000001_x") + b'{"Log": oops}' + _body("00000002_x")
    client = _FakeS3Client(
        pages=[{"Contents": [{"Key": "logs/a"}], "IsTruncated": False}],
        objects={"logs/a": payload},
    )
    reader = S3SinkReader(client, bucket="bench-bucket", prefix="logs/")
    assert list(reader.iter_payloads()) == ["00000001_x", "00000002_x"]
    assert reader.malformed_records == 1
    assert client.bodies["logs/a"].closed


def test_s3_reader_list_failure_is_fatal() -> None:
    class _ListFailureClient(_PaginatingClient):
        def list_objects_v2(self, **kwargs: object) -> dict[str, object]:
            raise _client_error("AccessDenied", "Access Denied", "ListObjectsV2")

    reader = S3SinkReader(_ListFailureClient(), bucket="bench-bucket", prefix="logs/")
    with pytest.raises(SinkUnavailableError, match="S3_LIST_FAILED"):
        list(reader.iter_payloads())


def test_s3_reader_get_object_failure_is_fatal() -> None:
    client = _FakeS3Client(
        pages=[{"Contents": [{"Key": "logs/a"}, {"Key": "logs/gone"}], "IsTruncated": False}],
        objects={"logs/a": _body("00000001_x")},
    )
    reader = S3SinkReader(client, bucket="bench-bucket", prefix="logs/")
    payloads = reader.iter_payloads()
    assert next(payloads) == "00000001_x"
    with pytest.raises(SinkUnavailableError, match="S3_GET_OBJECT_FAILED"):
        next(payloads)


def test_s3_reader_truncated_page_without_token_is_fatal() -> None:
    client = _FakeS3Client(
        pages=[{"Contents": [], "IsTruncated": True}],
        objects={},
    )
    reader = S3SinkReader(client, bucket="bench-bucket", prefix="logs/")
    with pytest.raises(SinkUnavailableError, match="S3_CONTINUATION_TOKEN_MISSING"):
        list(reader.iter_payloads())


def test_s3_reader_body_read_failure_is_fatal_and_closes_body() -> None:
    class _BrokenBody(io.BytesIO):
        def read(self, amt: int | None = None) -> bytes:  # type: ignore[override]
            raise OSError("connection reset")

    broken = _BrokenBody(b"")

    class _BrokenBodyClient(_PaginatingClient):
        def list_objects_v2(self, **kwargs: object) -> dict[str, object]:
            return {"Contents": [{"Key": "logs/a"}], "IsTruncated": False}

        def get_object(self, *, Bucket: str, Key: str) -> dict[str, object]:
            return {"Body": broken}

    reader = S3SinkReader(_BrokenBodyClient(), bucket="bench-bucket", prefix="logs/")
    with pytest.raises(SinkUnavailableError, match="S3_READ_OBJECT_FAILED"):
        list(reader.iter_payloads())
    assert broken.closed
