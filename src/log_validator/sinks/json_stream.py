"""Incremental decoder for concatenated JSON records in one object body."""

from __future__ import annotations

import codecs
import json
from typing import Any, Iterator, Protocol

from ..contracts import MalformedRecordError, record_log_field


DEFAULT_CHUNK_SIZE = 64 * 1024

_DECODER = json.JSONDecoder()
_WHITESPACE = " \t\n\r"
_TOKEN_STOPS = frozenset(',:{}[]"' + _WHITESPACE)
_MAX_TOKEN_FRAGMENT = 16


class ReadableBody(Protocol):
    def read(self, amt: int | None = None) -> bytes:
        ...


def iter_json_stream(
    body: ReadableBody,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    source: str = "",
) -> Iterator[Any]:
    """Yield one decoded value (or MalformedRecordError) per record in ``body``.

    The body is read ``chunk_size`` bytes at a time. After a malformed record
    decoding resumes at the next ``{`` at or past the error position in the
    same stream, so nothing nested inside the rejected record is decoded.
    """
    text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    pos = 0
    exhausted = False
    while True:
        pos = _skip_whitespace(buffer, pos)
        if pos >= len(buffer):
            if exhausted:
                return
            buffer, pos, exhausted = _refill(body, text_decoder, buffer, pos, chunk_size)
            continue
        try:
            value, end = _DECODER.raw_decode(buffer, pos)
        except json.JSONDecodeError as exc:
            if not exhausted and _needs_more_input(exc, buffer):
                buffer, pos, exhausted = _refill(body, text_decoder, buffer, pos, chunk_size)
                continue
            yield MalformedRecordError(f"RECORD_JSON_INVALID:{source}:{exc.msg} at char {exc.pos}")
            resume = buffer.find("{", max(exc.pos, pos + 1))
            if resume < 0:
                if exhausted:
                    return
                buffer, pos = "", 0
                buffer, pos, exhausted = _refill(body, text_decoder, buffer, pos, chunk_size)
                continue
            pos = resume
            continue
        pos = end
        yield value


def _refill(
    body: ReadableBody,
    text_decoder: codecs.IncrementalDecoder,
    buffer: str,
    pos: int,
    chunk_size: int,
) -> tuple[str, int, bool]:
    chunk = body.read(chunk_size)
    if not chunk:
        tail = text_decoder.decode(b"", final=True)
        return buffer[pos:] + tail, 0, True
    return buffer[pos:] + text_decoder.decode(chunk), 0, False


def _skip_whitespace(buffer: str, pos: int) -> int:
    while pos < len(buffer) and buffer[pos] in _WHITESPACE:
        pos += 1
    return pos


def _needs_more_input(exc: json.JSONDecodeError, buffer: str) -> bool:
    # Truncated input fails at the buffer end, inside an unterminated string,
    # or on a bare literal/number fragment cut by the chunk boundary.
    if exc.pos >= len(buffer) or exc.msg.startswith("Unterminated string"):
        return True
    remainder = buffer[exc.pos :]
    return len(remainder) <= _MAX_TOKEN_FRAGMENT and not any(char in _TOKEN_STOPS for char in remainder)


def iter_record_logs(
    body: ReadableBody,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    source: str = "",
) -> Iterator[str | MalformedRecordError]:
    """Yield the ``Log`` field of each record, or the error that skipped it."""
    for value in iter_json_stream(body, chunk_size=chunk_size, source=source):
        if isinstance(value, MalformedRecordError):
            yield value
            continue
        try:
            log = record_log_field(value)
        except MalformedRecordError as exc:
            yield exc
            continue
        yield log
