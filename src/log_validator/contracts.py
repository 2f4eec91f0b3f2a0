"""Record identity + error taxonomy for delivery validation."""

from __future__ import annotations

from typing import Any, Mapping


RECORD_ID_WIDTH = 8
MAX_RECORD_ID = 2**32 - 1

_DIGITS = frozenset("0123456789")


class ValidatorConfigError(ValueError):
    """Required input missing or invalid; fatal before any sink is read."""


class SinkUnavailableError(RuntimeError):
    """Listing or reading from a sink failed; the run is aborted."""


class ThrottlingError(SinkUnavailableError):
    """Sink kept throttling after the retry budget was spent."""


class MalformedRecordError(ValueError):
    """A single payload could not be decoded or carried no usable identity."""


def parse_record_id(log: str) -> int:
    """Return the record identity encoded in the first 8 characters of ``log``.

    Producer lines look like ``10029999_1639151827578_<trailer>``; only the
    zero-padded id prefix matters here.
    """
    if not isinstance(log, str):
        raise MalformedRecordError(f"RECORD_LOG_NOT_STRING:{type(log).__name__}")
    if len(log) < RECORD_ID_WIDTH:
        raise MalformedRecordError(f"RECORD_LOG_TOO_SHORT:{log!r}")
    prefix = log[:RECORD_ID_WIDTH]
    if not set(prefix) <= _DIGITS:
        raise MalformedRecordError(f"RECORD_ID_NOT_NUMERIC:{prefix!r}")
    value = int(prefix, 10)
    if value > MAX_RECORD_ID:
        raise MalformedRecordError(f"RECORD_ID_OUT_OF_RANGE:{prefix!r}")
    return value


def record_log_field(record: Any) -> str:
    if not isinstance(record, Mapping):
        raise MalformedRecordError(f"RECORD_NOT_OBJECT:{type(record).__name__}")
    log = record.get("Log")
    if log is None:
        raise MalformedRecordError("RECORD_LOG_MISSING")
    if not isinstance(log, str):
        raise MalformedRecordError(f"RECORD_LOG_NOT_STRING:{type(log).__name__}")
    return log
