"""Validator configuration (CLI flags + optional YAML profile)."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml
from jsonschema import Draft202012Validator

from .contracts import ValidatorConfigError
from .sinks.aws import resolve_region
from .sinks.cloudwatch import (
    DEFAULT_MAX_THROTTLE_RETRIES,
    DEFAULT_PAGE_DELAY_SECONDS,
    DEFAULT_PAGE_LIMIT,
    DEFAULT_THROTTLE_BACKOFF_SECONDS,
)


DESTINATIONS = ("s3", "cloudwatch", "file")
MAX_PAGE_LIMIT = 10000

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

PROFILE_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "region": {"type": "string"},
        "destination": {"type": "string"},
        "bucket": {"type": "string"},
        "log_group": {"type": "string"},
        "prefix": {"type": "string"},
        "input_record": {"type": ["integer", "string"]},
        "log_delay": {"type": ["string", "number"]},
        "endpoint_url": {"type": ["string", "null"]},
        "path_style": {"type": ["boolean", "string"]},
        "local_root": {"type": "string"},
        "page_limit": {"type": "integer"},
        "page_delay_seconds": {"type": "number"},
        "throttle_backoff_seconds": {"type": "number"},
        "max_throttle_retries": {"type": "integer"},
    },
}


def _resolve_env(value: Any) -> Any:
    if not value or not isinstance(value, str):
        return value
    match = _ENV_PATTERN.fullmatch(value.strip())
    if match:
        return os.getenv(match.group(1)) or ""
    return value


@dataclass(frozen=True)
class ValidatorConfig:
    destination: str | None = None
    region: str | None = None
    bucket: str | None = None
    log_group: str | None = None
    prefix: str | None = None
    input_record: int = 0
    log_delay: str | None = None
    endpoint_url: str | None = None
    path_style: bool = False
    local_root: str | None = None
    page_limit: int = DEFAULT_PAGE_LIMIT
    page_delay_seconds: float = DEFAULT_PAGE_DELAY_SECONDS
    throttle_backoff_seconds: float = DEFAULT_THROTTLE_BACKOFF_SECONDS
    max_throttle_retries: int | None = DEFAULT_MAX_THROTTLE_RETRIES

    @classmethod
    def load_profile(cls, path: Path) -> "ValidatorConfig":
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ValidatorConfigError(f"PROFILE_UNREADABLE:{path}:{exc}") from exc
        if not isinstance(data, Mapping):
            raise ValidatorConfigError(f"PROFILE_NOT_MAPPING:{path}")
        errors = sorted(Draft202012Validator(PROFILE_SCHEMA).iter_errors(data), key=lambda e: list(e.path))
        if errors:
            messages = "; ".join(error.message for error in errors)
            raise ValidatorConfigError(f"PROFILE_INVALID:{path}:{messages}")
        return cls().merged({key: _resolve_env(value) for key, value in data.items()})

    def merged(self, overrides: Mapping[str, Any]) -> "ValidatorConfig":
        """Return a copy with every non-empty override applied."""
        known = {item.name for item in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in known:
                raise ValidatorConfigError(f"UNKNOWN_SETTING:{key}")
            if value is None or value == "":
                continue
            changes[key] = _coerce(key, value)
        return replace(self, **changes)

    def resolved_region(self) -> str | None:
        return resolve_region(self.region)

    def validate(self) -> "ValidatorConfig":
        destination = (self.destination or "").strip().lower()
        if not destination:
            raise ValidatorConfigError("Log destination for validation required. Use the --destination flag.")
        if destination not in DESTINATIONS:
            raise ValidatorConfigError(
                f"Unsupported log destination {self.destination!r}; expected one of {', '.join(DESTINATIONS)}."
            )
        if destination in {"s3", "cloudwatch"} and not self.resolved_region():
            raise ValidatorConfigError("AWS Region required. Use the --region flag.")
        if destination == "s3" and not self.bucket:
            raise ValidatorConfigError("Bucket name required. Use the --bucket flag.")
        if destination == "cloudwatch" and not self.log_group:
            raise ValidatorConfigError("Log group name required. Use the --log-group flag.")
        if destination in {"s3", "cloudwatch"} and not self.prefix:
            raise ValidatorConfigError("Object prefix required. Use the --prefix flag.")
        if destination == "file" and not self.local_root:
            raise ValidatorConfigError("Local root required. Use the --local-root flag.")
        if self.input_record <= 0:
            raise ValidatorConfigError("Total input record number required. Use the --input-record flag.")
        if not self.log_delay:
            raise ValidatorConfigError("Log delay required. Use the --log-delay flag.")
        if not 0 < self.page_limit <= MAX_PAGE_LIMIT:
            raise ValidatorConfigError(f"page_limit must be between 1 and {MAX_PAGE_LIMIT}")
        if self.page_delay_seconds < 0 or self.throttle_backoff_seconds < 0:
            raise ValidatorConfigError("page/throttle delays must be non-negative")
        if self.max_throttle_retries is not None and self.max_throttle_retries < 0:
            raise ValidatorConfigError("max_throttle_retries must be non-negative")
        return replace(self, destination=destination)


def _coerce(key: str, value: Any) -> Any:
    try:
        if key in {"input_record", "page_limit", "max_throttle_retries"}:
            if isinstance(value, bool):
                raise ValueError(value)
            return int(value)
        if key in {"page_delay_seconds", "throttle_backoff_seconds"}:
            return float(value)
    except (TypeError, ValueError) as exc:
        raise ValidatorConfigError(f"{key} must be numeric, got {value!r}") from exc
    if key == "path_style":
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes"}
        return bool(value)
    if key == "log_delay":
        return str(value)
    return value
