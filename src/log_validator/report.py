"""Loss / duplication report for a validation run."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .contracts import ValidatorConfigError


@dataclass(frozen=True)
class ValidationReport:
    destination: str
    total_input: int
    total_destination: int
    unique: int
    duplicate: int
    delay: str
    percent_loss: int
    missing: int
    objects_scanned: int | None = None
    malformed: int = 0

    def lines(self) -> list[str]:
        rows: list[tuple[str, Any]] = []
        if self.objects_scanned is not None:
            rows.append(("total_s3_obj", self.objects_scanned))
        rows.extend(
            [
                ("total_input", self.total_input),
                ("total_destination", self.total_destination),
                ("unique", self.unique),
                ("duplicate", self.duplicate),
                ("delay", self.delay),
                ("percent_loss", self.percent_loss),
                ("missing", self.missing),
            ]
        )
        return [f"{label}, {value}" for label, value in rows]

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def build_report(
    *,
    total_input: int,
    total_observed: int,
    unique_observed: int,
    delay: str,
    destination: str = "",
    objects_scanned: int | None = None,
    malformed: int = 0,
) -> ValidationReport:
    """Derive loss metrics relative to the producer's input count.

    ``missing`` and ``percent_loss`` go negative when more unique records
    arrived than were claimed as input; that is reported as-is.
    """
    total_input = int(total_input)
    if total_input <= 0:
        raise ValidatorConfigError(f"INPUT_RECORD_NOT_POSITIVE:{total_input}")
    unique = int(unique_observed)
    total_observed = int(total_observed)
    shortfall = total_input - unique
    return ValidationReport(
        destination=destination,
        total_input=total_input,
        total_destination=total_observed,
        unique=unique,
        duplicate=total_observed - unique,
        delay=delay,
        percent_loss=_div_toward_zero(shortfall * 100, total_input),
        missing=shortfall,
        objects_scanned=objects_scanned,
        malformed=int(malformed),
    )


def _div_toward_zero(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return -quotient if (numerator < 0) != (denominator < 0) else quotient
