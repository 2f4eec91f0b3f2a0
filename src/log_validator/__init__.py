"""Log delivery validator: loss / duplication checks for log pipeline sinks."""

from .contracts import (
    MalformedRecordError,
    SinkUnavailableError,
    ThrottlingError,
    ValidatorConfigError,
    parse_record_id,
)
from .ledger import DeduplicationLedger
from .report import ValidationReport, build_report
from .validator import DeliveryValidator

__all__ = [
    "DeduplicationLedger",
    "DeliveryValidator",
    "MalformedRecordError",
    "SinkUnavailableError",
    "ThrottlingError",
    "ValidationReport",
    "ValidatorConfigError",
    "build_report",
    "parse_record_id",
]
