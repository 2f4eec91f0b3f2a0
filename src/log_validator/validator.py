"""Delivery validation run: sink read-back -> dedup ledger -> report."""

from __future__ import annotations

import logging

from .contracts import MalformedRecordError, ValidatorConfigError, parse_record_id
from .ledger import DeduplicationLedger
from .report import ValidationReport, build_report
from .sinks import SinkReader

logger = logging.getLogger(__name__)


class DeliveryValidator:
    """Reconciles what one sink holds against the producer's input count.

    Sinks under test are at-least-once, so the same identity may show up
    many times; ``total_observed`` counts every parsed payload while the
    ledger keeps only distinct identities. SinkUnavailableError raised by
    the reader propagates and no report is built.
    """

    def __init__(self, reader: SinkReader, ledger: DeduplicationLedger | None = None) -> None:
        self.reader = reader
        self.ledger = ledger if ledger is not None else DeduplicationLedger()
        self.total_observed = 0
        self.malformed = 0

    def scan(self) -> None:
        for log in self.reader.iter_payloads():
            try:
                identity = parse_record_id(log)
            except MalformedRecordError as exc:
                self.malformed += 1
                logger.warning("[TEST ERROR] Malformed log entry destination=%s error=%s", self.reader.kind, exc)
                continue
            self.total_observed += 1
            self.ledger.insert(identity)

    def run(self, *, total_input: int, delay: str) -> ValidationReport:
        if int(total_input) <= 0:
            raise ValidatorConfigError(f"INPUT_RECORD_NOT_POSITIVE:{total_input}")
        self.scan()
        malformed = self.malformed + self.reader.malformed_records
        objects_scanned = self.reader.objects_scanned if self.reader.kind != "cloudwatch" else None
        logger.info(
            "Validation scan complete destination=%s observed=%s unique=%s malformed=%s",
            self.reader.kind,
            self.total_observed,
            self.ledger.size(),
            malformed,
        )
        return build_report(
            total_input=total_input,
            total_observed=self.total_observed,
            unique_observed=self.ledger.size(),
            delay=delay,
            destination=self.reader.kind,
            objects_scanned=objects_scanned,
            malformed=malformed,
        )
