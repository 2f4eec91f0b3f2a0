"""Deduplication ledger for one validation run."""

from __future__ import annotations


class DeduplicationLedger:
    """Set of record identities seen in the sink.

    Only cardinality is tracked; how many copies of an identity arrived is
    derived later from the parsed-payload counter.
    """

    def __init__(self) -> None:
        self._identities: set[int] = set()

    def insert(self, identity: int) -> None:
        self._identities.add(int(identity))

    def size(self) -> int:
        return len(self._identities)

    def __len__(self) -> int:
        return len(self._identities)

    def __contains__(self, identity: object) -> bool:
        return identity in self._identities
