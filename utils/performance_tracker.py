"""
Per-identity performance records and the store that owns them.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Dict, Iterator


@dataclass
class PerformanceRecord:
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    total_session_time: int = 0
    session_count: int = 0
    last_active: int = 0
    submitted_score_sum: int = 0
    submitted_score_count: int = 0

    def average_submitted_score(self) -> int:
        # Floor division; an identity with no submissions averages 0
        if self.submitted_score_count == 0:
            return 0
        return self.submitted_score_sum // self.submitted_score_count

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class RecordStore:
    """
    Mapping of identity -> PerformanceRecord. Entries are created lazily with
    zero defaults on the first mutating touch and are never removed.
    The store does no locking of its own; callers serialize per identity.
    """

    def __init__(self) -> None:
        self._records: Dict[str, PerformanceRecord] = {}

    def touch(self, identity: str) -> PerformanceRecord:
        """Get-or-create the live record for a mutating operation."""
        record = self._records.get(identity)
        if record is None:
            record = PerformanceRecord()
            self._records[identity] = record
        return record

    def get(self, identity: str) -> PerformanceRecord:
        """Return a detached copy; unknown identities read as all zeros."""
        record = self._records.get(identity)
        if record is None:
            return PerformanceRecord()
        return replace(record)

    # --- Mutations (all stamp last_active) ---
    def record_attempt(self, identity: str, now: int) -> PerformanceRecord:
        record = self.touch(identity)
        record.attempts += 1
        record.last_active = now
        return record

    def record_success(self, identity: str, now: int) -> PerformanceRecord:
        record = self.touch(identity)
        record.attempts += 1
        record.successes += 1
        record.last_active = now
        return record

    def record_failure(self, identity: str, now: int) -> PerformanceRecord:
        record = self.touch(identity)
        record.attempts += 1
        record.failures += 1
        record.last_active = now
        return record

    def add_score(self, identity: str, amount: int, now: int) -> PerformanceRecord:
        """Fold an already-validated positive amount into the score totals."""
        record = self.touch(identity)
        record.submitted_score_sum += amount
        record.submitted_score_count += 1
        record.last_active = now
        return record

    def add_session(self, identity: str, duration: int, now: int) -> PerformanceRecord:
        record = self.touch(identity)
        record.total_session_time += duration
        record.session_count += 1
        record.last_active = now
        return record

    def mark_active(self, identity: str, now: int) -> PerformanceRecord:
        record = self.touch(identity)
        record.last_active = now
        return record

    def __contains__(self, identity: object) -> bool:
        return identity in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._records))
