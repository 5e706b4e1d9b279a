"""
Single-active-session state machine per identity.

    NoActiveSession --start--> SessionActive(start)
    SessionActive   --end----> NoActiveSession   (duration folded into the record)
    SessionActive   --cancel-> NoActiveSession   (nothing folded)
"""
from __future__ import annotations

from typing import Dict, Tuple

from loguru import logger

from ..utils.errors import NoActiveSession, SessionAlreadyActive
from ..utils.performance_tracker import PerformanceRecord, RecordStore

# Returned by active_start() when no session is open
NO_SESSION = 0


class SessionTracker:
    def __init__(self, store: RecordStore) -> None:
        self._store = store
        # identity -> start timestamp; absence means no active session
        self._active: Dict[str, int] = {}

    def start(self, identity: str, now: int) -> int:
        started_at = self._active.get(identity)
        if started_at is not None:
            raise SessionAlreadyActive(identity, started_at)
        self._active[identity] = now
        self._store.mark_active(identity, now)
        logger.info("Session started | identity={} start={}", identity, now)
        return now

    def end(self, identity: str, now: int) -> Tuple[int, PerformanceRecord]:
        """
        Close the active session and fold its duration into the record.
        A clock that moved backwards yields a zero-length session rather than
        a negative one; the session still counts as completed.
        """
        started_at = self._active.get(identity)
        if started_at is None:
            raise NoActiveSession(identity)
        duration = now - started_at
        if duration < 0:
            logger.warning(
                "Clock regression for {}: start={} now={}. Clamping duration to 0.",
                identity,
                started_at,
                now,
            )
            duration = 0
        record = self._store.add_session(identity, duration, now)
        del self._active[identity]
        logger.info(
            "Session ended | identity={} duration={}s total={}s count={}",
            identity,
            duration,
            record.total_session_time,
            record.session_count,
        )
        return duration, record

    def cancel(self, identity: str, now: int) -> None:
        if identity not in self._active:
            raise NoActiveSession(identity)
        del self._active[identity]
        self._store.mark_active(identity, now)
        logger.info("Session cancelled | identity={}", identity)

    def active_start(self, identity: str) -> int:
        return self._active.get(identity, NO_SESSION)

    def is_active(self, identity: str) -> bool:
        return identity in self._active
