"""
Ledger notifications and the synchronous bus that fans them out.

Each successful mutating call publishes exactly one event carrying the caller
identity and the post-update values. Subscribers are invoked in registration
order, on the calling thread, right after the mutation has been applied.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from threading import RLock
from typing import Any, Callable, ClassVar, Dict, List

from loguru import logger


@dataclass(frozen=True)
class LedgerEvent:
    name: ClassVar[str] = "LedgerEvent"

    identity: str

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, **asdict(self)}


@dataclass(frozen=True)
class AttemptRecorded(LedgerEvent):
    name: ClassVar[str] = "AttemptRecorded"

    attempts: int = 0


@dataclass(frozen=True)
class SuccessRecorded(LedgerEvent):
    name: ClassVar[str] = "SuccessRecorded"

    successes: int = 0


@dataclass(frozen=True)
class FailureRecorded(LedgerEvent):
    name: ClassVar[str] = "FailureRecorded"

    failures: int = 0


@dataclass(frozen=True)
class ScoreSubmitted(LedgerEvent):
    name: ClassVar[str] = "ScoreSubmitted"

    amount: int = 0
    submitted_score_sum: int = 0
    submitted_score_count: int = 0


@dataclass(frozen=True)
class SessionStarted(LedgerEvent):
    name: ClassVar[str] = "SessionStarted"

    start: int = 0


@dataclass(frozen=True)
class SessionEnded(LedgerEvent):
    name: ClassVar[str] = "SessionEnded"

    duration: int = 0
    total_session_time: int = 0
    session_count: int = 0


Listener = Callable[[LedgerEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._lock = RLock()

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()

    def publish(self, event: LedgerEvent) -> None:
        """
        Deliver to every subscriber. A failing subscriber is logged and
        skipped; it never undoes the mutation that produced the event.
        """
        with self._lock:
            listeners = list(self._listeners)
        logger.debug("Event {} | {}", event.name, event.to_dict())
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed for {}", event.name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)
