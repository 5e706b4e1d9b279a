"""
Performance ledger: the public record and session operations.

Every operation takes the caller identity explicitly and runs to completion
under that identity's lock, so calls on one identity are atomic and totally
ordered while different identities never wait on each other. A rejected call
changes nothing and publishes nothing.
"""
from __future__ import annotations

import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional

import yaml
from loguru import logger
from pydantic import BaseModel

from ..controllers.session_tracker import NO_SESSION, SessionTracker
from ..executors.webhook_publisher import WebhookPublisher
from ..utils.errors import InvalidScore, LedgerError
from ..utils.event_log import EventLog
from ..utils.events import (
    AttemptRecorded,
    EventBus,
    FailureRecorded,
    ScoreSubmitted,
    SessionEnded,
    SessionStarted,
    SuccessRecorded,
)
from ..utils.performance_tracker import PerformanceRecord, RecordStore

INDEXER_URL_ENV = "PERF_LEDGER_INDEXER_URL"


class LedgerConfig(BaseModel):
    # Off-chain indexer (webhook) settings; disabled when indexer_url is unset
    indexer_url: Optional[str] = None
    indexer_timeout_s: float = 5.0
    indexer_retries: int = 3
    indexer_backoff_s: float = 0.5
    event_log_enabled: bool = True
    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None


def load_config(path: Optional[Path | str] = None) -> LedgerConfig:
    """
    Build a LedgerConfig from an optional YAML file. The indexer URL may be
    overridden from the environment (after .env has been loaded by the caller).
    """
    data: Dict = {}
    if path is not None:
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Config not found: {cfg_path}")
        with cfg_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    env_url = os.getenv(INDEXER_URL_ENV)
    if env_url:
        data["indexer_url"] = env_url
    return LedgerConfig(**data)


def _wall_clock() -> int:
    return int(time.time())


class PerformanceLedger:
    """Record store + session tracker behind per-identity locks, publishing to an EventBus."""

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        *,
        clock: Callable[[], int] = _wall_clock,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.config = config or LedgerConfig()
        self._clock = clock
        self.bus = bus or EventBus()
        self.store = RecordStore()
        self.sessions = SessionTracker(self.store)
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

        self.event_log: Optional[EventLog] = None
        if self.config.event_log_enabled:
            self.event_log = EventLog()
            self.bus.subscribe(self.event_log)
        self.publisher: Optional[WebhookPublisher] = None
        if self.config.indexer_url:
            self.publisher = WebhookPublisher(
                url=self.config.indexer_url,
                timeout_s=self.config.indexer_timeout_s,
                retries=self.config.indexer_retries,
                backoff_s=self.config.indexer_backoff_s,
            )
            self.bus.subscribe(self.publisher)

    def start(self) -> None:
        logger.info(
            "Starting PerformanceLedger | indexer={} event_log={}",
            self.config.indexer_url,
            self.config.event_log_enabled,
        )
        if self.publisher is not None:
            self.publisher.start()

    def stop(self) -> None:
        logger.info("Stopping PerformanceLedger | identities={}", len(self.store))
        if self.publisher is not None:
            self.publisher.stop()

    def _lock_for(self, identity: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(identity)
            if lock is None:
                lock = threading.Lock()
                self._locks[identity] = lock
            return lock

    # --- Record operations ---
    def record_attempt(self, identity: str) -> int:
        with self._lock_for(identity):
            record = self.store.record_attempt(identity, self._clock())
            event = AttemptRecorded(identity, attempts=record.attempts)
            self.bus.publish(event)
        logger.debug("Attempt recorded | identity={} attempts={}", identity, event.attempts)
        return event.attempts

    def record_success(self, identity: str) -> int:
        with self._lock_for(identity):
            record = self.store.record_success(identity, self._clock())
            event = SuccessRecorded(identity, successes=record.successes)
            self.bus.publish(event)
        logger.debug("Success recorded | identity={} successes={}", identity, event.successes)
        return event.successes

    def record_failure(self, identity: str) -> int:
        with self._lock_for(identity):
            record = self.store.record_failure(identity, self._clock())
            event = FailureRecorded(identity, failures=record.failures)
            self.bus.publish(event)
        logger.debug("Failure recorded | identity={} failures={}", identity, event.failures)
        return event.failures

    def submit_score(self, identity: str, amount: int) -> ScoreSubmitted:
        if amount <= 0:
            logger.warning("Rejected score {} from {}: must be positive", amount, identity)
            raise InvalidScore(identity, amount)
        with self._lock_for(identity):
            record = self.store.add_score(identity, amount, self._clock())
            event = ScoreSubmitted(
                identity,
                amount=amount,
                submitted_score_sum=record.submitted_score_sum,
                submitted_score_count=record.submitted_score_count,
            )
            self.bus.publish(event)
        logger.debug(
            "Score submitted | identity={} amount={} sum={} count={}",
            identity,
            amount,
            event.submitted_score_sum,
            event.submitted_score_count,
        )
        return event

    # --- Session operations ---
    def start_session(self, identity: str) -> int:
        with self._lock_for(identity):
            try:
                start = self.sessions.start(identity, self._clock())
            except LedgerError as e:
                logger.warning("startSession rejected for {}: {}", identity, e)
                raise
            self.bus.publish(SessionStarted(identity, start=start))
        return start

    def end_session(self, identity: str) -> SessionEnded:
        with self._lock_for(identity):
            try:
                duration, record = self.sessions.end(identity, self._clock())
            except LedgerError as e:
                logger.warning("endSession rejected for {}: {}", identity, e)
                raise
            event = SessionEnded(
                identity,
                duration=duration,
                total_session_time=record.total_session_time,
                session_count=record.session_count,
            )
            self.bus.publish(event)
        return event

    def cancel_active_session(self, identity: str) -> None:
        # Cancellation publishes no event; only last_active moves
        with self._lock_for(identity):
            try:
                self.sessions.cancel(identity, self._clock())
            except LedgerError as e:
                logger.warning("cancelActiveSession rejected for {}: {}", identity, e)
                raise

    # --- Queries (never fail, never create entries) ---
    def _existing_lock(self, identity: str) -> Optional[threading.Lock]:
        # Every mutating call registers a lock first, so no lock means no state
        with self._locks_guard:
            return self._locks.get(identity)

    def get_summary(self, identity: str) -> PerformanceRecord:
        lock = self._existing_lock(identity)
        if lock is None:
            return PerformanceRecord()
        with lock:
            return self.store.get(identity)

    def get_active_session_start(self, identity: str) -> int:
        lock = self._existing_lock(identity)
        if lock is None:
            return NO_SESSION
        with lock:
            return self.sessions.active_start(identity)

    def get_average_submitted_score(self, identity: str) -> int:
        return self.get_summary(identity).average_submitted_score()
