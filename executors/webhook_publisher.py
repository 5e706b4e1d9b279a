"""
Forwards ledger events to an off-chain indexer over HTTP.

Calling the publisher only enqueues the event; a single worker thread started
by start() drains the queue and POSTs each event with a bounded number of
attempts and exponential backoff. A delivery that still fails is logged and
dropped. Ledger calls never wait on the indexer.
"""
from __future__ import annotations

import queue
import threading
import time
from collections import deque
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from ..utils.events import LedgerEvent


class WebhookPublisher:
    def __init__(
        self,
        *,
        url: str,
        timeout_s: float = 5.0,
        retries: int = 3,
        backoff_s: float = 0.5,
    ) -> None:
        self.url = url
        self.timeout_s = timeout_s
        self.retries = max(1, retries)
        self.backoff_s = backoff_s
        self._client: httpx.Client | None = None
        # None is the shutdown sentinel
        self._queue: queue.Queue[Optional[LedgerEvent]] = queue.Queue()
        self._worker: threading.Thread | None = None
        self._lock = threading.Lock()
        self.delivered = 0
        self.failed = 0
        self.skipped = 0
        self._lat_samples: deque[float] = deque(maxlen=200)

    def start(self) -> None:
        with self._lock:
            if self._worker is not None:
                return
            self._client = httpx.Client(timeout=httpx.Timeout(self.timeout_s, connect=self.timeout_s))
            self._worker = threading.Thread(target=self._run, name="webhook-publisher", daemon=True)
            self._worker.start()
        logger.info("WebhookPublisher started | url={}", self.url)

    def stop(self) -> None:
        """Deliver everything already queued, then shut the worker down."""
        with self._lock:
            worker = self._worker
            self._worker = None
            if worker is not None:
                self._queue.put(None)
        if worker is not None:
            worker.join()
        if self._client is not None:
            self._client.close()
        self._client = None
        logger.info(
            "WebhookPublisher stopped | delivered={} failed={} skipped={}",
            self.delivered,
            self.failed,
            self.skipped,
        )

    def flush(self) -> None:
        """Block until every queued event has been attempted."""
        self._queue.join()

    def __call__(self, event: LedgerEvent) -> None:
        with self._lock:
            if self._worker is not None:
                self._queue.put(event)
                return
            self.skipped += 1
        logger.debug("WebhookPublisher not started; dropping {} for {}", event.name, event.identity)

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is None:
                    return
                self._deliver(event)
            except Exception:
                logger.exception("Indexer delivery crashed for {}", getattr(event, "name", event))
            finally:
                self._queue.task_done()

    def _deliver(self, event: LedgerEvent) -> None:
        ok = self._post(event.to_dict())
        with self._lock:
            if ok:
                self.delivered += 1
            else:
                self.failed += 1
        if not ok:
            logger.warning("Indexer delivery failed for {} ({}) after {} attempts", event.name, event.identity, self.retries)

    def _post(self, body: Dict[str, Any]) -> bool:
        backoff = self.backoff_s
        for attempt in range(self.retries):
            try:
                t0 = time.time()
                r = self._client.post(self.url, json=body, headers={"Content-Type": "application/json"})
                elapsed_ms = (time.time() - t0) * 1000.0
                if 200 <= r.status_code < 300:
                    with self._lock:
                        self._lat_samples.append(elapsed_ms)
                    logger.debug(
                        "POST {} event={} attempt={} latency_ms={:.1f}",
                        self.url,
                        body.get("event"),
                        attempt + 1,
                        elapsed_ms,
                    )
                    return True
                logger.debug("POST {} non-2xx: {} event={}", self.url, r.status_code, body.get("event"))
            except httpx.HTTPError as e:
                logger.debug("POST {} failed (attempt {}): {} event={}", self.url, attempt + 1, e, body.get("event"))
            if attempt < self.retries - 1:
                time.sleep(backoff)
                backoff *= 2
        return False

    def stats(self) -> Dict[str, Optional[float]]:
        """Delivery counters plus mean and p90 latency (ms) of successful posts."""
        with self._lock:
            vals = sorted(self._lat_samples)
            counts = (self.delivered, self.failed, self.skipped)
        n = len(vals)
        mean_ms: Optional[float] = None
        p90_ms: Optional[float] = None
        if n:
            mean_ms = sum(vals) / n
            p90_ms = vals[max(0, min(n - 1, int(round(0.9 * (n - 1)))))]
        return {
            "delivered": float(counts[0]),
            "failed": float(counts[1]),
            "skipped": float(counts[2]),
            "mean_ms": mean_ms,
            "p90_ms": p90_ms,
        }
