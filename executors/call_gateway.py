"""
Adapter between the hosting environment and the ledger.

The host hands every call an already-authenticated caller, an optional
transferred value and a timestamp. The gateway turns those into explicit
arguments for PerformanceLedger, keeps custody of accepted score values, and
pins the ledger clock to the host timestamp for the duration of the call.
"""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional

from loguru import logger
from pydantic import BaseModel, Field

from ..controllers.performance_ledger import LedgerConfig, PerformanceLedger
from ..utils.errors import LedgerError, UnexpectedValue, UnknownOperation
from ..utils.events import EventBus


class CallContext(BaseModel):
    caller: str = Field(min_length=1)
    value: int = Field(0, ge=0)
    # Host-provided unix seconds; falls back to wall clock when absent
    timestamp: Optional[int] = Field(None, ge=0)


# wire name -> ledger method name
OPERATIONS: Dict[str, str] = {
    "recordAttempt": "record_attempt",
    "recordSuccess": "record_success",
    "recordFailure": "record_failure",
    "submitScore": "submit_score",
    "startSession": "start_session",
    "endSession": "end_session",
    "cancelActiveSession": "cancel_active_session",
    "getSummary": "get_summary",
    "getActiveSessionStart": "get_active_session_start",
    "getAverageSubmittedScore": "get_average_submitted_score",
}
VALUE_OPERATION = "submit_score"


class _HostClock:
    """Per-thread timestamp override used as the ledger's clock."""

    def __init__(self) -> None:
        self._local = threading.local()

    def pin(self, ts: Optional[int]) -> None:
        self._local.ts = ts

    def __call__(self) -> int:
        ts = getattr(self._local, "ts", None)
        return int(time.time()) if ts is None else ts


def resolve_operation(name: str) -> str:
    if name in OPERATIONS:
        return OPERATIONS[name]
    if name in OPERATIONS.values():
        return name
    raise UnknownOperation(name)


class CallGateway:
    def __init__(self, config: Optional[LedgerConfig] = None, *, bus: Optional[EventBus] = None) -> None:
        self._clock = _HostClock()
        self.ledger = PerformanceLedger(config, clock=self._clock, bus=bus)
        self._held_balance = 0
        self._balance_lock = threading.Lock()

    @property
    def held_balance(self) -> int:
        """Sum of all accepted score transfers. There is no way to withdraw it."""
        with self._balance_lock:
            return self._held_balance

    def invoke(self, operation: str, context: CallContext) -> Any:
        method_name = resolve_operation(operation)
        if context.value and method_name != VALUE_OPERATION:
            logger.warning("Rejected {} from {}: carries value {}", operation, context.caller, context.value)
            raise UnexpectedValue(operation, context.value)

        method: Callable[..., Any] = getattr(self.ledger, method_name)
        args: tuple = (context.caller,)
        if method_name == VALUE_OPERATION:
            args = (context.caller, context.value)

        self._clock.pin(context.timestamp)
        try:
            result = method(*args)
        except LedgerError as e:
            logger.debug("Call {} by {} rejected: {}", operation, context.caller, e)
            raise
        finally:
            self._clock.pin(None)

        if method_name == VALUE_OPERATION:
            with self._balance_lock:
                self._held_balance += context.value
        return result

    def call(self, operation: str, caller: str, *, value: int = 0, timestamp: Optional[int] = None) -> Any:
        return self.invoke(operation, CallContext(caller=caller, value=value, timestamp=timestamp))
