"""
Ledger error taxonomy. Every error is a rejected call, never a system fault.
"""
from __future__ import annotations


class LedgerError(Exception):
    """Base class for caller-correctable precondition violations."""


class InvalidScore(LedgerError):
    def __init__(self, identity: str, amount: int) -> None:
        super().__init__(f"Score must be positive, got {amount} from {identity}")
        self.identity = identity
        self.amount = amount


class SessionAlreadyActive(LedgerError):
    def __init__(self, identity: str, started_at: int) -> None:
        super().__init__(f"Session already active for {identity} (started at {started_at})")
        self.identity = identity
        self.started_at = started_at


class NoActiveSession(LedgerError):
    def __init__(self, identity: str) -> None:
        super().__init__(f"No active session for {identity}")
        self.identity = identity


# --- Gateway-level rejections (raised before the core is reached) ---
class UnknownOperation(LedgerError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown operation: {name}")
        self.name = name


class UnexpectedValue(LedgerError):
    def __init__(self, operation: str, value: int) -> None:
        super().__init__(f"Operation {operation} does not accept a transferred value (got {value})")
        self.operation = operation
        self.value = value
