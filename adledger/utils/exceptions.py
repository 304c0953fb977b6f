"""
Exception types.

Defines the error taxonomy of the engine. Callers catch LedgerError
subclasses; SQLAlchemy errors are translated where retries give up.
"""

from typing import Any


class LedgerError(Exception):
    """Base class for all engine errors."""
    pass


class ValidationError(LedgerError):
    """
    Bad input or ineligible request.

    Raised synchronously to the caller and never retried.

    Attributes:
        message: Human readable reason
        code: Machine readable reason code
    """

    def __init__(self, message: str, code: str = "validation_error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class TransientStoreError(LedgerError):
    """Lock contention or a connection blip in the store."""
    pass


class BalanceUpdateError(TransientStoreError):
    """
    Balance update failed after its earning record was written.

    The record is kept and committed; the error is surfaced to the caller.
    """

    def __init__(self, message: str, earning: Any = None) -> None:
        super().__init__(message)
        self.earning = earning


class DownstreamNotificationError(LedgerError):
    """Notification delivery failed. Logged, never propagated."""
    pass


class InvariantViolation(LedgerError):
    """Operation would break a state invariant; state is left unchanged."""
    pass
