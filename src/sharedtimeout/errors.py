"""Shared Timeout Errors.

An elapsed timeout is a normal value, not an error. The exceptions here
cover misuse (touching the cancellation view after the owner closed the
timeout) and cooperative cancellation raised on request.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional


class SharedTimeoutError(Exception):
    """Base exception for shared timeout errors."""

    pass


class TimeoutDisposedError(SharedTimeoutError, RuntimeError):
    """Raised when the cancellation view is used after the timeout was closed."""

    def __init__(self, message: str = "SharedTimeout has been closed") -> None:
        super().__init__(message)


class OperationCancelledError(SharedTimeoutError):
    """Raised by ``CancellationToken.raise_if_cancelled`` once the deadline passed.

    Attributes:
        remaining: Remaining time observed when the error was raised
            (zero or negative).
    """

    def __init__(self, remaining: Optional[timedelta] = None) -> None:
        self.remaining = remaining
        message = "Operation cancelled: shared deadline elapsed"
        if remaining is not None:
            message += f" ({remaining.total_seconds():.3f}s remaining)"
        super().__init__(message)


class InvalidDurationError(SharedTimeoutError, ValueError):
    """Raised when a duration-like value cannot be converted to a timedelta."""

    def __init__(self, value: object, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid duration {value!r}: {reason}")
