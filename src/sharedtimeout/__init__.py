"""Shared Timeout - one deadline, read many times.

A ``SharedTimeout`` computes its deadline once, at creation, and exposes it
to every layer of a call chain that needs it:

- ``remaining()`` and ``remaining_seconds()`` (and friends) for APIs that
  take a timeout value,
- ``as_cancellation_signal()`` for code that cooperates with a
  ``CancellationToken``.

Nested layers observe the same absolute deadline instead of starting a
fresh timeout each.

Example usage:
    from sharedtimeout import SharedTimeout

    with SharedTimeout.from_seconds(10) as timeout:
        response = client.get(url, timeout=timeout.remaining_seconds())
        token = timeout.as_cancellation_signal()
        for row in parse(response, cancel=token):
            token.raise_if_cancelled()
            store(row)
"""

from .cancellation import (
    CallbackRegistration,
    CancellationToken,
    DeadlineCancellationSource,
)
from .config import TimeoutConfig, load_timeout_config
from .errors import (
    InvalidDurationError,
    OperationCancelledError,
    SharedTimeoutError,
    TimeoutDisposedError,
)
from .kernel import Duration, parse_duration
from .timeout import SharedTimeout

__version__ = "0.1.0"

__all__ = [
    # Value Object
    "SharedTimeout",
    # Cancellation
    "CancellationToken",
    "CallbackRegistration",
    "DeadlineCancellationSource",
    # Configuration
    "TimeoutConfig",
    "load_timeout_config",
    # Durations
    "Duration",
    "parse_duration",
    # Errors
    "SharedTimeoutError",
    "TimeoutDisposedError",
    "OperationCancelledError",
    "InvalidDurationError",
]
