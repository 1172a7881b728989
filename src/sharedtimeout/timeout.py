"""Shared Timeout value object.

A ``SharedTimeout`` captures one deadline (creation instant + budget) and
lets several layers of a call chain read it without ever resetting it:
as a remaining ``timedelta``, as whole units, or as a cancellation token.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timedelta
from typing import Any, Optional

from .cancellation import CancellationToken, DeadlineCancellationSource
from .config import TimeoutConfig, load_timeout_config
from .errors import TimeoutDisposedError
from .kernel import parse_duration

logger = logging.getLogger(__name__)

_MILLISECOND = timedelta(milliseconds=1)
_SECOND = timedelta(seconds=1)
_MINUTE = timedelta(minutes=1)
_HOUR = timedelta(hours=1)
_DAY = timedelta(days=1)


def _truncate(remaining: timedelta, unit: timedelta) -> int:
    # int() truncates toward zero for both signs
    return int(remaining / unit)


class SharedTimeout:
    """Reusable timeout bound to a single absolute deadline.

    The deadline ``created_at + budget`` is fixed at construction. Every
    read recomputes the remaining time from the clock, so a timeout handed
    down a call chain keeps shrinking instead of restarting in each layer.
    A zero or negative budget is valid and yields an elapsed timeout.

    The instance owns the cancellation source created by
    ``as_cancellation_signal``. Only the owner closes it (directly or by
    leaving a ``with`` block), and only after every borrower is done.

    Attributes:
        created_at: Wall-clock time at construction.
        budget: Duration added to ``created_at`` to form the deadline.

    Examples:
        >>> with SharedTimeout.from_seconds(30) as timeout:
        ...     fetch(url, timeout=timeout.remaining_seconds())
        ...     run_job(cancel=timeout.as_cancellation_signal())
    """

    def __init__(self, budget: timedelta = timedelta(0), *, daemon_timers: bool = True) -> None:
        """Initialize a timeout whose deadline is now + ``budget``.

        Args:
            budget: Time budget; defaults to zero (already elapsed).
            daemon_timers: Run the cancellation timer as a daemon thread.
        """
        self._started = time.monotonic()
        self._created_at = datetime.now()
        self._budget = budget
        self._daemon_timers = daemon_timers
        self._lock = threading.Lock()
        self._source: Optional[DeadlineCancellationSource] = None
        self._closed = False

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_duration(cls, value: Any) -> "SharedTimeout":
        """Create a timeout from a duration.

        Args:
            value: A ``timedelta`` or any duration-like value understood
                by ``parse_duration`` (``5``, ``"250ms"``, ``"PT1M"``).

        Raises:
            InvalidDurationError: If ``value`` is not a duration.
        """
        return cls(parse_duration(value))

    @classmethod
    def from_milliseconds(cls, value: int) -> "SharedTimeout":
        """Create a timeout from a number of milliseconds.

        Args:
            value: Budget in milliseconds; zero or negative gives an
                elapsed timeout.

        Returns:
            SharedTimeout whose deadline is now + ``value`` ms.

        Examples:
            >>> SharedTimeout.from_milliseconds(1500).budget
            datetime.timedelta(seconds=1, microseconds=500000)
        """
        return cls(timedelta(milliseconds=value))

    @classmethod
    def from_seconds(cls, value: int) -> "SharedTimeout":
        """Create a timeout from a number of seconds."""
        return cls(timedelta(seconds=value))

    @classmethod
    def from_minutes(cls, value: int) -> "SharedTimeout":
        """Create a timeout from a number of minutes."""
        return cls(timedelta(minutes=value))

    @classmethod
    def from_hours(cls, value: int) -> "SharedTimeout":
        """Create a timeout from a number of hours."""
        return cls(timedelta(hours=value))

    @classmethod
    def from_days(cls, value: int) -> "SharedTimeout":
        """Create a timeout from a number of days."""
        return cls(timedelta(days=value))

    @classmethod
    def from_config(cls, config: Optional[TimeoutConfig] = None) -> "SharedTimeout":
        """Create a timeout using the configured default budget.

        Args:
            config: Configuration to use; loaded from the environment
                when omitted.
        """
        cfg = config if config is not None else load_timeout_config()
        return cls(cfg.default_budget, daemon_timers=cfg.daemon_timers)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def budget(self) -> timedelta:
        return self._budget

    @property
    def deadline(self) -> datetime:
        """Wall-clock deadline, for display and logging."""
        return self._created_at + self._budget

    def remaining(self) -> timedelta:
        """Time left until the deadline; negative once it has passed."""
        elapsed = time.monotonic() - self._started
        return self._budget - timedelta(seconds=elapsed)

    def remaining_milliseconds(self) -> int:
        """Whole milliseconds left, truncated toward zero.

        Returns:
            Remaining milliseconds; zero or negative once elapsed.
        """
        return _truncate(self.remaining(), _MILLISECOND)

    def remaining_seconds(self) -> int:
        """Whole seconds left, truncated toward zero."""
        return _truncate(self.remaining(), _SECOND)

    def remaining_minutes(self) -> int:
        """Whole minutes left, truncated toward zero."""
        return _truncate(self.remaining(), _MINUTE)

    def remaining_hours(self) -> int:
        """Whole hours left, truncated toward zero."""
        return _truncate(self.remaining(), _HOUR)

    def remaining_days(self) -> int:
        """Whole days left, truncated toward zero."""
        return _truncate(self.remaining(), _DAY)

    @property
    def is_elapsed(self) -> bool:
        return self.remaining() <= timedelta(0)

    def as_cancellation_signal(self) -> CancellationToken:
        """Return the cancellation token bound to this deadline.

        The first call arms a timer for the time remaining at that moment;
        later calls return the same token. An elapsed timeout returns a
        token that is already cancelled.

        Raises:
            TimeoutDisposedError: If the timeout was closed.
        """
        with self._lock:
            if self._closed:
                raise TimeoutDisposedError()
            if self._source is None:
                self._source = DeadlineCancellationSource(
                    self.remaining(),
                    clock_remaining=self.remaining,
                    daemon=self._daemon_timers,
                )
            return self._source.token

    # ------------------------------------------------------------------
    # Disposal
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the cancellation timer, if one was armed.

        Safe to call repeatedly. Borrowers still holding the token get
        ``TimeoutDisposedError`` on their next use.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            source, self._source = self._source, None

        if source is not None:
            source.close()

    def __enter__(self) -> "SharedTimeout":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        if self._closed:
            return f"<SharedTimeout [closed] budget={self._budget}>"
        return f"<SharedTimeout budget={self._budget} remaining={self.remaining()}>"
