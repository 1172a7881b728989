"""Deadline-bound cancellation primitives.

``DeadlineCancellationSource`` owns a one-shot ``threading.Timer`` and the
event it sets when the deadline passes. Callees only ever receive the
``CancellationToken`` view of it: they can observe, wait and register
callbacks, but they cannot cancel early or release the timer.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
import time
from datetime import timedelta
from typing import Callable, Dict, List, Optional

from .errors import OperationCancelledError, TimeoutDisposedError

logger = logging.getLogger(__name__)

Callback = Callable[[], None]

# Longest single timer wait; longer deadlines re-arm in steps of this size.
MAX_TIMER_WAIT = min(threading.TIMEOUT_MAX / 2, 365 * 24 * 3600.0)


class CallbackRegistration:
    """Handle returned by ``CancellationToken.register``.

    Unregistering is idempotent and is a no-op once the callback ran.
    """

    __slots__ = ("_source", "_key")

    def __init__(self, source: Optional["DeadlineCancellationSource"], key: int) -> None:
        self._source = source
        self._key = key

    def unregister(self) -> bool:
        """Remove the callback.

        Returns:
            True if the callback was still pending and got removed.
        """
        source, self._source = self._source, None
        if source is None:
            return False
        return source._unregister(self._key)

    def __enter__(self) -> "CallbackRegistration":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unregister()


class DeadlineCancellationSource:
    """Owner side of a cancellation signal that fires after ``delay``.

    A zero or negative delay fires synchronously in the constructor, so the
    token is already cancelled when first handed out.

    Args:
        delay: Time until the signal fires, measured from construction.
        clock_remaining: Callable reporting the remaining time of the
            owning deadline; used for error details only.
        daemon: Whether the timer thread is a daemon thread.
    """

    def __init__(
        self,
        delay: timedelta,
        clock_remaining: Optional[Callable[[], timedelta]] = None,
        daemon: bool = True,
    ) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._callbacks: Dict[int, Callback] = {}
        # Internal wake-ups for async waiters, notified on fire and on close.
        self._wakeups: Dict[int, Callback] = {}
        self._keys = itertools.count(1)
        self._timer: Optional[threading.Timer] = None
        self._closed = False
        # Set only by the deadline; _event is also set by close() to wake waiters.
        self._fired = False
        self._daemon = daemon
        self._target = 0.0
        self._clock_remaining = clock_remaining
        self.token = CancellationToken(self)

        seconds = delay.total_seconds()
        if seconds <= 0:
            logger.debug("Deadline already elapsed (%.3fs), firing immediately", seconds)
            self._fire()
        else:
            self._target = time.monotonic() + seconds
            self._arm(seconds)
            logger.debug(f"Armed cancellation timer for {seconds:.3f}s")

    def _arm(self, seconds: float) -> None:
        if seconds > MAX_TIMER_WAIT:
            timer = threading.Timer(MAX_TIMER_WAIT, self._rearm)
        else:
            timer = threading.Timer(seconds, self._fire)
        timer.daemon = self._daemon
        timer.name = f"shared-timeout-{id(self):x}"
        self._timer = timer
        timer.start()

    def _rearm(self) -> None:
        remaining = self._target - time.monotonic()
        with self._lock:
            if self._closed or self._fired:
                return
            if remaining > 0:
                self._arm(remaining)
                return
        self._fire()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> bool:
        """Stop the timer and drop pending callbacks.

        Returns:
            True on the call that released resources, False on repeat calls.
        """
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            fired = self._fired
            timer, self._timer = self._timer, None
            self._callbacks.clear()
            wakeups = list(self._wakeups.values())
            self._wakeups.clear()
            # Release blocked waiters; they observe the closed state and raise.
            self._event.set()

        if timer is not None:
            timer.cancel()
        for wakeup in wakeups:
            self._invoke(wakeup)
        logger.debug("Closed cancellation source (fired=%s)", fired)
        return True

    def _fire(self) -> None:
        with self._lock:
            if self._closed or self._fired:
                return
            self._fired = True
            self._event.set()
            timer, self._timer = self._timer, None
            callbacks: List[Callback] = list(self._callbacks.values())
            callbacks.extend(self._wakeups.values())
            self._callbacks.clear()
            self._wakeups.clear()

        if timer is not None:
            timer.cancel()
        logger.debug(f"Shared deadline elapsed, running {len(callbacks)} callback(s)")
        for callback in callbacks:
            self._invoke(callback)

    @staticmethod
    def _invoke(callback: Callback) -> None:
        try:
            callback()
        except Exception:
            logger.exception("Cancellation callback %r failed", callback)

    def _check_fired(self) -> bool:
        with self._lock:
            self._ensure_open()
            return self._fired

    def _ensure_open(self) -> None:
        if self._closed:
            raise TimeoutDisposedError(
                "Cancellation signal used after its SharedTimeout was closed"
            )

    def _register(self, callback: Callback, wakeup: bool = False) -> CallbackRegistration:
        with self._lock:
            self._ensure_open()
            if not self._fired:
                key = next(self._keys)
                (self._wakeups if wakeup else self._callbacks)[key] = callback
                return CallbackRegistration(self, key)

        # Already fired: run in the caller's thread.
        self._invoke(callback)
        return CallbackRegistration(None, 0)

    def _unregister(self, key: int) -> bool:
        with self._lock:
            removed = self._callbacks.pop(key, None) or self._wakeups.pop(key, None)
            return removed is not None

    def _remaining(self) -> Optional[timedelta]:
        if self._clock_remaining is None:
            return None
        return self._clock_remaining()


class CancellationToken:
    """Observer view of a deadline cancellation signal.

    Tokens are handed to downstream operations so they can abort promptly
    once the shared deadline has elapsed. A token does not own anything:
    only the ``SharedTimeout`` that produced it may release it. Every
    operation raises ``TimeoutDisposedError`` after that happened.

    Examples:
        >>> with SharedTimeout.from_seconds(5) as timeout:
        ...     token = timeout.as_cancellation_signal()
        ...     for item in work:
        ...         token.raise_if_cancelled()
        ...         process(item)
    """

    __slots__ = ("_source",)

    def __init__(self, source: DeadlineCancellationSource) -> None:
        self._source = source

    @property
    def is_cancelled(self) -> bool:
        """Whether the deadline has elapsed."""
        return self._source._check_fired()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the token fires.

        Args:
            timeout: Maximum number of seconds to wait; None waits until
                the deadline.

        Returns:
            True if the token fired, False if ``timeout`` passed first.
        """
        self._source._ensure_open()
        self._source._event.wait(timeout)
        return self._source._check_fired()

    async def wait_async(self) -> None:
        """Wait for the token to fire without blocking the event loop."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[None] = loop.create_future()

        def _wake() -> None:
            if not future.done():
                future.set_result(None)

        def _on_fire() -> None:
            loop.call_soon_threadsafe(_wake)

        registration = self._source._register(_on_fire, wakeup=True)
        try:
            await future
        finally:
            registration.unregister()
        self._source._ensure_open()

    def raise_if_cancelled(self) -> None:
        """Raise ``OperationCancelledError`` if the deadline has elapsed."""
        if self.is_cancelled:
            raise OperationCancelledError(self._source._remaining())

    def register(self, callback: Callback) -> CallbackRegistration:
        """Run ``callback`` once when the token fires.

        Callbacks run on the timer thread. If the token already fired the
        callback runs immediately in the calling thread. Exceptions raised
        by a callback are logged and swallowed.
        """
        return self._source._register(callback)

    def __repr__(self) -> str:
        if self._source.closed:
            state = "closed"
        elif self._source._fired:
            state = "cancelled"
        else:
            state = "pending"
        return f"<CancellationToken [{state}]>"
