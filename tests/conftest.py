"""Pytest configuration for the shared-timeout test suite."""

from __future__ import annotations

from typing import Iterator, List

import pytest

from sharedtimeout import SharedTimeout
from sharedtimeout.config import ENV_DAEMON_TIMERS, ENV_DEFAULT_BUDGET


@pytest.fixture(autouse=True)
def clean_timeout_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables out of config-sensitive tests."""
    monkeypatch.delenv(ENV_DEFAULT_BUDGET, raising=False)
    monkeypatch.delenv(ENV_DAEMON_TIMERS, raising=False)


@pytest.fixture
def timeouts() -> Iterator[List[SharedTimeout]]:
    """Collect timeouts created by a test and close them afterwards."""
    created: List[SharedTimeout] = []
    yield created
    for timeout in created:
        timeout.close()


@pytest.fixture
def long_timeout(timeouts: List[SharedTimeout]) -> SharedTimeout:
    """A timeout that will not elapse during a test run."""
    timeout = SharedTimeout.from_minutes(10)
    timeouts.append(timeout)
    return timeout
