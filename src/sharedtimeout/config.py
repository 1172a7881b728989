"""Configuration helpers for shared timeouts."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Any, Optional

from .errors import InvalidDurationError
from .kernel import parse_duration

logger = logging.getLogger(__name__)

ENV_DEFAULT_BUDGET = "SHARED_TIMEOUT_DEFAULT_BUDGET"
ENV_DAEMON_TIMERS = "SHARED_TIMEOUT_DAEMON_TIMERS"

_DEFAULT_BUDGET = timedelta(seconds=30)
_DEFAULT_DAEMON_TIMERS = True
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class TimeoutConfig:
    """Holds defaults used by ``SharedTimeout.from_config``.

    Attributes:
        default_budget: Budget for timeouts created from configuration.
        daemon_timers: Whether cancellation timers run as daemon threads,
            so a pending timer never keeps the interpreter alive.
    """

    default_budget: timedelta = _DEFAULT_BUDGET
    daemon_timers: bool = _DEFAULT_DAEMON_TIMERS

    def with_overrides(
        self,
        *,
        default_budget: Optional[Any] = None,
        daemon_timers: Optional[bool] = None,
    ) -> "TimeoutConfig":
        """Return a copy with the provided overrides applied."""

        cfg = self
        if default_budget is not None:
            cfg = replace(cfg, default_budget=parse_duration(default_budget))
        if daemon_timers is not None:
            cfg = replace(cfg, daemon_timers=daemon_timers)
        return cfg


def load_timeout_config(
    *,
    default_budget: Optional[Any] = None,
    daemon_timers: Optional[bool] = None,
) -> TimeoutConfig:
    """Load configuration from environment variables and overrides.

    Explicit arguments win over ``SHARED_TIMEOUT_DEFAULT_BUDGET`` and
    ``SHARED_TIMEOUT_DAEMON_TIMERS``. Unparseable environment values are
    logged and replaced by the built-in defaults; unparseable explicit
    arguments raise.

    Raises:
        InvalidDurationError: If ``default_budget`` is not a duration.
    """

    cfg = TimeoutConfig(
        default_budget=_budget_from_env(),
        daemon_timers=_flag_from_env(ENV_DAEMON_TIMERS, _DEFAULT_DAEMON_TIMERS),
    )
    return cfg.with_overrides(default_budget=default_budget, daemon_timers=daemon_timers)


def _budget_from_env() -> timedelta:
    raw_value = os.environ.get(ENV_DEFAULT_BUDGET, "").strip()
    if not raw_value:
        return _DEFAULT_BUDGET
    try:
        return parse_duration(raw_value)
    except InvalidDurationError as e:
        logger.warning(
            "Invalid %s value '%s' (%s), using %ss",
            ENV_DEFAULT_BUDGET,
            raw_value,
            e.reason,
            _DEFAULT_BUDGET.total_seconds(),
        )
        return _DEFAULT_BUDGET


def _flag_from_env(name: str, default: bool) -> bool:
    raw_value = os.environ.get(name, "").strip().lower()
    if not raw_value:
        return default
    if raw_value in _TRUE_VALUES:
        return True
    if raw_value in _FALSE_VALUES:
        return False
    logger.warning("Invalid %s value '%s', using %s", name, raw_value, default)
    return default
