"""Duration kernel - coercion of duration-like input into ``timedelta``.

Budgets arrive from code (``timedelta``), from numbers, and from
environment strings such as ``"1500ms"`` or ``"2m"``. They are normalized
here with a pydantic ``BeforeValidator`` so that every entry point accepts
the same forms.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Annotated, Any, Dict

from pydantic import BeforeValidator, TypeAdapter, ValidationError

from .errors import InvalidDurationError

# Unit suffix -> keyword accepted by timedelta()
_UNIT_KEYWORDS: Dict[str, str] = {
    "ms": "milliseconds",
    "s": "seconds",
    "sec": "seconds",
    "m": "minutes",
    "min": "minutes",
    "h": "hours",
    "d": "days",
}

_NUMBER = r"[+-]?\d+(?:\.\d+)?"
_SUFFIXED_PATTERN = re.compile(rf"^(?P<number>{_NUMBER})\s*(?P<unit>ms|sec|min|s|m|h|d)$")
_BARE_NUMBER_PATTERN = re.compile(rf"^{_NUMBER}$")


def _coerce_duration(v: Any) -> Any:
    """Expand unit-suffixed strings; leave everything else to pydantic.

    Bare numbers (and numeric strings) are seconds, ISO-8601 strings
    such as ``PT30S`` are parsed by pydantic itself.
    """
    if isinstance(v, bool):
        raise ValueError("booleans are not durations")
    if isinstance(v, str):
        text = v.strip().lower()
        match = _SUFFIXED_PATTERN.match(text)
        if match:
            unit = _UNIT_KEYWORDS[match.group("unit")]
            return timedelta(**{unit: float(match.group("number"))})
        if _BARE_NUMBER_PATTERN.match(text):
            return float(text)
        if text.startswith("p"):
            return text.upper()
        return text
    return v


Duration = Annotated[timedelta, BeforeValidator(_coerce_duration)]

_DURATION_ADAPTER: TypeAdapter[timedelta] = TypeAdapter(Duration)


def parse_duration(value: Any) -> timedelta:
    """Convert a duration-like value into a ``timedelta``.

    Args:
        value: A ``timedelta``, a number of seconds, or a string such as
            ``"250ms"``, ``"30s"``, ``"2m"``, ``"1h"``, ``"1d"``,
            ``"PT30S"`` or ``"-5"``.

    Returns:
        The equivalent ``timedelta``. The sign is preserved.

    Raises:
        InvalidDurationError: If the value cannot be interpreted.

    Examples:
        >>> parse_duration("1500ms")
        datetime.timedelta(seconds=1, microseconds=500000)
        >>> parse_duration(2)
        datetime.timedelta(seconds=2)
    """
    if isinstance(value, timedelta):
        return value
    try:
        return _DURATION_ADAPTER.validate_python(value)
    except ValidationError as e:
        reason = e.errors()[0].get("msg", str(e)) if e.errors() else str(e)
        raise InvalidDurationError(value, reason) from e
