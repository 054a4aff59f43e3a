"""Default global functions available in all templates.

Functions are called by name, ``{{ range(end=3) }}``, with eagerly
evaluated positional and keyword arguments. They are registered in the
Environment by default (``Environment(builtins=False)`` skips them).

Usage:
    {% for i in range(end=5, step_by=2) %}{{ i }}{% endfor %}
    {{ now(timestamp=true) }}
    {{ get_env(name="HOME", default="/") }}
    {% if not user %}{{ throw(message="user is required") }}{% endif %}
"""

from __future__ import annotations

import os
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from trellis.template.helpers import UNDEFINED, coerce_number


def _as_count(function_name: str, arg: str, value: Any) -> int:
    number = coerce_number(value)
    if number is None or number < 0 or number != int(number):
        raise TypeError(
            f"Function `{function_name}` received {arg}={value!r} "
            f"but `{arg}` can only be a non-negative integer"
        )
    return int(number)


def range_(end: Any, start: Any = 0, step_by: Any = 1) -> list[int]:
    """Integers from ``start`` (inclusive) to ``end`` (exclusive).

    Raises:
        ValueError: If ``start`` is greater than ``end`` or ``step_by`` is 0.
    """
    end = _as_count("range", "end", end)
    start = _as_count("range", "start", start)
    step_by = _as_count("range", "step_by", step_by)
    if start > end:
        raise ValueError(
            f"Function `range` was called with a `start` argument greater than the `end` one "
            f"({start} > {end})"
        )
    if step_by == 0:
        raise ValueError("Function `range` was called with a `step_by` argument of 0")
    return list(range(start, end, step_by))


def now(timestamp: bool = False, utc: bool = False) -> str | int:
    """Current time as an ISO 8601 string, or as seconds since the epoch."""
    current = datetime.now(timezone.utc) if utc else datetime.now().astimezone()
    if timestamp:
        return int(current.timestamp())
    return current.isoformat()


def get_env(name: str, default: Any = UNDEFINED) -> Any:
    """Value of an environment variable, or ``default`` if it is unset.

    Raises:
        LookupError: The variable is unset and no default was given.
    """
    if not isinstance(name, str):
        raise TypeError(f"Function `get_env` received name={name!r} but `name` can only be a string")
    value = os.environ.get(name)
    if value is not None:
        return value
    if default is UNDEFINED:
        raise LookupError(f"Environment variable `{name}` not found")
    return default


def throw(message: str) -> Any:
    """Abort the render with ``message``."""
    if not isinstance(message, str):
        raise TypeError(
            f"Function `throw` received message={message!r} but `message` can only be a string"
        )
    raise RuntimeError(message)


DEFAULT_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "range": range_,
    "now": now,
    "get_env": get_env,
    "throw": throw,
}
