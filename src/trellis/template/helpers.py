"""Pure runtime helpers shared by the Processor and the built-in capabilities.

None of these functions close over Environment state; they use only their
parameters.

Thread-Safety:
All functions are stateless and safe for concurrent use. ``UNDEFINED`` is an
immutable singleton.

"""

from __future__ import annotations

from typing import Any


class _Undefined:
    """Marker for a lookup that found nothing.

    ``None`` is a real template value (JSON null), so "not found" needs its
    own sentinel. It renders as an empty string, is falsy and compares equal
    only to itself.
    """

    __slots__ = ()
    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return ""

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()


def is_undefined(value: Any) -> bool:
    return value is UNDEFINED


def is_truthy(value: Any) -> bool:
    """Template truthiness.

    Null, false, zero, and empty strings/arrays/objects are false; so is an
    undefined value. Everything else is true.
    """
    if value is None or value is UNDEFINED:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (str, list, dict, tuple)):
        return len(value) > 0
    return True


def default_safe(value: Any, default_value: Any = "", boolean: bool = False) -> Any:
    """Logic of the ``default`` filter.

    Args:
        value: The (possibly undefined) operand
        default_value: The fallback value if undefined or null/falsy
        boolean: If True, also replace falsy values; otherwise only
            undefined and null are replaced

    Returns:
        The value if defined and valid, otherwise the default
    """
    if value is UNDEFINED:
        return default_value
    if boolean:
        return value if is_truthy(value) else default_value
    return value if value is not None else default_value


def is_defined(value: Any) -> bool:
    """True unless the value is the undefined sentinel.

    Null counts as defined: ``{"a": null}`` defines ``a``.
    """
    return value is not UNDEFINED


def coerce_number(value: Any) -> int | float | None:
    """Return value as a number, or None if it is not one.

    ``bool`` is not a number in templates even though Python treats it as
    an ``int`` subclass.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    return None
