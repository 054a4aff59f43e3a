"""Built-in tests: predicates behind ``value is name(args)``.

A test sees its operand even when the lookup failed, as ``UNDEFINED``.
Only ``defined`` and ``undefined`` accept that; the rest reject it, like
they reject an operand of the wrong kind. ``is not`` negates the result
after the test has run.

``odd``, ``even`` and ``divisibleby`` want numbers. ``starting_with``,
``ending_with`` and ``matching`` want strings, while ``containing`` also
looks into arrays (members) and objects (keys). Register more with
``Environment.add_test``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from trellis.template.helpers import UNDEFINED, coerce_number, is_defined, is_undefined


def _require_defined(test_name: str, value: Any) -> None:
    if value is UNDEFINED:
        raise ValueError(f"Tester `{test_name}` was called on an undefined variable")


def _require_number(test_name: str, value: Any, part: str = "on a variable") -> int | float:
    number = coerce_number(value)
    if number is None:
        raise ValueError(f"Tester `{test_name}` was called {part} that isn't a number")
    return number


def _require_string(test_name: str, value: Any, part: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"Tester `{test_name}` was called {part} that isn't a string")
    return value


def _test_string(value: Any) -> bool:
    _require_defined("string", value)
    return isinstance(value, str)


def _test_number(value: Any) -> bool:
    """Test if value is a number."""
    _require_defined("number", value)
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _test_odd(value: Any) -> bool:
    _require_defined("odd", value)
    return _require_number("odd", value) % 2 != 0


def _test_even(value: Any) -> bool:
    _require_defined("even", value)
    return _require_number("even", value) % 2 == 0


def _test_divisible_by(value: Any, num: Any) -> bool:
    """Test if value is divisible by num."""
    _require_defined("divisibleby", value)
    number = _require_number("divisibleby", value)
    divisor = _require_number("divisibleby", num, "with a parameter")
    return number % divisor == 0


def _test_iterable(value: Any) -> bool:
    """Test if value can be iterated by a for loop (array or object)."""
    _require_defined("iterable", value)
    return isinstance(value, (list, tuple, Mapping))


def _test_object(value: Any) -> bool:
    _require_defined("object", value)
    return isinstance(value, Mapping)


def _test_starting_with(value: Any, prefix: Any) -> bool:
    _require_defined("starting_with", value)
    text = _require_string("starting_with", value, "on a variable")
    return text.startswith(_require_string("starting_with", prefix, "with a parameter"))


def _test_ending_with(value: Any, suffix: Any) -> bool:
    _require_defined("ending_with", value)
    text = _require_string("ending_with", value, "on a variable")
    return text.endswith(_require_string("ending_with", suffix, "with a parameter"))


def _test_containing(value: Any, needle: Any) -> bool:
    """Substring for strings, membership for arrays, key for objects."""
    _require_defined("containing", value)
    if isinstance(value, str):
        return _require_string("containing", needle, "with a parameter") in value
    if isinstance(value, (list, tuple)):
        return needle in value
    if isinstance(value, Mapping):
        return _require_string("containing", needle, "with a parameter") in value
    raise ValueError("Tester `containing` can only be used on string, array or map")


def _test_matching(value: Any, pattern: Any) -> bool:
    """Test if a string matches a regex anywhere (``re.search``).

    Example:
        {% if page.path is matching("^/blog/") %}

    """
    _require_defined("matching", value)
    text = _require_string("matching", value, "on a variable")
    regex = _require_string("matching", pattern, "with a parameter")
    try:
        return re.search(regex, text) is not None
    except re.error as e:
        raise ValueError(f"Tester `matching`: invalid regex '{regex}': {e}") from e


DEFAULT_TESTS: dict[str, Callable[..., bool]] = {
    "defined": is_defined,
    "undefined": is_undefined,
    "string": _test_string,
    "number": _test_number,
    "odd": _test_odd,
    "even": _test_even,
    "divisibleby": _test_divisible_by,
    "iterable": _test_iterable,
    "object": _test_object,
    "starting_with": _test_starting_with,
    "ending_with": _test_ending_with,
    "containing": _test_containing,
    "matching": _test_matching,
}
