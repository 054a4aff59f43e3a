"""Built-in filters for Trellis templates.

Filters transform a value: `{{ value | filter(arg, key=arg) }}`. Each filter
is called as ``func(value, *args, **kwargs)`` with eagerly evaluated
arguments. Anything a filter raises is reported as a ``CapabilityError``
naming the filter and its arguments.

Categories:
**Strings**: upper, lower, trim, capitalize, title, replace, truncate,
    wordcount, striptags, split, urlencode
**Numbers**: int, float, abs, round, pluralize
**Arrays**: length, reverse, first, last, nth, join, sort, unique, slice,
    group_by, filter, map, concat
**Objects**: get
**Any value**: json_encode, as_str, default
**Escaping**: safe, escape, escape_xml

Arguments named like Python keywords (``replace(from=, to=)``,
``concat(with=)``) arrive through ``**kwargs``; they may also be given
positionally.

Custom Filters:
    >>> @env.filter("shout")
    ... def shout(value, suffix="!"):
    ...     return str(value).upper() + suffix

"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import quote

from trellis.context import render_scalar, resolve_path
from trellis.ordering import sort_values, unique_values
from trellis.template.helpers import UNDEFINED, coerce_number, default_safe
from trellis.utils.html import Markup, html_escape, xml_escape

_STRIPTAGS_RE = re.compile(r"(<!--.*?-->|<[^>]*>)", re.DOTALL)
_WORDS_RE = re.compile(r"\b(?P<first>[\w'])(?P<rest>[\w']*)\b")


def _expect_str(filter_name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(
            f"Filter `{filter_name}` expected a string, got {type(value).__name__}: {value!r}"
        )
    return value


def _expect_number(filter_name: str, value: Any, arg: str = "value") -> int | float:
    number = coerce_number(value)
    if number is None:
        raise TypeError(f"Filter `{filter_name}` expected a number for `{arg}`, got {value!r}")
    return number


def _expect_list(filter_name: str, value: Any) -> list[Any]:
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"Filter `{filter_name}` expected an array, got {type(value).__name__}")
    return list(value)


def _named(args: tuple[Any, ...], kwargs: dict[str, Any], names: tuple[str, ...]) -> dict[str, Any]:
    """Merge positional arguments into kwargs by parameter order."""
    if len(args) > len(names):
        raise TypeError(f"expected at most {len(names)} arguments, got {len(args)}")
    params = dict(zip(names, args, strict=False))
    for key, value in kwargs.items():
        if key not in names:
            raise TypeError(f"unexpected argument `{key}`")
        if key in params:
            raise TypeError(f"argument `{key}` given twice")
        params[key] = value
    return params


def stringify(value: Any) -> str:
    """Display text for any value, containers included.

    Arrays render as ``[a, b]`` and objects as ``[object]``; used by filters
    that explicitly opt in to printing containers.
    """
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(stringify(item) for item in value) + "]"
    if isinstance(value, Mapping):
        return "[object]"
    return render_scalar(value)


# ---------------------------------------------------------------------------
# Strings
# ---------------------------------------------------------------------------


def _filter_upper(value: Any) -> str:
    return _expect_str("upper", value).upper()


def _filter_lower(value: Any) -> str:
    return _expect_str("lower", value).lower()


def _filter_trim(value: Any) -> str:
    return _expect_str("trim", value).strip()


def _filter_capitalize(value: Any) -> str:
    """First character upper-case, the rest lower-case."""
    text = _expect_str("capitalize", value)
    return text[:1].upper() + text[1:].lower()


def _filter_title(value: Any) -> str:
    """Capitalize each word."""
    text = _expect_str("title", value)
    return _WORDS_RE.sub(lambda m: m.group("first").upper() + m.group("rest").lower(), text)


def _filter_replace(value: Any, *args: Any, **kwargs: Any) -> str:
    """Replace every ``from`` substring with ``to``."""
    text = _expect_str("replace", value)
    params = _named(args, kwargs, ("from", "to"))
    if "from" not in params or "to" not in params:
        raise TypeError("Filter `replace` expected arguments `from` and `to`")
    return text.replace(str(params["from"]), str(params["to"]))


def _filter_truncate(value: Any, length: int = 255, end: str = "…") -> str:
    """Cut to ``length`` characters and append ``end`` if anything was cut.

    The result may be longer than ``length``: ``end`` is added after cutting.
    """
    text = _expect_str("truncate", value)
    length = int(_expect_number("truncate", length, "length"))
    if length >= len(text):
        return text
    return text[:length] + end


def _filter_wordcount(value: Any) -> int:
    return len(_expect_str("wordcount", value).split())


def _filter_striptags(value: Any) -> str:
    """Remove HTML tags and comments."""
    return _STRIPTAGS_RE.sub("", _expect_str("striptags", value))


def _filter_split(value: Any, pat: str) -> list[str]:
    text = _expect_str("split", value)
    pat = _expect_str("split", pat).replace("\\n", "\n").replace("\\t", "\t")
    return text.split(pat)


def _filter_urlencode(value: Any) -> str:
    """Percent-encode reserved URI characters, keeping ``/``."""
    return quote(_expect_str("urlencode", value), safe="/")


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def _filter_int(value: Any, default: int = 0, base: int = 10) -> int:
    """Convert to an integer, falling back to ``default``.

    Strings may carry a ``0b``/``0o``/``0x`` prefix matching ``base``; a
    decimal string is truncated towards zero.
    """
    if isinstance(value, str):
        text = value.strip()
        prefix = {2: "0b", 8: "0o", 16: "0x"}.get(base)
        if prefix and text.startswith(prefix):
            text = text[len(prefix) :]
        try:
            return int(text, base)
        except ValueError:
            if "." in text:
                try:
                    return int(float(text))
                except ValueError:
                    return default
            return default
    number = coerce_number(value)
    if number is None:
        raise TypeError(f"Filter `int` received an unexpected type: {type(value).__name__}")
    return int(number)


def _filter_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    number = coerce_number(value)
    if number is None:
        raise TypeError(f"Filter `float` received an unexpected type: {type(value).__name__}")
    return float(number)


def _filter_abs(value: Any) -> int | float:
    return abs(_expect_number("abs", value))


def _filter_round(value: Any, method: str = "common", precision: int = 0) -> float:
    """Round with ``common`` (half away from zero), ``ceil`` or ``floor``."""
    number = _expect_number("round", value)
    multiplier = 10.0 ** int(precision)
    scaled = number * multiplier
    if method == "common":
        rounded = math.copysign(math.floor(abs(scaled) + 0.5), scaled)
    elif method == "ceil":
        rounded = math.ceil(scaled)
    elif method == "floor":
        rounded = math.floor(scaled)
    else:
        raise ValueError(
            f"Filter `round` received an incorrect value for arg `method`: got {method!r}, "
            "only common, ceil and floor are allowed"
        )
    return rounded / multiplier


def _filter_pluralize(value: Any, singular: str = "", plural: str = "s") -> str:
    """Plural suffix unless the value is ±1."""
    number = _expect_number("pluralize", value)
    return singular if abs(number) == 1 else plural


# ---------------------------------------------------------------------------
# Arrays and objects
# ---------------------------------------------------------------------------


def _filter_length(value: Any) -> int:
    if isinstance(value, (str, list, tuple, Mapping)):
        return len(value)
    raise TypeError("Filter `length` was used on a value that isn't an array, an object, or a string")


def _filter_reverse(value: Any) -> Any:
    if isinstance(value, str):
        return value[::-1]
    if isinstance(value, (list, tuple)):
        return list(reversed(value))
    raise TypeError(f"Filter `reverse` expected an array or a string, got {type(value).__name__}")


def _filter_first(value: Any) -> Any:
    items = _expect_list("first", value)
    return items[0] if items else ""


def _filter_last(value: Any) -> Any:
    items = _expect_list("last", value)
    return items[-1] if items else ""


def _filter_nth(value: Any, n: int) -> Any:
    items = _expect_list("nth", value)
    index = int(_expect_number("nth", n, "n"))
    if index < 0:
        raise ValueError("Filter `nth` expects a non-negative `n`")
    return items[index] if index < len(items) else ""


def _filter_join(value: Any, sep: str = "") -> str:
    items = _expect_list("join", value)
    sep = _expect_str("join", sep).replace("\\n", "\n").replace("\\t", "\t")
    return sep.join(stringify(item) for item in items)


def _filter_sort(value: Any, attribute: str = "") -> list[Any]:
    """Stable ascending sort, optionally by a dotted ``attribute``."""
    return sort_values(_expect_list("sort", value), attribute)


def _filter_unique(value: Any, attribute: str = "", case_sensitive: bool = False) -> list[Any]:
    """Remove duplicates, keeping first occurrences."""
    return unique_values(_expect_list("unique", value), attribute, case_sensitive)


def _slice_index(index: Any, size: int, arg: str) -> int:
    number = int(_expect_number("slice", index, arg))
    return number if number >= 0 else max(size + number, 0)


def _filter_slice(value: Any, start: int = 0, end: int | None = None) -> list[Any]:
    """Items from ``start`` (inclusive) to ``end`` (exclusive); negatives count from the end."""
    items = _expect_list("slice", value)
    begin = _slice_index(start, len(items), "start")
    stop = len(items) if end is None else min(_slice_index(end, len(items), "end"), len(items))
    if begin >= stop:
        return []
    return items[begin:stop]


def _filter_group_by(value: Any, attribute: str) -> dict[str, list[Any]]:
    """Group items by the stringified value of ``attribute``.

    Items missing the attribute, or where it is null, are dropped.
    """
    grouped: dict[str, list[Any]] = {}
    for item in _expect_list("group_by", value):
        key = resolve_path(item, attribute)
        if key is UNDEFINED or key is None:
            continue
        grouped.setdefault(stringify(key), []).append(item)
    return grouped


def _filter_filter(items: Any, /, attribute: str, value: Any = None) -> list[Any]:
    """Keep items whose ``attribute`` equals ``value``.

    Without ``value``, keep items where the attribute is present and not null.
    """
    kept = []
    for item in _expect_list("filter", items):
        found = resolve_path(item, attribute)
        if found is UNDEFINED:
            found = None
        if (found is not None) if value is None else (found == value):
            kept.append(item)
    return kept


def _filter_map(value: Any, attribute: str) -> list[Any]:
    """Pluck ``attribute`` from each item, skipping missing and null ones."""
    plucked = []
    for item in _expect_list("map", value):
        found = resolve_path(item, attribute)
        if found is not UNDEFINED and found is not None:
            plucked.append(found)
    return plucked


def _filter_concat(value: Any, *args: Any, **kwargs: Any) -> list[Any]:
    """Append ``with`` (its items, if it is an array)."""
    items = _expect_list("concat", value)
    params = _named(args, kwargs, ("with",))
    if "with" not in params:
        raise TypeError("Filter `concat` expected an argument `with`")
    other = params["with"]
    if isinstance(other, (list, tuple)):
        return items + list(other)
    return [*items, other]


def _filter_get(obj: Any, /, key: str, default: Any = UNDEFINED) -> Any:
    if not isinstance(obj, Mapping):
        raise TypeError("Filter `get` was used on a value that isn't an object")
    if key in obj:
        return obj[key]
    if default is UNDEFINED:
        raise LookupError(f"Filter `get` tried to get key `{key}` but it wasn't found")
    return default


# ---------------------------------------------------------------------------
# Any value
# ---------------------------------------------------------------------------


def _filter_json_encode(value: Any, pretty: bool = False) -> str:
    if pretty:
        return json.dumps(value, indent=2, ensure_ascii=False)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _filter_as_str(value: Any) -> str:
    return stringify(value)


def _filter_default(operand: Any, /, value: Any = "", boolean: bool = False) -> Any:
    """Substitute ``value`` when the operand is undefined or null.

    With ``boolean=True`` any falsy operand is replaced. This is the only
    built-in filter that accepts an undefined operand.
    """
    return default_safe(operand, value, boolean)


def _filter_safe(value: Any) -> Markup:
    """Mark a value as safe: autoescaping leaves it alone."""
    if isinstance(value, str):
        return Markup(value)
    return Markup(render_scalar(value))


def _filter_escape(value: Any) -> Markup:
    return Markup(html_escape(value if isinstance(value, str) else render_scalar(value)))


def _filter_escape_xml(value: Any) -> Markup:
    return Markup(xml_escape(value if isinstance(value, str) else render_scalar(value)))


DEFAULT_FILTERS: dict[str, Callable[..., Any]] = {
    # Strings
    "upper": _filter_upper,
    "lower": _filter_lower,
    "trim": _filter_trim,
    "capitalize": _filter_capitalize,
    "title": _filter_title,
    "replace": _filter_replace,
    "truncate": _filter_truncate,
    "wordcount": _filter_wordcount,
    "striptags": _filter_striptags,
    "split": _filter_split,
    "urlencode": _filter_urlencode,
    # Numbers
    "int": _filter_int,
    "float": _filter_float,
    "abs": _filter_abs,
    "round": _filter_round,
    "pluralize": _filter_pluralize,
    # Arrays and objects
    "length": _filter_length,
    "reverse": _filter_reverse,
    "first": _filter_first,
    "last": _filter_last,
    "nth": _filter_nth,
    "join": _filter_join,
    "sort": _filter_sort,
    "unique": _filter_unique,
    "slice": _filter_slice,
    "group_by": _filter_group_by,
    "filter": _filter_filter,
    "map": _filter_map,
    "concat": _filter_concat,
    "get": _filter_get,
    # Any value
    "json_encode": _filter_json_encode,
    "as_str": _filter_as_str,
    "default": _filter_default,
    # Escaping
    "safe": _filter_safe,
    "escape": _filter_escape,
    "escape_xml": _filter_escape_xml,
}

# Filters whose string results skip autoescaping.
SAFE_FILTERS = frozenset({"safe", "escape", "escape_xml"})

# Filters that receive an undefined operand instead of failing the lookup.
UNDEFINED_TOLERANT_FILTERS = frozenset({"default"})
