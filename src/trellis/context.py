"""Value model and render Context for Trellis.

Template values are plain JSON-like Python data:

    ====================  ===========  ================================
    Python                ValueKind    Notes
    ====================  ===========  ================================
    None                  NULL         renders as ""
    bool                  BOOL         renders as "true" / "false"
    int, float            NUMBER       bool is never a number
    str (and Markup)      STRING
    list                  ARRAY        tuples are normalised to lists
    dict                  OBJECT       insertion ordered, str keys
    ====================  ===========  ================================

Lookups that find nothing return the ``UNDEFINED`` sentinel and never raise;
callers decide whether a missing value is fatal.

Example:
    >>> ctx = Context.from_mapping({"user": {"name": "Ada", "tags": ["x", "y"]}})
    >>> ctx.get("user.tags[1]")
    'y'
    >>> ctx.get("user.email")
    UNDEFINED

"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any

from trellis.environment.exceptions import TemplateTypeError
from trellis.template.helpers import UNDEFINED


class ValueKind(Enum):
    """Discriminant of a template value."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"

    @property
    def article(self) -> str:
        """Kind name with an indefinite article, for error messages."""
        if self is ValueKind.ARRAY or self is ValueKind.OBJECT:
            return f"an {self.value}"
        return f"a {self.value}"


def kind_of(value: Any) -> ValueKind:
    """Classify a value.

    Raises:
        TemplateTypeError: The value is not JSON-like (or is UNDEFINED).
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, Mapping):
        return ValueKind.OBJECT
    raise TemplateTypeError(
        f"Unsupported template value of type '{type(value).__name__}'",
        values={"value": value},
    )


def to_value(obj: Any) -> Any:
    """Deep-normalise host data into template values.

    Tuples become lists and mappings become dicts. Strings (including
    ``Markup``) and scalars are kept as they are.

    Raises:
        TypeError: For objects with no template representation, or
            mapping keys that are not strings.
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, Mapping):
        result: dict[str, Any] = {}
        for key, item in obj.items():
            if not isinstance(key, str):
                raise TypeError(f"Object keys must be strings, got {type(key).__name__}: {key!r}")
            result[key] = to_value(item)
        return result
    if isinstance(obj, (list, tuple)):
        return [to_value(item) for item in obj]
    raise TypeError(f"Cannot use {type(obj).__name__} as a template value")


# ---------------------------------------------------------------------------
# Path lookup
# ---------------------------------------------------------------------------

# One segment: a bare name, a [number], a ["key"] or a ['key'].
_SEGMENT_RE = re.compile(
    r"""
    \.?(?P<name>[^.\[\]]+)
    | \[(?P<index>\d+)\]
    | \["(?P<dq>[^"]*)"\]
    | \['(?P<sq>[^']*)'\]
    """,
    re.VERBOSE,
)


def split_path(path: str) -> list[str | int] | None:
    """Split a dotted pointer into segments, or None if malformed.

    Bracketed numbers become ints; everything else stays a string.

        >>> split_path('a.b[0]["c d"]')
        ['a', 'b', 0, 'c d']
    """
    segments: list[str | int] = []
    pos = 0
    while pos < len(path):
        match = _SEGMENT_RE.match(path, pos)
        if match is None or (match.group("name") is not None and pos == 0 and path[0] == "."):
            return None
        if match.group("name") is not None:
            segments.append(match.group("name"))
        elif match.group("index") is not None:
            segments.append(int(match.group("index")))
        else:
            segments.append(match.group("dq") if match.group("dq") is not None else match.group("sq"))
        pos = match.end()
    return segments


def get_attr(value: Any, name: str) -> Any:
    """Single ``value.name`` step.

    Objects are keyed by name; a numeric name indexes an array (``a.0``).
    """
    if isinstance(value, Mapping):
        return value.get(name, UNDEFINED)
    if isinstance(value, (list, tuple)) and name.isdigit():
        return get_item(value, int(name))
    return UNDEFINED


def get_item(value: Any, key: Any) -> Any:
    """Single ``value[key]`` step.

    An integer key indexes an array, a string key looks up an object.
    Negative indexes, out-of-range indexes and wrong kinds are not found.
    """
    if isinstance(key, bool):
        return UNDEFINED
    if isinstance(key, int):
        if isinstance(value, (list, tuple)) and 0 <= key < len(value):
            return value[key]
        return UNDEFINED
    if isinstance(key, str):
        if isinstance(value, Mapping):
            return value.get(key, UNDEFINED)
        return UNDEFINED
    return UNDEFINED


def resolve_path(root: Any, path: str) -> Any:
    """Walk a dotted/bracketed path from root.

    Returns ``UNDEFINED`` when any step is missing or the path is malformed.
    An empty path returns root itself.
    """
    if not path:
        return root
    segments = split_path(path)
    if segments is None:
        return UNDEFINED
    current = root
    for segment in segments:
        if isinstance(segment, int):
            current = get_item(current, segment)
        else:
            current = get_attr(current, segment)
        if current is UNDEFINED:
            return UNDEFINED
    return current


def render_scalar(value: Any) -> str:
    """Display text for a scalar value.

    Raises:
        TemplateTypeError: For arrays and objects, which need an explicit
            capability (``join``, ``json_encode``) to be printed.
    """
    if value is None or value is UNDEFINED:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    kind = kind_of(value)
    raise TemplateTypeError(
        f"Tried to render {kind.article} directly; only scalars can be printed",
        values={"value": value},
        suggestion="Use a filter such as join or json_encode to print containers",
    )


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


class Context:
    """The data visible to one render call.

    Owns a single root object. Values are normalised with ``to_value`` on
    insertion. A Context is read-only while a render uses it, so one
    Context can be shared by concurrent renders.

    Example:
        >>> ctx = Context()
        >>> ctx.insert("items", (1, 2))
        >>> ctx.into_value()
        {'items': [1, 2]}

    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = {}
        if data:
            for key, value in data.items():
                self.insert(key, value)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Context:
        return cls(mapping)

    def insert(self, key: str, value: Any) -> None:
        """Bind a top-level name, replacing any existing binding."""
        if not isinstance(key, str):
            raise TypeError(f"Context keys must be strings, got {type(key).__name__}")
        self._data[key] = to_value(value)

    def extend(self, other: Context) -> None:
        """Merge another Context in; its keys win on conflict."""
        self._data.update(other._data)

    def get(self, path: str) -> Any:
        """Look up a dotted pointer; UNDEFINED if absent."""
        return resolve_path(self._data, path)

    def lookup(self, name: str) -> Any:
        """Top-level name only, no path parsing."""
        return self._data.get(name, UNDEFINED)

    def contains(self, path: str) -> bool:
        return resolve_path(self._data, path) is not UNDEFINED

    def remove(self, key: str) -> Any:
        """Remove a top-level name, returning its value or UNDEFINED."""
        return self._data.pop(key, UNDEFINED)

    def into_value(self) -> dict[str, Any]:
        """The root object (a shallow copy)."""
        return dict(self._data)

    def names(self) -> frozenset[str]:
        return frozenset(self._data)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.contains(path)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Context({self._data!r})"
