"""Ordering and deduplication strategies behind the ``sort`` and ``unique`` filters.

The kind of the FIRST key fixes the strategy; every later key must be of
the same kind or the operation fails with ``OrderingError``. There is no
cross-kind ordering.

Sort keys:
    - BOOL: false < true
    - NUMBER: numeric order (ints and floats compare together)
    - STRING: code point order
    - ARRAY: by length
    - NULL, OBJECT: not sortable

Unique keys:
    - BOOL, NUMBER, STRING (case-folded unless ``case_sensitive``)
    - NULL, ARRAY, OBJECT: not comparable

Sorting is stable and ascending; reverse the result for descending order.
Unique keeps the first occurrence of each key, in input order.

"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from trellis.context import ValueKind, kind_of, resolve_path
from trellis.environment.exceptions import OrderingError
from trellis.template.helpers import UNDEFINED


def _mismatch(expected: ValueKind, key: Any, operation: str) -> OrderingError:
    actual = kind_of(key)
    return OrderingError(
        f"{operation} can't compare multiple types: expected {expected.article}, "
        f"got {actual.article}",
        values={"key": key},
    )


class SortStrategy:
    """Collects (value, key) pairs of one kind and sorts them."""

    kind: ValueKind

    __slots__ = ("_pairs",)

    def __init__(self) -> None:
        self._pairs: list[tuple[Any, Any]] = []

    def sort_key(self, key: Any) -> Any:
        return key

    def try_add_pair(self, value: Any, key: Any) -> None:
        """Queue a value under its key.

        Raises:
            OrderingError: The key is of a different kind than the strategy.
        """
        if kind_of(key) is not self.kind:
            raise _mismatch(self.kind, key, "sort")
        self._pairs.append((value, self.sort_key(key)))

    def sort(self) -> list[Any]:
        """Values in stable ascending order of their keys."""
        return [value for value, _ in sorted(self._pairs, key=lambda pair: pair[1])]


class BoolSortStrategy(SortStrategy):
    kind = ValueKind.BOOL
    __slots__ = ()


class NumberSortStrategy(SortStrategy):
    kind = ValueKind.NUMBER
    __slots__ = ()


class StringSortStrategy(SortStrategy):
    kind = ValueKind.STRING
    __slots__ = ()

    def sort_key(self, key: Any) -> Any:
        return str(key)


class ArraySortStrategy(SortStrategy):
    kind = ValueKind.ARRAY
    __slots__ = ()

    def sort_key(self, key: Any) -> Any:
        return len(key)


_SORT_STRATEGIES: dict[ValueKind, type[SortStrategy]] = {
    ValueKind.BOOL: BoolSortStrategy,
    ValueKind.NUMBER: NumberSortStrategy,
    ValueKind.STRING: StringSortStrategy,
    ValueKind.ARRAY: ArraySortStrategy,
}


def sort_strategy_for(first_key: Any) -> SortStrategy:
    """Pick the sort strategy from the first key's kind.

    Raises:
        OrderingError: Null and object keys cannot be sorted.
    """
    kind = kind_of(first_key)
    strategy = _SORT_STRATEGIES.get(kind)
    if strategy is None:
        raise OrderingError(
            f"{first_key!r} is not a sortable value",
            values={"key": first_key},
            suggestion="Sort by an attribute holding a bool, number, string or array",
        )
    return strategy()


class UniqueStrategy:
    """Remembers keys of one kind and reports whether each is new."""

    kind: ValueKind

    __slots__ = ("_seen",)

    def __init__(self) -> None:
        self._seen: set[Any] = set()

    def normalize(self, key: Any) -> Any:
        return key

    def insert(self, key: Any) -> bool:
        """Record a key; True if it had not been seen before.

        Raises:
            OrderingError: The key is of a different kind than the strategy.
        """
        if kind_of(key) is not self.kind:
            raise _mismatch(self.kind, key, "unique")
        normalized = self.normalize(key)
        if normalized in self._seen:
            return False
        self._seen.add(normalized)
        return True


class BoolUniqueStrategy(UniqueStrategy):
    kind = ValueKind.BOOL
    __slots__ = ()


class NumberUniqueStrategy(UniqueStrategy):
    kind = ValueKind.NUMBER
    __slots__ = ()


class StringUniqueStrategy(UniqueStrategy):
    kind = ValueKind.STRING
    __slots__ = ("case_sensitive",)

    def __init__(self, case_sensitive: bool = False) -> None:
        super().__init__()
        self.case_sensitive = case_sensitive

    def normalize(self, key: Any) -> Any:
        return str(key) if self.case_sensitive else str(key).casefold()


def unique_strategy_for(first_key: Any, case_sensitive: bool = False) -> UniqueStrategy:
    """Pick the dedup strategy from the first key's kind.

    Raises:
        OrderingError: Null, array and object keys cannot be compared.
    """
    kind = kind_of(first_key)
    if kind is ValueKind.BOOL:
        return BoolUniqueStrategy()
    if kind is ValueKind.NUMBER:
        return NumberUniqueStrategy()
    if kind is ValueKind.STRING:
        return StringUniqueStrategy(case_sensitive)
    raise OrderingError(
        f"{first_key!r} is not a unique-able value",
        values={"key": first_key},
    )


def _missing_attribute(attribute: str) -> OrderingError:
    return OrderingError(
        f"attribute '{attribute}' does not reference a field",
        attribute=attribute,
    )


def sort_values(values: Sequence[Any], attribute: str = "") -> list[Any]:
    """Sort values by themselves, or by the dotted ``attribute`` path.

    Raises:
        OrderingError: The attribute is missing on any element, keys mix
            kinds, or the key kind is not sortable.

    Example:
        >>> sort_values([{"n": 3}, {"n": 1}, {"n": 2}], "n")
        [{'n': 1}, {'n': 2}, {'n': 3}]
    """
    if not values:
        return []
    first = resolve_path(values[0], attribute)
    if first is UNDEFINED:
        raise _missing_attribute(attribute)
    strategy = sort_strategy_for(first)
    for value in values:
        key = resolve_path(value, attribute)
        if key is UNDEFINED:
            raise _missing_attribute(attribute)
        strategy.try_add_pair(value, key)
    return strategy.sort()


def unique_values(
    values: Sequence[Any], attribute: str = "", case_sensitive: bool = False
) -> list[Any]:
    """Drop values whose key was already seen, keeping first occurrences.

    Elements lacking the attribute are skipped, except the first element,
    whose key selects the strategy.

    Example:
        >>> unique_values(["a", "A", "b"])
        ['a', 'b']
        >>> unique_values(["a", "A", "b"], case_sensitive=True)
        ['a', 'A', 'b']
    """
    if not values:
        return []
    first = resolve_path(values[0], attribute)
    if first is UNDEFINED:
        raise _missing_attribute(attribute)
    strategy = unique_strategy_for(first, case_sensitive)
    result = []
    for value in values:
        key = resolve_path(value, attribute)
        if key is UNDEFINED:
            continue
        if strategy.insert(key):
            result.append(value)
    return result
