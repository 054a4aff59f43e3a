"""Iteration state for Trellis ``{% for %}`` loops."""

from __future__ import annotations

from enum import Enum
from typing import Any


class LoopSignal(Enum):
    """Pending control-flow request raised by ``break``/``continue``."""

    NONE = "none"
    BREAK = "break"
    CONTINUE = "continue"


class ForLoop:
    """State of one ``{% for %}`` loop, shared by its per-iteration frames.

    The container is materialised up front as ``(key, value)`` pairs, with
    ``key`` None for arrays, so ``length`` and ``last`` are known before
    the first iteration. ``metadata()`` builds the ``loop`` object a
    template sees: index, index0, first, last, length, revindex and
    revindex0. ``break``/``continue`` set ``signal``; the Processor stops
    writing the current body while it is set and clears it between
    iterations.
    """

    __slots__ = (
        "_index",
        "_items",
        "_length",
        "key_name",
        "signal",
        "value_name",
    )

    def __init__(
        self,
        value_name: str,
        items: list[tuple[Any, Any]],
        key_name: str | None = None,
    ) -> None:
        self.value_name = value_name
        self.key_name = key_name
        self._items = items
        self._length = len(items)
        self._index = 0
        self.signal = LoopSignal.NONE

    def __iter__(self) -> Any:
        """Iterate through pairs, updating index for each."""
        for i, pair in enumerate(self._items):
            self._index = i
            yield pair

    @property
    def index(self) -> int:
        """1-based iteration count."""
        return self._index + 1

    @property
    def index0(self) -> int:
        return self._index

    @property
    def first(self) -> bool:
        return self._index == 0

    @property
    def last(self) -> bool:
        return self._index == self._length - 1

    @property
    def length(self) -> int:
        return self._length

    @property
    def revindex(self) -> int:
        return self._length - self._index

    @property
    def revindex0(self) -> int:
        return self._length - self._index - 1

    @property
    def current_key(self) -> Any:
        return self._items[self._index][0]

    @property
    def current_value(self) -> Any:
        return self._items[self._index][1]

    def metadata(self) -> dict[str, Any]:
        """The ``loop`` object for the current iteration."""
        return {
            "index": self.index,
            "index0": self.index0,
            "first": self.first,
            "last": self.last,
            "length": self.length,
            "revindex": self.revindex,
            "revindex0": self.revindex0,
        }

    def break_loop(self) -> None:
        self.signal = LoopSignal.BREAK

    def continue_loop(self) -> None:
        self.signal = LoopSignal.CONTINUE

    @property
    def interrupted(self) -> bool:
        """True while a break/continue is unwinding the current body."""
        return self.signal is not LoopSignal.NONE

    def __repr__(self) -> str:
        return f"<ForLoop {self.index}/{self.length}>"
