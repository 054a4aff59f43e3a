"""The call stack used by the Processor during one render.

Lookup walks frames innermost first. A MACRO frame is a boundary: a macro
body sees its own parameters and locals, never its caller's, and never the
render Context. Past the outermost frame without crossing a macro, lookup
falls back to the Context.

Thread-Safety:
Each render creates its own CallStack; it is never shared.

"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from trellis.environment.exceptions import RecursionLimitError, TemplateRuntimeError
from trellis.render.stack_frame import FrameKind, StackFrame
from trellis.template.helpers import UNDEFINED

if TYPE_CHECKING:
    from trellis.context import Context
    from trellis.template.core import Template
    from trellis.template.loop_context import ForLoop

logger = logging.getLogger(__name__)


class CallStack:
    """Ordered frames of a render, innermost last.

    Example:
        >>> stack = CallStack(Context({"x": 1}))
        >>> stack.push(StackFrame.root(template))
        >>> stack.assign("y", 2)
        >>> stack.find("x"), stack.find("y")
        (1, 2)
        >>> stack.pop()

    """

    __slots__ = ("_frames", "_macro_depth", "context", "max_macro_depth")

    def __init__(self, context: Context, max_macro_depth: int = 50) -> None:
        self.context = context
        self.max_macro_depth = max_macro_depth
        self._frames: list[StackFrame] = []
        self._macro_depth = 0

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def macro_depth(self) -> int:
        return self._macro_depth

    @property
    def current_frame(self) -> StackFrame:
        if not self._frames:
            raise TemplateRuntimeError("Call stack is empty")
        return self._frames[-1]

    @property
    def active_template(self) -> Template:
        return self.current_frame.active_template

    def push(self, frame: StackFrame) -> None:
        """Enter a scope.

        Raises:
            RecursionLimitError: A MACRO frame would exceed max_macro_depth.
        """
        if frame.kind is FrameKind.MACRO:
            if self._macro_depth >= self.max_macro_depth:
                raise RecursionLimitError(self.max_macro_depth, frame.name)
            self._macro_depth += 1
            logger.debug("Macro depth %d entering %s", self._macro_depth, frame.name)
        self._frames.append(frame)

    def pop(self) -> StackFrame:
        frame = self._frames.pop()
        if frame.kind is FrameKind.MACRO:
            self._macro_depth -= 1
        return frame

    def _scope(self):
        """Frames visible from the innermost one, up to the macro boundary."""
        for frame in reversed(self._frames):
            yield frame
            if frame.kind is FrameKind.MACRO:
                return

    def find(self, name: str) -> Any:
        """Resolve a top-level name; UNDEFINED if it is not visible."""
        for frame in reversed(self._frames):
            value = frame.find(name)
            if value is not UNDEFINED:
                return value
            if frame.kind is FrameKind.MACRO:
                return UNDEFINED
        return self.context.lookup(name)

    def visible_names(self) -> frozenset[str]:
        """Every name ``find`` could resolve right now (for suggestions)."""
        names: set[str] = set()
        crossed_macro = False
        for frame in self._scope():
            names.update(frame.names())
            crossed_macro = crossed_macro or frame.kind is FrameKind.MACRO
        if not crossed_macro:
            names.update(self.context.names())
        return frozenset(names)

    def assign(self, name: str, value: Any) -> None:
        """Bind in the innermost frame only."""
        self.current_frame.assign(name, value)

    def assign_global(self, name: str, value: Any) -> None:
        """Bind in the nearest MACRO or ROOT frame."""
        for frame in reversed(self._frames):
            if frame.kind is FrameKind.MACRO or frame.kind is FrameKind.ROOT:
                frame.assign(name, value)
                return
        raise TemplateRuntimeError("Call stack is empty")

    def current_chain_position(self) -> StackFrame | None:
        """Innermost BLOCK frame inside the current macro boundary."""
        for frame in self._scope():
            if frame.kind is FrameKind.BLOCK:
                return frame
        return None

    def current_for_loop(self) -> ForLoop | None:
        """Loop state of the innermost FOR_LOOP frame inside the macro boundary."""
        for frame in self._scope():
            if frame.kind is FrameKind.FOR_LOOP:
                return frame.for_loop
        return None

    def clear(self) -> None:
        self._frames.clear()
        self._macro_depth = 0

    def __len__(self) -> int:
        return len(self._frames)

    def __repr__(self) -> str:
        return f"<CallStack depth={self.depth} macro_depth={self._macro_depth}>"
