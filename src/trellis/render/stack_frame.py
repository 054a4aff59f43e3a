"""Stack frames for the Trellis call stack.

One frame per nested scope:

    ========  =====================================================
    kind      pushed for
    ========  =====================================================
    ROOT      the rendered template, and each included template
    FOR_LOOP  each iteration of a {% for %} loop
    MACRO     each macro call
    BLOCK     each block (or super()) rendering
    ========  =====================================================

Every frame owns a local name → value map. Child frames shadow outer
bindings without touching them.

"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from trellis.template.helpers import UNDEFINED

if TYPE_CHECKING:
    from trellis.template.core import BlockChain, Template
    from trellis.template.loop_context import ForLoop


class FrameKind(Enum):
    ROOT = "root"
    FOR_LOOP = "for_loop"
    MACRO = "macro"
    BLOCK = "block"


class StackFrame:
    """A single scope on the call stack.

    Attributes:
        kind: What pushed the frame
        name: Human-readable frame name for errors (template, macro, block)
        active_template: Template whose code runs in this frame; macros
            called with ``self::`` and imported namespaces resolve from it
        for_loop: Loop state (FOR_LOOP frames)
        block_name, position, chain: Block being rendered and its position
            in the definition chain (BLOCK frames)
    """

    __slots__ = (
        "active_template",
        "block_name",
        "chain",
        "for_loop",
        "kind",
        "locals",
        "name",
        "position",
    )

    def __init__(self, kind: FrameKind, name: str, active_template: Template) -> None:
        self.kind = kind
        self.name = name
        self.active_template = active_template
        self.locals: dict[str, Any] = {}
        self.for_loop: ForLoop | None = None
        self.block_name: str | None = None
        self.position = 0
        self.chain: BlockChain = ()

    @classmethod
    def root(cls, template: Template) -> StackFrame:
        return cls(FrameKind.ROOT, template.name, template)

    @classmethod
    def for_loop_frame(cls, loop: ForLoop, active_template: Template) -> StackFrame:
        frame = cls(FrameKind.FOR_LOOP, f"for {loop.value_name}", active_template)
        frame.for_loop = loop
        return frame

    @classmethod
    def macro(cls, name: str, template: Template) -> StackFrame:
        return cls(FrameKind.MACRO, f"{template.name}::{name}", template)

    @classmethod
    def block(cls, block_name: str, position: int, chain: BlockChain, owner: Template) -> StackFrame:
        frame = cls(FrameKind.BLOCK, f"block {block_name}", owner)
        frame.block_name = block_name
        frame.position = position
        frame.chain = chain
        return frame

    @property
    def owner(self) -> str | None:
        """Template owning the block definition being rendered."""
        if self.kind is not FrameKind.BLOCK:
            return None
        return self.chain[self.position][0]

    def find(self, name: str) -> Any:
        """Loop bindings first (value, key, ``loop``), then locals."""
        loop = self.for_loop
        if loop is not None:
            if name == loop.value_name:
                return loop.current_value
            if name == loop.key_name:
                return loop.current_key
            if name == "loop":
                return loop.metadata()
        return self.locals.get(name, UNDEFINED)

    def assign(self, name: str, value: Any) -> None:
        self.locals[name] = value

    def names(self) -> set[str]:
        found = set(self.locals)
        if self.for_loop is not None:
            found.update({self.for_loop.value_name, "loop"})
            if self.for_loop.key_name:
                found.add(self.for_loop.key_name)
        return found

    def __repr__(self) -> str:
        return f"<StackFrame {self.kind.value} {self.name!r}>"
