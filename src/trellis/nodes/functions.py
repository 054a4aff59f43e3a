"""Macro definitions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from trellis.nodes.base import Node
from trellis.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class MacroParam(Node):
    name: str
    default: Expr | None = None

    @property
    def required(self) -> bool:
        """Callers must pass a value for parameters without a default."""
        return self.default is None


@dataclass(frozen=True, slots=True)
class Macro(Node):
    """Reusable body called as ``namespace::name(...)``.

    Defaults are evaluated at call time inside the macro's frame. The body
    only sees its parameters and globals, never the caller's locals.
    """

    name: str
    params: Sequence[MacroParam]
    body: Sequence[Node]

    @property
    def args(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.params)
