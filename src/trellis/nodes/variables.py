"""Assignment."""

from __future__ import annotations

from dataclasses import dataclass

from trellis.nodes.base import Node
from trellis.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class Set(Node):
    """Bind ``target`` in the innermost frame.

    ``global_`` binds in the nearest macro or root frame instead, so the
    value outlives the loop or block that set it.
    """

    target: str
    value: Expr
    global_: bool = False
