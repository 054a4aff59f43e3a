"""Branching and looping nodes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from trellis.nodes.base import Node
from trellis.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class If(Node):
    """First branch whose condition is truthy wins; ``else_`` otherwise.

    ``elif_`` holds (condition, body) pairs checked in order.
    """

    test: Expr
    body: Sequence[Node]
    elif_: Sequence[tuple[Expr, Sequence[Node]]] = ()
    else_: Sequence[Node] = ()


@dataclass(frozen=True, slots=True)
class For(Node):
    """Loop over an array, or over an object's (key, value) pairs.

    With ``key_target`` set, ``target`` receives the value and
    ``key_target`` the key (or index, for arrays). ``test`` drops items
    before ``loop.index`` and friends are assigned (inside ``test`` itself,
    ``loop`` describes the unfiltered sequence), and ``empty`` renders when
    nothing is left.
    """

    target: str
    iter: Expr
    body: Sequence[Node]
    empty: Sequence[Node] = ()
    key_target: str | None = None
    test: Expr | None = None


@dataclass(frozen=True, slots=True)
class Break(Node):
    """Stop the innermost loop after the current node."""


@dataclass(frozen=True, slots=True)
class Continue(Node):
    pass
