"""Nodes that write text."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from trellis.nodes.base import Node
from trellis.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class Output(Node):
    """Write ``expr`` rendered as text, escaped unless it is Markup."""

    expr: Expr


@dataclass(frozen=True, slots=True)
class Data(Node):
    """Literal template text, written as is."""

    value: str


@dataclass(frozen=True, slots=True)
class Raw(Node):
    value: str


@dataclass(frozen=True, slots=True)
class FilterBlock(Node):
    """Render ``body`` to a string and pass it through filter ``name``."""

    name: str
    body: Sequence[Node]
    args: Sequence[Expr] = ()
    kwargs: Mapping[str, Expr] = field(default_factory=dict)
