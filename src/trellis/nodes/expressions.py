"""Expression nodes.

An expression evaluates to a Value. Lookups (Name, Getattr, Getitem) raise
UndefinedError when nothing is found, except inside conditions, tests and
the ``default`` filter, where a missing value reads as false or undefined.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Literal

from trellis.nodes.base import Node


@dataclass(frozen=True, slots=True)
class Expr(Node):
    """Anything that produces a Value."""


@dataclass(frozen=True, slots=True)
class Const(Expr):
    value: str | int | float | bool | None


@dataclass(frozen=True, slots=True)
class Name(Expr):
    """Look ``name`` up through the call stack's frames, innermost first."""

    name: str


@dataclass(frozen=True, slots=True)
class List(Expr):
    items: Sequence[Expr] = ()


@dataclass(frozen=True, slots=True)
class Dict(Expr):
    """Object literal; ``keys`` must evaluate to strings."""

    keys: Sequence[Expr] = ()
    values: Sequence[Expr] = ()


@dataclass(frozen=True, slots=True)
class Getattr(Expr):
    """``user.name``: object key, then Python attribute."""

    obj: Expr
    attr: str


@dataclass(frozen=True, slots=True)
class Getitem(Expr):
    """``row[i]``: an integer key indexes an array, a string keys an object."""

    obj: Expr
    key: Expr


@dataclass(frozen=True, slots=True)
class FuncCall(Expr):
    """Call of a function registered on the Environment."""

    name: str
    args: Sequence[Expr] = ()
    kwargs: Mapping[str, Expr] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class MacroCall(Expr):
    """``ns::name(...)``; ``namespace`` is an import alias or ``self``."""

    namespace: str
    name: str
    args: Sequence[Expr] = ()
    kwargs: Mapping[str, Expr] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Filter(Expr):
    """``value | name(args)``; ``value`` becomes the filter's first argument."""

    value: Expr
    name: str
    args: Sequence[Expr] = ()
    kwargs: Mapping[str, Expr] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Test(Expr):
    """``value is [not] name(args)``. Always yields a boolean."""

    value: Expr
    name: str
    args: Sequence[Expr] = ()
    negated: bool = False


@dataclass(frozen=True, slots=True)
class BinOp(Expr):
    """Arithmetic on numbers. Division by zero is a runtime error."""

    op: Literal["+", "-", "*", "/", "//", "%"]
    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class UnaryOp(Expr):
    op: Literal["not", "-"]
    operand: Expr


@dataclass(frozen=True, slots=True)
class Compare(Expr):
    """Chained comparison; ``a < b < c`` holds only if every link holds.

    ``ops`` are ``== != < <= > >= in`` and ``not in``, one per comparator.
    """

    left: Expr
    ops: Sequence[str]
    comparators: Sequence[Expr]


@dataclass(frozen=True, slots=True)
class BoolOp(Expr):
    """Short-circuit ``and`` / ``or`` over truthiness."""

    op: Literal["and", "or"]
    values: Sequence[Expr]


@dataclass(frozen=True, slots=True)
class CondExpr(Expr):
    test: Expr
    if_true: Expr
    if_false: Expr


@dataclass(frozen=True, slots=True)
class Concat(Expr):
    """``a ~ b``: each part rendered to text, then joined."""

    nodes: Sequence[Expr]


AnyExpr = (
    Const
    | Name
    | List
    | Dict
    | Getattr
    | Getitem
    | FuncCall
    | MacroCall
    | Filter
    | Test
    | BinOp
    | UnaryOp
    | Compare
    | BoolOp
    | CondExpr
    | Concat
)
