"""Nodes that tie templates together."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from trellis.nodes.base import Node


@dataclass(frozen=True, slots=True)
class Extends(Node):
    """Name of the parent template. Only valid as ``Template.extends``."""

    template: str


@dataclass(frozen=True, slots=True)
class Block(Node):
    """Overridable region; the most derived definition renders."""

    name: str
    body: Sequence[Node]


@dataclass(frozen=True, slots=True)
class Super(Node):
    """Render the next definition up the chain of the enclosing block."""


@dataclass(frozen=True, slots=True)
class Include(Node):
    """Render the first existing template of ``templates`` in place.

    The included template sees the includer's variables. With
    ``ignore_missing`` a list where none exist renders nothing.
    """

    templates: Sequence[str]
    ignore_missing: bool = False


@dataclass(frozen=True, slots=True)
class Import(Node):
    """Bind the macros of ``template`` to the namespace ``target``."""

    template: str
    target: str


@dataclass(frozen=True, slots=True)
class Template(Node):
    body: Sequence[Node]
    extends: Extends | None = None
