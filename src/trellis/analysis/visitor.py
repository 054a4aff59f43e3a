"""Child traversal for Trellis AST nodes.

Children are found structurally: any dataclass field holding a Node, a
sequence of Nodes, ``(test, body)`` pairs as in ``If.elif_``, or a mapping
of keyword arguments. Template.from_ast walks templates with this to index
blocks, macros and imports.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import fields
from typing import Any

from trellis.nodes import Node


def _nodes_in(value: Any) -> Iterator[Node]:
    if isinstance(value, Node):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _nodes_in(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _nodes_in(item)


def visit_children(node: Node, visit: Callable[[Node], None]) -> None:
    """Call ``visit`` on each direct child of ``node``, in field order."""
    for f in fields(node):
        if f.name in ("lineno", "col_offset"):
            continue
        for child in _nodes_in(getattr(node, f.name)):
            visit(child)


def iter_nodes(root: Node) -> Iterator[Node]:
    """Yield root and every node below it, depth-first."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        children: list[Node] = []
        visit_children(node, children.append)
        stack.extend(reversed(children))
