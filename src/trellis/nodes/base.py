"""Root of the node hierarchy."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True, kw_only=True)
class Node:
    """Immutable AST node with a source position.

    ``lineno`` and ``col_offset`` are keyword-only, so subclasses can take
    their own fields positionally: ``Output(Name("user"), lineno=3)``.
    A ``lineno`` of 0 means the position is unknown.
    """

    lineno: int = 0
    col_offset: int = 0
