"""AST analysis helpers for Trellis templates."""

from trellis.analysis.visitor import iter_nodes, visit_children

__all__ = ["iter_nodes", "visit_children"]
