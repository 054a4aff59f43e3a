"""AST-building shorthands shared by the Trellis tests."""

from __future__ import annotations

from trellis import nodes as n


def tpl(*body, extends=None):
    """Build a template root from body nodes."""
    return n.Template(list(body), extends=n.Extends(extends) if extends else None)


def out(expr):
    """``{{ expr }}``"""
    return n.Output(expr)


def const(value):
    return n.Const(value)


def name(identifier):
    return n.Name(identifier)


def attr(obj, *path):
    """``obj.a.b`` for a dotted chain of attribute names."""
    expr = n.Name(obj)
    for part in path:
        expr = n.Getattr(expr, part)
    return expr


def flt(value, filter_name, /, *args, **kwargs):
    """``value | filter_name(*args, **kwargs)`` with constant arguments."""
    return n.Filter(
        value,
        filter_name,
        [n.Const(a) for a in args],
        {k: n.Const(v) for k, v in kwargs.items()},
    )


def render(env, *body, **context):
    """Render body nodes as a one-off template against ``context``."""
    return env.render_ast(tpl(*body), context)


def assert_contains(template_result: str, *expected_parts: str) -> None:
    """Assert template result contains all expected parts.

    Args:
        template_result: The actual template rendering result.
        expected_parts: Strings that should all be present in the result.
    """
    for part in expected_parts:
        assert part in template_result, (
            f"Template output missing expected content:\n"
            f"  Missing: {part!r}\n"
            f"  Actual: {template_result!r}"
        )
