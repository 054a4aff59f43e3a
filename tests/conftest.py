"""Pytest configuration and fixtures for Trellis tests."""

import pytest

from trellis import Environment
from trellis import nodes as n
from trellis.environment import terminal


@pytest.fixture(autouse=True)
def plain_error_messages(monkeypatch):
    """Keep ANSI codes out of error messages regardless of FORCE_COLOR."""
    monkeypatch.setattr(terminal, "_USE_COLORS", False)


@pytest.fixture
def env():
    """Create a basic Trellis Environment (no autoescaping for .txt names)."""
    return Environment()


@pytest.fixture
def env_autoescape():
    """Create a Trellis Environment that escapes every one-off render."""
    return Environment(autoescape_suffixes=("__trellis_one_off",))


@pytest.fixture
def env_with_templates():
    """Create an Environment with a base/child/partial/macros template set."""
    env = Environment()
    env.add_templates(
        {
            "base.html": n.Template(
                [
                    n.Data("<html><head>"),
                    n.Block("head", []),
                    n.Data("</head><body>"),
                    n.Block("body", []),
                    n.Data("</body></html>"),
                ]
            ),
            "child.html": n.Template(
                [n.Block("body", [n.Data("Hello World")])],
                extends=n.Extends("base.html"),
            ),
            "partial.html": n.Template([n.Data("<p>Partial content</p>")]),
            "macros.html": n.Template(
                [
                    n.Macro(
                        "greet",
                        [n.MacroParam("name")],
                        [n.Data("Hello "), n.Output(n.Name("name"))],
                    ),
                    n.Macro(
                        "add",
                        [n.MacroParam("a"), n.MacroParam("b")],
                        [n.Output(n.BinOp("+", n.Name("a"), n.Name("b")))],
                    ),
                ]
            ),
        }
    )
    return env
