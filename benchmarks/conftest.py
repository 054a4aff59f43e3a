from __future__ import annotations

import importlib.metadata as importlib_metadata
import json
import os
import platform
import sys
from pathlib import Path
from typing import Any

import pytest

from trellis import Environment
from trellis import nodes as n

BASE_DIR = Path(__file__).resolve().parent
BENCHMARK_OUTPUT_DIR = BASE_DIR.parent / ".benchmarks"


def collect_environment_metadata() -> dict[str, object]:
    """Interpreter, machine and trellis version the numbers were taken on."""
    try:
        trellis_version = importlib_metadata.version("trellis")
    except importlib_metadata.PackageNotFoundError:
        trellis_version = "unknown"
    return {
        "python": f"{platform.python_implementation()} {platform.python_version()}",
        "executable": sys.executable,
        "platform": platform.platform(),
        "machine": platform.machine(),
        "cpus": os.cpu_count(),
        "trellis": trellis_version,
    }


@pytest.fixture(scope="session")
def environment_metadata() -> dict[str, object]:
    """Record the run's environment next to pytest-benchmark's results."""
    BENCHMARK_OUTPUT_DIR.mkdir(exist_ok=True)
    metadata = collect_environment_metadata()
    target = BENCHMARK_OUTPUT_DIR / "environment.json"
    target.write_text(json.dumps(metadata, indent=2, sort_keys=True))
    return metadata


def _item_row() -> list[n.Node]:
    """<li>{{ loop.index }}. {{ item.name | upper }} ({{ item.price | round(precision=2) }})</li>"""
    item = n.Name("item")
    return [
        n.Data("<li>"),
        n.Output(n.Getattr(n.Name("loop"), "index")),
        n.Data(". "),
        n.Output(n.Filter(n.Getattr(item, "name"), "upper")),
        n.Data(" ("),
        n.Output(
            n.Filter(n.Getattr(item, "price"), "round", kwargs={"precision": n.Const(2)})
        ),
        n.Data(")</li>"),
    ]


def build_templates() -> dict[str, n.Template]:
    """minimal, medium (filters + loop), large (1000 rows) and a 3-level chain."""
    return {
        "minimal.html": n.Template([n.Output(n.Name("name"))]),
        "medium.html": n.Template(
            [
                n.Data("<h1>"),
                n.Output(n.Filter(n.Name("title"), "title")),
                n.Data("</h1><ul>"),
                n.For("item", n.Name("items"), _item_row()),
                n.Data("</ul><p>"),
                n.Output(n.Filter(n.Name("categories"), "join", [n.Const(", ")])),
                n.Data("</p>"),
            ]
        ),
        "large.html": n.Template(
            [
                n.For(
                    "item",
                    n.Name("items"),
                    [
                        n.If(
                            n.Test(n.Getattr(n.Name("loop"), "index"), "even"),
                            [n.Data("<tr class=even>")],
                            else_=[n.Data("<tr>")],
                        ),
                        n.Output(n.Getattr(n.Getattr(n.Name("item"), "data"), "x")),
                        n.Data("</tr>"),
                    ],
                )
            ]
        ),
        "complex/base.html": n.Template(
            [
                n.Data("<html><head>"),
                n.Block("title", [n.Output(n.Name("heading"))]),
                n.Data("</head><body>"),
                n.Block("content", []),
                n.Data("</body></html>"),
            ]
        ),
        "complex/layout.html": n.Template(
            [
                n.Import("complex/macros.html", "m"),
                n.Block(
                    "content",
                    [
                        n.For(
                            "link",
                            n.Name("nav"),
                            [n.Output(n.MacroCall("m", "link", [n.Name("link")]))],
                        ),
                        n.Block("article", []),
                    ],
                ),
            ],
            extends=n.Extends("complex/base.html"),
        ),
        "complex/macros.html": n.Template(
            [
                n.Macro(
                    "link",
                    [n.MacroParam("l")],
                    [
                        n.Data('<a href="'),
                        n.Output(n.Getattr(n.Name("l"), "href")),
                        n.Data('">'),
                        n.Output(n.Getattr(n.Name("l"), "label")),
                        n.Data("</a>"),
                    ],
                )
            ]
        ),
        "complex/page.html": n.Template(
            [
                n.Block("title", [n.Super(), n.Data(" | Docs")]),
                n.Block(
                    "article",
                    [
                        n.For(
                            "section",
                            n.Filter(
                                n.Getattr(n.Name("article"), "sections"),
                                "sort",
                                kwargs={"attribute": n.Const("title")},
                            ),
                            [
                                n.Data("<h2>"),
                                n.Output(n.Getattr(n.Name("section"), "title")),
                                n.Data("</h2><p>"),
                                n.Output(n.Getattr(n.Name("section"), "body")),
                                n.Data("</p>"),
                            ],
                        )
                    ],
                ),
            ],
            extends=n.Extends("complex/layout.html"),
        ),
    }


@pytest.fixture(scope="session")
def template_asts() -> dict[str, n.Template]:
    return build_templates()


@pytest.fixture(scope="session")
def trellis_env(template_asts: dict[str, n.Template]) -> Environment:
    env = Environment()
    env.add_templates(template_asts)
    return env


@pytest.fixture(scope="session")
def medium_context() -> dict[str, Any]:
    """~100 items with nested structures."""
    return {
        "title": "benchmark page",
        "items": [{"id": i, "name": f"Item {i}", "price": i * 1.5} for i in range(100)],
        "categories": [f"Category {i}" for i in range(10)],
    }


@pytest.fixture(scope="session")
def large_context() -> dict[str, Any]:
    """1000 items with nested data."""
    return {
        "items": [{"id": i, "name": f"Item {i}", "data": {"x": i, "y": i * 2}} for i in range(1000)]
    }


@pytest.fixture(scope="session")
def complex_context() -> dict[str, Any]:
    return {
        "heading": "Benchmark Page",
        "nav": [
            {"href": "#intro", "label": "Intro"},
            {"href": "#body", "label": "Body"},
            {"href": "#footer", "label": "Footer"},
        ],
        "article": {
            "title": "Template Engine Performance",
            "sections": [
                {"title": "Overview", "body": "Benchmarking approach and goals."},
                {"title": "Methodology", "body": "Warmups, iterations, and metrics."},
                {"title": "Results", "body": "Tree-walking render times."},
            ],
        },
    }
