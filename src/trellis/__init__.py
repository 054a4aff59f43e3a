"""Trellis: a tree-interpreting template engine.

Templates arrive as ASTs built from ``trellis.nodes`` (by a parser or by
hand); Trellis resolves inheritance across the template set and renders by
walking the tree. There is no compile step.

Quickstart:
    >>> from trellis import Environment, nodes as n
    >>> env = Environment()
    >>> env.add_template("hello.txt", n.Template([
    ...     n.Data("Hello, "), n.Output(n.Name("name")), n.Data("!"),
    ... ]))
    >>> env.render("hello.txt", {"name": "World"})
    'Hello, World!'

Inheritance:
    >>> env.add_templates({
    ...     "base.html": n.Template([n.Block("content", [n.Data("base")])]),
    ...     "page.html": n.Template(
    ...         [n.Block("content", [n.Data("page+"), n.Super()])],
    ...         extends=n.Extends("base.html"),
    ...     ),
    ... })
    >>> env.render("page.html")
    'page+base'

Architecture:
    AST → Template (metadata) → Environment (inheritance chains)
    → Renderer → Processor (CallStack of StackFrames) → output

Strict Mode:
    Undefined variables raise ``UndefinedError``. Use
    ``| default(value=...)`` for optional variables; conditions treat
    undefined names as false.

Thread-Safety:
    Resolved templates and Contexts are read-only during rendering. Each
    render owns its call stack. Registries use copy-on-write.

"""

from trellis.environment import (
    CapabilityError,
    CapabilityNotFoundError,
    CircularExtendsError,
    Environment,
    ErrorCode,
    MacroArgumentError,
    MissingMacroImportError,
    MissingParentError,
    OrderingError,
    OutputEncodingError,
    RecursionLimitError,
    TemplateConstructionError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    TemplateTypeError,
    UndefinedError,
)
from trellis import nodes
from trellis.context import Context, ValueKind, resolve_path, split_path
from trellis.ordering import sort_values, unique_values
from trellis.render import Renderer
from trellis.render_context import RenderContext, get_render_context, render_context
from trellis.template import UNDEFINED, ForLoop, Template
from trellis.utils.html import Markup, html_escape, xml_escape

__version__ = "0.1.0"

__all__ = [
    "UNDEFINED",
    "CapabilityError",
    "CapabilityNotFoundError",
    "CircularExtendsError",
    "Context",
    "Environment",
    "ErrorCode",
    "ForLoop",
    "MacroArgumentError",
    "Markup",
    "MissingMacroImportError",
    "MissingParentError",
    "OrderingError",
    "OutputEncodingError",
    "RecursionLimitError",
    "RenderContext",
    "Renderer",
    "Template",
    "TemplateConstructionError",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "TemplateTypeError",
    "UndefinedError",
    "ValueKind",
    "get_render_context",
    "html_escape",
    "nodes",
    "render_context",
    "resolve_path",
    "sort_values",
    "split_path",
    "unique_values",
    "xml_escape",
]
