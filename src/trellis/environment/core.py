"""Trellis Environment: the engine registry.

Holds the resolved template set, the filter/test/function registries and
the rendering configuration. Templates arrive as ASTs from an external
parser; every addition re-resolves inheritance for the whole set.

Thread-Safety:
    Template additions and capability registration build a new dict and
    swap it in whole (copy-on-write), so a render that already started
    keeps a consistent snapshot. Serialise mutations against each other.

"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from difflib import get_close_matches
from typing import Any, TypeVar

from trellis.context import Context
from trellis.environment.exceptions import CapabilityNotFoundError, TemplateNotFoundError
from trellis.environment.filters import DEFAULT_FILTERS, SAFE_FILTERS
from trellis.environment.globals import DEFAULT_FUNCTIONS
from trellis.environment.inheritance import build_inheritance_chains, check_macro_files
from trellis.environment.registry import Capability, CapabilityRegistry
from trellis.environment.tests import DEFAULT_TESTS
from trellis.nodes import Template as TemplateNode
from trellis.render.renderer import Renderer, Sink
from trellis.template.core import Template
from trellis.utils.html import html_escape

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Name of the ephemeral template used by render_ast() and one_off().
ONE_OFF_TEMPLATE_NAME = "__trellis_one_off"

DEFAULT_AUTOESCAPE_SUFFIXES = (".html", ".htm", ".xml")

ContextLike = Context | Mapping[str, Any] | None


def _as_context(context: ContextLike) -> Context:
    if isinstance(context, Context):
        return context
    return Context.from_mapping(context or {})


@dataclass
class Environment:
    """Central configuration and template registry.

    Attributes:
        autoescape_suffixes: Template names (or paths) ending with one of
            these get ``{{ }}`` output escaped
        escape_fn: Escape function used for autoescaping
        max_macro_depth: Maximum nesting of macro calls in one render
        max_include_depth: Maximum nesting of includes in one render
        builtins: Register the built-in filters, tests and functions

    Example:
        >>> from trellis import nodes as n
        >>> env = Environment()
        >>> env.add_template("hello.html", n.Template([
        ...     n.Data("Hello, "), n.Output(n.Name("name")), n.Data("!"),
        ... ]))
        >>> env.render("hello.html", {"name": "<World>"})
        'Hello, &lt;World&gt;!'

    """

    autoescape_suffixes: tuple[str, ...] = DEFAULT_AUTOESCAPE_SUFFIXES
    escape_fn: Callable[[str], str] = html_escape
    max_macro_depth: int = 50
    max_include_depth: int = 50
    builtins: bool = True

    _templates: dict[str, Template] = field(default_factory=dict, init=False, repr=False)
    _filters: dict[str, Capability] = field(default_factory=dict, init=False, repr=False)
    _tests: dict[str, Capability] = field(default_factory=dict, init=False, repr=False)
    _functions: dict[str, Capability] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.autoescape_suffixes = tuple(self.autoescape_suffixes)
        self._default_escape_fn = self.escape_fn
        if self.builtins:
            self._filters = {
                name: Capability(name, func, name in SAFE_FILTERS)
                for name, func in DEFAULT_FILTERS.items()
            }
            self._tests = {name: Capability(name, func) for name, func in DEFAULT_TESTS.items()}
            self._functions = {
                name: Capability(name, func) for name, func in DEFAULT_FUNCTIONS.items()
            }

    # ------------------------------------------------------------------
    # Registries
    # ------------------------------------------------------------------

    @property
    def filters(self) -> CapabilityRegistry:
        """Filters, dict-like: ``env.filters["shout"] = func``."""
        return CapabilityRegistry(self, "_filters", "filter")

    @property
    def tests(self) -> CapabilityRegistry:
        """Testers, dict-like: ``env.tests["even"] = func``."""
        return CapabilityRegistry(self, "_tests", "test")

    @property
    def functions(self) -> CapabilityRegistry:
        """Functions, dict-like: ``env.functions["now"] = func``."""
        return CapabilityRegistry(self, "_functions", "function")

    def _registry(self, kind: str) -> CapabilityRegistry:
        if kind == "filter":
            return self.filters
        if kind == "test":
            return self.tests
        if kind == "function":
            return self.functions
        raise ValueError(f"Unknown capability kind: {kind!r}")

    def add_filter(self, name: str, func: Callable[..., Any], safe: bool = False) -> None:
        """Register ``func(value, *args, **kwargs)`` as a filter.

        With ``safe=True`` string results are marked safe and skip
        autoescaping.
        """
        self.filters.register(name, func, safe)

    def add_test(self, name: str, func: Callable[..., Any], safe: bool = False) -> None:
        """Register ``func(value, *args) -> bool`` as a tester."""
        self.tests.register(name, func, safe)

    def add_function(self, name: str, func: Callable[..., Any], safe: bool = False) -> None:
        """Register ``func(**kwargs)`` as a global function."""
        self.functions.register(name, func, safe)

    def filter(self, name: str | None = None, *, safe: bool = False) -> Callable[[F], F]:
        """Decorator to register a filter.

        Example:
            >>> @env.filter()
            ... def double(value):
            ...     return value * 2

        """

        def decorator(func: F) -> F:
            self.add_filter(name or func.__name__, func, safe=safe)
            return func

        return decorator

    def test(self, name: str | None = None, *, safe: bool = False) -> Callable[[F], F]:
        """Decorator to register a tester."""

        def decorator(func: F) -> F:
            self.add_test(name or func.__name__, func, safe=safe)
            return func

        return decorator

    def function(self, name: str | None = None, *, safe: bool = False) -> Callable[[F], F]:
        """Decorator to register a global function."""

        def decorator(func: F) -> F:
            self.add_function(name or func.__name__, func, safe=safe)
            return func

        return decorator

    def lookup_capability(self, kind: str, name: str) -> Capability:
        """Registered capability ``name`` of ``kind``.

        Raises:
            CapabilityNotFoundError: With a did-you-mean suggestion when a
                registered name is close.
        """
        registry = self._registry(kind)
        capability = registry.lookup(name)
        if capability is None:
            matches = get_close_matches(name, list(registry.keys()), n=1, cutoff=0.6)
            suggestion = f"Did you mean '{matches[0]}'?" if matches else None
            raise CapabilityNotFoundError(kind, name, suggestion=suggestion)
        return capability

    def get_filter(self, name: str) -> Callable[..., Any]:
        return self.lookup_capability("filter", name).func

    def get_test(self, name: str) -> Callable[..., Any]:
        return self.lookup_capability("test", name).func

    def get_function(self, name: str) -> Callable[..., Any]:
        return self.lookup_capability("function", name).func

    # ------------------------------------------------------------------
    # Escaping
    # ------------------------------------------------------------------

    def autoescape_on(self, suffixes: Iterable[str]) -> None:
        """Replace the autoescape suffixes; an empty list disables escaping."""
        self.autoescape_suffixes = tuple(suffixes)

    def set_escape_fn(self, fn: Callable[[str], str]) -> None:
        self.escape_fn = fn

    def reset_escape_fn(self) -> None:
        """Restore the escape function given at construction."""
        self.escape_fn = self._default_escape_fn

    def should_autoescape(self, template: Template) -> bool:
        """Autoescape when the template's path (or name) has a listed suffix."""
        source = template.path or template.name
        return any(source.endswith(suffix) for suffix in self.autoescape_suffixes)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    @property
    def templates(self) -> Mapping[str, Template]:
        """The current resolved template set (a snapshot; do not mutate)."""
        return self._templates

    @property
    def template_names(self) -> list[str]:
        return list(self._templates)

    def _resolve(self, candidate: Mapping[str, Template]) -> dict[str, Template]:
        """Resolve a candidate template set without touching this one."""
        resolved = build_inheritance_chains(candidate)
        check_macro_files(resolved)
        return resolved

    def _commit(self, candidate: Mapping[str, Template]) -> None:
        self._templates = self._resolve(candidate)

    def add_template(self, name: str, root: TemplateNode, path: str | None = None) -> None:
        """Add one template and re-resolve inheritance.

        Nothing changes if resolution fails (missing parent, cycle,
        missing macro import).

        Raises:
            TemplateSyntaxError: Malformed block/macro metadata
            TemplateConstructionError: The new set does not resolve
        """
        template = Template.from_ast(name, root, path)
        self._commit({**self._templates, name: template})
        logger.debug("Added template '%s'", name)

    def add_templates(self, templates: Mapping[str, TemplateNode]) -> None:
        """Add several templates at once; they may refer to each other."""
        candidate = dict(self._templates)
        for name, root in templates.items():
            candidate[name] = Template.from_ast(name, root)
        self._commit(candidate)
        logger.debug("Added %d templates", len(templates))

    def get_template(self, name: str) -> Template:
        """Resolved template by name.

        Raises:
            TemplateNotFoundError: If no template has that name
        """
        template = self._templates.get(name)
        if template is None:
            raise TemplateNotFoundError(name)
        return template

    def build_inheritance_chains(self) -> None:
        """Re-resolve the current template set."""
        self._templates = build_inheritance_chains(self._templates)

    def check_macro_files(self) -> None:
        """Raise MissingMacroImportError for any dangling macro import."""
        check_macro_files(self._templates)

    def extend(self, other: Environment) -> None:
        """Merge templates and capabilities from ``other``.

        Only names this environment lacks are taken. Merged templates are
        flagged ``from_extend``.
        """
        candidate = dict(self._templates)
        for name, template in other._templates.items():
            if name not in candidate:
                candidate[name] = replace(template, from_extend=True)
        self._commit(candidate)

        for attr in ("_filters", "_tests", "_functions"):
            merged = dict(getattr(other, attr))
            merged.update(getattr(self, attr))
            setattr(self, attr, merged)
        logger.debug("Extended environment with %d templates", len(other._templates))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, name: str, context: ContextLike = None) -> str:
        """Render a registered template to a string."""
        template = self.get_template(name)
        return Renderer(template, self, _as_context(context), self._templates).render()

    def render_to(
        self,
        name: str,
        context: ContextLike,
        sink: Sink,
        encoding: str | None = None,
    ) -> None:
        """Stream a registered template to ``sink.write``."""
        template = self.get_template(name)
        renderer = Renderer(template, self, _as_context(context), self._templates)
        renderer.render_to(sink, encoding)

    def render_ast(self, root: TemplateNode, context: ContextLike = None) -> str:
        """Render an unregistered template AST.

        The AST may extend, include and import registered templates. The
        registered set is left unchanged.
        """
        template = Template.from_ast(ONE_OFF_TEMPLATE_NAME, root)
        resolved = self._resolve({**self._templates, ONE_OFF_TEMPLATE_NAME: template})
        one_off = resolved[ONE_OFF_TEMPLATE_NAME]
        return Renderer(one_off, self, _as_context(context), resolved).render()

    @classmethod
    def one_off(
        cls, root: TemplateNode, context: ContextLike = None, autoescape: bool = False
    ) -> str:
        """Render an AST with a fresh default Environment.

        Example:
            >>> Environment.one_off(n.Template([n.Output(n.Name("x"))]), {"x": "<b>"})
            '<b>'

        """
        env = cls(autoescape_suffixes=(ONE_OFF_TEMPLATE_NAME,) if autoescape else ())
        return env.render_ast(root, context)
