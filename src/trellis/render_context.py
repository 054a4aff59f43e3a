"""Where a render currently is.

The Processor records the template it is walking, the line of the node it
is on, and the trail of includes and macro calls that led there. The
record lives in a ContextVar, not in the template data, so any variable
name stays available to templates and concurrent renders never see each
other's location. Exceptions raised mid-render read it to fill in
``template_name``, ``lineno`` and the template stack.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field

DEFAULT_MAX_INCLUDE_DEPTH = 50

Location = tuple[str | None, int]


@dataclass
class RenderContext:
    """Location and include-depth bookkeeping for one render.

    Attributes:
        template_name: Template whose nodes are being executed
        line: Line of the node being executed, 0 if unknown
        include_depth: Number of includes currently open
        max_include_depth: Depth at which another include is refused
        template_stack: Callers as (template_name, line), outermost first
    """

    template_name: str | None = None
    line: int = 0
    include_depth: int = 0
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH
    template_stack: list[tuple[str, int]] = field(default_factory=list)

    def check_include_depth(self, target: str) -> None:
        """Refuse to open ``target`` once the include limit is reached."""
        if self.include_depth < self.max_include_depth:
            return
        from trellis.environment.exceptions import RecursionLimitError

        raise RecursionLimitError(
            self.max_include_depth,
            target,
            construct="include",
            template_name=self.template_name,
            lineno=self.line or None,
        )

    def enter(self, template_name: str) -> Location:
        """Move into ``template_name``; pass the result to ``leave``."""
        saved = (self.template_name, self.line)
        if self.template_name is not None:
            self.template_stack.append((self.template_name, self.line))
        self.template_name, self.line = template_name, 0
        return saved

    def leave(self, saved: Location) -> None:
        if saved[0] is not None and self.template_stack:
            self.template_stack.pop()
        self.template_name, self.line = saved


_current: ContextVar[RenderContext | None] = ContextVar("trellis_render_context", default=None)


def get_render_context() -> RenderContext | None:
    """The RenderContext of the render in progress, or None."""
    return _current.get()


@contextmanager
def render_context(
    template_name: str | None = None,
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
) -> Iterator[RenderContext]:
    """Install a fresh RenderContext for the ``with`` body.

    The previous one is restored on exit, so a capability that renders
    another template mid-render does not disturb the outer location.
    """
    rctx = RenderContext(template_name=template_name, max_include_depth=max_include_depth)
    token = _current.set(rctx)
    try:
        yield rctx
    finally:
        _current.reset(token)
