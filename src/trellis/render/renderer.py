"""Trellis Renderer: turns a resolved template and a Context into output.

The Renderer decides whether autoescaping applies and where output goes;
the Processor does the tree walking.

Output Strategies:
    ``render()`` collects chunks in a list and joins once at the end,
    O(n) in output size.

    ``render_to(sink)`` streams each chunk to ``sink.write`` as it is
    produced. Output written before a failure stays in the sink.

"""

from __future__ import annotations

import codecs
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

from trellis.environment.exceptions import OutputEncodingError
from trellis.render.processor import Processor

if TYPE_CHECKING:
    from trellis.context import Context
    from trellis.environment.core import Environment
    from trellis.template.core import Template


class Sink(Protocol):
    """Anything with a ``write`` method: files, buffers, sockets."""

    def write(self, data: Any, /) -> Any: ...


class Renderer:
    """Render one template against one Context.

    Args:
        template: A template resolved by the Environment
        env: Environment supplying capabilities and escaping configuration
        context: Render data
        templates: Resolved template set to render against (defaults to
            the Environment's)

    Example:
        >>> Renderer(env.get_template("page.html"), env, Context({"x": 1})).render()
        '<p>1</p>'

    """

    __slots__ = ("context", "env", "should_escape", "template", "templates")

    def __init__(
        self,
        template: Template,
        env: Environment,
        context: Context,
        templates: Mapping[str, Template] | None = None,
    ) -> None:
        self.template = template
        self.env = env
        self.context = context
        self.templates = templates
        self.should_escape = env.should_autoescape(template)

    def _processor(self) -> Processor:
        return Processor(
            self.template,
            self.env,
            self.context,
            self.should_escape,
            templates=self.templates,
        )

    def render(self) -> str:
        """Render to a string."""
        buf: list[str] = []
        self._processor().render(buf.append)
        return "".join(buf)

    def render_to(self, sink: Sink, encoding: str | None = None) -> None:
        """Stream output to ``sink``.

        Args:
            sink: Object with a ``write`` method
            encoding: Encode chunks to bytes with this codec before writing;
                ``None`` writes ``str`` chunks

        Raises:
            OutputEncodingError: Unknown codec, or a chunk the codec
                cannot represent
        """
        if encoding is None:
            self._processor().render(sink.write)
            return

        try:
            codecs.lookup(encoding)
        except LookupError as e:
            raise OutputEncodingError(
                f"Unknown output encoding '{encoding}'",
                template_name=self.template.name,
            ) from e

        def write(chunk: str) -> None:
            try:
                data = chunk.encode(encoding)
            except UnicodeEncodeError as e:
                raise OutputEncodingError(
                    f"Output could not be encoded as {encoding}: {e.reason}",
                    values={"text": e.object[e.start : e.end]},
                ) from e
            sink.write(data)

        self._processor().render(write)
