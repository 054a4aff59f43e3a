"""Trellis exceptions.

Every error is a TemplateError. Construction errors come out of
``Environment.add_templates`` (and friends) while inheritance chains and
macro imports are resolved; the previous template set stays active.
Runtime errors abort the one render that raised them and carry where it
happened: template, line, and the include/macro/block trail leading there.

    TemplateError
    ├── TemplateNotFoundError
    ├── TemplateSyntaxError
    ├── TemplateConstructionError
    │   ├── MissingParentError
    │   ├── CircularExtendsError
    │   └── MissingMacroImportError
    └── TemplateRuntimeError
        ├── UndefinedError
        ├── TemplateTypeError
        ├── CapabilityNotFoundError
        ├── CapabilityError
        ├── MacroArgumentError
        ├── RecursionLimitError
        ├── OutputEncodingError
        └── OrderingError

A runtime error renders as a small report::

    Runtime Error: Filter 'round' failed: could not convert string to float: 'abc'
      Location: product.html:12
      Construct: filter
      Values:
        arg0 = 'abc' (str)
"""

from __future__ import annotations

from collections.abc import Sequence
from difflib import get_close_matches
from enum import Enum
from typing import Any

from trellis.environment import terminal

_MAX_VALUE_REPR = 80

_CATEGORIES = {"CON": "construction", "RUN": "runtime", "TPL": "template"}


class ErrorCode(Enum):
    """Stable, searchable identifiers: ``T-<category>-<number>``."""

    MISSING_PARENT = "T-CON-001"
    CIRCULAR_EXTENDS = "T-CON-002"
    MISSING_MACRO_IMPORT = "T-CON-003"

    UNDEFINED_VARIABLE = "T-RUN-001"
    CAPABILITY_ERROR = "T-RUN-002"
    CAPABILITY_NOT_FOUND = "T-RUN-003"
    TYPE_ERROR = "T-RUN-004"
    MACRO_ARGUMENT = "T-RUN-005"
    RECURSION_LIMIT = "T-RUN-006"
    RUNTIME_ERROR = "T-RUN-007"
    ORDERING = "T-RUN-008"
    OUTPUT_ENCODING = "T-RUN-009"

    TEMPLATE_NOT_FOUND = "T-TPL-001"
    SYNTAX_ERROR = "T-TPL-002"

    @property
    def category(self) -> str:
        return _CATEGORIES.get(self.value.split("-")[1], "unknown")


def _where(template_name: str | None, lineno: int | None, col_offset: int | None = None) -> str:
    text = template_name or "<template>"
    if lineno:
        text = f"{text}:{lineno}"
        if col_offset is not None:
            text = f"{text}:{col_offset}"
    return text


def _describe_value(name: str, value: Any) -> str:
    text = repr(value)
    if len(text) > _MAX_VALUE_REPR:
        text = text[: _MAX_VALUE_REPR - 3] + "..."
    return f"    {name} = {text} ({type(value).__name__})"


def format_template_stack(stack: Sequence[tuple[str, int]] | None) -> str:
    """Render the (template, line) trail of a failed render, outermost first.

    >>> print(format_template_stack([("base.html", 42), ("macros.html", 3)]))
    Template stack:
      • base.html:42
      • macros.html:3
    """
    if not stack:
        return ""
    entries = [f"  • {terminal.location(_where(name, line))}" for name, line in stack]
    return "\n".join([terminal.dim_text("Template stack:"), *entries])


class TemplateError(Exception):
    """Base class of everything Trellis raises."""

    code: ErrorCode | None = None

    def format_compact(self) -> str:
        """The message, prefixed by the error code when it has one."""
        text = str(self)
        if self.code is None or self.code.value in text:
            return text
        return f"{self.code.value}: {text}"


class TemplateNotFoundError(TemplateError):
    code: ErrorCode | None = ErrorCode.TEMPLATE_NOT_FOUND

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        super().__init__(message or f"Template '{name}' not found")


class TemplateSyntaxError(TemplateError):
    """A template AST whose blocks or macros cannot be indexed.

    Duplicate block or macro names, or a block/macro placed where it may
    not be defined.
    """

    code: ErrorCode | None = ErrorCode.SYNTAX_ERROR

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        name: str | None = None,
        col_offset: int | None = None,
    ):
        self.message = message
        self.lineno = lineno
        self.name = name
        self.col_offset = col_offset
        super().__init__(f"Syntax Error: {message}\n  --> {_where(name, lineno, col_offset)}")


class TemplateConstructionError(TemplateError):
    """The template set cannot be resolved into renderable templates."""

    def __init__(self, message: str, *, template_name: str | None = None):
        self.message = message
        self.template_name = template_name
        super().__init__(message)


class MissingParentError(TemplateConstructionError):
    code: ErrorCode | None = ErrorCode.MISSING_PARENT

    def __init__(self, template_name: str, parent: str):
        self.parent = parent
        super().__init__(
            f"Template '{template_name}' is inheriting from '{parent}', "
            f"which doesn't exist or isn't loaded.",
            template_name=template_name,
        )


class CircularExtendsError(TemplateConstructionError):
    """Following ``extends`` from a template comes back to it.

    ``cycle`` lists the ancestors walked, ending with the starting template.
    """

    code: ErrorCode | None = ErrorCode.CIRCULAR_EXTENDS

    def __init__(self, template_name: str, cycle: Sequence[str]):
        self.cycle = tuple(cycle)
        trail = " -> ".join((template_name, *self.cycle))
        super().__init__(
            f"Circular extend detected for template '{template_name}'. "
            f"Inheritance chain: {trail}",
            template_name=template_name,
        )


class MissingMacroImportError(TemplateConstructionError):
    code: ErrorCode | None = ErrorCode.MISSING_MACRO_IMPORT

    def __init__(self, template_name: str, macro_file: str):
        self.macro_file = macro_file
        super().__init__(
            f"Template '{template_name}' loads macros from '{macro_file}' "
            f"which isn't present in the environment",
            template_name=template_name,
        )


class TemplateRuntimeError(TemplateError):
    """Something went wrong while walking a template.

    Attributes:
        message: What went wrong
        construct: Kind of node or operation that failed (for, filter, ...)
        expression: Key, path or argument involved
        values: Named values shown in the report
        template_name: Template being executed, filled in by the Processor
        lineno: Line of the failing node, filled in by the Processor
        suggestion: How to fix it
        template_stack: Includes/macros/blocks that led here
    """

    code: ErrorCode | None = ErrorCode.RUNTIME_ERROR

    def __init__(
        self,
        message: str,
        *,
        construct: str | None = None,
        expression: str | None = None,
        values: dict[str, Any] | None = None,
        template_name: str | None = None,
        lineno: int | None = None,
        suggestion: str | None = None,
        template_stack: list[tuple[str, int]] | None = None,
    ):
        self.message = message
        self.construct = construct
        self.expression = expression
        self.values = values or {}
        self.template_name = template_name
        self.lineno = lineno
        self.suggestion = suggestion
        self.template_stack = template_stack or []
        super().__init__(self._format_message())

    def with_location(
        self,
        template_name: str | None,
        lineno: int | None,
        template_stack: list[tuple[str, int]] | None = None,
    ) -> TemplateRuntimeError:
        """Fill in whichever location fields are still empty."""
        if self.template_name is None:
            self.template_name = template_name
        self.lineno = self.lineno or lineno
        if template_stack and not self.template_stack:
            self.template_stack = list(template_stack)
        self.args = (self._format_message(),)
        return self

    @property
    def _located(self) -> bool:
        return bool(self.template_name or self.lineno)

    def _format_message(self) -> str:
        lines = [f"Runtime Error: {self.message}"]
        if self._located:
            lines.append(f"  Location: {terminal.location(_where(self.template_name, self.lineno))}")
        if self.template_stack:
            lines += ["", format_template_stack(self.template_stack)]
        for label, text in (("Construct", self.construct), ("Expression", self.expression)):
            if text:
                lines.append(f"  {label}: {text}")
        if self.values:
            lines.append("  Values:")
            lines.extend(_describe_value(name, value) for name, value in self.values.items())
        if self.suggestion:
            lines.append(f"\n  {terminal.hint('Suggestion:')} {self.suggestion}")
        return "\n".join(lines)

    def format_compact(self) -> str:
        """Header with the error code, location, trail and hint; no values."""
        code = self.code.value if self.code else None
        lines = [
            terminal.format_error_header(code, self.message),
            f"  Location: {terminal.location(_where(self.template_name, self.lineno))}",
        ]
        if self.template_stack:
            lines.append(format_template_stack(self.template_stack))
        if self.expression:
            lines.append(f"  Expression: {self.expression}")
        if self.suggestion:
            lines.append(f"  {terminal.hint('Hint:')} {self.suggestion}")
        return "\n".join(lines)


class TemplateTypeError(TemplateRuntimeError):
    """A value of the wrong kind, e.g. a number in a ``for`` or ``"a" + 1``."""

    code: ErrorCode | None = ErrorCode.TYPE_ERROR


class CapabilityNotFoundError(TemplateRuntimeError):
    """No filter, test, function, macro or namespace under that name."""

    code: ErrorCode | None = ErrorCode.CAPABILITY_NOT_FOUND

    def __init__(self, kind: str, name: str, **kwargs: Any):
        self.kind = kind
        self.name = name
        kwargs.setdefault("construct", kind)
        super().__init__(f"{kind.capitalize()} '{name}' not found", **kwargs)


class CapabilityError(TemplateRuntimeError):
    """A filter, test or function raised something other than a TemplateError.

    The original exception is the ``__cause__``. ``call_args`` includes the
    filtered or tested value as its first item and is reported as
    ``arg0``, ``arg1``, ... next to the keyword arguments.
    """

    code: ErrorCode | None = ErrorCode.CAPABILITY_ERROR

    def __init__(
        self,
        kind: str,
        name: str,
        error: BaseException,
        *,
        call_args: Sequence[Any] = (),
        call_kwargs: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        self.kind = kind
        self.name = name
        self.call_args = tuple(call_args)
        self.call_kwargs = dict(call_kwargs or {})
        reason = getattr(error, "message", None) or str(error) or type(error).__name__
        kwargs.setdefault("construct", kind)
        super().__init__(
            f"{kind.capitalize()} '{name}' failed: {reason}",
            values={**{f"arg{i}": arg for i, arg in enumerate(self.call_args)}, **self.call_kwargs},
            **kwargs,
        )


class MacroArgumentError(TemplateRuntimeError):
    code: ErrorCode | None = ErrorCode.MACRO_ARGUMENT

    def __init__(self, macro_name: str, message: str, **kwargs: Any):
        self.macro_name = macro_name
        kwargs.setdefault("construct", "macro")
        super().__init__(f"Macro '{macro_name}': {message}", **kwargs)


class RecursionLimitError(TemplateRuntimeError):
    """Macro calls or includes nested past the Environment's limit."""

    code: ErrorCode | None = ErrorCode.RECURSION_LIMIT

    def __init__(self, limit: int, target: str, *, construct: str = "macro", **kwargs: Any):
        self.limit = limit
        self.target = target
        super().__init__(
            f"Maximum {construct} depth exceeded ({limit}) when calling '{target}'",
            construct=construct,
            suggestion="Check for a macro or include that unconditionally calls itself",
            **kwargs,
        )


class OutputEncodingError(TemplateRuntimeError):
    """Rendered text could not be encoded for a byte sink."""

    code: ErrorCode | None = ErrorCode.OUTPUT_ENCODING


class OrderingError(TemplateRuntimeError):
    """``sort``/``unique`` met mixed kinds, an unorderable kind, or a missing key."""

    code: ErrorCode | None = ErrorCode.ORDERING

    def __init__(self, message: str, *, attribute: str | None = None, **kwargs: Any):
        self.attribute = attribute
        kwargs.setdefault("construct", "ordering")
        if attribute:
            kwargs.setdefault("expression", attribute)
        super().__init__(message, **kwargs)


class UndefinedError(TemplateRuntimeError):
    """A variable, attribute or index lookup found nothing.

    ``name`` is the full path as written (``user.nme``, ``items[5]``). When
    ``available_names`` is given, the closest visible name to its first
    segment is offered as a suggestion.
    """

    code: ErrorCode | None = ErrorCode.UNDEFINED_VARIABLE

    def __init__(
        self,
        name: str,
        template: str | None = None,
        lineno: int | None = None,
        available_names: frozenset[str] | None = None,
        template_stack: list[tuple[str, int]] | None = None,
    ):
        self.name = name
        self._available_names = available_names
        super().__init__(
            f"Undefined variable '{name}'",
            construct="variable",
            expression=name,
            template_name=template,
            lineno=lineno,
            suggestion=f"Use {{{{ {name} | default(value='') }}}} for optional variables",
            template_stack=template_stack,
        )

    @property
    def template(self) -> str:
        return self.template_name or "<template>"

    def _closest_name(self) -> str | None:
        if not self._available_names:
            return None
        root = self.name.split(".", 1)[0]
        matches = get_close_matches(root, self._available_names, n=1, cutoff=0.6)
        if matches and matches[0] != root:
            return matches[0]
        return None

    def _format_message(self) -> str:
        where = terminal.location(_where(self.template_name, self.lineno))
        msg = f"{self.message} in {where}"
        closest = self._closest_name()
        if closest:
            msg += f". Did you mean '{terminal.suggestion(closest)}'?"
        if self.template_stack:
            msg += "\n\n" + format_template_stack(self.template_stack)
        return f"{msg}\n  {terminal.hint('Hint:')} {self.suggestion}"
