"""Trellis Processor: the tree-walking interpreter.

Walks a template's AST against the render Context and a fresh CallStack,
writing output text through a ``write`` callable as it goes. There is no
compile step: every node is dispatched by type name to a handler method.

Dispatch:
    Statements go through ``_STATEMENTS`` (node type name → method name),
    expressions through ``_EXPRESSIONS``. Both tables are built once per
    class, so a Processor costs one dict lookup per node.

Scoping:
    - ``set`` binds in the innermost frame; ``set_global`` in the nearest
      macro or root frame.
    - Each for-loop iteration gets its own frame.
    - Macro bodies see only their parameters (see ``CallStack.find``).

Escaping:
    ``{{ expr }}`` output passes through the Environment's escape function
    when autoescaping is on, unless the value is ``Markup`` (produced by the
    ``safe`` filter, safe capabilities and macro calls).

Error Handling:
    Template errors propagate unchanged, with the current template and line
    filled in. Any other exception escaping a handler is wrapped in a
    ``TemplateRuntimeError`` so callers only ever see template errors.

"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from trellis.context import get_attr, get_item, render_scalar
from trellis.environment.exceptions import (
    CapabilityError,
    CapabilityNotFoundError,
    MacroArgumentError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateTypeError,
    UndefinedError,
)
from trellis.environment.filters import UNDEFINED_TOLERANT_FILTERS
from trellis.nodes import (
    Getattr,
    Getitem,
    Name,
)
from trellis.render.call_stack import CallStack
from trellis.render.stack_frame import StackFrame
from trellis.render_context import RenderContext, render_context
from trellis.template.helpers import UNDEFINED, coerce_number, is_truthy
from trellis.template.loop_context import ForLoop, LoopSignal
from trellis.utils.html import Markup

if TYPE_CHECKING:
    from trellis.context import Context
    from trellis.environment.core import Environment
    from trellis.environment.registry import Capability
    from trellis.nodes import Node
    from trellis.template.core import BlockChain, Template

logger = logging.getLogger(__name__)

Write = Callable[[str], Any]


def _describe(expr: Any) -> str:
    """Source-like text of a lookup expression, for error messages."""
    if isinstance(expr, Name):
        return expr.name
    if isinstance(expr, Getattr):
        return f"{_describe(expr.obj)}.{expr.attr}"
    if isinstance(expr, Getitem):
        key = getattr(expr.key, "value", None)
        inner = repr(key) if isinstance(key, (str, int)) else "..."
        return f"{_describe(expr.obj)}[{inner}]"
    return type(expr).__name__


def _same_kind(a: Any, b: Any) -> bool:
    """bool never equals a number, even though Python says True == 1."""
    return isinstance(a, bool) == isinstance(b, bool)


def _values_equal(a: Any, b: Any) -> bool:
    if not _same_kind(a, b):
        return False
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(_values_equal(x, y) for x, y in zip(a, b, strict=True))
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(_values_equal(a[k], b[k]) for k in a)
    return bool(a == b)


class Processor:
    """Interprets one template for one render call.

    Args:
        template: The resolved template to render
        env: Environment providing capabilities and configuration
        context: Read-only render data
        should_escape: Whether ``{{ }}`` output is autoescaped
        templates: Resolved template set to render against (defaults to the
            Environment's current set)

    Example:
        >>> buf = []
        >>> Processor(template, env, Context({"name": "Ada"}), False).render(buf.append)
        >>> "".join(buf)
        'Hello, Ada!'

    """

    _STATEMENTS: dict[str, str] = {
        "Data": "_render_data",
        "Raw": "_render_data",
        "Output": "_render_output",
        "If": "_render_if",
        "For": "_render_for",
        "Break": "_render_break",
        "Continue": "_render_continue",
        "Set": "_render_set",
        "Block": "_render_block",
        "Super": "_render_super",
        "Include": "_render_include",
        "FilterBlock": "_render_filter_block",
        "Macro": "_render_nothing",
        "Import": "_render_nothing",
        "Extends": "_render_nothing",
    }

    _EXPRESSIONS: dict[str, str] = {
        "Const": "_eval_const",
        "Name": "_eval_name",
        "List": "_eval_list",
        "Dict": "_eval_dict",
        "Getattr": "_eval_getattr",
        "Getitem": "_eval_getitem",
        "FuncCall": "_eval_func_call",
        "MacroCall": "_eval_macro_call",
        "Filter": "_eval_filter",
        "Test": "_eval_test",
        "BinOp": "_eval_binop",
        "UnaryOp": "_eval_unaryop",
        "Compare": "_eval_compare",
        "BoolOp": "_eval_boolop",
        "CondExpr": "_eval_condexpr",
        "Concat": "_eval_concat",
    }

    def __init__(
        self,
        template: Template,
        env: Environment,
        context: Context,
        should_escape: bool,
        templates: Mapping[str, Template] | None = None,
    ) -> None:
        self.template = template
        self.env = env
        self.context = context
        self.should_escape = should_escape
        self.templates = templates if templates is not None else env.templates
        self.call_stack = CallStack(context, max_macro_depth=env.max_macro_depth)
        self._escape = env.escape_fn
        # Templates whose block chains are in effect; includes push onto it.
        self._render_targets: list[Template] = [template]
        self._signal_pending = False
        self._rctx: RenderContext | None = None

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def render(self, write: Write) -> None:
        """Render the template, passing output chunks to ``write``.

        The call stack is empty afterwards whether or not rendering
        succeeded. Output already written stays written on failure.
        """
        with render_context(max_include_depth=self.env.max_include_depth) as rctx:
            self._rctx = rctx
            logger.debug("Rendering %s", self.template.name)
            try:
                self._render_template(self.template, write)
            finally:
                self.call_stack.clear()
                self._rctx = None

    def _entry_template(self, template: Template) -> Template:
        """The template whose body renders: the farthest ancestor, if any."""
        if template.is_inheriting:
            return self._get_template(template.parents[-1])
        return template

    def _render_template(self, template: Template, write: Write) -> None:
        entry = self._entry_template(template)
        with self._located(entry.name):
            self.call_stack.push(StackFrame.root(entry))
            try:
                self.render_body(entry.ast.body, write)
            finally:
                self.call_stack.pop()

    def _get_template(self, name: str) -> Template:
        template = self.templates.get(name)
        if template is None:
            raise TemplateNotFoundError(name)
        return template

    def _render_state(self) -> RenderContext:
        if self._rctx is None:
            raise TemplateRuntimeError(
                "Template nodes rendered outside of Processor.render()",
                suggestion="Call render() to set up the render context",
            )
        return self._rctx

    @contextmanager
    def _located(self, template_name: str) -> Iterator[None]:
        """Attribute errors raised inside to ``template_name``."""
        rctx = self._render_state()
        previous = rctx.enter(template_name)
        try:
            yield
        except TemplateRuntimeError as e:
            raise e.with_location(rctx.template_name, rctx.line, list(rctx.template_stack))
        except TemplateError:
            raise
        except Exception as e:
            raise TemplateRuntimeError(
                f"{type(e).__name__}: {e}",
                template_name=rctx.template_name,
                lineno=rctx.line or None,
                template_stack=list(rctx.template_stack),
            ) from e
        finally:
            rctx.leave(previous)

    def _undefined(self, expr: Any) -> UndefinedError:
        rctx = self._rctx
        return UndefinedError(
            _describe(expr),
            rctx.template_name if rctx else None,
            (rctx.line or None) if rctx else None,
            available_names=self.call_stack.visible_names(),
            template_stack=list(rctx.template_stack) if rctx else None,
        )

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def render_body(self, body: Sequence[Node], write: Write) -> None:
        """Render nodes in order, stopping early on break/continue."""
        rctx = self._rctx
        for node in body:
            if node.lineno and rctx is not None:
                rctx.line = node.lineno
            handler = self._STATEMENTS.get(type(node).__name__)
            if handler is None:
                raise TemplateRuntimeError(f"Unknown node type: {type(node).__name__}")
            getattr(self, handler)(node, write)
            if self._signal_pending:
                return

    def _render_nothing(self, node: Node, write: Write) -> None:
        return None

    def _render_data(self, node: Any, write: Write) -> None:
        write(node.value)

    def _render_output(self, node: Any, write: Write) -> None:
        value = self.eval(node.expr)
        if isinstance(value, Markup):
            write(str(value))
            return
        text = render_scalar(value)
        write(self._escape(text) if self.should_escape else text)

    def _render_if(self, node: Any, write: Write) -> None:
        if self.eval_condition(node.test):
            self.render_body(node.body, write)
            return
        for test, body in node.elif_:
            if self.eval_condition(test):
                self.render_body(body, write)
                return
        self.render_body(node.else_, write)

    def _loop_pairs(self, node: Any) -> list[tuple[Any, Any]]:
        container = self.eval(node.iter)
        name = _describe(node.iter)
        if isinstance(container, (list, tuple)):
            if node.key_target is not None:
                raise TemplateTypeError(
                    f"Tried to iterate using key value on variable '{name}', but it isn't an object",
                    construct="for",
                    expression=name,
                    values={name: container},
                )
            return [(None, item) for item in container]
        if isinstance(container, Mapping):
            if node.key_target is None:
                raise TemplateTypeError(
                    f"Tried to iterate over object '{name}' with a single variable",
                    construct="for",
                    expression=name,
                    suggestion="Use {% for key, value in ... %} to iterate over an object",
                )
            return list(container.items())
        kind = "undefined" if container is UNDEFINED else type(container).__name__
        raise TemplateTypeError(
            f"Tried to iterate over '{name}', which is not an array or an object ({kind})",
            construct="for",
            expression=name,
            values={name: container},
            suggestion="Only arrays and objects can be iterated",
        )

    def _render_for(self, node: Any, write: Write) -> None:
        pairs = self._loop_pairs(node)
        active = self.call_stack.active_template
        if node.test is not None:
            # loop.* in the condition describes the unfiltered sequence
            candidates = ForLoop(node.target, pairs, node.key_target)
            kept = []
            for pair in candidates:
                self.call_stack.push(StackFrame.for_loop_frame(candidates, active))
                try:
                    if self.eval_condition(node.test):
                        kept.append(pair)
                finally:
                    self.call_stack.pop()
            pairs = kept

        if not pairs:
            self.render_body(node.empty, write)
            return

        loop = ForLoop(node.target, pairs, node.key_target)
        for _pair in loop:
            self.call_stack.push(StackFrame.for_loop_frame(loop, active))
            try:
                self.render_body(node.body, write)
            finally:
                self.call_stack.pop()
            signal = loop.signal
            loop.signal = LoopSignal.NONE
            self._signal_pending = False
            if signal is LoopSignal.BREAK:
                break

    def _loop_for_signal(self, construct: str) -> ForLoop:
        loop = self.call_stack.current_for_loop()
        if loop is None:
            raise TemplateRuntimeError(
                f"{{% {construct} %}} used outside of a for loop",
                construct=construct,
            )
        return loop

    def _render_break(self, node: Any, write: Write) -> None:
        self._loop_for_signal("break").break_loop()
        self._signal_pending = True

    def _render_continue(self, node: Any, write: Write) -> None:
        self._loop_for_signal("continue").continue_loop()
        self._signal_pending = True

    def _render_set(self, node: Any, write: Write) -> None:
        value = self.eval(node.value)
        if node.global_:
            self.call_stack.assign_global(node.target, value)
        else:
            self.call_stack.assign(node.target, value)

    def _render_chain_entry(
        self, block_name: str, chain: BlockChain, position: int, write: Write
    ) -> None:
        owner_name, block = chain[position]
        owner = self._get_template(owner_name)
        with self._located(owner_name):
            self.call_stack.push(StackFrame.block(block_name, position, chain, owner))
            try:
                self.render_body(block.body, write)
            finally:
                self.call_stack.pop()

    def _render_block(self, node: Any, write: Write) -> None:
        target = self._render_targets[-1]
        chain = target.block_chain(node.name)
        if not chain:
            chain = ((self.call_stack.active_template.name, node),)
        self._render_chain_entry(node.name, chain, 0, write)

    def _render_super(self, node: Any, write: Write) -> None:
        frame = self.call_stack.current_chain_position()
        if frame is None or frame.block_name is None:
            raise TemplateRuntimeError(
                "super() called outside of a block",
                construct="super",
            )
        position = frame.position + 1
        if position >= len(frame.chain):
            raise TemplateRuntimeError(
                f"Tried to use super() in the top level block '{frame.block_name}'",
                construct="super",
                expression=frame.block_name,
                suggestion="Only blocks that override a parent definition can call super()",
            )
        self._render_chain_entry(frame.block_name, frame.chain, position, write)

    def _render_include(self, node: Any, write: Write) -> None:
        template = None
        for name in node.templates:
            template = self.templates.get(name)
            if template is not None:
                break
        if template is None:
            if node.ignore_missing:
                return
            names = ", ".join(f"'{name}'" for name in node.templates)
            raise TemplateNotFoundError(
                ", ".join(node.templates),
                message=f"Template(s) for include not found: {names}",
            )

        rctx = self._render_state()
        rctx.check_include_depth(template.name)
        rctx.include_depth += 1
        self._render_targets.append(template)
        try:
            self._render_template(template, write)
        finally:
            self._render_targets.pop()
            rctx.include_depth -= 1

    def _render_filter_block(self, node: Any, write: Write) -> None:
        buf: list[str] = []
        self.render_body(node.body, buf.append)
        args = [self.eval(arg) for arg in node.args]
        kwargs = {key: self.eval(value) for key, value in node.kwargs.items()}
        capability = self.env.lookup_capability("filter", node.name)
        result = self._call(capability, "filter", ["".join(buf), *args], kwargs)
        write(str(result) if isinstance(result, Markup) else render_scalar(result))

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def eval(self, expr: Any) -> Any:
        """Evaluate an expression; undefined names are an error."""
        handler = self._EXPRESSIONS.get(type(expr).__name__)
        if handler is None:
            raise TemplateRuntimeError(f"Unknown expression type: {type(expr).__name__}")
        return getattr(self, handler)(expr)

    def eval_lenient(self, expr: Any) -> Any:
        """Like ``eval`` but a missing name/attribute/item is UNDEFINED."""
        if isinstance(expr, Name):
            return self.call_stack.find(expr.name)
        if isinstance(expr, Getattr):
            obj = self.eval_lenient(expr.obj)
            return UNDEFINED if obj is UNDEFINED else get_attr(obj, expr.attr)
        if isinstance(expr, Getitem):
            obj = self.eval_lenient(expr.obj)
            if obj is UNDEFINED:
                return UNDEFINED
            return get_item(obj, self.eval(expr.key))
        return self.eval(expr)

    def eval_condition(self, expr: Any) -> bool:
        """Truthiness of a condition; undefined lookups count as false."""
        return is_truthy(self.eval_lenient(expr))

    def _eval_const(self, expr: Any) -> Any:
        return expr.value

    def _eval_name(self, expr: Any) -> Any:
        value = self.call_stack.find(expr.name)
        if value is UNDEFINED:
            raise self._undefined(expr)
        return value

    def _eval_list(self, expr: Any) -> list[Any]:
        return [self.eval(item) for item in expr.items]

    def _eval_dict(self, expr: Any) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key_expr, value_expr in zip(expr.keys, expr.values, strict=True):
            key = self.eval(key_expr)
            if not isinstance(key, str):
                raise TemplateTypeError(
                    f"Object keys must be strings, got {type(key).__name__}",
                    construct="dict",
                    values={"key": key},
                )
            result[key] = self.eval(value_expr)
        return result

    def _eval_getattr(self, expr: Any) -> Any:
        value = get_attr(self.eval(expr.obj), expr.attr)
        if value is UNDEFINED:
            raise self._undefined(expr)
        return value

    def _eval_getitem(self, expr: Any) -> Any:
        obj = self.eval(expr.obj)
        key = self.eval(expr.key)
        value = get_item(obj, key)
        if value is UNDEFINED:
            raise self._undefined(expr)
        return value

    def _call(
        self,
        capability: Capability,
        kind: str,
        call_args: Sequence[Any],
        call_kwargs: dict[str, Any],
    ) -> Any:
        """Invoke a capability, wrapping its failures in CapabilityError.

        Errors already located in a template (a render started by the
        capability) pass through as they are. Only capabilities registered
        as safe may produce Markup.
        """
        try:
            result = capability.func(*call_args, **call_kwargs)
        except CapabilityError:
            raise
        except TemplateRuntimeError as e:
            if e.template_name is not None:
                raise
            raise CapabilityError(
                kind,
                capability.name,
                e,
                call_args=call_args,
                call_kwargs=call_kwargs,
            ) from e
        except TemplateError:
            raise
        except Exception as e:
            raise CapabilityError(
                kind,
                capability.name,
                e,
                call_args=call_args,
                call_kwargs=call_kwargs,
            ) from e
        if not capability.safe:
            return str(result) if isinstance(result, Markup) else result
        if isinstance(result, str) and not isinstance(result, Markup):
            result = Markup(result)
        return result

    def _eval_func_call(self, expr: Any) -> Any:
        capability = self.env.lookup_capability("function", expr.name)
        args = [self.eval(arg) for arg in expr.args]
        kwargs = {key: self.eval(value) for key, value in expr.kwargs.items()}
        return self._call(capability, "function", args, kwargs)

    def _eval_filter(self, expr: Any) -> Any:
        capability = self.env.lookup_capability("filter", expr.name)
        if expr.name in UNDEFINED_TOLERANT_FILTERS:
            value = self.eval_lenient(expr.value)
        else:
            value = self.eval(expr.value)
        args = [self.eval(arg) for arg in expr.args]
        kwargs = {key: self.eval(val) for key, val in expr.kwargs.items()}
        return self._call(capability, "filter", [value, *args], kwargs)

    def _eval_test(self, expr: Any) -> bool:
        capability = self.env.lookup_capability("test", expr.name)
        value = self.eval_lenient(expr.value)
        args = [self.eval(arg) for arg in expr.args]
        result = bool(self._call(capability, "test", [value, *args], {}))
        return not result if expr.negated else result

    def _number_operand(self, value: Any, op: str) -> int | float:
        number = coerce_number(value)
        if number is None:
            raise TemplateTypeError(
                f"Tried to apply '{op}' to a value that is not a number",
                construct="math",
                values={"operand": value},
                suggestion="Use '~' to concatenate strings",
            )
        return number

    def _eval_binop(self, expr: Any) -> int | float:
        op = expr.op
        left = self._number_operand(self.eval(expr.left), op)
        right = self._number_operand(self.eval(expr.right), op)
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if op in ("/", "//", "%") and right == 0:
            raise TemplateRuntimeError(
                "Tried to divide by zero",
                construct="math",
                values={"left": left, "right": right},
            )
        if op == "/":
            return left / right
        if op == "//":
            return left // right
        if op == "%":
            return left % right
        raise TemplateRuntimeError(f"Unknown arithmetic operator '{op}'", construct="math")

    def _eval_unaryop(self, expr: Any) -> Any:
        if expr.op == "not":
            return not self.eval_condition(expr.operand)
        if expr.op == "-":
            return -self._number_operand(self.eval(expr.operand), "-")
        raise TemplateRuntimeError(f"Unknown unary operator '{expr.op}'")

    def _compare(self, op: str, left: Any, right: Any) -> bool:
        if op == "==":
            return _values_equal(left, right)
        if op == "!=":
            return not _values_equal(left, right)
        if op in ("in", "not in"):
            if isinstance(right, str):
                if not isinstance(left, str):
                    raise TemplateTypeError(
                        "Tried to check if a non-string is in a string",
                        construct="in",
                        values={"left": left, "right": right},
                    )
                found = left in right
            elif isinstance(right, (list, tuple)):
                found = any(_values_equal(left, item) for item in right)
            elif isinstance(right, Mapping):
                found = isinstance(left, str) and left in right
            else:
                raise TemplateTypeError(
                    "The right side of 'in' must be a string, an array or an object",
                    construct="in",
                    values={"right": right},
                )
            return found if op == "in" else not found
        numbers = (coerce_number(left), coerce_number(right))
        if None not in numbers:
            left, right = numbers
        elif not (isinstance(left, str) and isinstance(right, str)):
            raise TemplateTypeError(
                f"Tried to compare values of different or unordered kinds with '{op}'",
                construct="compare",
                values={"left": left, "right": right},
            )
        if op == "<":
            return left < right
        if op == "<=":
            return left <= right
        if op == ">":
            return left > right
        if op == ">=":
            return left >= right
        raise TemplateRuntimeError(f"Unknown comparison operator '{op}'", construct="compare")

    def _eval_compare(self, expr: Any) -> bool:
        left = self.eval(expr.left)
        for op, comparator in zip(expr.ops, expr.comparators, strict=True):
            right = self.eval(comparator)
            if not self._compare(op, left, right):
                return False
            left = right
        return True

    def _eval_boolop(self, expr: Any) -> bool:
        if expr.op == "and":
            return all(self.eval_condition(value) for value in expr.values)
        return any(self.eval_condition(value) for value in expr.values)

    def _eval_condexpr(self, expr: Any) -> Any:
        if self.eval_condition(expr.test):
            return self.eval(expr.if_true)
        return self.eval(expr.if_false)

    def _eval_concat(self, expr: Any) -> str:
        return "".join(render_scalar(self.eval(node)) for node in expr.nodes)

    # ------------------------------------------------------------------
    # Macros
    # ------------------------------------------------------------------

    def _namespace_sources(self) -> Iterator[Template]:
        """Templates whose imports define macro namespaces, in priority order."""
        active = self.call_stack.active_template
        yield active
        for name in active.parents:
            yield self._get_template(name)
        target = self._render_targets[-1]
        yield target
        for name in target.parents:
            yield self._get_template(name)

    def resolve_macro_template(self, namespace: str) -> Template:
        """Template holding the macros of ``namespace``.

        ``self`` is the template whose code is executing; other namespaces
        come from ``{% import ... as namespace %}``.
        """
        if namespace == "self":
            return self.call_stack.active_template
        for source in self._namespace_sources():
            macro_file = source.imported_namespaces.get(namespace)
            if macro_file is not None:
                return self._get_template(macro_file)
        raise CapabilityNotFoundError(
            "macro namespace",
            namespace,
            suggestion=f"Add {{% import \"...\" as {namespace} %}} to the template",
        )

    def _eval_macro_call(self, expr: Any) -> Markup:
        macro_template = self.resolve_macro_template(expr.namespace)
        macro = macro_template.macros.get(expr.name)
        if macro is None:
            raise CapabilityNotFoundError("macro", f"{expr.namespace}::{expr.name}")

        full_name = f"{expr.namespace}::{expr.name}"
        args = [self.eval(arg) for arg in expr.args]
        kwargs = {key: self.eval(value) for key, value in expr.kwargs.items()}

        params = macro.params
        if len(args) > len(params):
            raise MacroArgumentError(
                full_name,
                f"takes {len(params)} arguments but {len(args)} were given",
            )
        bound: dict[str, Any] = {}
        for param, value in zip(params, args, strict=False):
            bound[param.name] = value
        param_names = set(macro.args)
        for key, value in kwargs.items():
            if key not in param_names:
                raise MacroArgumentError(
                    full_name,
                    f"unknown argument '{key}'",
                    expression=key,
                )
            if key in bound:
                raise MacroArgumentError(
                    full_name,
                    f"argument '{key}' given twice",
                    expression=key,
                )
            bound[key] = value

        buf: list[str] = []
        self.call_stack.push(StackFrame.macro(expr.name, macro_template))
        try:
            with self._located(macro_template.name):
                for param in params:
                    if param.name in bound:
                        self.call_stack.assign(param.name, bound[param.name])
                    elif param.default is not None:
                        self.call_stack.assign(param.name, self.eval(param.default))
                    else:
                        raise MacroArgumentError(
                            full_name,
                            f"missing required argument '{param.name}'",
                            expression=param.name,
                        )
                self.render_body(macro.body, buf.append)
        finally:
            self.call_stack.pop()
        return Markup("".join(buf))


__all__ = ["Processor"]
