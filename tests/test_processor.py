"""Tests for the Processor: statements, expressions and capability dispatch."""

import pytest

from trellis import (
    CapabilityError,
    CapabilityNotFoundError,
    Environment,
    RecursionLimitError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateTypeError,
    UndefinedError,
)
from trellis import nodes as n

from .helpers import attr, const, flt, name, out, render, tpl


class TestOutput:
    def test_data_and_variable(self, env):
        assert render(env, n.Data("Hello, "), out(name("who")), n.Data("!"), who="World") == (
            "Hello, World!"
        )

    def test_raw(self, env):
        assert render(env, n.Raw("{{ not evaluated }}")) == "{{ not evaluated }}"

    @pytest.mark.parametrize(
        ("val", "text"),
        [(None, ""), (True, "true"), (False, "false"), (42, "42"), (1.5, "1.5")],
    )
    def test_scalars(self, env, val, text):
        assert render(env, out(name("v")), v=val) == text

    @pytest.mark.parametrize("val", [[1, 2], {"a": 1}])
    def test_containers_cannot_be_printed(self, env, val):
        with pytest.raises(TemplateTypeError):
            render(env, out(name("v")), v=val)

    def test_undefined_variable_raises(self, env):
        with pytest.raises(UndefinedError) as exc:
            render(env, out(name("usernme")), username="ada")
        assert exc.value.name == "usernme"
        assert "Did you mean" in str(exc.value)
        assert "username" in str(exc.value)

    def test_undefined_attribute_names_full_path(self, env):
        with pytest.raises(UndefinedError) as exc:
            render(env, out(attr("user", "email")), user={"name": "ada"})
        assert exc.value.name == "user.email"

    def test_output_already_written_on_failure(self, env):
        env.add_template("partial.txt", tpl(n.Data("before "), out(name("missing"))))
        chunks = []

        class Sink:
            def write(self, data):
                chunks.append(data)

        with pytest.raises(UndefinedError):
            env.render_to("partial.txt", {}, Sink())
        assert chunks == ["before "]


class TestLookups:
    def test_getattr_chain(self, env):
        assert render(env, out(attr("a", "b", "c")), a={"b": {"c": "deep"}}) == "deep"

    def test_getattr_numeric_indexes_array(self, env):
        assert render(env, out(attr("items", "1")), items=["x", "y"]) == "y"

    def test_getitem_int_and_str(self, env):
        assert render(env, out(n.Getitem(name("items"), const(0))), items=["x"]) == "x"
        assert render(env, out(n.Getitem(name("d"), const("k"))), d={"k": "v"}) == "v"

    def test_getitem_evaluates_index_expression(self, env):
        expr = n.Getitem(name("d"), name("key"))
        assert render(env, out(expr), d={"a": 1, "b": 2}, key="b") == "2"

    def test_getitem_wrong_kind_is_undefined(self, env):
        with pytest.raises(UndefinedError):
            render(env, out(n.Getitem(name("items"), const("0"))), items=["x"])


class TestExpressions:
    @pytest.mark.parametrize(
        ("op", "left", "right", "text"),
        [
            ("+", 1, 2, "3"),
            ("-", 5, 7, "-2"),
            ("*", 3, 4, "12"),
            ("/", 7, 2, "3.5"),
            ("//", 7, 2, "3"),
            ("%", 7, 3, "1"),
            ("+", 1.5, 1, "2.5"),
        ],
    )
    def test_arithmetic(self, env, op, left, right, text):
        assert render(env, out(n.BinOp(op, const(left), const(right)))) == text

    def test_division_by_zero(self, env):
        with pytest.raises(TemplateRuntimeError, match="divide by zero"):
            render(env, out(n.BinOp("/", const(1), const(0))))

    @pytest.mark.parametrize(("left", "right"), [("a", 1), (True, 1), (1, None)])
    def test_arithmetic_needs_numbers(self, env, left, right):
        with pytest.raises(TemplateTypeError, match="not a number"):
            render(env, out(n.BinOp("+", const(left), const(right))))

    def test_concat(self, env):
        expr = n.Concat([const("a"), const(1), const(True), name("x")])
        assert render(env, out(expr), x=None) == "a1true"

    def test_unary(self, env):
        assert render(env, out(n.UnaryOp("-", const(3)))) == "-3"
        assert render(env, out(n.UnaryOp("not", name("missing")))) == "true"

    @pytest.mark.parametrize(
        ("left", "ops", "comparators", "expected"),
        [
            (1, ["<", "<"], [2, 3], "true"),
            (1, ["<", ">"], [2, 3], "false"),
            (1, ["=="], [1.0], "true"),
            (1, ["=="], [True], "false"),
            ("a", ["!="], ["b"], "true"),
            ("b", [">="], ["a"], "true"),
            ("ell", ["in"], ["hello"], "true"),
            (3, ["not in"], [[1, 2]], "true"),
        ],
    )
    def test_compare(self, env, left, ops, comparators, expected):
        expr = n.Compare(const(left), ops, [const(c) for c in comparators])
        assert render(env, out(expr)) == expected

    def test_in_object_checks_keys(self, env):
        expr = n.Compare(const("a"), ["in"], [name("d")])
        assert render(env, out(expr), d={"a": 1}) == "true"

    def test_in_array_compares_values(self, env):
        expr = n.Compare(const([1, 2]), ["in"], [name("xs")])
        assert render(env, out(expr), xs=[[1, 2], [3]]) == "true"

    def test_ordering_mixed_kinds_fails(self, env):
        with pytest.raises(TemplateTypeError):
            render(env, out(n.Compare(const("a"), ["<"], [const(1)])))

    def test_boolop_short_circuit(self, env):
        expr = n.BoolOp("or", [const(True), n.Filter(const(1), "nonexistent")])
        assert render(env, out(expr)) == "true"

    def test_boolop_undefined_is_false(self, env):
        assert render(env, out(n.BoolOp("and", [const(1), name("missing")]))) == "false"

    def test_condexpr(self, env):
        expr = n.CondExpr(name("flag"), const("yes"), const("no"))
        assert render(env, out(expr), flag=0) == "no"
        assert render(env, out(expr), flag=[1]) == "yes"

    def test_list_and_dict_literals(self, env):
        lst = n.List([const(1), name("x")])
        assert render(env, out(n.Filter(lst, "join", [const(",")])), x=2) == "1,2"
        dct = n.Dict([const("k")], [const("v")])
        assert render(env, out(n.Getattr(dct, "k"))) == "v"

    def test_dict_keys_must_be_strings(self, env):
        with pytest.raises(TemplateTypeError, match="keys must be strings"):
            render(env, out(n.Getattr(n.Dict([const(1)], [const("v")]), "k")))


class TestIf:
    def test_branches(self, env):
        node = n.If(
            n.Compare(name("x"), [">"], [const(10)]),
            [n.Data("big")],
            elif_=[(n.Compare(name("x"), [">"], [const(5)]), [n.Data("medium")])],
            else_=[n.Data("small")],
        )
        assert render(env, node, x=20) == "big"
        assert render(env, node, x=7) == "medium"
        assert render(env, node, x=1) == "small"

    @pytest.mark.parametrize("val", [None, False, 0, 0.0, "", [], {}])
    def test_falsy_values(self, env, val):
        node = n.If(name("v"), [n.Data("T")], else_=[n.Data("F")])
        assert render(env, node, v=val) == "F"

    def test_undefined_condition_is_false(self, env):
        node = n.If(attr("user", "admin"), [n.Data("T")], else_=[n.Data("F")])
        assert render(env, node, user={}) == "F"
        assert render(env, node) == "F"


class TestFor:
    def test_array(self, env):
        loop = n.For("x", name("xs"), [out(name("x"))])
        assert render(env, loop, xs=[1, 2, 3]) == "123"

    def test_loop_metadata(self, env):
        body = [out(attr("loop", "index")), n.Data("/"), out(attr("loop", "length")), n.Data(" ")]
        assert render(env, n.For("x", name("xs"), body), xs=["a", "b"]) == "1/2 2/2 "

    def test_object_with_key(self, env):
        loop = n.For("v", name("d"), [out(name("k")), n.Data("="), out(name("v")), n.Data(";")], key_target="k")
        assert render(env, loop, d={"a": 1, "b": 2}) == "a=1;b=2;"

    def test_empty_object_renders_else(self, env):
        loop = n.For("v", name("d"), [out(name("v"))], empty=[n.Data("nothing")], key_target="k")
        assert render(env, loop, d={}) == "nothing"

    def test_empty_array_renders_else(self, env):
        loop = n.For("x", name("xs"), [out(name("x"))], empty=[n.Data("none")])
        assert render(env, loop, xs=[]) == "none"

    def test_non_iterable_fails(self, env):
        loop = n.For("x", name("n"), [out(name("x"))])
        with pytest.raises(TemplateTypeError, match="not an array or an object"):
            render(env, loop, n=5)

    def test_undefined_iterable_fails(self, env):
        with pytest.raises(UndefinedError):
            render(env, n.For("x", name("missing"), []))

    def test_key_target_over_array_fails(self, env):
        loop = n.For("v", name("xs"), [], key_target="k")
        with pytest.raises(TemplateTypeError, match="isn't an object"):
            render(env, loop, xs=[1])

    def test_single_target_over_object_fails(self, env):
        with pytest.raises(TemplateTypeError, match="single variable"):
            render(env, n.For("v", name("d"), []), d={"a": 1})

    def test_loop_filter_counts_kept_items(self, env):
        loop = n.For(
            "x",
            name("xs"),
            [out(name("x")), n.Data(":"), out(attr("loop", "length")), n.Data(" ")],
            empty=[n.Data("none")],
            test=n.Test(name("x"), "odd"),
        )
        assert render(env, loop, xs=[1, 2, 3, 4]) == "1:2 3:2 "
        assert render(env, loop, xs=[2, 4]) == "none"

    def test_loop_filter_sees_unfiltered_metadata(self, env):
        loop = n.For(
            "x",
            name("xs"),
            [out(name("x"))],
            test=n.UnaryOp("not", attr("loop", "last")),
        )
        assert render(env, loop, xs=["a", "b", "c"]) == "ab"

    def test_break(self, env):
        body = [
            n.If(n.Compare(name("x"), ["=="], [const(3)]), [n.Break()]),
            out(name("x")),
        ]
        assert render(env, n.For("x", name("xs"), body), xs=[1, 2, 3, 4]) == "12"

    def test_continue(self, env):
        body = [
            n.If(n.Compare(name("x"), ["=="], [const(2)]), [n.Continue()]),
            out(name("x")),
        ]
        assert render(env, n.For("x", name("xs"), body), xs=[1, 2, 3]) == "13"

    def test_break_only_exits_inner_loop(self, env):
        inner = n.For("y", name("ys"), [n.Break(), out(name("y"))])
        outer = n.For("x", name("xs"), [out(name("x")), inner])
        assert render(env, outer, xs=[1, 2], ys=[9]) == "12"

    def test_break_outside_loop_fails(self, env):
        with pytest.raises(TemplateRuntimeError, match="outside of a for loop"):
            render(env, n.Break())

    def test_nested_loops_see_outer_variable(self, env):
        inner = n.For("y", name("ys"), [out(name("x")), out(name("y"))])
        outer = n.For("x", name("xs"), [inner])
        assert render(env, outer, xs=["a", "b"], ys=[1, 2]) == "a1a2b1b2"


class TestSet:
    def test_set_at_top_level(self, env):
        assert render(env, n.Set("x", const(5)), out(name("x"))) == "5"

    def test_set_shadows_context(self, env):
        assert render(env, n.Set("x", const("local")), out(name("x")), x="ctx") == "local"

    def test_set_in_loop_does_not_leak(self, env):
        loop = n.For("i", name("xs"), [n.Set("x", name("i")), out(name("x"))])
        result = render(env, n.Set("x", const(0)), loop, out(name("x")), xs=[1, 2])
        assert result == "120"

    def test_set_global_in_loop_leaks_to_template(self, env):
        loop = n.For("i", name("xs"), [n.Set("x", name("i"), global_=True)])
        result = render(env, n.Set("x", const(0)), loop, out(name("x")), xs=[1, 2])
        assert result == "2"

    def test_set_does_not_survive_between_iterations(self, env):
        body = [
            out(n.Filter(name("seen"), "default", [const("-")])),
            n.Set("seen", name("i")),
        ]
        assert render(env, n.For("i", name("xs"), body), xs=[1, 2]) == "--"


class TestInclude:
    def test_include_shares_scope(self, env):
        env.add_template("row.txt", tpl(n.Data("<"), out(name("item")), n.Data(">")))
        loop = n.For("item", name("xs"), [n.Include(["row.txt"])])
        assert render(env, loop, xs=[1, 2]) == "<1><2>"

    def test_first_existing_template(self, env):
        env.add_template("b.txt", tpl(n.Data("B")))
        assert render(env, n.Include(["a.txt", "b.txt"])) == "B"

    def test_ignore_missing(self, env):
        assert render(env, n.Data("x"), n.Include(["nope.txt"], ignore_missing=True)) == "x"

    def test_missing_include_fails(self, env):
        with pytest.raises(TemplateNotFoundError, match="nope.txt"):
            render(env, n.Include(["nope.txt"]))

    def test_include_sets_do_not_leak(self, env):
        env.add_template("setter.txt", tpl(n.Set("y", const(1))))
        result = render(env, n.Include(["setter.txt"]), out(n.Filter(name("y"), "default", [const("unset")])))
        assert result == "unset"

    def test_include_recursion_is_bounded(self):
        env = Environment(max_include_depth=5)
        env.add_template("loop.txt", tpl(n.Data("."), n.Include(["loop.txt"])))
        with pytest.raises(RecursionLimitError, match="include depth"):
            env.render("loop.txt")

    def test_include_outside_render_fails(self, env):
        from trellis.context import Context
        from trellis.render.processor import Processor

        env.add_template("row.txt", tpl(n.Data("row")))
        processor = Processor(env.get_template("row.txt"), env, Context(), False)
        with pytest.raises(TemplateRuntimeError, match="outside of Processor.render"):
            processor.render_body([n.Include(["row.txt"])], [].append)

    def test_included_template_with_inheritance(self, env):
        env.add_templates(
            {
                "frame.txt": tpl(n.Data("["), n.Block("inner", [n.Data("frame")]), n.Data("]")),
                "widget.txt": tpl(n.Block("inner", [n.Data("widget")]), extends="frame.txt"),
            }
        )
        assert render(env, n.Include(["widget.txt"])) == "[widget]"


class TestCapabilities:
    def test_filter_chain(self, env):
        expr = n.Filter(flt(name("s"), "trim"), "upper")
        assert render(env, out(expr), s="  hi ") == "HI"

    def test_filter_block(self, env):
        block = n.FilterBlock("upper", [n.Data("shout "), out(name("x"))])
        assert render(env, block, x="it") == "SHOUT IT"

    def test_function_call_with_kwargs(self, env):
        call = n.FuncCall("range", [], {"end": const(3)})
        assert render(env, out(n.Filter(call, "join", [const(",")]))) == "0,1,2"

    def test_default_tolerates_undefined(self, env):
        expr = flt(attr("user", "nick"), "default", value="anon")
        assert render(env, out(expr), user={}) == "anon"

    def test_other_filters_reject_undefined(self, env):
        with pytest.raises(UndefinedError):
            render(env, out(flt(name("missing"), "upper")))

    def test_test_expression(self, env):
        assert render(env, out(n.Test(name("x"), "defined"))) == "false"
        assert render(env, out(n.Test(name("x"), "defined", negated=True))) == "true"
        assert render(env, out(n.Test(name("x"), "divisibleby", [const(3)])), x=9) == "true"

    def test_unknown_filter(self, env):
        with pytest.raises(CapabilityNotFoundError, match="Filter 'uper' not found") as exc:
            render(env, out(flt(const("x"), "uper")))
        assert exc.value.kind == "filter"
        assert "upper" in exc.value.suggestion

    def test_unknown_function(self, env):
        with pytest.raises(CapabilityNotFoundError, match="Function 'nope' not found"):
            render(env, out(n.FuncCall("nope")))

    def test_failing_capability_is_wrapped(self, env):
        call = n.FuncCall("throw", [], {"message": const("boom")})
        with pytest.raises(CapabilityError, match="Function 'throw' failed: boom") as exc:
            render(env, out(call))
        assert exc.value.kind == "function"
        assert exc.value.name == "throw"
        assert exc.value.call_kwargs == {"message": "boom"}
        assert isinstance(exc.value.__cause__, RuntimeError)

    def test_filter_error_carries_arguments(self, env):
        with pytest.raises(CapabilityError) as exc:
            render(env, out(flt(const([1]), "nth", -1)))
        assert exc.value.call_args == ([1], -1)
        assert exc.value.values == {"arg0": [1], "arg1": -1}

    def test_custom_filter(self, env):
        env.add_filter("double", lambda value: value * 2)
        assert render(env, out(flt(const(21), "double"))) == "42"

    def test_custom_test(self, env):
        env.add_test("positive", lambda value: value > 0)
        assert render(env, out(n.Test(const(3), "positive"))) == "true"

    def test_location_recorded(self, env):
        env.add_template("page.txt", tpl(n.Data("x"), n.Output(name("missing"), lineno=7)))
        with pytest.raises(UndefinedError) as exc:
            env.render("page.txt")
        assert exc.value.template == "page.txt"
        assert exc.value.lineno == 7

    def test_runtime_error_location(self, env):
        env.add_template(
            "calc.txt", tpl(n.Output(n.BinOp("/", const(1), const(0)), lineno=3))
        )
        with pytest.raises(TemplateRuntimeError) as exc:
            env.render("calc.txt")
        assert exc.value.template_name == "calc.txt"
        assert exc.value.lineno == 3

    def test_template_errors_from_capabilities_are_wrapped(self, env):
        def explode(value):
            raise TemplateRuntimeError("inner")

        env.add_filter("explode", explode)
        with pytest.raises(CapabilityError, match="Filter 'explode' failed: inner") as exc:
            render(env, out(flt(const(1), "explode")))
        assert type(exc.value.__cause__) is TemplateRuntimeError

    def test_errors_from_nested_renders_pass_through(self, env):
        env.add_template("inner.txt", tpl(n.Output(name("missing"), lineno=4)))
        env.add_function("embed", lambda: env.render("inner.txt"))
        with pytest.raises(UndefinedError) as exc:
            render(env, out(n.FuncCall("embed")))
        assert exc.value.template == "inner.txt"
        assert exc.value.lineno == 4

    def test_ordering_errors_name_the_filter(self, env):
        from trellis import OrderingError

        expected = "Filter 'sort' failed: .*can't compare multiple types"
        with pytest.raises(CapabilityError, match=expected) as exc:
            render(env, out(flt(name("xs"), "sort")), xs=[1, "a"])
        assert exc.value.name == "sort"
        assert exc.value.call_args == ([1, "a"],)
        assert isinstance(exc.value.__cause__, OrderingError)

    def test_missing_sort_attribute_names_the_filter(self, env):
        with pytest.raises(CapabilityError, match="Filter 'sort' failed") as exc:
            render(env, out(flt(name("xs"), "sort", attribute="n")), xs=[{"n": 1}, {}])
        assert exc.value.call_kwargs == {"attribute": "n"}
        assert exc.value.__cause__.attribute == "n"
