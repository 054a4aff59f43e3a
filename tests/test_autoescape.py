"""Tests for autoescaping: suffix selection, Markup, safe capabilities."""

import pytest

from trellis import Environment, Markup
from trellis import nodes as n
from trellis.utils.html import html_escape, xml_escape

from .helpers import attr, const, flt, name, out, tpl


@pytest.fixture
def env():
    env = Environment()
    env.add_template("page.html", tpl(out(name("x"))))
    env.add_template("page.txt", tpl(out(name("x"))))
    return env


class TestSuffixes:
    def test_html_escaped(self, env):
        assert env.render("page.html", {"x": "<b>&"}) == "&lt;b&gt;&amp;"

    def test_txt_not_escaped(self, env):
        assert env.render("page.txt", {"x": "<b>&"}) == "<b>&"

    def test_data_never_escaped(self, env):
        env.add_template("static.html", tpl(n.Data("<p>hi</p>")))
        assert env.render("static.html") == "<p>hi</p>"

    def test_path_preferred_over_name(self, env):
        env.add_template("email", tpl(out(name("x"))), path="templates/email.html")
        assert env.render("email", {"x": "<i>"}) == "&lt;i&gt;"

    def test_autoescape_on_replaces_suffixes(self, env):
        env.autoescape_on([".txt"])
        assert env.render("page.txt", {"x": "<"}) == "&lt;"
        assert env.render("page.html", {"x": "<"}) == "<"

    def test_autoescape_off(self, env):
        env.autoescape_on([])
        assert env.render("page.html", {"x": "<"}) == "<"

    def test_one_off_autoescape_flag(self):
        root = tpl(out(name("x")))
        assert Environment.one_off(root, {"x": "<b>"}) == "<b>"
        assert Environment.one_off(root, {"x": "<b>"}, autoescape=True) == "&lt;b&gt;"


class TestSafeValues:
    def test_safe_filter(self, env):
        env.add_template("safe.html", tpl(out(flt(name("x"), "safe"))))
        assert env.render("safe.html", {"x": "<b>"}) == "<b>"

    def test_filter_after_safe_escapes_again(self, env):
        env.add_template("resafe.html", tpl(out(flt(flt(name("x"), "safe"), "upper"))))
        assert env.render("resafe.html", {"x": "<b>"}) == "&lt;B&gt;"

    @pytest.mark.parametrize(
        "expr",
        [
            flt(flt(name("x"), "safe"), "default", value=""),
            flt(n.List([flt(name("x"), "safe")]), "first"),
            flt(n.List([flt(name("x"), "safe")]), "last"),
        ],
        ids=["default", "first", "last"],
    )
    def test_unsafe_filter_passing_markup_through_escapes(self, env, expr):
        env.add_template("through.html", tpl(out(expr)))
        assert env.render("through.html", {"x": "<b>"}) == "&lt;b&gt;"

    def test_unsafe_function_returning_markup_escapes(self, env):
        env.add_function("trusted", lambda: Markup("<i>"))
        env.add_template("fn.html", tpl(out(n.FuncCall("trusted"))))
        assert env.render("fn.html") == "&lt;i&gt;"

    def test_escape_filter_not_double_escaped(self, env):
        env.add_template("esc.html", tpl(out(flt(name("x"), "escape"))))
        assert env.render("esc.html", {"x": "<"}) == "&lt;"

    def test_safe_custom_filter(self, env):
        env.add_filter("bold", lambda value: f"<b>{value}</b>", safe=True)
        env.add_template("bold.html", tpl(out(flt(name("x"), "bold"))))
        assert env.render("bold.html", {"x": "hi"}) == "<b>hi</b>"

    def test_unsafe_custom_filter_escaped(self, env):
        env.add_filter("bold", lambda value: f"<b>{value}</b>")
        env.add_template("bold.html", tpl(out(flt(name("x"), "bold"))))
        assert env.render("bold.html", {"x": "hi"}) == "&lt;b&gt;hi&lt;&#x2F;b&gt;"

    def test_markup_in_context_is_trusted(self, env):
        assert env.render("page.html", {"x": Markup("<em>ok</em>")}) == "<em>ok</em>"

    def test_macro_output_escaped_once(self, env):
        env.add_template(
            "m.html",
            tpl(n.Macro("wrap", [n.MacroParam("v")], [n.Data("<p>"), out(name("v")), n.Data("</p>")])),
        )
        env.add_template(
            "uses.html",
            tpl(n.Import("m.html", "m"), out(n.MacroCall("m", "wrap", [name("x")]))),
        )
        assert env.render("uses.html", {"x": "a&b"}) == "<p>a&amp;b</p>"

    def test_filter_block_result_written_as_is(self, env):
        env.add_template("fb.html", tpl(n.FilterBlock("upper", [n.Data("<b>")])))
        assert env.render("fb.html") == "<B>"


class TestEscapeFunction:
    def test_custom_escape_fn(self, env):
        env.set_escape_fn(lambda text: text.replace("<", "[lt]"))
        assert env.render("page.html", {"x": "<"}) == "[lt]"
        env.reset_escape_fn()
        assert env.render("page.html", {"x": "<"}) == "&lt;"

    def test_html_escape(self):
        assert html_escape("<a href=\"x\">'/'</a>") == (
            "&lt;a href=&quot;x&quot;&gt;&#x27;&#x2F;&#x27;&lt;&#x2F;a&gt;"
        )

    def test_xml_escape(self):
        assert xml_escape("'&'") == "&apos;&amp;&apos;"

    def test_escape_xml_filter(self, env):
        env.add_template("x.html", tpl(out(flt(const("'"), "escape_xml"))))
        assert env.render("x.html") == "&apos;"

    def test_escape_applies_to_numbers_as_text(self, env):
        env.add_template("num.html", tpl(out(attr("d", "n"))))
        assert env.render("num.html", {"d": {"n": 5}}) == "5"
