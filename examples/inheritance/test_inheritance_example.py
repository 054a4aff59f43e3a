"""Tests for the inheritance example."""


class TestInheritanceApp:
    """Verify blocks, super(), macros and loop metadata work together."""

    def test_super_extends_parent_title(self, example_app) -> None:
        assert "<title>Site | Docs</title>" in example_app.output

    def test_rows_numbered_by_loop_index(self, example_app) -> None:
        assert "<li>1. Alpha</li>" in example_app.output
        assert "<li>2. Beta</li>" in example_app.output

    def test_macro_arguments_escaped_once(self, example_app) -> None:
        assert "<li>3. Gamma &amp; Delta</li>" in example_app.output

    def test_full_page(self, example_app) -> None:
        assert example_app.output.startswith("<html><title>")
        assert example_app.output.endswith("</ul></body></html>")

    def test_parent_renders_alone(self, example_app) -> None:
        assert example_app.env.render("base.html") == (
            "<html><title>Site</title><body></body></html>"
        )
