"""Inheritance -- extends, blocks, super() and imported macros.

A page extends a layout, overrides two blocks (one of them calling
``super()``), and renders a list through a macro imported from a separate
template. ``loop.index`` numbers the rows. All three templates end in
``.html``, so output is autoescaped.

Run:
    python app.py
"""

from trellis import Environment
from trellis import nodes as n

env = Environment()

env.add_templates(
    {
        # <html><title>{% block title %}Site{% endblock %}</title>
        # <body>{% block content %}{% endblock %}</body></html>
        "base.html": n.Template(
            [
                n.Data("<html><title>"),
                n.Block("title", [n.Data("Site")]),
                n.Data("</title><body>"),
                n.Block("content", []),
                n.Data("</body></html>"),
            ]
        ),
        # {% macro row(label, number) %}<li>{{ number }}. {{ label }}</li>{% endmacro %}
        "ui.html": n.Template(
            [
                n.Macro(
                    "row",
                    [n.MacroParam("label"), n.MacroParam("number")],
                    [
                        n.Data("<li>"),
                        n.Output(n.Name("number")),
                        n.Data(". "),
                        n.Output(n.Name("label")),
                        n.Data("</li>"),
                    ],
                )
            ]
        ),
        # {% extends "base.html" %}{% import "ui.html" as ui %}
        # {% block title %}{{ super() }} | Docs{% endblock %}
        # {% block content %}<ul>{% for item in items %}
        #   {{ ui::row(label=item, number=loop.index) }}{% endfor %}</ul>{% endblock %}
        "page.html": n.Template(
            [
                n.Import("ui.html", "ui"),
                n.Block("title", [n.Super(), n.Data(" | Docs")]),
                n.Block(
                    "content",
                    [
                        n.Data("<ul>"),
                        n.For(
                            "item",
                            n.Name("items"),
                            [
                                n.Output(
                                    n.MacroCall(
                                        "ui",
                                        "row",
                                        kwargs={
                                            "label": n.Name("item"),
                                            "number": n.Getattr(n.Name("loop"), "index"),
                                        },
                                    )
                                )
                            ],
                        ),
                        n.Data("</ul>"),
                    ],
                ),
            ],
            extends=n.Extends("base.html"),
        ),
    }
)

output = env.render("page.html", {"items": ["Alpha", "Beta", "Gamma & Delta"]})


def main() -> None:
    print(output)


if __name__ == "__main__":
    main()
