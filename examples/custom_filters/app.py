"""A warehouse stock report built on custom filters, tests and functions.

Shows the three ways to register capabilities: ``add_filter``/``add_test``,
the ``@env.filter()``/``@env.function()`` decorators, and ``safe=True``
for helpers that return trusted HTML in an autoescaped template.

Run:
    python app.py
"""

from trellis import Environment
from trellis import nodes as n

env = Environment()


def units(quantity: int, unit: str = "pcs") -> str:
    return f"{quantity:,} {unit}"


env.add_filter("units", units)
env.add_test("below", lambda quantity, threshold: quantity < threshold)


@env.filter(safe=True)
def badge(label: str) -> str:
    """Trusted markup: not escaped even though stock.html is."""
    return f'<span class="badge">{label.upper()}</span>'


@env.function()
def share(part: float, whole: float) -> str:
    return f"{part / whole:.0%}"


# <ul>{% for item in items %}<li>{{ item.name }}: {{ item.qty | units(unit=item.unit) }}
# {% if item.qty is below(10) %} {{ "low" | badge }}{% endif %} ({{ share(item.qty, total) }})</li>
# {% endfor %}</ul>
item = n.Name("item")
qty = n.Getattr(item, "qty")
env.add_template(
    "stock.html",
    n.Template(
        [
            n.Data("<ul>"),
            n.For(
                "item",
                n.Name("items"),
                [
                    n.Data("<li>"),
                    n.Output(n.Getattr(item, "name")),
                    n.Data(": "),
                    n.Output(n.Filter(qty, "units", kwargs={"unit": n.Getattr(item, "unit")})),
                    n.If(
                        n.Test(qty, "below", [n.Const(10)]),
                        [n.Data(" "), n.Output(n.Filter(n.Const("low"), "badge"))],
                    ),
                    n.Data(" ("),
                    n.Output(n.FuncCall("share", [qty, n.Name("total")])),
                    n.Data(")</li>"),
                ],
            ),
            n.Data("</ul>"),
        ]
    ),
)

output = env.render(
    "stock.html",
    {
        "total": 1300,
        "items": [
            {"name": "Bolts & nuts", "qty": 1250, "unit": "pcs"},
            {"name": "Hinges", "qty": 8, "unit": "pcs"},
            {"name": "Oak planks", "qty": 42, "unit": "m"},
        ],
    },
)


def main() -> None:
    print(output)


if __name__ == "__main__":
    main()
