"""Hello World -- the simplest trellis example.

Register a template AST and render it with context variables. Trellis has
no parser of its own; the AST below is what a front end would produce for
``Hello, {{ name }}!``.

Run:
    python app.py
"""

from trellis import Environment
from trellis import nodes as n

env = Environment()

env.add_template(
    "hello.txt",
    n.Template([n.Data("Hello, "), n.Output(n.Name("name")), n.Data("!")]),
)

output = env.render("hello.txt", {"name": "World"})


def main() -> None:
    print(output)
    print()

    # Multiple renders with different context
    for name in ["Trellis", "Python", "<Everyone>"]:
        print(env.render("hello.txt", {"name": name}))


if __name__ == "__main__":
    main()
