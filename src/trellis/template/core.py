"""Trellis Template: AST root plus the metadata the interpreter needs.

A Template is built once from a validated AST and never mutated. Inheritance
resolution produces a NEW Template (``dataclasses.replace``) carrying the
ancestor chain and block definition chains, so an unresolved template set is
never half-updated.

Architecture:
    ```
    Template
    ├── name, path                  # Identity and autoescape source
    ├── ast: nodes.Template         # Root node
    ├── parent                      # {% extends %} target, if any
    ├── blocks / macros             # Extracted from the AST
    ├── imported_macro_files        # (template, namespace) pairs
    └── parents, blocks_definitions # Filled in by the inheritance resolver
    ```

Thread-Safety:
Templates are frozen dataclasses; renders share them read-only.

"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from trellis.analysis.visitor import iter_nodes
from trellis.environment.exceptions import TemplateSyntaxError
from trellis.nodes import Block, Import, Macro

if TYPE_CHECKING:
    from trellis.nodes import Template as TemplateNode


BlockChain = tuple[tuple[str, Block], ...]


@dataclass(frozen=True, slots=True)
class Template:
    """A named template ready for rendering.

    Attributes:
        name: Registry key, also used in error messages
        ast: Root ``nodes.Template`` node
        path: Optional source path; preferred over ``name`` for autoescaping
        parent: Name of the extended template, if any
        blocks: Block name → Block node, nested blocks included
        macros: Macro name → Macro node
        imported_macro_files: ``(template_name, namespace)`` for each import
        from_extend: True if merged in from another Environment
        parents: Ancestor names, closest first (after resolution)
        blocks_definitions: Block name → ``(owner, Block)`` pairs, most
            derived first (after resolution)

    Example:
        >>> from trellis import nodes as n
        >>> t = Template.from_ast("hi.txt", n.Template([n.Block("body", [n.Data("hi")])]))
        >>> sorted(t.blocks)
        ['body']

    """

    name: str
    ast: TemplateNode
    path: str | None = None
    parent: str | None = None
    blocks: Mapping[str, Block] = field(default_factory=dict)
    macros: Mapping[str, Macro] = field(default_factory=dict)
    imported_macro_files: tuple[tuple[str, str], ...] = ()
    from_extend: bool = False
    parents: tuple[str, ...] = ()
    blocks_definitions: Mapping[str, BlockChain] = field(default_factory=dict)

    @classmethod
    def from_ast(cls, name: str, root: TemplateNode, path: str | None = None) -> Template:
        """Extract metadata from a template AST.

        Raises:
            TemplateSyntaxError: Duplicate block/macro names, macros defined
                below the top level, blocks inside macros, or an ``extends``
                whose target is not a string.
        """
        parent: str | None = None
        if root.extends is not None:
            if not isinstance(root.extends.template, str):
                raise TemplateSyntaxError(
                    "extends target must be a template name string",
                    lineno=root.extends.lineno,
                    name=name,
                )
            parent = root.extends.template

        macros: dict[str, Macro] = {}
        imports: list[tuple[str, str]] = []
        for node in root.body:
            if isinstance(node, Macro):
                if node.name in macros:
                    raise TemplateSyntaxError(
                        f"Macro '{node.name}' is defined more than once",
                        lineno=node.lineno,
                        name=name,
                    )
                macros[node.name] = node
                for inner in iter_nodes(node):
                    if inner is not node and isinstance(inner, (Block, Macro)):
                        kind = "Blocks" if isinstance(inner, Block) else "Macros"
                        raise TemplateSyntaxError(
                            f"{kind} cannot be defined inside macro '{node.name}'",
                            lineno=inner.lineno,
                            name=name,
                        )
            elif isinstance(node, Import):
                imports.append((node.template, node.target))

        top_level = {id(m) for m in macros.values()}
        blocks: dict[str, Block] = {}
        for node in iter_nodes(root):
            if isinstance(node, Block):
                if node.name in blocks:
                    raise TemplateSyntaxError(
                        f"Block '{node.name}' is defined more than once",
                        lineno=node.lineno,
                        name=name,
                    )
                blocks[node.name] = node
            elif isinstance(node, Macro) and id(node) not in top_level:
                raise TemplateSyntaxError(
                    f"Macro '{node.name}' must be defined at the top level",
                    lineno=node.lineno,
                    name=name,
                )

        return cls(
            name=name,
            ast=root,
            path=path,
            parent=parent,
            blocks=blocks,
            macros=macros,
            imported_macro_files=tuple(imports),
        )

    @property
    def is_inheriting(self) -> bool:
        """True once resolved with at least one ancestor."""
        return bool(self.parents)

    @property
    def imported_namespaces(self) -> dict[str, str]:
        """Namespace → template name for this template's own imports."""
        return {namespace: tname for tname, namespace in self.imported_macro_files}

    def block_chain(self, name: str) -> BlockChain:
        """Definition chain for a block, or ``()`` if unresolved/unknown."""
        return self.blocks_definitions.get(name, ())

    def with_chains(
        self, parents: tuple[str, ...], blocks_definitions: Mapping[str, BlockChain]
    ) -> Template:
        return replace(self, parents=parents, blocks_definitions=dict(blocks_definitions))

    def __repr__(self) -> str:
        return f"<Template {self.name!r}>"
