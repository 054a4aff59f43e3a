"""Inheritance resolution for a set of Trellis templates.

For every template that extends another or defines blocks, computes:

- the ancestor chain, closest parent first;
- per block name, the definition chain: the template's own definition
  first, then each ancestor's, closest to farthest. ``super()`` inside
  entry ``i`` renders entry ``i + 1``.

Resolution never mutates its input. It returns a new name → Template mapping,
so a failure leaves the caller's template set exactly as it was.

Complexity: O(templates × chain depth).

"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from trellis.environment.exceptions import (
    CircularExtendsError,
    MissingMacroImportError,
    MissingParentError,
)
from trellis.nodes import Block
from trellis.template.core import BlockChain, Template

logger = logging.getLogger(__name__)


def build_chain(templates: Mapping[str, Template], template: Template) -> tuple[str, ...]:
    """Ancestor names of ``template``, closest first.

    Raises:
        CircularExtendsError: The walk comes back to ``template.name``.
        MissingParentError: An ancestor names an unregistered parent.
    """
    chain: list[str] = []
    current = template
    while current.parent is not None:
        parent_name = current.parent
        if parent_name == template.name:
            chain.append(parent_name)
            raise CircularExtendsError(template.name, chain)
        parent = templates.get(parent_name)
        if parent is None:
            raise MissingParentError(current.name, parent_name)
        if parent_name in chain:
            # A cycle further up that does not include this template; it is
            # reported when the walk starts from a template inside it.
            cycle_start = parent_name
            raise CircularExtendsError(
                cycle_start, build_cycle(templates, templates[cycle_start])
            )
        chain.append(parent_name)
        current = parent
    return tuple(chain)


def build_cycle(templates: Mapping[str, Template], start: Template) -> list[str]:
    """Parent names walked from ``start`` until ``start`` comes back."""
    cycle: list[str] = []
    current = start
    while current.parent is not None:
        cycle.append(current.parent)
        if current.parent == start.name:
            break
        current = templates[current.parent]
    return cycle


def build_block_definitions(
    templates: Mapping[str, Template], template: Template, parents: tuple[str, ...]
) -> dict[str, BlockChain]:
    """Definition chain for every block name known to the template or its ancestors."""
    lineage = [template, *(templates[name] for name in parents)]
    definitions: dict[str, list[tuple[str, Block]]] = {}
    for owner in lineage:
        for block_name, block in owner.blocks.items():
            definitions.setdefault(block_name, []).append((owner.name, block))
    return {name: tuple(chain) for name, chain in definitions.items()}


def build_inheritance_chains(templates: Mapping[str, Template]) -> dict[str, Template]:
    """Resolve every template's ancestors and block chains.

    Templates with neither a parent nor blocks are returned untouched.

    Returns:
        A new mapping of resolved templates.

    Raises:
        CircularExtendsError: If the parent graph has a cycle.
        MissingParentError: If a parent is not registered.
    """
    resolved: dict[str, Template] = {}
    for name, template in templates.items():
        if template.parent is None and not template.blocks:
            resolved[name] = template
            continue
        parents = build_chain(templates, template)
        definitions = build_block_definitions(templates, template, parents)
        resolved[name] = template.with_chains(parents, definitions)
        if parents:
            logger.debug("Resolved '%s' ancestors: %s", name, " -> ".join(parents))
    logger.debug("Resolved inheritance chains for %d templates", len(resolved))
    return resolved


def check_macro_files(templates: Mapping[str, Template]) -> None:
    """Every imported macro template must be registered.

    Raises:
        MissingMacroImportError: For the first dangling import found.
    """
    for template in templates.values():
        for macro_file, _namespace in template.imported_macro_files:
            if macro_file not in templates:
                raise MissingMacroImportError(template.name, macro_file)
