"""Trellis AST node definitions.

The AST is the contract between Trellis and whatever produces templates
(a parser, a code generator, a test). Nodes are frozen dataclasses; every
node carries keyword-only ``lineno``/``col_offset`` for error reporting.

Node Categories:
    **Output**: Data, Raw, Output, FilterBlock
    **Control Flow**: If, For, Break, Continue
    **Variables**: Set
    **Structure**: Template, Extends, Block, Super, Include, Import
    **Macros**: Macro, MacroParam
    **Expressions**: Const, Name, List, Dict, Getattr, Getitem, FuncCall,
        MacroCall, Filter, Test, BinOp, UnaryOp, Compare, BoolOp, CondExpr,
        Concat

Example:
    ```python
    from trellis import nodes as n

    # {% extends "base.html" %}{% block title %}Hi {{ user.name }}{% endblock %}
    root = n.Template(
        body=[
            n.Block("title", [n.Data("Hi "), n.Output(n.Getattr(n.Name("user"), "name"))]),
        ],
        extends=n.Extends("base.html"),
    )
    ```

"""

from trellis.nodes.base import Node
from trellis.nodes.control_flow import Break, Continue, For, If
from trellis.nodes.expressions import (
    AnyExpr,
    BinOp,
    BoolOp,
    Compare,
    CondExpr,
    Concat,
    Const,
    Dict,
    Expr,
    Filter,
    FuncCall,
    Getattr,
    Getitem,
    List,
    MacroCall,
    Name,
    Test,
    UnaryOp,
)
from trellis.nodes.functions import Macro, MacroParam
from trellis.nodes.output import Data, FilterBlock, Output, Raw
from trellis.nodes.structure import Block, Extends, Import, Include, Super, Template
from trellis.nodes.variables import Set

__all__ = [
    "AnyExpr",
    "BinOp",
    "Block",
    "BoolOp",
    "Break",
    "Compare",
    "Concat",
    "CondExpr",
    "Const",
    "Continue",
    "Data",
    "Dict",
    "Expr",
    "Extends",
    "Filter",
    "FilterBlock",
    "For",
    "FuncCall",
    "Getattr",
    "Getitem",
    "If",
    "Import",
    "Include",
    "List",
    "Macro",
    "MacroCall",
    "MacroParam",
    "Name",
    "Node",
    "Output",
    "Raw",
    "Set",
    "Super",
    "Template",
    "Test",
    "UnaryOp",
]
