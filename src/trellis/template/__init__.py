"""Trellis Template package: templates, loop state and runtime helpers."""

from trellis.template.core import Template
from trellis.template.helpers import UNDEFINED, is_defined, is_truthy, is_undefined
from trellis.template.loop_context import ForLoop, LoopSignal

__all__ = [
    "UNDEFINED",
    "ForLoop",
    "LoopSignal",
    "Template",
    "is_defined",
    "is_truthy",
    "is_undefined",
]
