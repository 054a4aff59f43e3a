"""Tree-walking rendering: call stack, processor and renderer."""

from trellis.render.call_stack import CallStack
from trellis.render.processor import Processor
from trellis.render.renderer import Renderer, Sink
from trellis.render.stack_frame import FrameKind, StackFrame

__all__ = [
    "CallStack",
    "FrameKind",
    "Processor",
    "Renderer",
    "Sink",
    "StackFrame",
]
