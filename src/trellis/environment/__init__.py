"""Trellis Environment: configuration, registries and error taxonomy.

Public API:
    Environment: Template set, capability registries, rendering
    CapabilityRegistry: Dict-like filter/test/function registry
    Exceptions: TemplateError and its subclasses

"""

from trellis.environment.exceptions import (
    CapabilityError,
    CapabilityNotFoundError,
    CircularExtendsError,
    ErrorCode,
    MacroArgumentError,
    MissingMacroImportError,
    MissingParentError,
    OrderingError,
    OutputEncodingError,
    RecursionLimitError,
    TemplateConstructionError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    TemplateTypeError,
    UndefinedError,
)
from trellis.environment.core import ONE_OFF_TEMPLATE_NAME, Environment
from trellis.environment.registry import Capability, CapabilityRegistry

__all__ = [
    "ONE_OFF_TEMPLATE_NAME",
    "Capability",
    "CapabilityError",
    "CapabilityNotFoundError",
    "CapabilityRegistry",
    "CircularExtendsError",
    "Environment",
    "ErrorCode",
    "MacroArgumentError",
    "MissingMacroImportError",
    "MissingParentError",
    "OrderingError",
    "OutputEncodingError",
    "RecursionLimitError",
    "TemplateConstructionError",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "TemplateTypeError",
    "UndefinedError",
]
