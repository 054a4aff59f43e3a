"""Shared utilities for Trellis."""

from trellis.utils.html import Markup, html_escape, xml_escape

__all__ = ["Markup", "html_escape", "xml_escape"]
