"""Terminal colour helpers for error messages.

Error text is styled by role (error code, location, hint, ...) rather than
by raw colour, so every exception formats the same part the same way.
Colouring honours ``NO_COLOR`` and ``FORCE_COLOR`` (https://no-color.org/)
and otherwise follows whether stderr is a terminal. The decision is made
once at import time.
"""

from __future__ import annotations

import os
import re
import sys
from typing import Literal, TextIO

_CODES = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
}

ColorName = Literal["reset", "bold", "dim", "cyan", "green", "yellow", "bright_red", "bright_green"]

# Message role -> colours applied to it.
_STYLES: dict[str, tuple[ColorName, ...]] = {
    "error_code": ("bright_red", "bold"),
    "location": ("cyan",),
    "hint": ("green",),
    "suggestion": ("bright_green", "bold"),
    "dim": ("dim",),
}

_ANSI_RE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def _should_use_colors(stream: TextIO | None = None) -> bool:
    if os.environ.get("FORCE_COLOR"):
        return True
    if os.environ.get("NO_COLOR"):
        return False
    stream = stream if stream is not None else sys.stderr
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


_USE_COLORS = _should_use_colors()


def supports_color() -> bool:
    """True if error messages are coloured."""
    return _USE_COLORS


def colorize(text: str, *colors: str) -> str:
    """Wrap text in ANSI codes; unknown colour names are ignored.

    Example:
        >>> colorize("Error", "bright_red", "bold")
        '\033[91m\033[1mError\033[0m'  # when colours are on, else 'Error'
    """
    if not _USE_COLORS:
        return text
    prefix = "".join(_CODES.get(color, "") for color in colors)
    if not prefix:
        return text
    return f"{prefix}{text}{_CODES['reset']}"


def strip_colors(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return _ANSI_RE.sub("", text)


def styled(role: str, text: str) -> str:
    """Colour ``text`` the way ``role`` is shown in error messages."""
    return colorize(text, *_STYLES.get(role, ()))


def error_code(text: str) -> str:
    return styled("error_code", text)


def location(text: str) -> str:
    return styled("location", text)


def hint(text: str) -> str:
    return styled("hint", text)


def suggestion(text: str) -> str:
    return styled("suggestion", text)


def dim_text(text: str) -> str:
    return styled("dim", text)


def format_error_header(code: str | None, message: str) -> str:
    """``T-RUN-001: message`` with the code coloured, or just the message."""
    if code:
        return f"{error_code(code)}: {message}"
    return message
