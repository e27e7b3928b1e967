"""ANSI styling for Stencil error messages.

Colors are applied only when the output stream is a TTY, unless
``FORCE_COLOR`` is set. ``NO_COLOR`` (https://no-color.org/) disables them.
"""

from __future__ import annotations

import os
import re
import sys
from typing import Literal

Style = Literal["reset", "bold", "dim", "red", "green", "yellow", "cyan", "bright_red"]

_CODES: dict[str, str] = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
    "bright_red": "\033[91m",
}

_ANSI_RE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")


def _detect_colors() -> bool:
    if os.environ.get("FORCE_COLOR"):
        return True
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stderr.isatty()


# Decided once at import; tests patch this attribute.
_USE_COLORS = _detect_colors()


def supports_color() -> bool:
    """Whether error messages are currently colored."""
    return _USE_COLORS


def paint(text: str, *styles: Style) -> str:
    """Wrap ``text`` in the given ANSI styles (no-op when colors are off)."""
    if not _USE_COLORS or not styles:
        return text
    prefix = "".join(_CODES[style] for style in styles)
    return f"{prefix}{text}{_CODES['reset']}"


def strip_colors(text: str) -> str:
    """Remove ANSI escape sequences, e.g. for logging to files."""
    return _ANSI_RE.sub("", text)


def code(text: str) -> str:
    return paint(text, "bright_red", "bold")


def location(text: str) -> str:
    return paint(text, "cyan")


def hint(text: str) -> str:
    return paint(text, "green")


def dim(text: str) -> str:
    return paint(text, "dim")


def expression(text: str) -> str:
    """Highlight a condition or directive as written in the template."""
    return paint(text, "yellow")


def header(error_code: str | None, message: str) -> str:
    """``S-RUN-001: message`` with the code highlighted."""
    if error_code:
        return f"{code(error_code)}: {message}"
    return message


def source_line(lineno: int, content: str, *, is_error: bool = False) -> str:
    """One numbered source line; the error line gets a ``>`` marker."""
    marker = ">" if is_error else " "
    number = paint(f"{marker}{lineno:>3}", "yellow")
    body = paint(content, "bright_red") if is_error else dim(content)
    return f"{number} | {body}"
