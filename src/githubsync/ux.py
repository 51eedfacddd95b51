"""Console helpers for CLI output (ANSI colors, summary box)."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from typing import TextIO


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"


def _supports_color(stream: TextIO | None = None) -> bool:
    """Color only real terminals, and never when NO_COLOR or TERM=dumb is set."""
    stream = stream or sys.stdout
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    return os.environ.get("TERM") != "dumb"


def colorize(text: str, color: str, bold: bool = False, stream: TextIO | None = None) -> str:
    if not _supports_color(stream):
        return text
    prefix = (Colors.BOLD if bold else "") + color
    return f"{prefix}{text}{Colors.RESET}"


def print_error(message: str, stream: TextIO | None = None) -> None:
    """Print an error message in red (stderr by default)."""
    stream = stream or sys.stderr
    print(colorize(message, Colors.RED, bold=True, stream=stream), file=stream)


def print_summary_box(
    title: str, items: Sequence[tuple[str, str | int]], stream: TextIO | None = None
) -> None:
    """Print a formatted summary box with key-value pairs."""
    stream = stream or sys.stdout
    max_key_len = max((len(k) for k, _ in items), default=0)

    print(colorize(f"\n{title}", Colors.CYAN, bold=True, stream=stream), file=stream)
    print(colorize("─" * 40, Colors.DIM, stream=stream), file=stream)
    for key, value in items:
        value_str = str(value)
        if key == "failed" and isinstance(value, int) and value > 0:
            value_str = colorize(value_str, Colors.RED, bold=True, stream=stream)
        elif isinstance(value, int) and value > 0:
            value_str = colorize(value_str, Colors.GREEN, bold=True, stream=stream)
        print(f"  {key.ljust(max_key_len)}  {value_str}", file=stream)
    print(colorize("─" * 40, Colors.DIM, stream=stream), file=stream)


__all__ = ["Colors", "colorize", "print_error", "print_summary_box"]
