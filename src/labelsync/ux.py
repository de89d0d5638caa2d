"""Terminal output helpers for the labelsync CLI."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from typing import TextIO

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
CYAN = "\033[36m"


def supports_color(stream: TextIO | None = None) -> bool:
    stream = stream or sys.stdout
    if os.environ.get("NO_COLOR") or os.environ.get("TERM") == "dumb":
        return False
    return bool(getattr(stream, "isatty", None)) and stream.isatty()


def colorize(text: str, color: str, bold: bool = False, stream: TextIO | None = None) -> str:
    if not supports_color(stream):
        return text
    return f"{BOLD if bold else ''}{color}{text}{RESET}"


def print_error(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stderr
    print(colorize("✗", RED, bold=True, stream=stream) + " " + message, file=stream)


def print_operation_status(
    operation: str, status: str, details: str = "", stream: TextIO | None = None
) -> None:
    """Print ``<icon> operation: status (details)``; failed is red, changed green."""
    stream = stream or sys.stdout
    color = {"failed": RED, "changed": GREEN, "unchanged": YELLOW}.get(status.lower(), CYAN)
    message = f"{colorize(operation, BOLD, stream=stream)}: {colorize(status, color, stream=stream)}"
    if details:
        message += " " + colorize(f"({details})", DIM, stream=stream)
    print(message, file=stream)


def print_summary_box(
    title: str, items: Sequence[tuple[str, str | int]], stream: TextIO | None = None
) -> None:
    stream = stream or sys.stdout
    width = max((len(k) for k, _ in items), default=0)
    print(colorize(f"\n{title}", CYAN, bold=True, stream=stream), file=stream)
    print(colorize("─" * 40, DIM, stream=stream), file=stream)
    for key, value in items:
        print(f"  {key.ljust(width)}  {value}", file=stream)
    print(colorize("─" * 40, DIM, stream=stream), file=stream)


__all__ = [
    "colorize",
    "print_error",
    "print_operation_status",
    "print_summary_box",
    "supports_color",
]
