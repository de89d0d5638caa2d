"""Directive pattern library.

Each built-in pattern describes how a label directive is written in markdown.
All of them share the shape ``- [<mark>] <wrapper>name<wrapper>`` and capture
exactly two groups:

1. the checkbox mark (``""``, ``" "``, ``"x"``, ``" X "`` ...)
2. the label name, matched non-greedily so trailing markup stays out of it

Callers may pass a built-in name (``backtick``, ``colon``, ``asterisk``,
``double-asterisk``) or a custom regular expression honouring the same
two-group contract.
"""

from __future__ import annotations

import re

from .errors import ConfigurationError

BACKTICK = r"- \[(.*?)\] ?`(.+?)`"  # - [ ] `abc` ...
COLON = r"- \[(.*?)\] ?(.+?):"  # - [ ] abc: ...
ASTERISK = r"- \[(.*?)\] ?\*(.+?)\*"  # - [ ] *abc* ...
DOUBLE_ASTERISK = r"- \[(.*?)\] ?\*\*(.+?)\*\*"  # - [ ] **abc** ...

BUILTIN_PATTERNS: dict[str, str] = {
    "backtick": BACKTICK,
    "colon": COLON,
    "asterisk": ASTERISK,
    "double-asterisk": DOUBLE_ASTERISK,
}

REQUIRED_GROUPS = 2


def resolve_pattern(value: str | None) -> str:
    """Return the regex template for a built-in name or a custom pattern."""
    if value is None or not value.strip():
        raise ConfigurationError("label pattern must not be empty")
    key = value.strip().lower().replace("_", "-")
    if key in BUILTIN_PATTERNS:
        return BUILTIN_PATTERNS[key]
    return value


def compile_pattern(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    """Compile ``pattern`` (built-in name or regex) and check it captures a mark and a name."""
    if isinstance(pattern, re.Pattern):
        compiled = pattern
    else:
        source = resolve_pattern(pattern)
        try:
            compiled = re.compile(source)
        except re.error as exc:
            raise ConfigurationError(f"invalid label pattern {source!r}: {exc}") from exc
    if compiled.groups < REQUIRED_GROUPS:
        raise ConfigurationError(
            f"label pattern {compiled.pattern!r} must capture {REQUIRED_GROUPS} groups "
            f"(mark, name), found {compiled.groups}"
        )
    return compiled


__all__ = [
    "BACKTICK",
    "COLON",
    "ASTERISK",
    "DOUBLE_ASTERISK",
    "BUILTIN_PATTERNS",
    "resolve_pattern",
    "compile_pattern",
]
