from __future__ import annotations

import re

from .models import Directive
from .patterns import compile_pattern

_CHECKED_MARK = "x"


def is_checked(mark: str | None) -> bool:
    """True only for a single ``x`` / ``X``, surrounding whitespace allowed."""
    return (mark or "").strip().lower() == _CHECKED_MARK


def extract_labels(description: str | None, pattern: str | re.Pattern[str]) -> list[Directive]:
    """Walk ``description`` and return every directive matched by ``pattern``.

    The pattern is compiled before the text is looked at, so an invalid
    pattern raises ``ConfigurationError`` even for an empty description.
    Matches are collected left to right without overlap; order and duplicates
    are kept as written.
    """
    compiled = compile_pattern(pattern)
    if not description:
        return []

    directives: list[Directive] = []
    pos = 0
    end = len(description)
    while pos <= end:
        m = compiled.search(description, pos)
        if m is None:
            break
        # zero-length matches must still move the scan forward
        pos = m.end() if m.end() > m.start() else m.end() + 1
        name = (m.group(2) or "").strip()
        if not name:
            continue
        directives.append(Directive(name=name, checked=is_checked(m.group(1))))
    return directives


__all__ = ["extract_labels", "is_checked"]
