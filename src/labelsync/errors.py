"""Error taxonomy & redaction helpers.

Two families of failure exist:

- configuration problems (bad pattern, bad duration token, bad enum input,
  missing credentials). These are detected before any extraction or API call,
  are never retried and are surfaced verbatim to the caller.
- runtime failures while talking to GitHub. These are classified so the CLI
  can report a category and whether a rerun is likely to help.

Public API:
- ConfigurationError / ParseError
- parse_choice(name, value, enum_cls) -> member
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

E = TypeVar("E", bound=Enum)

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"gh[pousr]_[A-Za-z0-9]{20,255}"),  # classic / app / oauth tokens
    re.compile(r"github_pat_\w{20,}"),  # fine-grained tokens
    re.compile(r"(?i)(authorization:\s*(?:bearer|token)\s+)\S+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class LabelSyncError(RuntimeError):
    """Base class for errors raised by labelsync."""


class ConfigurationError(LabelSyncError, ValueError):
    """Invalid pattern, duration token or input value. Fatal for the run."""


class ParseError(ConfigurationError):
    """A compact duration token could not be parsed."""


def parse_choice(name: str, value: str, enum_cls: type[E]) -> E:
    """Classify ``value`` into one of the members of ``enum_cls``.

    Matching is on the member *values*. On failure the message lists every
    valid value::

        `quiet` must be one of ['true', 'false'], but got 'x'
    """
    for member in enum_cls:
        if member.value == value:
            return member
    joined = ", ".join(f"'{m.value}'" for m in enum_cls)
    raise ConfigurationError(f"`{name}` must be one of [{joined}], but got '{value}'")


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Replace GitHub credentials in ``text`` with a placeholder."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        if pat.groups:
            redacted = pat.sub(lambda m: m.group(1) + _REDACTION_PLACEHOLDER, redacted)
        else:
            redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    - ConfigurationError -> 'config' (never transient)
    - rate limit / abuse wording -> 'github.rate_limit' / 'github.abuse', transient
    - network-y keywords -> 'network', transient
    - fallback -> 'generic'
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    kind = exc.__class__.__name__

    if isinstance(exc, ConfigurationError):
        return ErrorInfo("config", redact(msg), kind)
    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", redact(msg), kind, transient=True)
    if "abuse" in low:
        return ErrorInfo("github.abuse", redact(msg), kind, transient=True)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), kind, transient=True)
    status = getattr(exc, "status", None)
    if isinstance(status, int):
        return ErrorInfo("github.api", redact(msg), kind, details={"status": status})
    return ErrorInfo("generic", redact(msg), kind)


__all__ = [
    "LabelSyncError",
    "ConfigurationError",
    "ParseError",
    "ErrorInfo",
    "parse_choice",
    "classify_error",
    "redact",
]
