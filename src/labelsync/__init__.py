"""labelsync - keep issue labels in sync with checkbox directives.

High-level public API (stable):

from labelsync import extract_labels, reconcile, BACKTICK

body = issue["body"]  # "- [x] `bug`" and "- [ ] `wontfix`" lines
directives = extract_labels(body, BACKTICK)
result = reconcile(directives, current_labels={"wontfix"}, registered_labels={"bug", "wontfix"})
print(result.to_add, result.to_remove)  # ('bug',) ('wontfix',)

The engine (patterns, extractor, reconcile, offset) is pure; ``labelsync.sync``
and the ``labelsync`` CLI apply results through the GitHub REST API.
"""

from __future__ import annotations

from .config import SyncConfig, load_config
from .errors import ConfigurationError, LabelSyncError, ParseError
from .extractor import extract_labels
from .models import Directive
from .offset import Duration, DurationUnit, compute_offset_instant, parse_duration
from .patterns import ASTERISK, BACKTICK, COLON, DOUBLE_ASTERISK, compile_pattern, resolve_pattern
from .reconcile import ReconciliationResult, reconcile

__version__ = "0.1.0"

__all__ = [
    "ASTERISK",
    "BACKTICK",
    "COLON",
    "DOUBLE_ASTERISK",
    "ConfigurationError",
    "Directive",
    "Duration",
    "DurationUnit",
    "LabelSyncError",
    "ParseError",
    "ReconciliationResult",
    "SyncConfig",
    "compile_pattern",
    "compute_offset_instant",
    "extract_labels",
    "load_config",
    "parse_duration",
    "reconcile",
    "resolve_pattern",
    "__version__",
]
