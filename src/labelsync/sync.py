"""Apply checkbox label directives to GitHub issues and pull requests.

``LabelSyncer`` owns the I/O around the pure engine: it fetches the
description and label state of an issue, runs extraction + reconciliation,
then removes unchecked labels (one call each) and adds checked labels (one
call). ``run_event`` maps a GitHub Actions event onto the syncer:

* ``issues`` / ``pull_request`` / ``pull_request_target`` - the single
  issue named in the event payload
* ``schedule`` / ``workflow_dispatch`` - every open issue or pull request
  updated since ``now - offset``
* anything else - nothing to do

Summary structure (stable for JSON tooling)::

    {
        "event": str, "dry_run": bool, "since": str | None,
        "processed": int, "changed": int, "failed": int,
        "issues": [{"number": int, "html_url": str | None, "applied": bool,
                    "removed": [...], "error": str | None, "to_add": [...], "to_remove": [...], ...}]
    }
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import requests

from .config import SyncConfig
from .errors import ConfigurationError, redact
from .extractor import extract_labels
from .github_rest import GitHubAPIError
from .logging import StructuredLogger, format_str_list, get_logger
from .offset import parse_offset
from .patterns import compile_pattern
from .reconcile import ReconciliationResult, reconcile

SINGLE_ISSUE_EVENTS = frozenset({"issues", "pull_request", "pull_request_target"})
SCAN_EVENTS = frozenset({"schedule", "workflow_dispatch"})


class LabelClient(Protocol):
    def get_issue(self, number: int) -> dict[str, Any]: ...

    def list_issues(self, *, since: datetime | None = None, state: str = "open") -> list[dict[str, Any]]: ...

    def list_labels_on_issue(self, number: int) -> list[str]: ...

    def list_labels_for_repo(self) -> list[str]: ...

    def add_labels(self, number: int, labels: list[str]) -> Any: ...

    def remove_label(self, number: int, name: str) -> Any: ...


@dataclass
class IssueOutcome:
    number: int
    html_url: str | None
    result: ReconciliationResult = field(default_factory=ReconciliationResult)
    applied: bool = False
    removed: list[str] = field(default_factory=list)
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "html_url": self.html_url,
            "applied": self.applied,
            "removed": list(self.removed),
            "error": self.error,
            **self.result.as_dict(),
        }


class LabelSyncer:
    def __init__(
        self,
        client: LabelClient,
        pattern: str | re.Pattern[str],
        *,
        logger: StructuredLogger | None = None,
        dry_run: bool = False,
    ) -> None:
        self.client = client
        self.pattern = compile_pattern(pattern)
        self.logger = logger or get_logger()
        self.dry_run = dry_run
        self._registered: set[str] | None = None

    def registered_labels(self) -> set[str]:
        if self._registered is None:
            self._registered = set(self.client.list_labels_for_repo())
        return self._registered

    def process_issue(self, number: int, body: str | None, html_url: str | None = None) -> IssueOutcome:
        self.logger.debug(f"--- {html_url or f'#{number}'} ---", issue_number=number)
        outcome = IssueOutcome(number=number, html_url=html_url)

        directives = extract_labels(body, self.pattern)
        current = self.client.list_labels_on_issue(number)
        result = reconcile(directives, current, self.registered_labels())
        outcome.result = result

        if not result.has_directives:
            self.logger.debug("No registered label found in the description", issue_number=number)
            return outcome

        self.logger.debug("Checked labels:\n" + format_str_list(result.checked), issue_number=number)
        self.logger.debug("Labels to remove:\n" + format_str_list(result.to_remove), issue_number=number)
        self.logger.debug("Labels to add:\n" + format_str_list(result.to_add), issue_number=number)

        if result.is_noop:
            return outcome

        try:
            self._apply(outcome)
        except (GitHubAPIError, requests.RequestException) as exc:
            self.logger.log_error(f"failed to apply labels to #{number}", error=str(exc), issue_number=number)
            outcome.error = redact(str(exc))
            return outcome
        outcome.applied = not self.dry_run
        return outcome

    def _apply(self, outcome: IssueOutcome) -> None:
        number, result = outcome.number, outcome.result
        if result.to_remove:
            self.logger.log_label_action("remove", number, result.to_remove, dry_run=self.dry_run)
            if not self.dry_run:
                for name in result.to_remove:
                    self.client.remove_label(number, name)
                    outcome.removed.append(name)
        if result.to_add:
            self.logger.log_label_action("add", number, result.to_add, dry_run=self.dry_run)
            if not self.dry_run:
                self.client.add_labels(number, list(result.to_add))

    def sync_issue(self, number: int) -> IssueOutcome:
        issue = self.client.get_issue(number)
        return self.process_issue(number, issue.get("body"), issue.get("html_url"))

    def sync_since(self, since: datetime) -> list[IssueOutcome]:
        """Process every open issue / pull request updated after ``since``.

        API failures on a single issue are recorded on its outcome and the
        scan moves on to the next one.
        """
        outcomes: list[IssueOutcome] = []
        for issue in self.client.list_issues(since=since):
            number = issue.get("number")
            if not isinstance(number, int):
                continue
            try:
                outcomes.append(self.process_issue(number, issue.get("body"), issue.get("html_url")))
            except (GitHubAPIError, requests.RequestException) as exc:
                self.logger.log_error(f"failed to sync #{number}", error=str(exc), issue_number=number)
                outcomes.append(
                    IssueOutcome(number=number, html_url=issue.get("html_url"), error=redact(str(exc)))
                )
        return outcomes


def load_event_payload(path: str | Path | None) -> dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Event payload not found: {p}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Event payload {p} is not valid JSON: {exc}") from exc
    return data if isinstance(data, dict) else {}


def issue_number_from_payload(event_name: str, payload: dict[str, Any]) -> int:
    key = "issue" if event_name == "issues" else "pull_request"
    entry = payload.get(key)
    number = entry.get("number") if isinstance(entry, dict) else None
    if not isinstance(number, int):
        number = payload.get("number")
    if not isinstance(number, int):
        raise ConfigurationError(f"`{event_name}` event payload does not name an issue number")
    return number


def summarize(
    event_name: str, outcomes: list[IssueOutcome], *, dry_run: bool, since: datetime | None = None
) -> dict[str, Any]:
    return {
        "event": event_name,
        "dry_run": dry_run,
        "since": since.isoformat() if since else None,
        "processed": len(outcomes),
        "changed": sum(1 for o in outcomes if not o.result.is_noop and o.error is None),
        "failed": sum(1 for o in outcomes if o.error is not None),
        "issues": [o.as_dict() for o in outcomes],
    }


def run_event(
    cfg: SyncConfig,
    client: LabelClient,
    event_name: str,
    payload: dict[str, Any] | None = None,
    *,
    now: datetime | None = None,
    logger: StructuredLogger | None = None,
) -> dict[str, Any]:
    syncer = LabelSyncer(client, cfg.label_pattern, logger=logger, dry_run=cfg.dry_run)
    if event_name in SINGLE_ISSUE_EVENTS:
        number = issue_number_from_payload(event_name, payload or {})
        return summarize(event_name, [syncer.sync_issue(number)], dry_run=cfg.dry_run)
    if event_name in SCAN_EVENTS:
        since = parse_offset(cfg.offset, now or datetime.now(timezone.utc))
        return summarize(event_name, syncer.sync_since(since), dry_run=cfg.dry_run, since=since)
    syncer.logger.debug(f"event `{event_name}` is not handled; nothing to do")
    return summarize(event_name, [], dry_run=cfg.dry_run)


__all__ = [
    "IssueOutcome",
    "LabelSyncer",
    "load_event_payload",
    "issue_number_from_payload",
    "run_event",
    "summarize",
]
