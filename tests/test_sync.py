from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest
import requests

from labelsync.config import default_config
from labelsync.errors import ConfigurationError
from labelsync.github_rest import GitHubAPIError
from labelsync.logging import StructuredLogger
from labelsync.sync import (
    LabelSyncer,
    issue_number_from_payload,
    load_event_payload,
    run_event,
    summarize,
)

from _fakes import FakeLabelClient

BODY = "Checklist\n\n- [x] `bug`\n- [ ] `wontfix`\n- [x] `not-registered`\n"
NOW = datetime(2020, 10, 10, 10, 10, 10, tzinfo=timezone.utc)


def _logger() -> StructuredLogger:
    return StructuredLogger(name="test-sync", level="DEBUG", stream=io.StringIO())


def _client(**issues: dict) -> FakeLabelClient:
    return FakeLabelClient(
        registered=["bug", "wontfix", "docs"],
        issues={int(k.lstrip("n")): v for k, v in issues.items()},
    )


def test_process_issue_applies_result():
    client = _client(n1={"body": BODY, "labels": ["wontfix"]})
    outcome = LabelSyncer(client, "backtick", logger=_logger()).sync_issue(1)
    assert outcome.result.to_add == ("bug",)
    assert outcome.result.to_remove == ("wontfix",)
    assert outcome.applied is True
    assert client.mutations() == [("remove_label", (1, "wontfix")), ("add_labels", (1, ["bug"]))]
    assert client.issues[1]["labels"] == ["bug"]


def test_second_run_is_noop():
    client = _client(n1={"body": BODY, "labels": ["wontfix"]})
    syncer = LabelSyncer(client, "backtick", logger=_logger())
    syncer.sync_issue(1)
    before = len(client.mutations())
    outcome = syncer.sync_issue(1)
    assert outcome.result.is_noop
    assert outcome.applied is False
    assert len(client.mutations()) == before


def test_dry_run_does_not_mutate():
    client = _client(n1={"body": BODY, "labels": ["wontfix"]})
    outcome = LabelSyncer(client, "backtick", logger=_logger(), dry_run=True).sync_issue(1)
    assert outcome.result.to_add == ("bug",)
    assert outcome.applied is False
    assert client.mutations() == []


def test_description_without_registered_labels():
    stream = io.StringIO()
    logger = StructuredLogger(name="test-sync-empty", level="DEBUG", stream=stream)
    client = _client(n1={"body": "- [x] `unknown`", "labels": []})
    outcome = LabelSyncer(client, "backtick", logger=logger).sync_issue(1)
    assert outcome.result.has_directives is False
    assert client.mutations() == []
    assert "No registered label found in the description" in stream.getvalue()


def test_null_body_is_handled():
    client = _client(n1={"body": None, "labels": ["bug"]})
    outcome = LabelSyncer(client, "backtick", logger=_logger()).sync_issue(1)
    assert outcome.result.is_noop


def test_registered_labels_fetched_once():
    client = _client(n1={"body": BODY, "labels": []}, n2={"body": BODY, "labels": []})
    syncer = LabelSyncer(client, "backtick", logger=_logger())
    syncer.sync_since(NOW)
    assert sum(1 for c in client.calls if c[0] == "list_labels_for_repo") == 1


def test_sync_since_continues_after_failure():
    client = FakeLabelClient(
        registered=["bug"],
        issues={1: {"body": "- [x] `bug`", "labels": []}, 2: {"body": "- [x] `bug`", "labels": []}},
        failing={1},
    )
    outcomes = LabelSyncer(client, "backtick", logger=_logger()).sync_since(NOW)
    assert [o.number for o in outcomes] == [1, 2]
    assert outcomes[0].error is not None and "502" in outcomes[0].error
    assert outcomes[1].applied is True


def test_sync_since_continues_after_connection_error():
    client = FakeLabelClient(
        registered=["bug"],
        issues={1: {"body": "- [x] `bug`", "labels": []}, 2: {"body": "- [x] `bug`", "labels": []}},
        raises={("list_labels_on_issue", 1): requests.ConnectionError("connection reset by peer")},
    )
    outcomes = LabelSyncer(client, "backtick", logger=_logger()).sync_since(NOW)
    assert [o.number for o in outcomes] == [1, 2]
    assert outcomes[0].error == "connection reset by peer"
    assert outcomes[1].applied is True


def test_partial_apply_keeps_plan_and_removed_labels():
    client = FakeLabelClient(
        registered=["bug", "wontfix"],
        issues={1: {"body": BODY, "labels": ["wontfix"]}},
        raises={("add_labels", 1): GitHubAPIError("boom 500", status=500)},
    )
    outcome = LabelSyncer(client, "backtick", logger=_logger()).sync_issue(1)
    assert client.mutations() == [("remove_label", (1, "wontfix")), ("add_labels", (1, ["bug"]))]
    data = outcome.as_dict()
    assert data["error"] == "boom 500"
    assert data["applied"] is False
    assert data["to_add"] == ["bug"]
    assert data["to_remove"] == ["wontfix"]
    assert data["removed"] == ["wontfix"]


def test_partial_apply_counts_as_failed_in_summary():
    client = FakeLabelClient(
        registered=["bug", "wontfix"],
        issues={1: {"body": BODY, "labels": ["wontfix"]}, 2: {"body": BODY, "labels": []}},
        raises={("remove_label", 1): requests.Timeout("read timed out")},
    )
    outcomes = LabelSyncer(client, "backtick", logger=_logger()).sync_since(NOW)
    summary = summarize("scan", outcomes, dry_run=False)
    assert summary["failed"] == 1
    assert summary["changed"] == 1
    assert summary["issues"][0]["removed"] == []
    assert summary["issues"][0]["to_remove"] == ["wontfix"]


def test_run_event_issues():
    cfg = default_config()
    client = _client(n4={"body": BODY, "labels": ["wontfix"]})
    summary = run_event(cfg, client, "issues", {"issue": {"number": 4}}, logger=_logger())
    assert summary["event"] == "issues"
    assert summary["processed"] == 1
    assert summary["changed"] == 1
    assert summary["issues"][0]["to_add"] == ["bug"]
    json.dumps(summary)


def test_run_event_pull_request():
    cfg = default_config()
    client = _client(n8={"body": BODY, "labels": []})
    summary = run_event(cfg, client, "pull_request", {"pull_request": {"number": 8}}, logger=_logger())
    assert summary["issues"][0]["number"] == 8


def test_run_event_schedule_uses_offset():
    cfg = default_config()
    cfg.offset = "1M"
    client = _client(n1={"body": BODY, "labels": []})
    summary = run_event(cfg, client, "schedule", {}, now=NOW, logger=_logger())
    assert summary["since"] == "2020-09-10T10:10:10+00:00"
    assert ("list_issues", datetime(2020, 9, 10, 10, 10, 10, tzinfo=timezone.utc)) in client.calls
    assert summary["processed"] == 1


def test_run_event_other_event_is_noop():
    client = _client(n1={"body": BODY, "labels": []})
    summary = run_event(default_config(), client, "push", {}, logger=_logger())
    assert summary["processed"] == 0
    assert client.calls == []


def test_issue_number_from_payload():
    assert issue_number_from_payload("issues", {"issue": {"number": 3}}) == 3
    assert issue_number_from_payload("pull_request", {"number": 5}) == 5
    with pytest.raises(ConfigurationError):
        issue_number_from_payload("issues", {})


def test_load_event_payload(tmp_path: Path):
    path = tmp_path / "event.json"
    path.write_text(json.dumps({"issue": {"number": 1}}))
    assert load_event_payload(path) == {"issue": {"number": 1}}
    assert load_event_payload(None) == {}
    with pytest.raises(ConfigurationError):
        load_event_payload(tmp_path / "missing.json")
