"""labelsync CLI.

Subcommands:
  run       -> GitHub Actions entry point (event from GITHUB_EVENT_NAME / GITHUB_EVENT_PATH)
  issue     -> sync labels of a single issue or pull request
  scan      -> sync every open issue / pull request updated within --offset
  extract   -> print directives found in a description (offline)
  plan      -> print the add/remove plan for a description (offline)
  patterns  -> list built-in directive patterns

Exit codes: 0 on success, 1 when configuration is invalid, an API call
fails, or any issue of a scan could not be synced.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import requests

from .config import CONFIG_DEFAULT, SyncConfig, load_config
from .errors import ConfigurationError, LabelSyncError, classify_error
from .extractor import extract_labels
from .github_rest import GitHubAPIError, GitHubRestClient
from .logging import StructuredLogger, configure_logging
from .offset import parse_offset
from .patterns import BUILTIN_PATTERNS
from .reconcile import reconcile
from .sync import LabelSyncer, load_event_payload, run_event, summarize
from .ux import print_error, print_operation_status, print_summary_box

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_common(sp: argparse.ArgumentParser, *, network: bool = True) -> None:
    sp.add_argument("--config", default=CONFIG_DEFAULT)
    sp.add_argument(
        "--pattern",
        help="Built-in pattern name (%s) or a custom regex" % ", ".join(BUILTIN_PATTERNS),
    )
    if network:
        sp.add_argument("--repo", help="Override target repository (owner/repo)")
        sp.add_argument("--dry-run", action="store_true", default=None)
        sp.add_argument("--summary-json", help="Write the run summary to this path")


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="labelsync", description="Sync issue labels with checkbox directives"
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational logging (env: LABELSYNC_QUIET=1)",
    )
    p.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    pr = sub.add_parser("run", help="Handle the current GitHub Actions event")
    _add_common(pr)
    pr.add_argument("--event", help="Event name (default: $GITHUB_EVENT_NAME)")
    pr.add_argument("--event-path", help="Event payload JSON (default: $GITHUB_EVENT_PATH)")

    pi = sub.add_parser("issue", help="Sync labels of one issue or pull request")
    _add_common(pi)
    pi.add_argument("--number", type=int, required=True)

    ps = sub.add_parser("scan", help="Sync open issues updated within an offset")
    _add_common(ps)
    ps.add_argument("--offset", help="Duration token such as 12H, 3D or 1M")

    pe = sub.add_parser("extract", help="Print directives found in a description")
    _add_common(pe, network=False)
    pe.add_argument("--file", help="Description file (default: stdin)")

    pp = sub.add_parser("plan", help="Print the label plan for a description")
    _add_common(pp, network=False)
    pp.add_argument("--file", help="Description file (default: stdin)")
    pp.add_argument("--current", default="", help="Comma separated labels on the issue")
    pp.add_argument("--registered", default="", help="Comma separated repository labels")

    sub.add_parser("patterns", help="List built-in directive patterns")
    return p


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _read_description(path: str | None) -> str:
    try:
        return Path(path).read_text(encoding="utf-8") if path else sys.stdin.read()
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"Description {path or '<stdin>'} is not valid UTF-8: {exc}") from exc


def prepare_config(args: argparse.Namespace) -> SyncConfig | None:
    if args.cmd == "patterns":
        return None
    overrides: dict[str, Any] = {
        "label_pattern": getattr(args, "pattern", None),
        "repo": getattr(args, "repo", None),
        "dry_run": getattr(args, "dry_run", None),
        "offset": getattr(args, "offset", None),
    }
    if args.quiet:
        overrides["quiet"] = True
    if args.json_logs:
        overrides["logging_json_enabled"] = True
    return load_config(args.config, overrides=overrides, load_env_file=True)


def _build_client(cfg: SyncConfig) -> GitHubRestClient:
    return GitHubRestClient(token=cfg.require_token(), repo=cfg.require_repo(), base_url=cfg.api_url)


def _emit_summary(summary: dict[str, Any], cfg: SyncConfig, args: argparse.Namespace) -> int:
    if args.summary_json:
        Path(args.summary_json).write_text(json.dumps(summary, indent=2) + "\n", encoding="utf-8")
    if not cfg.quiet:
        print_summary_box(
            "Label Sync Summary",
            [
                ("Event", summary["event"]),
                ("Processed", summary["processed"]),
                ("Changed", summary["changed"]),
                ("Failed", summary["failed"]),
                ("Dry run", str(summary["dry_run"]).lower()),
            ],
        )
        for entry in summary["issues"]:
            if entry["error"]:
                details = entry["error"]
                if entry["removed"]:
                    details += f" removed={entry['removed']}"
                print_operation_status(f"#{entry['number']}", "failed", details)
            elif entry["to_add"] or entry["to_remove"]:
                details = f"add={entry['to_add']} remove={entry['to_remove']}"
                print_operation_status(f"#{entry['number']}", "changed", details)
            else:
                print_operation_status(f"#{entry['number']}", "unchanged")
    return 1 if summary["failed"] else 0


def _cmd_run(cfg: SyncConfig, args: argparse.Namespace, logger: StructuredLogger) -> int:
    event_name = args.event or os.environ.get("GITHUB_EVENT_NAME", "")
    payload = load_event_payload(args.event_path or os.environ.get("GITHUB_EVENT_PATH"))
    summary = run_event(cfg, _build_client(cfg), event_name, payload, logger=logger)
    return _emit_summary(summary, cfg, args)


def _cmd_issue(cfg: SyncConfig, args: argparse.Namespace, logger: StructuredLogger) -> int:
    syncer = LabelSyncer(_build_client(cfg), cfg.label_pattern, logger=logger, dry_run=cfg.dry_run)
    with logger.timed_operation("sync_issue", issue_number=args.number):
        outcome = syncer.sync_issue(args.number)
    return _emit_summary(summarize("issue", [outcome], dry_run=cfg.dry_run), cfg, args)


def _cmd_scan(cfg: SyncConfig, args: argparse.Namespace, logger: StructuredLogger) -> int:
    since = parse_offset(cfg.offset, datetime.now(timezone.utc))
    syncer = LabelSyncer(_build_client(cfg), cfg.label_pattern, logger=logger, dry_run=cfg.dry_run)
    with logger.timed_operation("scan", offset=cfg.offset):
        outcomes = syncer.sync_since(since)
    return _emit_summary(summarize("scan", outcomes, dry_run=cfg.dry_run, since=since), cfg, args)


def _cmd_extract(cfg: SyncConfig, args: argparse.Namespace) -> int:
    directives = extract_labels(_read_description(args.file), cfg.label_pattern)
    print(json.dumps([d.as_dict() for d in directives], indent=2))
    return 0


def _cmd_plan(cfg: SyncConfig, args: argparse.Namespace) -> int:
    directives = extract_labels(_read_description(args.file), cfg.label_pattern)
    result = reconcile(directives, _split(args.current), _split(args.registered))
    print(json.dumps(result.as_dict(), indent=2))
    return 0


def _cmd_patterns() -> int:
    width = max(len(name) for name in BUILTIN_PATTERNS)
    for name, template in BUILTIN_PATTERNS.items():
        print(f"{name.ljust(width)}  {template}")
    return 0


def _build_handlers(
    args: argparse.Namespace, cfg: SyncConfig | None, logger: StructuredLogger
) -> dict[str, Callable[[], int]]:
    def need() -> SyncConfig:
        if cfg is None:  # pragma: no cover - prepare_config loads for every network command
            raise RuntimeError("Configuration not loaded")
        return cfg

    return {
        "run": lambda: _cmd_run(need(), args, logger),
        "issue": lambda: _cmd_issue(need(), args, logger),
        "scan": lambda: _cmd_scan(need(), args, logger),
        "extract": lambda: _cmd_extract(need(), args),
        "plan": lambda: _cmd_plan(need(), args),
        "patterns": _cmd_patterns,
    }


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.quiet and os.environ.get("LABELSYNC_QUIET") == "1":
        args.quiet = True
    try:
        cfg = prepare_config(args)
        logger = configure_logging(
            json_logging=bool(cfg and cfg.logging_json_enabled),
            level=cfg.logging_level if cfg else "INFO",
            quiet=bool(cfg.quiet) if cfg else args.quiet,
        )
        return _build_handlers(args, cfg, logger)[args.cmd]()
    except (LabelSyncError, GitHubAPIError, requests.RequestException, OSError) as exc:
        info = classify_error(exc)
        hint = " (transient, retry later)" if info.transient else ""
        print_error(f"[{info.category}] {info.message}{hint}")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
