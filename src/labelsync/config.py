from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, cast

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError, parse_choice
from .github_rest import DEFAULT_API_URL
from .offset import parse_duration
from .patterns import compile_pattern, resolve_pattern

CONFIG_DEFAULT = "label_sync.config.yaml"
DEFAULT_PATTERN = "backtick"
DEFAULT_OFFSET = "1D"


class Quiet(str, Enum):
    TRUE = "true"
    FALSE = "false"


@dataclass
class SyncConfig:
    github_token: str | None
    repo: str | None
    label_pattern: str
    quiet: bool
    offset: str
    dry_run: bool
    # Logging configuration
    logging_json_enabled: bool
    logging_level: str
    api_url: str

    def require_token(self) -> str:
        if not self.github_token:
            raise ConfigurationError(
                "GitHub token missing: set the `github-token` input or GITHUB_TOKEN"
            )
        return self.github_token

    def require_repo(self) -> str:
        if not self.repo or "/" not in self.repo:
            raise ConfigurationError(
                f"repository must be given as owner/name, got {self.repo!r}"
            )
        return self.repo


def default_config() -> SyncConfig:
    return SyncConfig(
        github_token=None,
        repo=None,
        label_pattern=resolve_pattern(DEFAULT_PATTERN),
        quiet=False,
        offset=DEFAULT_OFFSET,
        dry_run=False,
        logging_json_enabled=False,
        logging_level="INFO",
        api_url=DEFAULT_API_URL,
    )


def _resolve_env_var(value: Any) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith("$"):
        return os.getenv(value[1:], value)
    return value


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return parse_choice(name, str(value).strip().lower(), Quiet) is Quiet.TRUE


def _action_input(env: Mapping[str, str], name: str) -> str | None:
    """Read a GitHub Actions input the way ``@actions/core`` exposes it."""
    for key in (f"INPUT_{name.upper()}", f"INPUT_{name.upper().replace('-', '_')}"):
        value = env.get(key)
        if value is not None and value.strip():
            return value.strip()
    return None


def _apply_file(cfg: SyncConfig, path: Path) -> SyncConfig:
    try:
        raw = cast(dict[str, Any], yaml.safe_load(path.read_text(encoding="utf-8")) or {})
    except (UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Configuration file {path} could not be parsed: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    gh = cast(dict[str, Any], raw.get("github", {}) or {})
    labels = cast(dict[str, Any], raw.get("labels", {}) or {})
    schedule = cast(dict[str, Any], raw.get("schedule", {}) or {})
    behavior = cast(dict[str, Any], raw.get("behavior", {}) or {})
    logging_config = cast(dict[str, Any], raw.get("logging", {}) or {})

    updates: dict[str, Any] = {}
    if gh.get("repo"):
        updates["repo"] = _resolve_env_var(gh["repo"])
    if gh.get("api_url"):
        updates["api_url"] = _resolve_env_var(gh["api_url"])
    if gh.get("token"):
        updates["github_token"] = _resolve_env_var(gh["token"])
    if labels.get("pattern"):
        updates["label_pattern"] = resolve_pattern(str(labels["pattern"]))
    if schedule.get("offset"):
        updates["offset"] = str(schedule["offset"])
    if "dry_run" in behavior:
        updates["dry_run"] = _parse_bool("dry_run", behavior["dry_run"])
    if "quiet" in behavior:
        updates["quiet"] = _parse_bool("quiet", behavior["quiet"])
    if "json_enabled" in logging_config:
        updates["logging_json_enabled"] = _parse_bool("json_enabled", logging_config["json_enabled"])
    if logging_config.get("level"):
        updates["logging_level"] = str(logging_config["level"]).upper()
    return replace(cfg, **updates)


def _apply_env(cfg: SyncConfig, env: Mapping[str, str]) -> SyncConfig:
    updates: dict[str, Any] = {}
    token = _action_input(env, "github-token") or env.get("GITHUB_TOKEN")
    if token:
        updates["github_token"] = token
    pattern = _action_input(env, "label-pattern")
    if pattern:
        updates["label_pattern"] = resolve_pattern(pattern)
    quiet = _action_input(env, "quiet")
    if quiet is not None:
        updates["quiet"] = parse_choice("quiet", quiet, Quiet) is Quiet.TRUE
    offset = _action_input(env, "offset")
    if offset:
        updates["offset"] = offset
    if env.get("GITHUB_REPOSITORY"):
        updates["repo"] = env["GITHUB_REPOSITORY"]
    if env.get("GITHUB_API_URL"):
        updates["api_url"] = env["GITHUB_API_URL"]
    if env.get("LABELSYNC_DRY_RUN") == "1":
        updates["dry_run"] = True
    if env.get("LABELSYNC_QUIET") == "1":
        updates["quiet"] = True
    return replace(cfg, **updates)


def validate_config(cfg: SyncConfig) -> SyncConfig:
    """Fail fast on a bad pattern or offset before any API call is made."""
    compile_pattern(cfg.label_pattern)
    parse_duration(cfg.offset)
    return cfg


def load_config(
    path: str | Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
    load_env_file: bool = False,
) -> SyncConfig:
    """Build the effective configuration.

    Precedence (lowest first): defaults, YAML file, environment (action
    inputs and ``GITHUB_*`` variables), explicit overrides. A missing file is
    only an error when ``path`` was given explicitly and is not the default
    name.
    """
    if load_env_file:
        env_file = Path(".env")
        if env_file.exists():
            load_dotenv(env_file, override=False)
    cfg = default_config()
    if path is not None:
        p = Path(path)
        if p.exists():
            cfg = _apply_file(cfg, p)
        elif p.name != CONFIG_DEFAULT:
            raise ConfigurationError(f"Configuration file not found: {p}")
    cfg = _apply_env(cfg, os.environ if env is None else env)
    if overrides:
        updates = {k: v for k, v in overrides.items() if v is not None}
        if "label_pattern" in updates:
            updates["label_pattern"] = resolve_pattern(str(updates["label_pattern"]))
        cfg = replace(cfg, **updates)
    return validate_config(cfg)


__all__ = [
    "CONFIG_DEFAULT",
    "Quiet",
    "SyncConfig",
    "default_config",
    "load_config",
    "validate_config",
]
