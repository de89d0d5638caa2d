"""Pytest configuration for labelsync tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`).
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's GitHub / action environment out of every test."""
    for key in (
        "GITHUB_TOKEN",
        "GITHUB_REPOSITORY",
        "GITHUB_API_URL",
        "GITHUB_EVENT_NAME",
        "GITHUB_EVENT_PATH",
        "INPUT_GITHUB-TOKEN",
        "INPUT_LABEL-PATTERN",
        "INPUT_QUIET",
        "INPUT_OFFSET",
        "INPUT_GITHUB_TOKEN",
        "INPUT_LABEL_PATTERN",
        "LABELSYNC_DRY_RUN",
        "LABELSYNC_QUIET",
        "LABELSYNC_RETRY_MAX_SLEEP",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LABELSYNC_RETRY_BASE", "0")
    monkeypatch.chdir(tmp_path)
