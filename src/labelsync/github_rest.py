from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import requests

from .retry import TransientError, is_transient, run_with_retries

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "labelsync-rest/0.1.0"
HTTP_ERROR_STATUS = 400
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
PER_PAGE = 100


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub REST API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


def _label_names(data: Any) -> list[str]:
    names: list[str] = []
    if isinstance(data, list):
        for entry in data:
            if isinstance(entry, dict):
                name_val = entry.get("name")
                if isinstance(name_val, str):
                    names.append(name_val)
    return names


def _isoformat(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _retry_after(response: requests.Response) -> float | None:
    header = response.headers.get("Retry-After") if response.headers else None
    if header and header.isdigit():
        return float(header)
    return None


@dataclass
class GitHubRestClient:
    """Label-focused REST client for a single repository."""

    token: str
    repo: str
    base_url: str = DEFAULT_API_URL
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- REST helpers -------------------------------------------------
    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> requests.Response:
        url = self._url(path)

        def _run() -> requests.Response:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._session.headers,
                timeout=30,
            )
            if response.status_code == HTTP_TOO_MANY_REQUESTS or (
                response.status_code == HTTP_FORBIDDEN and is_transient(response.text or "")
            ):
                raise TransientError(response.text or "rate limit", retry_after=_retry_after(response))
            return response

        try:
            return run_with_retries(_run)
        except TransientError as exc:
            raise GitHubAPIError(
                f"GitHub API {method} {url} still rate limited after retries",
                status=HTTP_TOO_MANY_REQUESTS,
                response_text=exc.output,
            ) from exc

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        response = self._send(method, path, params=params, json_body=json_body)
        if response.status_code >= HTTP_ERROR_STATUS:
            raise GitHubAPIError(
                f"GitHub API {method} {self._url(path)} failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        if response.text:
            try:
                return response.json()
            except ValueError:
                return response.text
        return None

    def _paginate(self, path: str, *, params: dict[str, Any] | None = None) -> list[Any]:
        params = dict(params or {})
        per_page = params.setdefault("per_page", PER_PAGE)
        params.setdefault("page", 1)
        results: list[Any] = []
        while True:
            data = self._request("GET", path, params=params)
            if not isinstance(data, list):
                break
            results.extend(data)
            if len(data) < per_page:
                break
            params["page"] = params["page"] + 1
        return results

    # ---- Issue operations --------------------------------------------
    def get_issue(self, number: int) -> dict[str, Any]:
        data = self._request("GET", f"/repos/{self.repo}/issues/{number}")
        if not isinstance(data, dict):
            raise GitHubAPIError(f"Unexpected payload for issue #{number}")
        return data

    def list_issues(self, *, since: datetime | None = None, state: str = "open") -> list[dict[str, Any]]:
        """Issues and pull requests of the repository, optionally updated since ``since``."""
        params: dict[str, Any] = {"state": state}
        if since is not None:
            params["since"] = _isoformat(since)
        data = self._paginate(f"/repos/{self.repo}/issues", params=params)
        return [entry for entry in data if isinstance(entry, dict)]

    # ---- Label operations --------------------------------------------
    def list_labels_on_issue(self, number: int) -> list[str]:
        return _label_names(self._paginate(f"/repos/{self.repo}/issues/{number}/labels"))

    def list_labels_for_repo(self) -> list[str]:
        return _label_names(self._paginate(f"/repos/{self.repo}/labels"))

    def add_labels(self, number: int, labels: Iterable[str]) -> list[str]:
        names = list(labels)
        if not names:
            return []
        data = self._request(
            "POST",
            f"/repos/{self.repo}/issues/{number}/labels",
            json_body={"labels": names},
        )
        return _label_names(data)

    def remove_label(self, number: int, name: str) -> bool:
        """Remove one label; returns False when it was already gone."""
        path = f"/repos/{self.repo}/issues/{number}/labels/{quote(name, safe='')}"
        response = self._send("DELETE", path)
        if response.status_code == HTTP_NOT_FOUND:
            return False
        if response.status_code >= HTTP_ERROR_STATUS:
            raise GitHubAPIError(
                f"GitHub API DELETE {self._url(path)} failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        return True


__all__ = ["GitHubAPIError", "GitHubRestClient", "DEFAULT_API_URL"]
