"""GitHub Issues task provider."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

import requests

from taskexport.adapters.tasks.utils import parse_encryption, read_snapshot
from taskexport.domain.tasks import TaskRecord
from taskexport.ports.tasks.provider import TaskProvider, TaskProviderError

API_ROOT = "https://api.github.com"
ISSUE_FIELDS = ("id", "number", "title", "state", "created_at", "updated_at", "html_url")


@dataclass
class GitHubAuthConfig:
    token_env: str | None

    def resolve(self) -> str:
        if not self.token_env:
            raise TaskProviderError("github provider requires token_env for API usage")
        token = os.environ.get(self.token_env)
        if not token:
            raise TaskProviderError(
                f"github provider token missing in environment variable '{self.token_env}'"
            )
        return token


class GitHubIssuesProvider(TaskProvider):
    def __init__(self, options: Dict[str, Any], session: requests.Session | None = None) -> None:
        self._owner = options.get("owner")
        self._repo = options.get("repo")
        self._state = options.get("state", "open")
        labels = options.get("labels")
        if isinstance(labels, str):
            self._labels = [label.strip() for label in labels.split(",") if label.strip()]
        elif isinstance(labels, list):
            self._labels = [str(label).strip() for label in labels if str(label).strip()]
        else:
            self._labels = []
        snapshot = options.get("snapshot_path") or options.get("path")
        self._snapshot_path = str(snapshot) if snapshot else None
        self._snapshot_mode, self._snapshot_key, self._snapshot_key_env = parse_encryption(
            options,
            label="github",
            block="snapshot_encryption",
            legacy_flag="snapshot_encrypted",
            legacy_key="snapshot_key",
            legacy_key_env="snapshot_key_env",
        )
        self._auth_config = GitHubAuthConfig(token_env=options.get("token_env"))
        self._session = session or requests.Session()

    def fetch(self) -> Iterable[TaskRecord]:
        if self._snapshot_path:
            payload = read_snapshot(
                self._snapshot_path,
                mode=self._snapshot_mode,
                key=self._snapshot_key,
                key_env=self._snapshot_key_env,
            )
            issues = payload.get("issues", []) if isinstance(payload, dict) else payload
            return self._to_records(issues)
        if not self._owner or not self._repo:
            raise TaskProviderError("github provider requires 'owner' and 'repo'")
        return self._to_records(self._fetch_remote(self._auth_config.resolve()))

    def _fetch_remote(self, token: str) -> List[dict[str, Any]]:
        url: str | None = f"{API_ROOT}/repos/{self._owner}/{self._repo}/issues"
        params: Dict[str, Any] = {"state": self._state}
        if self._labels:
            params["labels"] = ",".join(self._labels)
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
        }
        issues: List[dict[str, Any]] = []
        while url:
            try:
                response = self._session.get(url, params=params, headers=headers, timeout=30)
            except requests.RequestException as exc:
                raise TaskProviderError(f"github provider request failed: {exc}") from exc
            params = {}  # next pages carry their query in the link header
            if response.status_code >= 400:
                raise TaskProviderError(
                    f"github provider request failed: {response.status_code} {response.text}"
                )
            try:
                page_items = response.json()
            except ValueError as exc:
                raise TaskProviderError(f"github provider returned invalid JSON: {exc}") from exc
            if isinstance(page_items, list):
                issues.extend(page_items)
            url = _next_link(response.headers.get("Link"))
        return issues

    def _to_records(self, issues: Iterable[Any]) -> List[TaskRecord]:
        if not isinstance(issues, list):
            raise TaskProviderError("github payload must be a list of issues")
        records: List[TaskRecord] = []
        for issue in issues:
            if not isinstance(issue, dict) or issue.get("pull_request"):
                continue
            data = {name: issue.get(name) for name in ISSUE_FIELDS if name in issue}
            data["labels"] = [
                label.get("name") if isinstance(label, dict) else str(label)
                for label in issue.get("labels") or []
            ]
            assignee = issue.get("assignee")
            data["assignee"] = assignee.get("login") if isinstance(assignee, dict) else assignee
            records.append(TaskRecord(data))
        return records


def _next_link(link_header: str | None) -> str | None:
    if not link_header:
        return None
    for part in link_header.split(","):
        if 'rel="next"' in part:
            url_part, _ = part.split(";", 1)
            return url_part.strip(" <>")
    return None
