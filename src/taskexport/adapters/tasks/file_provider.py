"""File-based task provider adapter."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List

from taskexport.adapters.tasks.utils import parse_encryption, read_snapshot
from taskexport.domain.tasks import TaskRecord
from taskexport.ports.tasks.provider import TaskProvider, TaskProviderError


class FileTaskProvider(TaskProvider):
    """Reads tasks from a JSON snapshot: a list of objects or ``{"tasks": [...]}``."""

    def __init__(self, project_root: Path, options: Dict[str, Any]) -> None:
        raw_path = options.get("path")
        if not raw_path:
            raise TaskProviderError("file provider requires 'path'")
        self._root = project_root
        self._path = str(raw_path)
        self._mode, self._key, self._key_env = parse_encryption(
            options,
            label="file",
            block="encryption",
            legacy_flag="encrypted",
            legacy_key="key",
            legacy_key_env="key_env",
        )

    def fetch(self) -> Iterable[TaskRecord]:
        payload = read_snapshot(
            self._resolve_path(self._path),
            mode=self._mode,
            key=self._key,
            key_env=self._key_env,
        )
        if isinstance(payload, dict):
            entries = payload.get("tasks")
            if not isinstance(entries, list):
                raise TaskProviderError("provider payload missing 'tasks' list")
        elif isinstance(payload, list):
            entries = payload
        else:
            raise TaskProviderError("provider payload must be an object or list")

        tasks: List[TaskRecord] = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise TaskProviderError(f"provider task #{index} must be an object")
            tasks.append(TaskRecord(dict(entry)))
        return tasks

    def _resolve_path(self, raw: str) -> str:
        candidate = Path(raw)
        if candidate.is_absolute():
            return str(candidate)
        return str((self._root / candidate).resolve())
