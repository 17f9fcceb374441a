"""Application service wiring configuration, providers and the exporter."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, TextIO

from taskexport.adapters.tasks import build_provider_from_config
from taskexport.app.tasks.config import (
    DEFAULT_CONFIG_NAME,
    ExportConfig,
    TaskExportConfigError,
    TaskExportError,
    load_export_config,
    normalise_source,
)
from taskexport.app.tasks.exporter import DEFAULT_OUTPUT_PATH, TaskExportResult, export
from taskexport.domain.tasks import TaskCollection
from taskexport.ports.tasks.provider import TaskProviderError


@dataclass(frozen=True)
class TaskExportReport:
    result: TaskExportResult
    provider_config: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        payload = self.result.to_dict()
        payload["provider"] = self.provider_config
        return payload


class TaskExportService:
    def __init__(self, project_root: Path) -> None:
        self._root = project_root

    def export(
        self,
        *,
        config_path: Path | None = None,
        source: Dict[str, Any] | None = None,
        output_path: Path | None = None,
        stream: TextIO | None = None,
    ) -> TaskExportReport:
        config = self._resolve_config(config_path, source)
        try:
            build_result = build_provider_from_config(self._root, config.source)
            records = list(build_result.provider.fetch())
        except TaskProviderError as exc:
            raise TaskExportError(str(exc)) from exc

        collection = TaskCollection(tasks=records)
        target = output_path or config.resolve_output(self._root)
        result = export(collection, _relativize(target, Path.cwd()), stream=stream)
        return TaskExportReport(result=result, provider_config=build_result.report_config)

    def _resolve_config(
        self,
        config_path: Path | None,
        source: Dict[str, Any] | None,
    ) -> ExportConfig:
        if source is not None and config_path is not None:
            raise TaskExportConfigError(
                "tasks.export.config_conflict: specify either --config or --provider"
            )
        if source is not None:
            return ExportConfig(source=normalise_source(source), output=DEFAULT_OUTPUT_PATH)
        return load_export_config(config_path or self._root / DEFAULT_CONFIG_NAME)


def _relativize(path: Path, base: Path) -> Path:
    try:
        return path.relative_to(base)
    except ValueError:
        return path
