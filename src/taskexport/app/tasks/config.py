"""Loading and normalising export configuration files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

from taskexport.app.tasks.exporter import DEFAULT_OUTPUT_PATH

DEFAULT_CONFIG_NAME = "taskexport.yaml"


class TaskExportError(RuntimeError):
    """Raised when an export cannot be prepared."""


class TaskExportConfigError(TaskExportError):
    """Raised when export configuration is missing or malformed."""


@dataclass(frozen=True)
class ExportConfig:
    source: Dict[str, Any]
    output: Path = DEFAULT_OUTPUT_PATH

    def resolve_output(self, project_root: Path) -> Path:
        if self.output.is_absolute():
            return self.output
        return project_root / self.output


def load_export_config(path: Path) -> ExportConfig:
    if not path.exists():
        raise TaskExportConfigError(f"tasks.export.config_not_found: export config missing at {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise TaskExportConfigError(f"tasks.export.read_failed: cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise TaskExportConfigError(f"tasks.export.config_invalid: {exc}") from exc
    if not isinstance(raw, dict):
        raise TaskExportConfigError("tasks.export.config_invalid: root must be object")
    output = raw.get("output", str(DEFAULT_OUTPUT_PATH))
    if not isinstance(output, str) or not output.strip():
        raise TaskExportConfigError("tasks.export.config_invalid: output must be a non-empty string")
    return ExportConfig(source=normalise_source(raw.get("source")), output=Path(output.strip()))


def normalise_source(config: Any) -> Dict[str, Any]:
    if not isinstance(config, dict):
        raise TaskExportConfigError("tasks.export.config_invalid: source must be object")
    data: Dict[str, Any] = dict(config)
    provider_type = data.get("type")
    if not isinstance(provider_type, str) or not provider_type.strip():
        raise TaskExportConfigError("tasks.export.config_invalid: missing source type")
    options = data.get("options")
    if options is None:
        options = {}
    if not isinstance(options, dict):
        raise TaskExportConfigError("tasks.export.config_invalid: options must be object")
    data["type"] = provider_type.strip()
    data["options"] = dict(options)
    return data
