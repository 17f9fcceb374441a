"""Factory helpers for task providers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from taskexport.ports.tasks.provider import TaskProvider, TaskProviderError

from .file_provider import FileTaskProvider
from .github_provider import GitHubIssuesProvider

SUPPORTED_PROVIDERS = ("file", "github")
_SECRET_KEYS = {"key", "snapshot_key"}


@dataclass(frozen=True)
class ProviderBuildResult:
    provider: TaskProvider
    report_config: Dict[str, Any]


def build_provider_from_config(project_root: Path, config: Dict[str, Any]) -> ProviderBuildResult:
    if not isinstance(config.get("type"), str) or not config["type"].strip():
        raise TaskProviderError("tasks.export.config_invalid: missing provider type")
    provider_type = config["type"].strip().lower()

    raw_options = config.get("options", {})
    if not isinstance(raw_options, dict):
        raise TaskProviderError("tasks.export.config_invalid: options must be object")
    options: Dict[str, Any] = dict(raw_options)

    _normalise_paths(project_root, options)
    _normalise_encryption(provider_type, options)

    if provider_type == "file":
        if "path" not in options:
            raise TaskProviderError(
                "tasks.export.config_invalid: options.path required for file provider"
            )
        provider: TaskProvider = FileTaskProvider(project_root, options)
    elif provider_type == "github":
        provider = GitHubIssuesProvider(options)
    else:
        raise TaskProviderError(f"tasks.export.provider_not_supported: {provider_type}")

    report_config = {"type": provider_type, "options": _mask_secrets(options)}
    return ProviderBuildResult(provider=provider, report_config=report_config)


def _normalise_paths(project_root: Path, options: Dict[str, Any]) -> None:
    for key in ("path", "snapshot_path"):
        value = options.get(key)
        if not value:
            continue
        candidate = Path(str(value)).expanduser()
        if not candidate.is_absolute():
            candidate = (project_root / candidate).resolve()
        options[key] = str(candidate)


def _normalise_encryption(provider_type: str, options: Dict[str, Any]) -> None:
    if provider_type == "file":
        encryption = options.get("encryption")
        if encryption is not None and not isinstance(encryption, dict):
            raise TaskProviderError("tasks.export.config_invalid: encryption must be object")
        if options.get("encrypted") and encryption is None:
            options["encryption"] = {"mode": "xor", "key": options.get("key"), "key_env": options.get("key_env")}
        for legacy in ("encrypted", "key", "key_env"):
            options.pop(legacy, None)
        return

    snapshot_encryption = options.get("snapshot_encryption")
    if snapshot_encryption is not None and not isinstance(snapshot_encryption, dict):
        raise TaskProviderError("tasks.export.config_invalid: snapshot_encryption must be object")
    encryption = options.pop("encryption", None)
    if isinstance(encryption, dict):
        options.setdefault("snapshot_encryption", encryption)
    if options.get("snapshot_encrypted") and options.get("snapshot_encryption") is None:
        options["snapshot_encryption"] = {
            "mode": "xor",
            "key": options.get("snapshot_key"),
            "key_env": options.get("snapshot_key_env"),
        }
    for legacy in ("snapshot_encrypted", "snapshot_key", "snapshot_key_env"):
        options.pop(legacy, None)


def _mask_secrets(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: "***" if key in _SECRET_KEYS and item else _mask_secrets(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_mask_secrets(item) for item in value]
    return value


__all__ = ["ProviderBuildResult", "SUPPORTED_PROVIDERS", "build_provider_from_config"]
