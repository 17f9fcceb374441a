"""Export run log: one JSON line per ``taskexport export`` invocation."""

from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from typing import Any, Dict, Iterable, Iterator

import jsonschema

from taskexport.settings import RuntimeSettings

EXPORT_EVENT = "tasks.export"
TELEMETRY_ENV = "TASKEXPORT_TELEMETRY"
STATUSES = ("ok", "error")

_DISABLE_VALUES = {"0", "false", "no", "off"}


def telemetry_enabled() -> bool:
    return os.getenv(TELEMETRY_ENV, "1").lower() not in _DISABLE_VALUES


@dataclass(frozen=True)
class ExportRun:
    """Outcome of one export, as written to the run log."""

    status: str
    provider: str | None = None
    output: str | None = None
    count: int | None = None
    bytes_written: int | None = None
    error: str | None = None
    duration_ms: float | None = None

    @classmethod
    def succeeded(cls, report: Dict[str, Any], *, duration_ms: float | None = None) -> "ExportRun":
        provider = report.get("provider") or {}
        return cls(
            status="ok",
            provider=provider.get("type"),
            output=report.get("output_path"),
            count=report.get("count"),
            bytes_written=report.get("bytes_written"),
            duration_ms=duration_ms,
        )

    @classmethod
    def failed(cls, error: str, *, duration_ms: float | None = None) -> "ExportRun":
        return cls(status="error", error=error, duration_ms=duration_ms)

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {"ts": time.time(), "event": EXPORT_EVENT, "status": self.status}
        optional = {
            "provider": self.provider,
            "output": self.output,
            "count": self.count,
            "bytesWritten": self.bytes_written,
            "error": self.error,
            "durationMs": self.duration_ms,
        }
        record.update({key: value for key, value in optional.items() if value is not None})
        return record


def record_export(settings: RuntimeSettings, run: ExportRun) -> None:
    if not telemetry_enabled():
        return
    record = run.to_record()
    _validator().validate(record)
    log_path = settings.telemetry_file
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")


def iter_runs(settings: RuntimeSettings) -> Iterator[Dict[str, Any]]:
    log_path = settings.telemetry_file
    if not log_path.exists():
        return
    with log_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue  # torn line
            if isinstance(record, dict) and record.get("event") == EXPORT_EVENT:
                yield record


def summarize(runs: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    by_status = {status: 0 for status in STATUSES}
    by_provider: Dict[str, int] = {}
    tasks_exported = 0
    last_error = None
    for run in runs:
        status = run.get("status", "error")
        by_status[status] = by_status.get(status, 0) + 1
        if status == "ok":
            provider = run.get("provider", "unknown")
            by_provider[provider] = by_provider.get(provider, 0) + 1
            tasks_exported += run.get("count", 0)
        else:
            last_error = run.get("error")
    return {
        "runs": sum(by_status.values()),
        "by_status": by_status,
        "by_provider": by_provider,
        "tasks_exported": tasks_exported,
        "last_error": last_error,
    }


def clear(settings: RuntimeSettings) -> None:
    log_path = settings.telemetry_file
    if log_path.exists():
        log_path.unlink()


@lru_cache(maxsize=1)
def _validator() -> jsonschema.Draft202012Validator:
    schema_resource = resources.files("taskexport.resources") / "telemetry.schema.json"
    schema = json.loads(schema_resource.read_text(encoding="utf-8"))
    return jsonschema.Draft202012Validator(schema)
