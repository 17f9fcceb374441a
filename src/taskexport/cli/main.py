#!/usr/bin/env python3
"""Entry point for the taskexport CLI."""

from __future__ import annotations

import argparse
import json
import os
import sys
import time
from collections import deque
from pathlib import Path
from textwrap import dedent
from typing import Any, Dict

from taskexport import __version__
from taskexport.adapters.tasks import SUPPORTED_PROVIDERS
from taskexport.app.tasks import TaskExportError, TaskExportService
from taskexport.settings import SETTINGS
from taskexport.utils.telemetry import ExportRun, record_export
from taskexport.utils.telemetry import clear as telemetry_clear
from taskexport.utils.telemetry import iter_runs as telemetry_iter
from taskexport.utils.telemetry import summarize as telemetry_summarize

HELP_OVERVIEW = dedent(
    """
    Export the attributes of every task in a source to a JSON file.

    Examples:
      taskexport export                          # uses ./taskexport.yaml
      taskexport export --provider file --input state/tasks.json
      taskexport export --provider github --provider-option owner=acme \\
          --provider-option repo=tracker --provider-option token_env=GITHUB_TOKEN
    """
)


def _default_project_path(path_arg: str | None) -> Path:
    if path_arg:
        return Path(path_arg).expanduser().resolve()
    return Path(os.getcwd())


def _parse_provider_option_value(raw: str) -> Any:
    value = raw.strip()
    if value == "":
        return ""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _assign_provider_option(options: Dict[str, Any], key: str, value: Any) -> None:
    parts = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not parts:
        raise ValueError("provider option key must be non-empty")
    target: Dict[str, Any] = options
    for part in parts[:-1]:
        current = target.get(part)
        if current is None:
            current = {}
            target[part] = current
        elif not isinstance(current, dict):
            raise ValueError(f"provider option '{part}' already set as a non-object value")
        target = current
    target[parts[-1]] = value


def _build_inline_source(provider_type: str, args: argparse.Namespace) -> Dict[str, Any]:
    provider = provider_type.strip()
    if not provider:
        raise ValueError("provider type must not be empty")
    options: Dict[str, Any] = {}
    inline_input = getattr(args, "provider_input", None)
    if inline_input:
        if not inline_input.strip():
            raise ValueError("input path must not be empty")
        key = "path" if provider.lower() == "file" else "snapshot_path"
        _assign_provider_option(options, key, str(Path(inline_input.strip()).expanduser()))
    for raw_option in getattr(args, "provider_option", []) or []:
        if "=" not in raw_option:
            raise ValueError(f"invalid provider option '{raw_option}': expected key=value")
        opt_key, opt_value = raw_option.split("=", 1)
        _assign_provider_option(options, opt_key, _parse_provider_option_value(opt_value))
    return {"type": provider, "options": options}


def _export_cmd(args: argparse.Namespace) -> int:
    project_path = _default_project_path(getattr(args, "path", None))

    def _resolve_path(raw: str | None) -> Path | None:
        if raw is None:
            return None
        candidate = Path(raw).expanduser()
        if candidate.is_absolute():
            return candidate
        return project_path / candidate

    provider_arg = getattr(args, "provider", None)
    if provider_arg is None and getattr(args, "provider_option", None):
        print("--provider-option requires --provider", file=sys.stderr)
        return 1
    if provider_arg is None and getattr(args, "provider_input", None):
        print("--input requires --provider", file=sys.stderr)
        return 1

    source: Dict[str, Any] | None = None
    if provider_arg is not None:
        try:
            source = _build_inline_source(provider_arg, args)
        except ValueError as exc:
            print(f"tasks.export.config_invalid: {exc}", file=sys.stderr)
            return 1

    service = TaskExportService(project_path)
    started = time.monotonic()
    try:
        report = service.export(
            config_path=_resolve_path(getattr(args, "config", None)),
            source=source,
            output_path=_resolve_path(getattr(args, "output", None)),
        )
    except TaskExportError as exc:
        return _export_failed(str(exc), started)
    except OSError as exc:
        return _export_failed(f"tasks.export.write_failed: {exc}", started)

    record_export(SETTINGS, ExportRun.succeeded(report.to_dict(), duration_ms=_elapsed_ms(started)))
    return 0


def _export_failed(message: str, started: float) -> int:
    print(message, file=sys.stderr)
    record_export(SETTINGS, ExportRun.failed(message, duration_ms=_elapsed_ms(started)))
    return 1


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 3)


def _telemetry_cmd(args: argparse.Namespace) -> int:
    if args.telemetry_command == "report":
        recent = getattr(args, "recent", 0)
        if recent and recent > 0:
            events = list(deque(telemetry_iter(SETTINGS), maxlen=recent))
        else:
            events = list(telemetry_iter(SETTINGS))
        print(json.dumps(telemetry_summarize(events), indent=2, ensure_ascii=False))
        return 0
    if args.telemetry_command == "clear":
        telemetry_clear(SETTINGS)
        print("Telemetry log cleared")
        return 0
    if args.telemetry_command == "tail":
        for evt in deque(telemetry_iter(SETTINGS), maxlen=args.limit):
            print(json.dumps(evt, ensure_ascii=False))
        return 0
    print("Unsupported telemetry command", file=sys.stderr)
    return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskexport",
        description=HELP_OVERVIEW,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"taskexport {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    export_cmd = sub.add_parser(
        "export",
        help="Export task attributes to a JSON file",
        description="Write every task of the configured source to a pretty-printed JSON array",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    export_cmd.add_argument("path", nargs="?", help="Project path (default: current directory)")
    source_group = export_cmd.add_mutually_exclusive_group()
    source_group.add_argument(
        "--config",
        help="Export config path (default: taskexport.yaml)",
    )
    source_group.add_argument(
        "--provider",
        help=f"Inline source type ({'/'.join(SUPPORTED_PROVIDERS)})",
    )
    export_cmd.add_argument(
        "--input",
        dest="provider_input",
        help="Inline source snapshot/input path (used with --provider)",
    )
    export_cmd.add_argument(
        "--provider-option",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Set inline source option (repeatable, dot notation supported)",
    )
    export_cmd.add_argument("--output", help="Output path (default: file.json)")
    export_cmd.set_defaults(func=_export_cmd)

    telemetry_cmd = sub.add_parser("telemetry", help="Inspect the local telemetry log")
    telemetry_sub = telemetry_cmd.add_subparsers(dest="telemetry_command", required=True)
    report_cmd = telemetry_sub.add_parser("report", help="Summarise recorded events")
    report_cmd.add_argument("--recent", type=int, default=0, help="Only the N most recent events")
    tail_cmd = telemetry_sub.add_parser("tail", help="Print the last events")
    tail_cmd.add_argument("--limit", type=int, default=10)
    telemetry_sub.add_parser("clear", help="Delete the telemetry log")
    telemetry_cmd.set_defaults(func=_telemetry_cmd)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
