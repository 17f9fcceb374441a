from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskexport import __version__
from taskexport.cli import main as cli_main
from taskexport.settings import RuntimeSettings
from taskexport.utils.telemetry import ExportRun, iter_runs, record_export


@pytest.fixture()
def runtime_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> RuntimeSettings:
    base = tmp_path / "runtime"
    settings = RuntimeSettings(
        home_dir=base,
        log_dir=base / "logs",
        cli_version=__version__,
    )
    monkeypatch.setattr(cli_main, "SETTINGS", settings, raising=False)
    monkeypatch.setenv("TASKEXPORT_TELEMETRY", "1")
    return settings


def _prepare_project(root: Path) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    snapshot = root / "state" / "tasks.json"
    snapshot.parent.mkdir(parents=True, exist_ok=True)
    snapshot.write_text(
        json.dumps([{"id": 1, "name": "Write spec"}, {"id": 2, "name": "Review"}], indent=2),
        encoding="utf-8",
    )
    (root / "taskexport.yaml").write_text(
        "source:\n  type: file\n  options:\n    path: state/tasks.json\n",
        encoding="utf-8",
    )
    return snapshot


def test_export_cli_default_config(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    runtime_settings: RuntimeSettings,
) -> None:
    project_root = tmp_path / "project"
    _prepare_project(project_root)
    monkeypatch.chdir(project_root)

    exit_code = cli_main.main(["export"])

    assert exit_code == 0
    captured = capsys.readouterr()
    assert captured.out == "Tasks have been exported to file.json\n"
    assert captured.err == ""
    payload = json.loads((project_root / "file.json").read_text(encoding="utf-8"))
    assert payload == [{"id": 1, "name": "Write spec"}, {"id": 2, "name": "Review"}]

    events = list(iter_runs(runtime_settings))
    assert [evt["event"] for evt in events] == ["tasks.export"]
    assert events[0]["status"] == "ok"
    assert events[0]["count"] == 2
    assert events[0]["provider"] == "file"
    assert events[0]["output"] == "file.json"


def test_export_cli_inline_provider_with_path_argument(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    runtime_settings: RuntimeSettings,
) -> None:
    project_root = tmp_path / "project"
    snapshot = _prepare_project(project_root)
    output = tmp_path / "exported.json"

    exit_code = cli_main.main(
        [
            "export",
            str(project_root),
            "--provider",
            "file",
            "--input",
            str(snapshot.relative_to(project_root)),
            "--output",
            str(output),
        ]
    )

    assert exit_code == 0
    assert json.loads(output.read_text(encoding="utf-8"))[1]["name"] == "Review"
    assert capsys.readouterr().out.strip().endswith("exported.json")


def test_export_cli_provider_option_requires_provider(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    runtime_settings: RuntimeSettings,
) -> None:
    exit_code = cli_main.main(["export", str(tmp_path), "--provider-option", "path=x.json"])

    assert exit_code == 1
    assert "--provider-option requires --provider" in capsys.readouterr().err


def test_export_cli_invalid_provider_option(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    runtime_settings: RuntimeSettings,
) -> None:
    exit_code = cli_main.main(["export", str(tmp_path), "--provider", "file", "--provider-option", "novalue"])

    assert exit_code == 1
    assert "tasks.export.config_invalid" in capsys.readouterr().err


def test_export_cli_missing_config_reports_error(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    runtime_settings: RuntimeSettings,
) -> None:
    exit_code = cli_main.main(["export", str(tmp_path)])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert captured.out == ""
    assert "tasks.export.config_not_found" in captured.err
    events = list(iter_runs(runtime_settings))
    assert events[-1]["status"] == "error"
    assert "config_not_found" in events[-1]["error"]


def test_export_cli_unwritable_output(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    runtime_settings: RuntimeSettings,
) -> None:
    project_root = tmp_path / "project"
    _prepare_project(project_root)

    exit_code = cli_main.main(["export", str(project_root), "--output", "missing/dir/file.json"])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert captured.out == ""
    assert "tasks.export.write_failed" in captured.err


def test_export_cli_unreadable_snapshot_is_not_a_write_failure(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    runtime_settings: RuntimeSettings,
) -> None:
    project_root = tmp_path / "project"
    snapshot = _prepare_project(project_root)
    snapshot.unlink()
    snapshot.mkdir()

    exit_code = cli_main.main(["export", str(project_root)])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert "tasks.export.read_failed" in captured.err
    assert "write_failed" not in captured.err
    assert not (project_root / "file.json").exists()



def test_provider_option_parsing_builds_nested_values() -> None:
    options: dict[str, object] = {}
    cli_main._assign_provider_option(options, "encryption.mode", "xor")
    cli_main._assign_provider_option(options, "labels", cli_main._parse_provider_option_value('["a", "b"]'))
    cli_main._assign_provider_option(options, "state", cli_main._parse_provider_option_value("closed"))

    assert options == {"encryption": {"mode": "xor"}, "labels": ["a", "b"], "state": "closed"}
    with pytest.raises(ValueError):
        cli_main._assign_provider_option(options, "state.inner", 1)


def test_telemetry_commands(
    capsys: pytest.CaptureFixture[str],
    runtime_settings: RuntimeSettings,
) -> None:
    record_export(runtime_settings, ExportRun.failed("tasks.export.config_not_found: missing"))
    for count in (2, 3):
        record_export(runtime_settings, ExportRun(status="ok", provider="file", output="file.json", count=count))
    capsys.readouterr()

    assert cli_main.main(["telemetry", "report", "--recent", "2"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary == {
        "runs": 2,
        "by_status": {"ok": 2, "error": 0},
        "by_provider": {"file": 2},
        "tasks_exported": 5,
        "last_error": None,
    }

    assert cli_main.main(["telemetry", "tail", "--limit", "1"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 1 and json.loads(lines[0])["event"] == "tasks.export"

    assert cli_main.main(["telemetry", "clear"]) == 0
    assert "Telemetry log cleared" in capsys.readouterr().out
    assert list(iter_runs(runtime_settings)) == []


def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_main.main(["--version"])

    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out
