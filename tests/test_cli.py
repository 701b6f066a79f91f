from __future__ import annotations

import json
import textwrap
from pathlib import Path

from click.testing import CliRunner

from apicheck.cli.main import cli

PASSING = """
from apicheck import END, START, ApiCheckBuilder

check = (
    ApiCheckBuilder("offline", "http://localhost")
    .add_wait("pause", seconds=0)
    .add_assertions("verify", lambda responses, asserts: [asserts.is_equal(2, 1 + 1)])
    .add_edge(START, "pause")
    .add_edge("pause", "verify")
    .add_edge("verify", END)
)
check.create(frequency="hourly")
"""

FAILING = PASSING.replace("asserts.is_equal(2, 1 + 1)", "asserts.is_equal(2, 3, 'sum')")


def _write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


def test_cli_help_short_flag() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["-h"])
    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert "run" in result.output
    assert "plan" in result.output


def test_cli_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("apicheck ")


def test_cli_plan_prints_plan_json(tmp_path: Path) -> None:
    definition = _write(tmp_path, "offline.py", PASSING)
    result = CliRunner().invoke(cli, ["plan", str(definition)])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["name"] == "offline"
    assert payload["frequency"] == "hourly"
    assert payload["nodes"][1] == {"id": "verify", "type": "assertion", "assertions": []}


def test_cli_run_passing_check(tmp_path: Path) -> None:
    definition = _write(tmp_path, "offline.py", PASSING)
    result = CliRunner().invoke(cli, ["run", str(definition), "--no-color", "--sequential"])
    assert result.exit_code == 0, result.output
    assert "Summary: PASSED total=2" in result.output


def test_cli_run_failing_check_exits_nonzero(tmp_path: Path) -> None:
    definition = _write(tmp_path, "offline.py", FAILING)
    result = CliRunner().invoke(cli, ["run", str(definition), "--no-color"])
    assert result.exit_code == 1
    assert "sum: expected 2, got 3" in result.output


def test_cli_json_report(tmp_path: Path) -> None:
    definition = _write(tmp_path, "offline.py", PASSING)
    report_path = tmp_path / "report.json"
    config = _write(tmp_path, "settings.yaml", f"report_format: json\nreport_path: {report_path.as_posix()}\n")
    result = CliRunner().invoke(cli, ["run", str(definition), "--config", str(config)])
    assert result.exit_code == 0, result.output
    payload = json.loads(report_path.read_text(encoding="utf-8"))
    assert payload["summary"]["success"] is True
    assert [node["id"] for node in payload["nodes"]] == ["pause", "verify"]


def test_cli_run_reports_structural_errors(tmp_path: Path) -> None:
    definition = _write(
        tmp_path,
        "broken.py",
        """
        from apicheck import ApiCheckBuilder

        check = ApiCheckBuilder("broken", "http://localhost").add_wait("pause")
        """,
    )
    result = CliRunner().invoke(cli, ["run", str(definition)])
    assert result.exit_code == 1
    assert "has no START edge" in result.output


def test_cli_list(tmp_path: Path) -> None:
    checks = tmp_path / "service" / "__apicheck__"
    checks.mkdir(parents=True)
    definition = _write(checks, "offline.py", PASSING)
    result = CliRunner().invoke(cli, ["list", str(tmp_path)])
    assert result.exit_code == 0
    assert str(definition.resolve()) in result.output
    empty = CliRunner().invoke(cli, ["list", str(checks)])
    assert "No check definitions found." in empty.output
