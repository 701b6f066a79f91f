from __future__ import annotations

import os
import textwrap
from pathlib import Path

import pytest

import apicheck
from apicheck.plan import DefinitionLoadError, find_definition_files, load_definition, render_definition

DEFINITION = """
from apicheck import END, START, ApiCheckBuilder

check = (
    ApiCheckBuilder("health", "https://status.example.com")
    .add_endpoint("ping", method="GET", path="/health", response_format="JSON")
    .add_assertions("verify", lambda responses, asserts: [asserts.not_null(responses.get("ping"))])
    .add_edge(START, "ping")
    .add_edge("ping", "verify")
    .add_edge("verify", END)
)
check.create(frequency={"minutes": 1})
"""


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


@pytest.fixture
def package_on_path(monkeypatch) -> None:
    src = str(Path(apicheck.__file__).resolve().parent.parent)
    existing = os.environ.get("PYTHONPATH")
    monkeypatch.setenv("PYTHONPATH", src + (os.pathsep + existing if existing else ""))


def test_load_definition_returns_plan_checks_and_output(tmp_path: Path) -> None:
    loaded = load_definition(_write(tmp_path / "health.py", DEFINITION))
    assert loaded.plan.name == "health"
    assert loaded.plan.frequency == {"minutes": 1}
    assert loaded.plan.node_ids() == ("ping", "verify")
    assert set(loaded.checks) == {"verify"}
    assert '"name": "health"' in loaded.output


def test_load_definition_requires_a_builder(tmp_path: Path) -> None:
    with pytest.raises(DefinitionLoadError) as exc:
        load_definition(_write(tmp_path / "empty.py", "VALUE = 1\n"))
    assert "No ApiCheckBuilder" in str(exc.value)


def test_load_definition_wraps_import_errors(tmp_path: Path) -> None:
    with pytest.raises(DefinitionLoadError) as exc:
        load_definition(_write(tmp_path / "broken.py", "raise RuntimeError('bad definition')\n"))
    assert "bad definition" in str(exc.value)


def test_render_definition_parses_program_output(tmp_path: Path, package_on_path) -> None:
    plan = render_definition(_write(tmp_path / "health.py", DEFINITION))
    assert plan.name == "health"
    assert [(edge.source, edge.target) for edge in plan.edges][0] == ("START", "ping")


def test_render_definition_rejects_non_plan_output(tmp_path: Path) -> None:
    with pytest.raises(DefinitionLoadError) as exc:
        render_definition(_write(tmp_path / "noisy.py", "print('hello')\n"))
    assert "did not emit exactly one plan" in str(exc.value)


def test_render_definition_reports_failing_program(tmp_path: Path) -> None:
    with pytest.raises(DefinitionLoadError) as exc:
        render_definition(_write(tmp_path / "fail.py", "import sys\nsys.exit('nope')\n"))
    assert "exited with code 1" in str(exc.value)


def test_find_definition_files_uses_directory_convention(tmp_path: Path) -> None:
    first = _write(tmp_path / "svc_a" / "__apicheck__" / "a.py", DEFINITION)
    second = _write(tmp_path / "svc_b" / "nested" / "__apicheck__" / "b.py", DEFINITION)
    _write(tmp_path / "svc_a" / "__apicheck__" / "_helpers.py", "")
    _write(tmp_path / "svc_a" / "__apicheck__" / "notes.txt", "")
    _write(tmp_path / "svc_c" / "c.py", DEFINITION)
    assert find_definition_files(tmp_path) == [first, second]
