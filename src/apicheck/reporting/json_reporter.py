"""JSON reporter emitting structured run results."""
from __future__ import annotations

import datetime as dt
import json
import pathlib
from typing import Any, Dict, Optional

import click
from jsonschema import validate

from apicheck.execution.results import NodeResult, RunResult
from apicheck.plan.models import TestPlan

from .base import Reporter
from .schema import JSON_SCHEMA_V1, SCHEMA_VERSION


class JsonReporter(Reporter):
    """Writes the run to a JSON file (or stdout) validated against the schema."""

    def __init__(self, path: Optional[str] = None, *, include_responses: bool = False) -> None:
        self._path = pathlib.Path(path) if path else None
        self._include_responses = include_responses
        self._plan: Optional[TestPlan] = None

    def on_start(self, plan: TestPlan) -> None:
        self._plan = plan

    def on_complete(self, run: RunResult) -> None:
        if self._plan is None:
            return
        payload = build_report(self._plan, run, include_responses=self._include_responses)
        text = json.dumps(payload, indent=2, default=str)
        if self._path is None:
            click.echo(text)
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(text, encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem protection
            raise RuntimeError(f"Failed to write JSON report to {self._path}: {exc}") from exc
        click.echo(f"JSON report written to {self._path}")


def build_report(plan: TestPlan, run: RunResult, *, include_responses: bool = False) -> Dict[str, Any]:
    failed = len(run.failures)
    plan_record: Dict[str, Any] = {"name": plan.name, "endpoint_host": plan.endpoint_host}
    if plan.frequency is not None:
        plan_record["frequency"] = plan.frequency
    payload = {
        "schema_version": SCHEMA_VERSION,
        "generated_at": dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "plan": plan_record,
        "summary": {
            "success": run.success,
            "total": len(run.results),
            "passed": len(run.results) - failed,
            "failed": failed,
            "duration_s": run.duration_s,
        },
        "nodes": [_node_to_dict(result, include_responses) for result in run.results],
    }
    validate(instance=payload, schema=JSON_SCHEMA_V1)
    return payload


def _node_to_dict(result: NodeResult, include_response: bool) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": result.node_id,
        "type": result.type.value,
        "success": result.success,
        "duration_ms": result.duration_s * 1000,
    }
    if result.error:
        record["error"] = result.error
    if include_response and result.response is not None:
        record["response"] = _jsonify(result.response)
    return record


def _jsonify(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): _jsonify(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonify(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
