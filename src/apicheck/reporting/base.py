"""Run lifecycle hooks and their fan-out."""
from __future__ import annotations

from typing import List, Sequence

from apicheck.execution.results import NodeResult, RunResult
from apicheck.plan.models import TestPlan


class Reporter:
    """Receives run lifecycle events; every hook defaults to doing nothing.

    ``on_node_result`` fires once per finished node in completion order,
    with ``index`` counting from 1 up to ``total`` visited nodes.
    """

    def on_start(self, plan: TestPlan) -> None:
        return None

    def on_node_result(self, result: NodeResult, index: int, total: int) -> None:
        return None

    def on_complete(self, run: RunResult) -> None:
        return None


class ReportManager:
    """Forwards each lifecycle event to every registered reporter, in order."""

    def __init__(self, reporters: Sequence[Reporter] = ()) -> None:
        self._reporters = list(reporters)

    def add(self, reporter: Reporter) -> None:
        self._reporters.append(reporter)

    def start(self, plan: TestPlan) -> None:
        for reporter in self._reporters:
            reporter.on_start(plan)

    def handle_result(self, result: NodeResult, index: int, total: int) -> None:
        for reporter in self._reporters:
            reporter.on_node_result(result, index, total)

    def complete(self, run: RunResult) -> None:
        for reporter in self._reporters:
            reporter.on_complete(run)

    def reporters(self) -> List[Reporter]:
        return list(self._reporters)
