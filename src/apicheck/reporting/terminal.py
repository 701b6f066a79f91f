"""Terminal reporter rendering per-node progress and a summary."""
from __future__ import annotations

from typing import Optional

import click
from colorama import Fore, Style, init as colorama_init

from apicheck.execution.results import NodeResult, RunResult
from apicheck.plan.models import TestPlan

from .base import Reporter


class TerminalReporter(Reporter):
    """Human-readable reporter that streams to stdout."""

    def __init__(self, *, use_color: bool = True) -> None:
        self._use_color = use_color
        self._plan: Optional[TestPlan] = None
        if use_color:
            colorama_init()

    def on_start(self, plan: TestPlan) -> None:
        self._plan = plan
        frequency = f" frequency={plan.frequency}" if plan.frequency is not None else ""
        click.echo(
            self._colored(
                f"Running check '{plan.name}': {len(plan.nodes)} node(s) against {plan.endpoint_host or '-'}{frequency}",
                Fore.CYAN,
            )
        )

    def on_node_result(self, result: NodeResult, index: int, total: int) -> None:
        label = "PASS" if result.success else "FAIL"
        color = Fore.GREEN if result.success else Fore.RED
        ms = result.duration_s * 1000
        status = self._colored(f"{label:<4}", color)
        click.echo(f"[{index}/{total}] {status} {result.node_id} ({result.type.value}, {ms:.2f} ms)")
        if result.error:
            click.echo(f"    error: {result.error}")

    def on_complete(self, run: RunResult) -> None:
        total = len(run.results)
        failed = len(run.failures)
        verdict = "PASSED" if run.success else "FAILED"
        color = Fore.GREEN if run.success else Fore.RED
        click.echo(
            self._colored(
                f"Summary: {verdict} total={total} passed={total - failed} failed={failed} "
                f"duration={run.duration_s:.2f}s",
                color,
            )
        )
        if run.failures:
            click.echo(self._colored("Failure details:", Fore.RED))
            for result in run.failures:
                click.echo(f"  {result.node_id} ({result.type.value}): {result.error or 'failed'}")

    def _colored(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{color}{text}{Style.RESET_ALL}"
