"""Result data structures produced by the orchestrator."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from apicheck.plan.models import NodeType


@dataclass(frozen=True)
class NodeResult:
    """Outcome of executing a single plan node."""

    node_id: str
    type: NodeType
    success: bool
    response: Any = None
    error: Optional[str] = None
    duration_s: float = 0.0

    @property
    def status(self) -> str:
        return "passed" if self.success else "failed"


@dataclass(frozen=True)
class RunResult:
    """One execution of one plan: a result per visited node plus the verdict."""

    plan_name: str
    results: Sequence[NodeResult] = field(default_factory=tuple)
    duration_s: float = 0.0

    @property
    def success(self) -> bool:
        return all(result.success for result in self.results)

    @property
    def failures(self) -> tuple[NodeResult, ...]:
        return tuple(result for result in self.results if not result.success)

    def result_for(self, node_id: str) -> Optional[NodeResult]:
        for result in self.results:
            if result.node_id == node_id:
                return result
        return None

    def visited(self) -> tuple[str, ...]:
        return tuple(result.node_id for result in self.results)
