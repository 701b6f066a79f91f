"""Execution engine: state store, node executors and orchestration."""

from .assertions import AssertionDescriptor, AssertionHelpers, is_equal, is_false, is_true, not_null
from .executors import DEFAULT_TIMEOUT_S, NodeExecutor, build_url
from .orchestrator import ExecutionGraph, Orchestrator, resolve_graph, run_plan
from .results import NodeResult, RunResult
from .state import ExecutionState

__all__ = [
    "AssertionDescriptor",
    "AssertionHelpers",
    "DEFAULT_TIMEOUT_S",
    "ExecutionGraph",
    "ExecutionState",
    "NodeExecutor",
    "NodeResult",
    "Orchestrator",
    "RunResult",
    "build_url",
    "is_equal",
    "is_false",
    "is_true",
    "not_null",
    "resolve_graph",
    "run_plan",
]
