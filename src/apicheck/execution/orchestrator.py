"""Walks a plan graph in dependency order and aggregates node results."""
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

import httpx

from apicheck.plan.errors import CycleError, DisconnectedTerminalError, MissingEntryError, PlanStructureError
from apicheck.plan.models import END, SENTINELS, START, NodeType, TestPlan

from .assertions import AssertionHelpers, CheckFunction
from .executors import DEFAULT_TIMEOUT_S, NodeExecutor, SleepFunction
from .results import NodeResult, RunResult
from .state import ExecutionState

if TYPE_CHECKING:
    from apicheck.reporting.base import ReportManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionGraph:
    """The runnable slice of a plan: nodes on some entry-to-terminal path."""

    entry: str
    terminal: str
    order: Sequence[str]
    predecessors: Mapping[str, Sequence[str]]


def resolve_graph(plan: TestPlan) -> ExecutionGraph:
    """Validate the plan structure and compute a topological execution order.

    Raises :class:`PlanStructureError` subclasses for a missing or ambiguous
    entry, a terminal that cannot be reached, a node whose declared
    predecessor lies outside the entry's reach, or a cycle.
    """

    node_ids = plan.node_ids()
    known = set(node_ids)
    entries = [edge.target for edge in plan.edges if edge.source == START]
    if not entries:
        raise MissingEntryError(f"Plan '{plan.name}' has no {START} edge")
    if len(set(entries)) > 1:
        raise MissingEntryError(f"Plan '{plan.name}' has more than one entry node: {', '.join(entries)}")
    entry = entries[0]
    if entry not in known:
        raise MissingEntryError(f"Entry node '{entry}' is not declared in plan '{plan.name}'")
    terminals = [edge.source for edge in plan.edges if edge.target == END]
    if not terminals:
        raise DisconnectedTerminalError(f"Plan '{plan.name}' has no {END} edge")
    if len(set(terminals)) > 1:
        raise DisconnectedTerminalError(
            f"Plan '{plan.name}' has more than one terminal node: {', '.join(terminals)}"
        )
    terminal = terminals[0]
    if terminal not in known:
        raise DisconnectedTerminalError(f"Terminal node '{terminal}' is not declared in plan '{plan.name}'")

    successors: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}
    predecessors: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}
    for edge in plan.edges:
        if edge.source in SENTINELS or edge.target in SENTINELS:
            continue
        if edge.source not in known or edge.target not in known:
            raise PlanStructureError(f"Edge {edge.source} -> {edge.target} references an undeclared node")
        if edge.target not in successors[edge.source]:
            successors[edge.source].append(edge.target)
            predecessors[edge.target].append(edge.source)

    forward = _reachable(entry, successors)
    backward = _reachable(terminal, predecessors)
    if terminal not in forward:
        raise DisconnectedTerminalError(f"Terminal node '{terminal}' is not reachable from entry node '{entry}'")
    on_path = forward & backward
    for node_id in node_ids:
        if node_id not in on_path:
            continue
        stranded = [p for p in predecessors[node_id] if p not in forward]
        if stranded:
            raise PlanStructureError(
                f"Node '{node_id}' depends on {', '.join(stranded)}, "
                f"which cannot be reached from entry node '{entry}'"
            )
    scoped = {node_id: list(predecessors[node_id]) for node_id in node_ids if node_id in on_path}
    order = _topological_order([node_id for node_id in node_ids if node_id in on_path], scoped, successors)
    return ExecutionGraph(entry=entry, terminal=terminal, order=tuple(order), predecessors=scoped)


def _reachable(start: str, adjacency: Mapping[str, Sequence[str]]) -> set[str]:
    seen = {start}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for nxt in adjacency.get(current, ()):
            if nxt not in seen:
                seen.add(nxt)
                queue.append(nxt)
    return seen


def _topological_order(
    declared: Sequence[str],
    predecessors: Mapping[str, Sequence[str]],
    successors: Mapping[str, Sequence[str]],
) -> List[str]:
    # Kahn's algorithm; ties resolve in declaration order.
    position = {node_id: index for index, node_id in enumerate(declared)}
    pending = {node_id: len(predecessors[node_id]) for node_id in declared}
    ready = [node_id for node_id in declared if pending[node_id] == 0]
    order: List[str] = []
    while ready:
        ready.sort(key=position.__getitem__)
        current = ready.pop(0)
        order.append(current)
        for nxt in successors.get(current, ()):
            if nxt not in pending:
                continue
            pending[nxt] -= 1
            if pending[nxt] == 0:
                ready.append(nxt)
    if len(order) != len(declared):
        raise CycleError([node_id for node_id in declared if node_id not in order])
    return order


class Orchestrator:
    """Drives one run of a plan.

    By default every node on an entry-to-terminal path is executed even
    after a failure; ``fail_fast`` stops scheduling new nodes instead.
    """

    def __init__(
        self,
        *,
        checks: Optional[Mapping[str, CheckFunction]] = None,
        client: Optional[httpx.AsyncClient] = None,
        helpers: Any = AssertionHelpers,
        sleep: SleepFunction = asyncio.sleep,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        fail_fast: bool = False,
        concurrent: bool = True,
        reporter: Optional["ReportManager"] = None,
    ) -> None:
        self._checks = dict(checks or {})
        self._client = client
        self._helpers = helpers
        self._sleep = sleep
        self._timeout_s = timeout_s
        self._fail_fast = fail_fast
        self._concurrent = concurrent
        self._reporter = reporter

    async def run(self, plan: TestPlan) -> RunResult:
        graph = resolve_graph(plan)
        logger.debug("running plan %s: %s", plan.name, " -> ".join(graph.order))
        if self._reporter is not None:
            self._reporter.start(plan)
        start = time.perf_counter()
        if self._client is not None:
            results = await self._run_graph(plan, graph, self._client)
        else:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_s)) as client:
                results = await self._run_graph(plan, graph, client)
        run = RunResult(plan_name=plan.name, results=tuple(results), duration_s=time.perf_counter() - start)
        logger.debug("plan %s finished success=%s", plan.name, run.success)
        if self._reporter is not None:
            self._reporter.complete(run)
        return run

    async def _run_graph(self, plan: TestPlan, graph: ExecutionGraph, client: httpx.AsyncClient) -> List[NodeResult]:
        state = ExecutionState()
        executor = NodeExecutor(
            client=client,
            endpoint_host=plan.endpoint_host,
            checks=self._checks,
            helpers=self._helpers,
            sleep=self._sleep,
            timeout_s=self._timeout_s,
        )
        run = _RunContext(plan=plan, graph=graph, state=state, executor=executor, reporter=self._reporter)
        if self._concurrent:
            await self._run_concurrent(run)
        else:
            await self._run_sequential(run)
        return [run.results[node_id] for node_id in run.completed]

    async def _run_sequential(self, run: "_RunContext") -> None:
        for node_id in run.graph.order:
            if run.aborted:
                break
            await self._run_node(run, node_id)

    async def _run_concurrent(self, run: "_RunContext") -> None:
        tasks: Dict[str, asyncio.Task] = {}

        async def run_after_predecessors(node_id: str, waits: Sequence[asyncio.Task]) -> None:
            if waits:
                await asyncio.gather(*waits)
            if run.aborted:
                return
            await self._run_node(run, node_id)

        for node_id in run.graph.order:
            waits = [tasks[pred] for pred in run.graph.predecessors[node_id]]
            tasks[node_id] = asyncio.ensure_future(run_after_predecessors(node_id, waits))
        await asyncio.gather(*tasks.values())

    async def _run_node(self, run: "_RunContext", node_id: str) -> None:
        node = run.plan.node(node_id)
        result = await run.executor.execute(node, run.state)
        if result.success and node.type is NodeType.ENDPOINT:
            run.state.set_response(node_id, result.response)
        run.results[node_id] = result
        run.completed.append(node_id)
        if run.reporter is not None:
            run.reporter.handle_result(result, len(run.completed), len(run.graph.order))
        if not result.success and self._fail_fast:
            logger.debug("fail-fast: stopping after %s", node_id)
            run.aborted = True


class _RunContext:
    def __init__(
        self,
        *,
        plan: TestPlan,
        graph: ExecutionGraph,
        state: ExecutionState,
        executor: NodeExecutor,
        reporter: Optional["ReportManager"],
    ) -> None:
        self.plan = plan
        self.graph = graph
        self.state = state
        self.executor = executor
        self.reporter = reporter
        self.results: Dict[str, NodeResult] = {}
        self.completed: List[str] = []
        self.aborted = False


def run_plan(
    plan: TestPlan,
    checks: Optional[Mapping[str, CheckFunction]] = None,
    **options: Any,
) -> RunResult:
    """Synchronously execute ``plan``; ``options`` are passed to :class:`Orchestrator`."""

    return asyncio.run(Orchestrator(checks=checks, **options).run(plan))
