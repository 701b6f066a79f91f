"""Fluent builder that assembles a plan one step at a time."""
from __future__ import annotations

import copy
import dataclasses
import math
import sys
from numbers import Real
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, TextIO, Union

from .codec import serialize
from .errors import (
    DuplicateNodeError,
    InvalidDurationError,
    InvalidEndpointError,
    PlanDefinitionError,
    UnknownNodeReferenceError,
)
from .models import (
    END,
    SENTINELS,
    START,
    AssertionNode,
    Edge,
    EndpointNode,
    HttpMethod,
    Node,
    ResponseFormat,
    TestPlan,
    WaitNode,
)

if TYPE_CHECKING:
    from apicheck.execution.assertions import CheckFunction
    from apicheck.execution.results import RunResult


class ApiCheckBuilder:
    """Accumulates nodes and edges for one check.

    Example::

        plan = (
            ApiCheckBuilder(name="users", endpoint_host="https://api.example.com")
            .add_endpoint("list", method="GET", path="/users")
            .add_assertions("check", lambda r, a: [a.not_null(r.get("list"))])
            .add_edge(START, "list")
            .add_edge("list", "check")
            .add_edge("check", END)
            .create(frequency={"minutes": 5})
        )

    ``create`` prints the plan JSON to ``stream`` (stdout by default) so a
    calling process can capture it; ``to_json`` only returns the text.
    """

    def __init__(self, name: str, endpoint_host: str, *, stream: Optional[TextIO] = None) -> None:
        if not isinstance(name, str) or not name.strip():
            raise PlanDefinitionError("Check name cannot be empty")
        self.name = name
        self.endpoint_host = endpoint_host
        self._stream = stream
        self._nodes: List[Node] = []
        self._node_ids: set[str] = set()
        self._edges: List[Edge] = []
        self._checks: Dict[str, "CheckFunction"] = {}
        self._frequency: Any = None

    def add_endpoint(
        self,
        id: str,
        *,
        method: Union[str, HttpMethod],
        path: str,
        response_format: Union[str, ResponseFormat] = ResponseFormat.JSON,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
    ) -> "ApiCheckBuilder":
        self._check_new_id(id)
        try:
            parsed_method = HttpMethod.parse(method)
            parsed_format = ResponseFormat.parse(response_format)
        except ValueError as exc:
            raise InvalidEndpointError(f"Endpoint '{id}': {exc}") from exc
        if not isinstance(path, str) or not path.strip():
            raise InvalidEndpointError(f"Endpoint '{id}' requires a non-empty path")
        if headers is not None:
            if not isinstance(headers, Mapping):
                raise InvalidEndpointError(f"Endpoint '{id}' headers must be a mapping")
            headers = {str(key): str(value) for key, value in headers.items()}
        self._append(
            EndpointNode(
                id=id,
                method=parsed_method,
                path=path,
                response_format=parsed_format,
                headers=headers,
                body=copy.deepcopy(body),
            )
        )
        return self

    def add_wait(self, id: str, *, minutes: Real = 0, seconds: Real = 0) -> "ApiCheckBuilder":
        self._check_new_id(id)
        for label, value in (("minutes", minutes), ("seconds", seconds)):
            if isinstance(value, bool) or not isinstance(value, Real):
                raise InvalidDurationError(f"Wait '{id}': {label} must be a number, got {value!r}")
            if isinstance(value, float) and not math.isfinite(value):
                raise InvalidDurationError(f"Wait '{id}': {label} must be finite, got {value!r}")
            if value < 0:
                raise InvalidDurationError(f"Wait '{id}': {label} cannot be negative ({value})")
        total_ms = minutes * 60_000 + seconds * 1000
        if isinstance(total_ms, float) and not math.isfinite(total_ms):
            raise InvalidDurationError(f"Wait '{id}': duration is too large")
        duration_ms = int(round(total_ms))
        self._append(WaitNode(id=id, duration_ms=duration_ms))
        return self

    def add_assertions(self, id: str, fn: "CheckFunction") -> "ApiCheckBuilder":
        """Register an assertion step; ``fn`` is only called when the plan runs."""

        self._check_new_id(id)
        if not callable(fn):
            raise PlanDefinitionError(f"Assertion '{id}' requires a callable check function")
        self._append(AssertionNode(id=id))
        self._checks[id] = fn
        return self

    def add_edge(self, source: str, target: str) -> "ApiCheckBuilder":
        edge = (source, target)
        if source == END or (source != START and source not in self._node_ids):
            raise UnknownNodeReferenceError(source, edge)
        if target == START or (target != END and target not in self._node_ids):
            raise UnknownNodeReferenceError(target, edge)
        self._edges.append(Edge(source=source, target=target))
        return self

    def build(self, *, frequency: Any = None) -> TestPlan:
        """Snapshot the current nodes and edges into an immutable plan."""

        return TestPlan(
            name=self.name,
            endpoint_host=self.endpoint_host,
            nodes=tuple(_detached(node) for node in self._nodes),
            edges=tuple(self._edges),
            frequency=copy.deepcopy(frequency),
        )

    def create(self, *, frequency: Any = None) -> TestPlan:
        plan = self.build(frequency=frequency)
        self._frequency = plan.frequency
        stream = self._stream or sys.stdout
        stream.write(serialize(plan) + "\n")
        stream.flush()
        return plan

    def to_json(self) -> str:
        return serialize(self.build(), include_frequency=False)

    @property
    def checks(self) -> Mapping[str, "CheckFunction"]:
        return MappingProxyType(dict(self._checks))

    @property
    def frequency(self) -> Any:
        return self._frequency

    def execute(self, **options: Any) -> "RunResult":
        """Build the plan and run it in-process with this builder's checks."""

        from apicheck.execution.orchestrator import run_plan

        return run_plan(self.build(frequency=self._frequency), self.checks, **options)

    def _check_new_id(self, node_id: str) -> None:
        if not isinstance(node_id, str) or not node_id:
            raise PlanDefinitionError("Node id must be a non-empty string")
        if node_id in SENTINELS:
            raise PlanDefinitionError(f"Node id '{node_id}' is reserved")
        if node_id in self._node_ids:
            raise DuplicateNodeError(node_id)

    def _append(self, node: Node) -> None:
        self._nodes.append(node)
        self._node_ids.add(node.id)


def _detached(node: Node) -> Node:
    # Endpoint headers and body are mutable; each plan gets its own copies.
    if isinstance(node, EndpointNode):
        return dataclasses.replace(
            node,
            headers=dict(node.headers) if node.headers is not None else None,
            body=copy.deepcopy(node.body),
        )
    return node
