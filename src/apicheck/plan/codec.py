"""JSON encoding and decoding of plans."""
from __future__ import annotations

import json
from typing import Any, Dict, Mapping

from jsonschema import Draft7Validator

from .errors import PlanFormatError, UnknownNodeReferenceError
from .models import (
    END,
    START,
    AssertionNode,
    Edge,
    EndpointNode,
    HttpMethod,
    Node,
    NodeType,
    ResponseFormat,
    TestPlan,
    WaitNode,
)

_NODE_ID = {"type": "string", "minLength": 1}

PLAN_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "apicheck plan",
    "type": "object",
    "required": ["name", "endpoint_host", "nodes", "edges"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "endpoint_host": {"type": "string"},
        "frequency": {},
        "nodes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "type"],
                "properties": {
                    "id": _NODE_ID,
                    "type": {"enum": [member.value for member in NodeType]},
                },
                "allOf": [
                    {
                        "if": {"properties": {"type": {"const": "endpoint"}}},
                        "then": {
                            "required": ["method", "path", "response_format"],
                            "properties": {
                                "method": {"enum": [member.value for member in HttpMethod]},
                                "path": {"type": "string", "minLength": 1},
                                "response_format": {"enum": [member.value for member in ResponseFormat]},
                                "headers": {"type": "object", "additionalProperties": {"type": "string"}},
                            },
                        },
                    },
                    {
                        "if": {"properties": {"type": {"const": "wait"}}},
                        "then": {
                            "required": ["duration_ms"],
                            "properties": {"duration_ms": {"type": "integer", "minimum": 0}},
                        },
                    },
                    {
                        "if": {"properties": {"type": {"const": "assertion"}}},
                        "then": {"properties": {"assertions": {"type": "array", "maxItems": 0}}},
                    },
                ],
            },
        },
        "edges": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["from", "to"],
                "properties": {"from": _NODE_ID, "to": _NODE_ID},
            },
        },
    },
}
_validator = Draft7Validator(PLAN_SCHEMA)


def serialize(plan: TestPlan, *, include_frequency: bool = True) -> str:
    """Render ``plan`` as Plan JSON text (nodes and edges in declaration order)."""

    return json.dumps(plan_to_dict(plan, include_frequency=include_frequency), indent=2)


def plan_to_dict(plan: TestPlan, *, include_frequency: bool = True) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "name": plan.name,
        "endpoint_host": plan.endpoint_host,
    }
    if include_frequency and plan.frequency is not None:
        payload["frequency"] = plan.frequency
    payload["nodes"] = [node_to_dict(node) for node in plan.nodes]
    payload["edges"] = [{"from": edge.source, "to": edge.target} for edge in plan.edges]
    return payload


def node_to_dict(node: Node) -> Dict[str, Any]:
    record: Dict[str, Any] = {"id": node.id, "type": node.type.value}
    if isinstance(node, EndpointNode):
        record["method"] = node.method.value
        record["path"] = node.path
        record["response_format"] = node.response_format.value
        if node.headers is not None:
            record["headers"] = dict(node.headers)
        if node.body is not None:
            record["body"] = node.body
    elif isinstance(node, WaitNode):
        record["duration_ms"] = node.duration_ms
    elif isinstance(node, AssertionNode):
        record["assertions"] = []
    else:  # pragma: no cover - closed set of node types
        raise TypeError(f"Unsupported node {node!r}")
    return record


def deserialize(text: str) -> TestPlan:
    """Parse Plan JSON text back into a :class:`TestPlan`."""

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PlanFormatError(f"Plan is not valid JSON: {exc}") from exc
    return plan_from_dict(raw)


def plan_from_dict(raw: Any) -> TestPlan:
    if not isinstance(raw, Mapping):
        raise PlanFormatError("Plan must be a JSON object at the top level")
    errors = sorted(_validator.iter_errors(raw), key=lambda e: [str(part) for part in e.path])
    if errors:
        messages = "; ".join(f"{'/'.join(map(str, err.path)) or 'root'}: {err.message}" for err in errors)
        raise PlanFormatError(f"Plan schema validation failed: {messages}")
    nodes = tuple(_node_from_dict(entry) for entry in raw["nodes"])
    known: set[str] = set()
    for node in nodes:
        if node.id in known:
            raise PlanFormatError(f"Duplicate node id '{node.id}' in plan '{raw['name']}'")
        known.add(node.id)
    edges = []
    for entry in raw["edges"]:
        edge = Edge(source=entry["from"], target=entry["to"])
        _check_edge(edge, known)
        edges.append(edge)
    return TestPlan(
        name=raw["name"],
        endpoint_host=raw["endpoint_host"],
        nodes=nodes,
        edges=tuple(edges),
        frequency=raw.get("frequency"),
    )


def _node_from_dict(entry: Mapping[str, Any]) -> Node:
    node_type = NodeType(entry["type"])
    if node_type is NodeType.ENDPOINT:
        headers = entry.get("headers")
        return EndpointNode(
            id=entry["id"],
            method=HttpMethod(entry["method"]),
            path=entry["path"],
            response_format=ResponseFormat(entry["response_format"]),
            headers=dict(headers) if headers is not None else None,
            body=entry.get("body"),
        )
    if node_type is NodeType.WAIT:
        return WaitNode(id=entry["id"], duration_ms=int(entry["duration_ms"]))
    return AssertionNode(id=entry["id"])


def _check_edge(edge: Edge, known: set[str]) -> None:
    if edge.source != START and edge.source not in known:
        raise UnknownNodeReferenceError(edge.source, (edge.source, edge.target))
    if edge.target != END and edge.target not in known:
        raise UnknownNodeReferenceError(edge.target, (edge.source, edge.target))
