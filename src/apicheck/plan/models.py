"""Data models for API check plans."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Union

START = "START"
END = "END"
SENTINELS = frozenset({START, END})


class NodeType(str, Enum):
    ENDPOINT = "endpoint"
    WAIT = "wait"
    ASSERTION = "assertion"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: Union[str, "HttpMethod"]) -> "HttpMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            supported = ", ".join(member.value for member in cls)
            raise ValueError(f"Unsupported HTTP method '{value}'. Supported methods: {supported}") from None


class ResponseFormat(str, Enum):
    JSON = "JSON"
    RAW = "RAW"

    @classmethod
    def parse(cls, value: Union[str, "ResponseFormat"]) -> "ResponseFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unsupported response format '{value}' (expected JSON or RAW)") from None


@dataclass(frozen=True)
class EndpointNode:
    id: str
    method: HttpMethod
    path: str
    response_format: ResponseFormat = ResponseFormat.JSON
    headers: Optional[Mapping[str, str]] = None
    body: Any = None

    @property
    def type(self) -> NodeType:
        return NodeType.ENDPOINT


@dataclass(frozen=True)
class WaitNode:
    id: str
    duration_ms: int

    @property
    def type(self) -> NodeType:
        return NodeType.WAIT


@dataclass(frozen=True)
class AssertionNode:
    """Assertion step; its check function lives in the builder's registry, not here."""

    id: str

    @property
    def type(self) -> NodeType:
        return NodeType.ASSERTION


Node = Union[EndpointNode, WaitNode, AssertionNode]


@dataclass(frozen=True)
class Edge:
    source: str
    target: str

    @property
    def is_entry(self) -> bool:
        return self.source == START

    @property
    def is_terminal(self) -> bool:
        return self.target == END


@dataclass(frozen=True)
class TestPlan:
    """Immutable description of one API check."""

    __test__ = False  # keep pytest from collecting this as a test class

    name: str
    endpoint_host: str
    nodes: Sequence[Node] = field(default_factory=tuple)
    edges: Sequence[Edge] = field(default_factory=tuple)
    frequency: Any = None

    def node(self, node_id: str) -> Node:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(f"Plan '{self.name}' has no node '{node_id}'")

    def node_ids(self) -> tuple[str, ...]:
        return tuple(node.id for node in self.nodes)
