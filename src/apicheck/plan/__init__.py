"""Plan data model, builder and codec."""

from .builder import ApiCheckBuilder
from .codec import deserialize, plan_from_dict, plan_to_dict, serialize
from .definitions import LoadedDefinition, load_definition, render_definition
from .discovery import CHECKS_DIRNAME, find_definition_files
from .errors import (
    ApiCheckError,
    CycleError,
    DefinitionLoadError,
    DisconnectedTerminalError,
    DuplicateNodeError,
    InvalidDurationError,
    InvalidEndpointError,
    MissingEntryError,
    PlanDefinitionError,
    PlanFormatError,
    PlanStructureError,
    UnknownNodeReferenceError,
)
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

__all__ = [
    "ApiCheckBuilder",
    "ApiCheckError",
    "AssertionNode",
    "CHECKS_DIRNAME",
    "CycleError",
    "DefinitionLoadError",
    "DisconnectedTerminalError",
    "DuplicateNodeError",
    "END",
    "Edge",
    "EndpointNode",
    "HttpMethod",
    "InvalidDurationError",
    "InvalidEndpointError",
    "LoadedDefinition",
    "MissingEntryError",
    "Node",
    "NodeType",
    "PlanDefinitionError",
    "PlanFormatError",
    "PlanStructureError",
    "ResponseFormat",
    "START",
    "TestPlan",
    "UnknownNodeReferenceError",
    "WaitNode",
    "deserialize",
    "find_definition_files",
    "load_definition",
    "plan_from_dict",
    "plan_to_dict",
    "render_definition",
    "serialize",
]
