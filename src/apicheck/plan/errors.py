"""Exception hierarchy for plan construction, loading and orchestration."""
from __future__ import annotations

from typing import Sequence


class ApiCheckError(Exception):
    """Base class for all apicheck errors."""


class PlanDefinitionError(ApiCheckError, ValueError):
    """The plan as written by its author is invalid."""


class DuplicateNodeError(PlanDefinitionError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Duplicate node id '{node_id}'")


class UnknownNodeReferenceError(PlanDefinitionError):
    def __init__(self, node_id: str, edge: tuple[str, str]) -> None:
        self.node_id = node_id
        self.edge = edge
        super().__init__(f"Edge {edge[0]} -> {edge[1]} references unknown node '{node_id}'")


class InvalidDurationError(PlanDefinitionError):
    pass


class InvalidEndpointError(PlanDefinitionError):
    pass


class PlanFormatError(PlanDefinitionError):
    """Serialized plan text could not be decoded or failed schema validation."""


class PlanStructureError(ApiCheckError):
    """The plan graph cannot be executed."""


class MissingEntryError(PlanStructureError):
    pass


class CycleError(PlanStructureError):
    def __init__(self, node_ids: Sequence[str]) -> None:
        self.node_ids = tuple(node_ids)
        super().__init__(f"Plan graph contains a cycle through: {', '.join(self.node_ids)}")


class DisconnectedTerminalError(PlanStructureError):
    pass


class DefinitionLoadError(ApiCheckError):
    """A plan-definition file could not be loaded or rendered."""
