"""Per-run store of captured node responses."""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


class ExecutionState:
    """Maps node ids to the responses they captured during one run.

    Each node only writes its own slot and only reads slots of completed
    predecessors, so no locking is needed on a single event loop.
    """

    def __init__(self) -> None:
        self._responses: Dict[str, Any] = {}

    def set_response(self, node_id: str, value: Any) -> None:
        self._responses[node_id] = value

    def get_response(self, node_id: str, default: Optional[Any] = None) -> Any:
        return self._responses.get(node_id, default)

    def has_response(self, node_id: str) -> bool:
        return node_id in self._responses

    def get_all_responses(self) -> Mapping[str, Any]:
        """Return a read-only snapshot; later writes do not show through."""

        return MappingProxyType(dict(self._responses))

    def __len__(self) -> int:
        return len(self._responses)
