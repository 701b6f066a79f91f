"""Per-node-type execution behaviour."""
from __future__ import annotations

import asyncio
import errno
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
from urllib.parse import urlsplit

import httpx

from apicheck.plan.models import AssertionNode, EndpointNode, Node, NodeType, ResponseFormat, WaitNode

from .assertions import AssertionHelpers, CheckFunction, collect_failures
from .results import NodeResult
from .state import ExecutionState

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0

SleepFunction = Callable[[float], Awaitable[Any]]


def build_url(endpoint_host: str, path: str) -> str:
    if path.startswith(("http://", "https://")):
        return path
    if not endpoint_host:
        return path
    return f"{endpoint_host.rstrip('/')}/{path.lstrip('/')}"


def _host_port(url: str) -> str:
    parts = urlsplit(url)
    port = parts.port or (443 if parts.scheme == "https" else 80)
    return f"{parts.hostname}:{port}"


def _is_refused(exc: BaseException) -> bool:
    """Whether the cause chain of ``exc`` holds an ECONNREFUSED socket error."""

    pending = [exc]
    seen: set[int] = set()
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, ConnectionRefusedError):
            return True
        if isinstance(current, OSError) and current.errno == errno.ECONNREFUSED:
            return True
        # anyio reports several failed attempts as an exception group
        grouped = getattr(current, "exceptions", ())
        pending.extend(item for item in grouped if isinstance(item, BaseException))
        pending.extend(link for link in (current.__cause__, current.__context__) if link is not None)
    return False


class NodeExecutor:
    """Runs plan nodes against one execution state.

    The HTTP client, assertion helpers and sleep function are injected so
    tests can swap any of them for doubles.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        endpoint_host: str,
        checks: Optional[Mapping[str, CheckFunction]] = None,
        helpers: Any = AssertionHelpers,
        sleep: SleepFunction = asyncio.sleep,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._client = client
        self._endpoint_host = endpoint_host
        self._checks = dict(checks or {})
        self._helpers = helpers
        self._sleep = sleep
        self._timeout_s = timeout_s
        self._dispatch: Dict[NodeType, Callable[[Any, ExecutionState], Awaitable[NodeResult]]] = {
            NodeType.ENDPOINT: self._execute_endpoint,
            NodeType.WAIT: self._execute_wait,
            NodeType.ASSERTION: self._execute_assertion,
        }

    async def execute(self, node: Node, state: ExecutionState) -> NodeResult:
        handler = self._dispatch.get(node.type)
        if handler is None:  # pragma: no cover - closed set of node types
            raise TypeError(f"No executor for node type {node.type!r}")
        start = time.perf_counter()
        result = await handler(node, state)
        duration = time.perf_counter() - start
        logger.debug("node %s (%s) finished success=%s in %.3fs", node.id, node.type.value, result.success, duration)
        return NodeResult(
            node_id=result.node_id,
            type=result.type,
            success=result.success,
            response=result.response,
            error=result.error,
            duration_s=duration,
        )

    async def _execute_endpoint(self, node: EndpointNode, state: ExecutionState) -> NodeResult:
        url = build_url(self._endpoint_host, node.path)
        method = node.method.value
        request_kwargs: Dict[str, Any] = {"headers": dict(node.headers or {})}
        if node.body is not None:
            if isinstance(node.body, (str, bytes)):
                request_kwargs["content"] = node.body
            else:
                request_kwargs["json"] = node.body
        try:
            response = await self._client.request(
                method,
                url,
                timeout=httpx.Timeout(self._timeout_s),
                **request_kwargs,
            )
        except httpx.ConnectError as exc:
            if _is_refused(exc):
                message = f"Connection refused by {_host_port(url)} ({method} {url}): {exc}"
            else:
                message = f"Could not connect to {_host_port(url)} ({method} {url}): {exc}"
            return self._endpoint_failure(node, message)
        except httpx.TimeoutException:
            return self._endpoint_failure(node, f"Request timed out after {self._timeout_s:g}s ({method} {url})")
        except Exception as exc:
            return self._endpoint_failure(node, f"Request failed ({method} {url}): {type(exc).__name__}: {exc}")
        if not response.is_success:
            reason = response.reason_phrase or "Unknown"
            return self._endpoint_failure(node, f"HTTP {response.status_code} {reason} ({method} {url})")
        return NodeResult(
            node_id=node.id,
            type=NodeType.ENDPOINT,
            success=True,
            response=_decode_body(response, node.response_format),
        )

    def _endpoint_failure(self, node: EndpointNode, message: str) -> NodeResult:
        logger.warning("endpoint %s failed: %s", node.id, message)
        return NodeResult(node_id=node.id, type=NodeType.ENDPOINT, success=False, error=message)

    async def _execute_wait(self, node: WaitNode, state: ExecutionState) -> NodeResult:
        await self._sleep(node.duration_ms / 1000)
        return NodeResult(node_id=node.id, type=NodeType.WAIT, success=True)

    async def _execute_assertion(self, node: AssertionNode, state: ExecutionState) -> NodeResult:
        check = self._checks.get(node.id)
        if check is None:
            return self._assertion_failure(node, f"No check function registered for assertion node '{node.id}'")
        responses = state.get_all_responses()
        try:
            descriptors = check(responses, self._helpers)
            if inspect.isawaitable(descriptors):
                descriptors = await descriptors
        except Exception as exc:
            return self._assertion_failure(node, f"Check function raised {type(exc).__name__}: {exc}")
        if descriptors is None:
            descriptors = []
        if not isinstance(descriptors, (list, tuple)):
            return self._assertion_failure(
                node, f"Check function must return a list of assertions, got {type(descriptors).__name__}"
            )
        failures = collect_failures(descriptors)
        if failures:
            return self._assertion_failure(node, "; ".join(failures))
        return NodeResult(node_id=node.id, type=NodeType.ASSERTION, success=True)

    def _assertion_failure(self, node: AssertionNode, message: str) -> NodeResult:
        logger.warning("assertion %s failed: %s", node.id, message)
        return NodeResult(node_id=node.id, type=NodeType.ASSERTION, success=False, error=message)


def _decode_body(response: httpx.Response, response_format: ResponseFormat) -> Any:
    if response_format is ResponseFormat.JSON:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text
