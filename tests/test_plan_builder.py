from __future__ import annotations

import io
import json
import math

import pytest

from apicheck.plan import (
    END,
    START,
    ApiCheckBuilder,
    AssertionNode,
    DuplicateNodeError,
    EndpointNode,
    HttpMethod,
    InvalidDurationError,
    InvalidEndpointError,
    PlanDefinitionError,
    ResponseFormat,
    UnknownNodeReferenceError,
    WaitNode,
)


def _builder(stream: io.StringIO | None = None) -> ApiCheckBuilder:
    return ApiCheckBuilder("users-api", "https://api.example.com", stream=stream)


def test_wait_duration_sums_minutes_and_seconds() -> None:
    plan = _builder().add_wait("pause", minutes=1, seconds=30).build()
    assert plan.nodes == (WaitNode(id="pause", duration_ms=90000),)


def test_wait_defaults_to_zero() -> None:
    plan = _builder().add_wait("noop").build()
    assert plan.nodes[0].duration_ms == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"minutes": -1},
        {"seconds": -0.5},
        {"seconds": "5"},
        {"seconds": math.inf},
        {"minutes": math.nan},
        {"seconds": 1e308},
    ],
)
def test_wait_rejects_invalid_durations(kwargs) -> None:
    with pytest.raises(InvalidDurationError):
        _builder().add_wait("pause", **kwargs)


def test_endpoint_fields_are_normalized() -> None:
    plan = (
        _builder()
        .add_endpoint(
            "create",
            method="post",
            path="/users",
            response_format="json",
            headers={"X-Trace": 1},
            body={"name": "ada"},
        )
        .build()
    )
    node = plan.nodes[0]
    assert isinstance(node, EndpointNode)
    assert node.method is HttpMethod.POST
    assert node.response_format is ResponseFormat.JSON
    assert node.headers == {"X-Trace": "1"}
    assert node.body == {"name": "ada"}


def test_endpoint_rejects_unknown_method_and_empty_path() -> None:
    with pytest.raises(InvalidEndpointError) as exc:
        _builder().add_endpoint("bad", method="FETCH", path="/x")
    assert "FETCH" in str(exc.value)
    with pytest.raises(InvalidEndpointError):
        _builder().add_endpoint("bad", method="GET", path="  ")


def test_duplicate_node_id_leaves_builder_unchanged() -> None:
    builder = _builder().add_endpoint("a", method="GET", path="/a")
    before = builder.to_json()
    with pytest.raises(DuplicateNodeError) as exc:
        builder.add_wait("a", seconds=1)
    assert exc.value.node_id == "a"
    assert builder.to_json() == before
    with pytest.raises(DuplicateNodeError):
        builder.add_assertions("a", lambda responses, asserts: [])
    assert "a" not in builder.checks


def test_sentinel_ids_are_reserved() -> None:
    with pytest.raises(PlanDefinitionError):
        _builder().add_wait(START)


def test_edge_to_unknown_node_fails_at_build_time() -> None:
    builder = _builder().add_endpoint("a", method="GET", path="/a")
    with pytest.raises(UnknownNodeReferenceError) as exc:
        builder.add_edge("a", "missing")
    assert exc.value.node_id == "missing"
    with pytest.raises(UnknownNodeReferenceError):
        builder.add_edge(END, "a")
    with pytest.raises(UnknownNodeReferenceError):
        builder.add_edge("a", START)


def test_assertion_function_is_not_called_while_building() -> None:
    calls = []

    def check(responses, asserts):
        calls.append(responses)
        return []

    builder = _builder().add_assertions("verify", check).add_edge(START, "verify").add_edge("verify", END)
    plan = builder.build()
    builder.to_json()
    assert calls == []
    assert plan.nodes == (AssertionNode(id="verify"),)
    assert builder.checks["verify"] is check


def test_create_emits_plan_json_and_returns_plan() -> None:
    stream = io.StringIO()
    builder = (
        _builder(stream)
        .add_endpoint("list", method="GET", path="/users")
        .add_edge(START, "list")
        .add_edge("list", END)
    )
    plan = builder.create(frequency={"minutes": 5})
    emitted = json.loads(stream.getvalue())
    assert emitted["name"] == "users-api"
    assert emitted["frequency"] == {"minutes": 5}
    assert emitted["edges"] == [{"from": "START", "to": "list"}, {"from": "list", "to": "END"}]
    assert plan.frequency == {"minutes": 5}


def test_to_json_omits_frequency_and_does_not_emit() -> None:
    stream = io.StringIO()
    builder = _builder(stream).add_wait("pause", seconds=1)
    builder.create(frequency="hourly")
    stream.truncate(0)
    text = builder.to_json()
    assert "frequency" not in json.loads(text)
    assert stream.getvalue() == ""


def test_created_plan_is_not_affected_by_later_builder_calls() -> None:
    headers = {"Authorization": "token"}
    body = {"items": [1, 2]}
    builder = _builder(io.StringIO()).add_endpoint("a", method="POST", path="/a", headers=headers, body=body)
    plan = builder.create()
    builder.add_wait("later", seconds=1).add_edge(START, "a")
    headers["Authorization"] = "changed"
    body["items"].append(3)
    assert plan.node_ids() == ("a",)
    assert plan.edges == ()
    assert plan.nodes[0].headers == {"Authorization": "token"}
    assert plan.nodes[0].body == {"items": [1, 2]}


def test_mutating_a_returned_plan_does_not_reach_the_builder() -> None:
    builder = _builder(io.StringIO()).add_endpoint(
        "a", method="POST", path="/a", headers={"k": "v"}, body={"n": 1}
    )
    first = builder.create()
    first.nodes[0].headers["k"] = "mutated"
    first.nodes[0].body["n"] = 99
    second = builder.build()
    assert second.nodes[0].headers == {"k": "v"}
    assert second.nodes[0].body == {"n": 1}
    assert json.loads(builder.to_json())["nodes"][0]["body"] == {"n": 1}
