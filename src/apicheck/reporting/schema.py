"""JSON schema definition for reporter output."""
from __future__ import annotations

SCHEMA_VERSION = "1.0.0"

JSON_SCHEMA_V1 = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "apicheck run report",
    "type": "object",
    "required": ["schema_version", "generated_at", "plan", "summary", "nodes"],
    "properties": {
        "schema_version": {"type": "string"},
        "generated_at": {"type": "string", "format": "date-time"},
        "plan": {
            "type": "object",
            "required": ["name", "endpoint_host"],
            "properties": {
                "name": {"type": "string"},
                "endpoint_host": {"type": "string"},
                "frequency": {},
            },
        },
        "summary": {
            "type": "object",
            "required": ["success", "total", "passed", "failed", "duration_s"],
            "properties": {
                "success": {"type": "boolean"},
                "total": {"type": "integer"},
                "passed": {"type": "integer"},
                "failed": {"type": "integer"},
                "duration_s": {"type": "number"},
            },
        },
        "nodes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "type", "success", "duration_ms"],
                "properties": {
                    "id": {"type": "string"},
                    "type": {"enum": ["endpoint", "wait", "assertion"]},
                    "success": {"type": "boolean"},
                    "duration_ms": {"type": "number"},
                    "error": {"type": "string"},
                    "response": {},
                },
            },
        },
    },
}
