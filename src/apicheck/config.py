"""Run settings loaded from YAML configuration files."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from jsonschema import Draft7Validator

from apicheck.execution.executors import DEFAULT_TIMEOUT_S

DEFAULT_CONFIG_NAME = "apicheck.yaml"

SETTINGS_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "timeout_s": {"type": "number", "exclusiveMinimum": 0},
        "fail_fast": {"type": "boolean"},
        "concurrent": {"type": "boolean"},
        "report_format": {"enum": ["terminal", "json"]},
        "report_path": {"type": ["string", "null"]},
        "color": {"type": "boolean"},
    },
}
_validator = Draft7Validator(SETTINGS_SCHEMA)


@dataclass(frozen=True)
class RunSettings:
    timeout_s: float = DEFAULT_TIMEOUT_S
    fail_fast: bool = False
    concurrent: bool = True
    report_format: str = "terminal"
    report_path: Optional[str] = None
    color: bool = True

    def merged(self, **overrides: Any) -> "RunSettings":
        """Return a copy with every non-``None`` override applied."""

        values = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **values)

    def orchestrator_options(self) -> dict[str, Any]:
        return {"timeout_s": self.timeout_s, "fail_fast": self.fail_fast, "concurrent": self.concurrent}


def load_settings(path: Optional[str] = None, *, search_dir: Optional[Path] = None) -> RunSettings:
    """Load settings from ``path`` or from ``apicheck.yaml`` in ``search_dir`` (cwd by default)."""

    if path is None:
        candidate = (search_dir or Path.cwd()) / DEFAULT_CONFIG_NAME
        if not candidate.exists():
            return RunSettings()
        config_path = candidate
    else:
        config_path = Path(path).expanduser().resolve()
    raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    return settings_from_mapping(raw)


def settings_from_mapping(raw: Any) -> RunSettings:
    if not isinstance(raw, Mapping):
        raise ValueError("Config file must contain a mapping at the top level")
    errors = sorted(_validator.iter_errors(raw), key=lambda e: [str(part) for part in e.path])
    if errors:
        messages = "; ".join(f"{'/'.join(map(str, err.path)) or 'root'}: {err.message}" for err in errors)
        raise ValueError(f"Config schema validation failed: {messages}")
    return RunSettings(**{key: raw[key] for key in raw})
