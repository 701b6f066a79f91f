"""Loading of check-definition files (Python scripts that build one plan)."""
from __future__ import annotations

import contextlib
import importlib.util
import io
import logging
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Optional

from .builder import ApiCheckBuilder
from .codec import deserialize
from .errors import DefinitionLoadError, PlanFormatError
from .models import TestPlan

if TYPE_CHECKING:
    from apicheck.execution.assertions import CheckFunction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedDefinition:
    """A plan together with the check functions its assertion nodes need."""

    path: Path
    plan: TestPlan
    checks: Mapping[str, "CheckFunction"]
    output: str = ""


def load_definition(path: str | Path) -> LoadedDefinition:
    """Import ``path`` in-process and return the plan built by its module-level builder.

    Anything the file prints (the emitted plan JSON included) is captured in
    :attr:`LoadedDefinition.output` instead of reaching stdout.
    """

    source = Path(path).expanduser().resolve()
    if not source.exists():
        raise DefinitionLoadError(f"Check definition not found: {source}")
    module_name = f"apicheck_definition_{source.stem}_{hash(str(source)) & 0xFFFF:x}"
    spec = importlib.util.spec_from_file_location(module_name, source)
    if spec is None or spec.loader is None:
        raise DefinitionLoadError(f"Unable to load module from {source}")
    module = importlib.util.module_from_spec(spec)
    captured = io.StringIO()
    sys.modules[module_name] = module
    try:
        with contextlib.redirect_stdout(captured):
            spec.loader.exec_module(module)
    except Exception as exc:
        raise DefinitionLoadError(f"Check definition {source} failed to import: {exc}") from exc
    finally:
        sys.modules.pop(module_name, None)
    builder = _find_builder(module, source)
    logger.debug("loaded check definition %s (%s)", source, builder.name)
    return LoadedDefinition(
        path=source,
        plan=builder.build(frequency=builder.frequency),
        checks=builder.checks,
        output=captured.getvalue(),
    )


def _find_builder(module: Any, source: Path) -> ApiCheckBuilder:
    builders = [value for value in vars(module).values() if isinstance(value, ApiCheckBuilder)]
    if not builders:
        raise DefinitionLoadError(f"No ApiCheckBuilder found at module level in {source}")
    unique = {id(builder): builder for builder in builders}
    if len(unique) > 1:
        names = ", ".join(sorted(builder.name for builder in unique.values()))
        raise DefinitionLoadError(f"Expected one ApiCheckBuilder in {source}, found: {names}")
    return builders[0]


def render_definition(path: str | Path, *, timeout: Optional[float] = 60.0, python: Optional[str] = None) -> TestPlan:
    """Run ``path`` as a separate program and parse the plan JSON it prints."""

    source = Path(path).expanduser().resolve()
    if not source.exists():
        raise DefinitionLoadError(f"Check definition not found: {source}")
    argv = [python or sys.executable, str(source)]
    try:
        proc = subprocess.run(
            argv,
            cwd=str(source.parent),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise DefinitionLoadError(f"Check definition {source} did not finish within {timeout}s") from exc
    if proc.returncode != 0:
        raise DefinitionLoadError(
            f"Check definition {source} exited with code {proc.returncode}: "
            f"{proc.stderr.strip() or proc.stdout.strip()}"
        )
    try:
        return deserialize(proc.stdout)
    except PlanFormatError as exc:
        raise DefinitionLoadError(f"Check definition {source} did not emit exactly one plan: {exc}") from exc
