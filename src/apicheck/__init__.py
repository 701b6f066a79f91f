"""apicheck package initialization."""
from __future__ import annotations

from .version import __version__
from .plan import END, START, ApiCheckBuilder, TestPlan, deserialize, serialize
from .execution import RunResult, run_plan

__all__ = [
    "__version__",
    "ApiCheckBuilder",
    "END",
    "RunResult",
    "START",
    "TestPlan",
    "deserialize",
    "run_plan",
    "serialize",
]
