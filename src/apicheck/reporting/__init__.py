"""Reporting exports."""
from .base import ReportManager, Reporter
from .json_reporter import JsonReporter, build_report
from .terminal import TerminalReporter

__all__ = [
    "ReportManager",
    "Reporter",
    "JsonReporter",
    "TerminalReporter",
    "build_report",
]
