"""Core data structures and utilities for gostyle_lint."""

from gostyle_lint.core.finding import Category, Finding, Severity
from gostyle_lint.core.config import Config
from gostyle_lint.core.report import Reporter, exit_status
from gostyle_lint.core.result import AnalysisResult, FileFault, RunResult

__all__ = [
    "AnalysisResult",
    "Category",
    "Config",
    "FileFault",
    "Finding",
    "Reporter",
    "RunResult",
    "Severity",
    "exit_status",
]
