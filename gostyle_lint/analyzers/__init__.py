"""Analysis pipeline for Go source files."""

from gostyle_lint.analyzers.aggregator import DiagnosticAggregator, aggregate
from gostyle_lint.analyzers.base import Analyzer
from gostyle_lint.analyzers.go_analyzer import GoAnalyzer
from gostyle_lint.analyzers.matcher import MatcherEngine
from gostyle_lint.analyzers.runner import LintRunner, discover_files
from gostyle_lint.analyzers.suppression import Suppression, SuppressionResolver, parse_directives

__all__ = [
    "Analyzer",
    "DiagnosticAggregator",
    "GoAnalyzer",
    "LintRunner",
    "MatcherEngine",
    "Suppression",
    "SuppressionResolver",
    "aggregate",
    "discover_files",
    "parse_directives",
]
