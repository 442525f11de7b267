"""Data structures for representing analysis findings."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Severity(str, Enum):
    """Severity levels for findings."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Category(str, Enum):
    """Rule categories, one per section of the style catalog."""
    ERROR_HANDLING = "error-handling"
    INTERFACE_DESIGN = "interface-design"
    CONCURRENCY = "concurrency"
    NAMING = "naming"
    TESTING = "testing"
    ORGANIZATION = "organization"


@dataclass(frozen=True)
class Finding:
    """
    Represents a single finding from the analysis.

    Findings are values: they are never mutated once a rule has produced
    them, so the same finding can be shared between the per-file result,
    the run summary and every reporter.

    Attributes:
        rule_id: Identifier of the rule that triggered this finding
        category: Category of that rule
        severity: Severity level of the finding
        path: Path to the file where the finding was detected
        line: Line number (1-indexed)
        col: Column number (1-indexed)
        message: Human-readable description of the issue
        suggestion: Optional suggestion for how to fix the issue
    """
    rule_id: str
    category: Category
    severity: Severity
    path: str
    line: int
    col: int
    message: str
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        """Format finding as a single report line."""
        return f"{self.path}:{self.line}:{self.col}: [{self.severity.value}] {self.rule_id}: {self.message}"

    @property
    def sort_key(self):
        return (self.path, self.line, self.col, self.rule_id, self.message)

    @property
    def position_key(self):
        """Identity used to collapse duplicates from overlapping matcher scopes."""
        return (self.rule_id, self.path, self.line, self.col)

    def to_dict(self) -> dict:
        """Convert finding to dictionary for JSON serialization."""
        return {
            "rule_id": self.rule_id,
            "category": self.category.value,
            "severity": self.severity.value,
            "path": self.path,
            "line": self.line,
            "col": self.col,
            "message": self.message,
            "suggestion": self.suggestion,
        }
