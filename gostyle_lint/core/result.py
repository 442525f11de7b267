"""Per-file and per-run analysis results."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from gostyle_lint.core.finding import Finding, Severity

RULE_INTERNAL_ERROR = "rule-internal-error"


@dataclass(frozen=True)
class FileFault:
    """A tooling fault that stopped the analysis of one file."""

    path: str
    kind: str  # "parse-error", "read-error" or "internal-error"
    message: str
    line: int = 1
    col: int = 1

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.col}: {self.kind}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "kind": self.kind,
            "line": self.line,
            "col": self.col,
            "message": self.message,
        }


def count_by_severity(findings: Iterable[Finding]) -> Dict[Severity, int]:
    """Count findings per severity; every severity is present in the result."""
    counts = {severity: 0 for severity in Severity}
    for finding in findings:
        counts[finding.severity] += 1
    return counts


@dataclass(frozen=True)
class AnalysisResult:
    """
    Post-suppression findings of one file.

    Attributes:
        path: File the findings belong to
        findings: Findings ordered by (line, col, rule id)
        fault: Set when the file could not be analyzed
    """

    path: str
    findings: Tuple[Finding, ...] = ()
    fault: Optional[FileFault] = None

    @property
    def counts(self) -> Dict[Severity, int]:
        return count_by_severity(self.findings)

    @property
    def failed(self) -> bool:
        return self.fault is not None

    def summary(self) -> dict:
        counts = self.counts
        return {
            "error": counts[Severity.ERROR],
            "warning": counts[Severity.WARNING],
            "info": counts[Severity.INFO],
            "total": len(self.findings),
        }


@dataclass(frozen=True)
class RunResult:
    """Results of one lint run, ordered by file path."""

    results: Tuple[AnalysisResult, ...] = ()
    skipped: Tuple[str, ...] = ()
    cancelled: bool = False
    extra_faults: Tuple[FileFault, ...] = field(default=())

    @property
    def findings(self) -> List[Finding]:
        """All findings, non-decreasing by (path, line, col, rule id)."""
        collected = [finding for result in self.results for finding in result.findings]
        return sorted(collected, key=lambda f: f.sort_key)

    @property
    def faults(self) -> List[FileFault]:
        faults = [result.fault for result in self.results if result.fault is not None]
        faults.extend(self.extra_faults)
        return sorted(faults, key=lambda f: (f.path, f.line, f.col))

    @property
    def counts(self) -> Dict[Severity, int]:
        return count_by_severity(self.findings)

    @property
    def has_tool_faults(self) -> bool:
        if self.faults:
            return True
        return any(f.rule_id == RULE_INTERNAL_ERROR for f in self.findings)

    def summary(self) -> dict:
        counts = self.counts
        return {
            "files": len(self.results) + len(self.skipped),
            "analyzed": sum(1 for r in self.results if not r.failed),
            "failed": len(self.faults),
            "skipped": len(self.skipped),
            "error": counts[Severity.ERROR],
            "warning": counts[Severity.WARNING],
            "info": counts[Severity.INFO],
            "total": sum(counts.values()),
        }
