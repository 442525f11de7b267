"""Diagnostic aggregation: ordering, de-duplication and per-file results."""

from typing import Iterable, List, Optional

from gostyle_lint.core.finding import Finding
from gostyle_lint.core.result import AnalysisResult, FileFault


def aggregate(findings: Iterable[Finding]) -> List[Finding]:
    """
    Sort findings and drop duplicates.

    Findings are ordered by (path, line, col, rule id, message). Two findings
    of the same rule at the same position are duplicates, which happens when
    matcher scopes overlap (a statement seen from both a function and a
    nested literal); the first in order is kept. Applying this twice gives
    the same list.
    """
    seen = set()
    result = []
    for finding in sorted(findings, key=lambda f: f.sort_key):
        key = finding.position_key
        if key in seen:
            continue
        seen.add(key)
        result.append(finding)
    return result


class DiagnosticAggregator:
    """Builds the final result of one file."""

    def build(self, path: str, findings: Iterable[Finding], fault: Optional[FileFault] = None) -> AnalysisResult:
        return AnalysisResult(path=path, findings=tuple(aggregate(findings)), fault=fault)

    @staticmethod
    def merge(results: Iterable[AnalysisResult]) -> List[AnalysisResult]:
        """Order per-file results by path."""
        return sorted(results, key=lambda r: r.path)
