"""Report formatting and output for gostyle_lint runs."""

import json
import sys
from typing import Iterable, List, Mapping, Optional, TextIO

from gostyle_lint import __version__
from gostyle_lint.core.finding import Finding, Severity
from gostyle_lint.core.result import FileFault, RunResult

EXIT_CLEAN = 0
EXIT_FINDINGS = 1
EXIT_TOOL_FAULT = 2

SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"


def exit_status(run: RunResult, treat_warnings_as_errors: bool = False) -> int:
    """
    Compute the process exit status of a run.

    Returns:
        2 on any tooling fault (unreadable or unparsable file, a rule that
        crashed, a cancelled run), else 1 when a blocking finding exists,
        else 0
    """
    if run.has_tool_faults or run.cancelled:
        return EXIT_TOOL_FAULT
    counts = run.counts
    if counts[Severity.ERROR] or (treat_warnings_as_errors and counts[Severity.WARNING]):
        return EXIT_FINDINGS
    return EXIT_CLEAN


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


class Reporter:
    """Formats and outputs run results in various formats."""

    def __init__(self, output_format: str = "text", show_suggestions: bool = False,
                 treat_warnings_as_errors: bool = False, rule_titles: Optional[Mapping[str, str]] = None):
        self.output_format = output_format
        self.show_suggestions = show_suggestions
        self.treat_warnings_as_errors = treat_warnings_as_errors
        self.rule_titles = dict(rule_titles or {})

    def report(self, run: RunResult, output: Optional[TextIO] = None) -> int:
        """
        Output a run in the configured format.

        Args:
            run: Results to report
            output: Stream to write to, stdout by default

        Returns:
            Exit code, see :func:`exit_status`
        """
        if output is None:
            output = sys.stdout
        if self.output_format == "structured":
            self._report_structured(run, output)
        elif self.output_format == "sarif":
            self._report_sarif(run, output)
        else:
            self._report_text(run, output)

        return exit_status(run, self.treat_warnings_as_errors)

    def _report_text(self, run: RunResult, output: TextIO):
        """Report findings in human-readable text format."""
        findings = run.findings
        faults = run.faults

        for finding in findings:
            output.write(self._format_finding_text(finding))
            output.write("\n")

        if faults:
            if findings:
                output.write("\n")
            output.write(f"Could not analyze {_plural(len(faults), 'file')}:\n")
            for fault in faults:
                output.write(f"  {fault}\n")

        if run.cancelled:
            output.write(f"Run cancelled; {_plural(len(run.skipped), 'file')} not analyzed:\n")
            for path in run.skipped:
                output.write(f"  {path}\n")

        if not findings and not faults:
            output.write(f"No issues found in {_plural(len(run.results), 'file')}.\n")
            return

        output.write("\n")
        self._write_summary(run, output)

    def _format_finding_text(self, finding: Finding) -> str:
        """Format a single finding as text."""
        lines = [str(finding)]
        if self.show_suggestions and finding.suggestion:
            lines.append(f"    suggestion: {finding.suggestion}")
        return "\n".join(lines)

    def _write_summary(self, run: RunResult, output: TextIO):
        """Write summary of findings."""
        counts = run.counts
        total = sum(counts.values())
        parts = []

        if counts[Severity.ERROR] > 0:
            parts.append(_plural(counts[Severity.ERROR], "error"))
        if counts[Severity.WARNING] > 0:
            parts.append(_plural(counts[Severity.WARNING], "warning"))
        if counts[Severity.INFO] > 0:
            parts.append(f"{counts[Severity.INFO]} info")

        summary = ", ".join(parts) if parts else "no findings"
        line = f"{_plural(total, 'issue')} found ({summary}) in {_plural(len(run.results), 'file')}"
        if run.faults:
            line += f", {len(run.faults)} not analyzed"
        output.write(line + "\n")

    def _report_structured(self, run: RunResult, output: TextIO):
        """
        Report a run as a JSON document.

        Keys are written in a fixed order and files, findings and faults are
        sorted, so two runs over the same input produce identical bytes.
        """
        data = {
            "tool": {"name": "gostyle-lint", "version": __version__},
            "files": [{
                "path": result.path,
                "findings": [f.to_dict() for f in result.findings],
                "summary": result.summary(),
                "fault": result.fault.to_dict() if result.fault is not None else None,
            } for result in run.results],
            "faults": [fault.to_dict() for fault in run.faults],
            "skipped": list(run.skipped),
            "cancelled": run.cancelled,
            "summary": run.summary(),
            "exit_status": exit_status(run, self.treat_warnings_as_errors),
        }
        json.dump(data, output, indent=2)
        output.write("\n")

    def _report_sarif(self, run: RunResult, output: TextIO):
        """
        Report findings in SARIF format.

        SARIF (Static Analysis Results Interchange Format) is a standard format
        for static analysis tools, supported by GitHub, VS Code, and other IDEs.
        """
        findings = run.findings
        results = []
        for finding in findings:
            result = {
                "ruleId": finding.rule_id,
                "level": self._severity_to_sarif_level(finding.severity),
                "message": {"text": finding.message},
                "locations": [{
                    "physicalLocation": {
                        "artifactLocation": {"uri": finding.path},
                        "region": {"startLine": finding.line, "startColumn": finding.col},
                    }
                }],
            }

            if finding.suggestion:
                result["fixes"] = [{"description": {"text": finding.suggestion}}]

            results.append(result)

        sarif = {
            "$schema": SARIF_SCHEMA,
            "version": "2.1.0",
            "runs": [{
                "tool": {
                    "driver": {
                        "name": "gostyle-lint",
                        "version": __version__,
                        "rules": self._sarif_rules(findings),
                    }
                },
                "invocations": [{
                    "executionSuccessful": not run.faults and not run.cancelled,
                    "toolExecutionNotifications": self._sarif_notifications(run.faults),
                }],
                "results": results,
            }]
        }

        json.dump(sarif, output, indent=2)
        output.write("\n")

    def _sarif_rules(self, findings: Iterable[Finding]) -> List[dict]:
        rules = []
        for rule_id in sorted({f.rule_id for f in findings}):
            rule = {"id": rule_id}
            if rule_id in self.rule_titles:
                rule["shortDescription"] = {"text": self.rule_titles[rule_id]}
            rules.append(rule)
        return rules

    @staticmethod
    def _sarif_notifications(faults: Iterable[FileFault]) -> List[dict]:
        return [{
            "level": "error",
            "descriptor": {"id": fault.kind},
            "message": {"text": fault.message},
            "locations": [{
                "physicalLocation": {
                    "artifactLocation": {"uri": fault.path},
                    "region": {"startLine": fault.line, "startColumn": fault.col},
                }
            }],
        } for fault in faults]

    @staticmethod
    def _severity_to_sarif_level(severity: Severity) -> str:
        """Convert gostyle_lint severity to SARIF level."""
        mapping = {
            Severity.ERROR: "error",
            Severity.WARNING: "warning",
            Severity.INFO: "note",
        }
        return mapping.get(severity, "warning")
