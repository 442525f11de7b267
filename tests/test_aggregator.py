"""Tests for finding aggregation and run results."""

from gostyle_lint.analyzers.aggregator import DiagnosticAggregator, aggregate
from gostyle_lint.core.finding import Category, Finding, Severity
from gostyle_lint.core.result import AnalysisResult, FileFault, RunResult


def _finding(rule_id="r", path="a.go", line=1, col=1, severity=Severity.WARNING, message="m"):
    return Finding(rule_id, Category.NAMING, severity, path, line, col, message)


def test_aggregate_orders_findings():
    findings = [
        _finding(path="b.go"),
        _finding(line=3),
        _finding(line=1, col=5),
        _finding(rule_id="a", line=1, col=5),
    ]

    result = aggregate(findings)

    assert [(f.path, f.line, f.col, f.rule_id) for f in result] == [
        ("a.go", 1, 5, "a"),
        ("a.go", 1, 5, "r"),
        ("a.go", 3, 1, "r"),
        ("b.go", 1, 1, "r"),
    ]


def test_aggregate_drops_duplicates_and_is_idempotent():
    findings = [_finding(message="second"), _finding(message="first"), _finding(rule_id="other")]

    once = aggregate(findings)

    assert [(f.rule_id, f.message) for f in once] == [("other", "m"), ("r", "first")]
    assert aggregate(once) == once


def test_build_and_merge():
    aggregator = DiagnosticAggregator()
    b = aggregator.build("b.go", [_finding(path="b.go", line=2), _finding(path="b.go", line=1)])
    a = aggregator.build("a.go", [], FileFault("a.go", "parse-error", "unclosed '{'", 4, 2))

    merged = DiagnosticAggregator.merge([b, a])

    assert [r.path for r in merged] == ["a.go", "b.go"]
    assert [f.line for f in b.findings] == [1, 2]
    assert a.failed and not b.failed


def test_run_result_summary():
    run = RunResult(
        results=(
            AnalysisResult("a.go", (_finding(severity=Severity.ERROR), _finding(line=2))),
            AnalysisResult("b.go", (), FileFault("b.go", "read-error", "permission denied")),
        ),
        skipped=("c.go",),
        extra_faults=(FileFault("missing.go", "read-error", "no such file"),),
    )

    assert run.summary() == {
        "files": 3,
        "analyzed": 1,
        "failed": 2,
        "skipped": 1,
        "error": 1,
        "warning": 1,
        "info": 0,
        "total": 2,
    }
    assert [f.path for f in run.faults] == ["b.go", "missing.go"]
    assert run.has_tool_faults


def test_internal_error_is_a_tool_fault():
    internal = Finding("rule-internal-error", Category.ORGANIZATION, Severity.ERROR, "a.go", 1, 1, "boom")

    assert RunResult((AnalysisResult("a.go", (internal,)),)).has_tool_faults
    assert not RunResult((AnalysisResult("a.go", (_finding(),)),)).has_tool_faults


def test_fault_formatting():
    fault = FileFault("a.go", "parse-error", "unclosed '{'", 4, 2)

    assert str(fault) == "a.go:4:2: parse-error: unclosed '{'"
    assert fault.to_dict()["kind"] == "parse-error"
