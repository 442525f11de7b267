"""End-to-end checks of the analyzer on complete files."""

import io
from pathlib import Path

from gostyle_lint.analyzers.go_analyzer import GoAnalyzer
from gostyle_lint.analyzers.runner import LintRunner
from gostyle_lint.core.config import Config
from gostyle_lint.core.finding import Severity
from gostyle_lint.core.report import EXIT_CLEAN, EXIT_FINDINGS, Reporter, exit_status

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def _findings(code, rule_id=None):
    findings = GoAnalyzer(Config()).analyze(code, "p.go")
    if rule_id is None:
        return findings
    return [f for f in findings if f.rule_id == rule_id]


def test_unwrapped_error_from_lower_call():
    code = """package p

func do(x int) error {
	err := lower(x)
	return err
}
"""

    findings = _findings(code, "error-not-wrapped")

    assert len(findings) == 1
    assert findings[0].severity == Severity.ERROR
    assert findings[0].line == 5


def test_interface_size():
    large = "package p\n\ntype Big interface {\n" + "".join(f"\tM{i}()\n" for i in range(6)) + "}\n"
    small = "package p\n\ntype Pair interface {\n\tA()\n\tB()\n}\n"

    findings = _findings(large, "interface-too-large")

    assert len(findings) == 1
    assert findings[0].severity == Severity.ERROR
    assert _findings(small, "interface-too-large") == []


def test_goroutine_lifecycle_follows_cancellation_waits():
    unstoppable = """package p

func start() {
	go func() {
		for {
			work()
		}
	}()
}
"""
    stoppable = """package p

import "context"

func start(ctx context.Context) {
	go func() {
		for {
			select {
			case <-ctx.Done():
				return
			default:
				work()
			}
		}
	}()
}
"""

    assert len(_findings(unstoppable, "goroutine-lifecycle")) == 1
    assert _findings(stoppable, "goroutine-lifecycle") == []


def test_defer_in_loop_regardless_of_body():
    for body in ("", "\t\tx := 1\n\t\tuse(x)\n", "\t\tif ok {\n\t\t\tcontinue\n\t\t}\n"):
        code = "package p\n\nfunc f(ok bool) {\n\tfor {\n" + body + "\t\tdefer done()\n\t}\n}\n"

        assert len(_findings(code, "defer-in-loop")) == 1, body


def test_unjustified_suppression_keeps_finding():
    code = """package p

func do(x int) error {
	err := lower(x)
	return err // gostyle:ignore error-not-wrapped
}
"""

    findings = _findings(code)

    assert [(f.rule_id, f.line) for f in findings] == [
        ("error-not-wrapped", 5),
        ("missing-justification", 5),
    ]


def test_justified_suppression_removes_finding():
    code = """package p

func do(x int) error {
	err := lower(x)
	return err // gostyle:ignore error-not-wrapped: callers match on the raw error
}
"""

    assert _findings(code) == []


def test_good_example_is_clean():
    run = LintRunner(Config()).run([str(EXAMPLES / "good_store.go")])

    assert run.findings == []
    assert exit_status(run) == EXIT_CLEAN


def test_bad_example():
    run = LintRunner(Config()).run([str(EXAMPLES / "bad_util.go")])

    assert {f.rule_id for f in run.findings} == {
        "context-in-struct",
        "context-not-first",
        "defer-in-loop",
        "error-ignored",
        "error-not-wrapped",
        "error-string-format",
        "getter-prefix",
        "global-mutable-state",
        "goroutine-lifecycle",
        "goroutine-loop-capture",
        "interface-name-suffix",
        "mutex-copy",
        "mutex-embedded",
        "name-underscore",
        "package-name-generic",
        "receiver-name-self",
    }
    assert len([f for f in run.findings if f.rule_id == "error-ignored"]) == 2
    assert exit_status(run) == EXIT_FINDINGS


def test_structured_report_is_byte_identical_across_runs():
    def render(jobs):
        run = LintRunner(Config(jobs=jobs)).run([str(EXAMPLES)])
        output = io.StringIO()
        Reporter(output_format="structured").report(run, output)
        return output.getvalue()

    first = render(1)

    assert '"rule_id": "mutex-copy"' in first
    assert render(1) == first
    assert render(4) == first
