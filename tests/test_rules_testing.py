"""Tests for rules on _test.go files."""

from gostyle_lint.analyzers.go_analyzer import GoAnalyzer
from gostyle_lint.core.config import Config
from gostyle_lint.core.finding import Severity


def _findings(code, rule_id, path="svc_test.go"):
    analyzer = GoAnalyzer(Config())
    return [f for f in analyzer.analyze(code, path) if f.rule_id == rule_id]


SIGNATURES = """package svc

import "testing"

func Testfoo(t *testing.T) {
	t.Log("x")
}

func TestBad(t *testing.B) {
	t.Log("x")
}

func TestReturns(t *testing.T) error {
	t.Log("x")
	return nil
}

func TestMain(m *testing.M) {
	m.Run()
}

func BenchmarkLookup(b *testing.B) {
	b.ResetTimer()
}

func ExampleLookup() {}
"""


def test_test_name_format():
    findings = _findings(SIGNATURES, "test-name-format")

    assert [f.line for f in findings] == [5]
    assert "Testfoo" in findings[0].message


def test_test_signature():
    findings = _findings(SIGNATURES, "test-signature")

    assert [f.line for f in findings] == [9, 13]
    assert findings[0].severity == Severity.ERROR
    assert "func TestBad(*testing.T)" in findings[0].message


def test_test_rules_ignore_non_test_files():
    assert _findings(SIGNATURES, "test-signature", path="svc.go") == []


def test_test_without_assertions():
    code = """package svc

import (
	"testing"

	"github.com/stretchr/testify/assert"
)

func TestNothing(t *testing.T) {
	compute()
}

func TestChecked(t *testing.T) {
	if compute() != 2 {
		t.Errorf("bad")
	}
}

func TestAssert(x *testing.T) {
	assert.True(nil, compute() == 2)
}
"""

    findings = _findings(code, "test-without-assertions")

    assert [f.line for f in findings] == [9]


def test_test_sleep():
    code = """package svc

import (
	"testing"
	"time"
)

func TestWait(t *testing.T) {
	time.Sleep(10 * time.Millisecond)
	t.Log("done")
}
"""

    findings = _findings(code, "test-sleep")

    assert len(findings) == 1
    assert findings[0].line == 9
    assert _findings(code, "test-sleep", path="svc.go") == []


def test_test_fatal_in_goroutine():
    code = """package svc

import "testing"

func TestAsync(t *testing.T) {
	go func() {
		t.Fatal("boom")
	}()
	t.Fatal("fine here")
}
"""

    findings = _findings(code, "test-fatal-in-goroutine")

    assert [f.line for f in findings] == [7]
    assert findings[0].severity == Severity.ERROR


def test_test_helper_missing():
    code = """package svc

import "testing"

func checkEqual(t *testing.T, a, b int) {
	if a != b {
		t.Errorf("%d != %d", a, b)
	}
}

func mustOpen(t *testing.T) {
	t.Helper()
	t.Fatal("x")
}

func logOnly(t *testing.T) {
	t.Log("x")
}
"""

    findings = _findings(code, "test-helper-missing")

    assert [f.line for f in findings] == [5]
    assert "t.Helper()" in findings[0].message
