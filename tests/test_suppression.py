"""Tests for suppression directives and configured suppressions."""

import logging
import unittest

from gostyle_lint.analyzers.go_analyzer import GoAnalyzer
from gostyle_lint.analyzers.suppression import config_suppressions, parse_directives
from gostyle_lint.core.config import Config, SuppressionEntry
from gostyle_lint.core.finding import Severity
from gostyle_lint.source import adapt


def _lines(findings, rule_id):
    return [f.line for f in findings if f.rule_id == rule_id]


class TestCommentDirectives(unittest.TestCase):
    """Test suppression through comments in the analyzed file."""

    CODE = """package store

var cache = map[string]string{} // gostyle:ignore global-mutable-state: read-only after init

// gostyle:ignore global-mutable-state
var other = 1

// gostyle:ignore-start global-mutable-state: legacy block
var a = 1
var b = 2
// gostyle:ignore-end

var c = 3
"""

    def setUp(self):
        self.findings = GoAnalyzer(Config()).analyze(self.CODE, "store.go")

    def test_justified_directives_remove_findings(self):
        self.assertEqual(_lines(self.findings, "global-mutable-state"), [6, 13])

    def test_unjustified_directive_is_reported(self):
        missing = [f for f in self.findings if f.rule_id == "missing-justification"]
        self.assertEqual([(f.line, f.col) for f in missing], [(5, 1)])
        self.assertEqual(missing[0].severity, Severity.WARNING)
        self.assertIn("global-mutable-state", missing[0].message)


def test_standalone_directive_skips_blank_lines_and_comments():
    code = """package store

// gostyle:ignore global-mutable-state: tuned by tests

// counter of lookups
var lookups = 0
"""

    findings = GoAnalyzer(Config()).analyze(code, "store.go")

    assert _lines(findings, "global-mutable-state") == []


def test_directive_only_covers_named_rules():
    code = """package util // gostyle:ignore package-name-format: historical name
"""

    findings = GoAnalyzer(Config()).analyze(code, "util.go")

    assert _lines(findings, "package-name-generic") == [1]


def test_wildcard_file_directive():
    code = """// gostyle:ignore-file *: generated code
package util

var cache = 1
"""

    findings = GoAnalyzer(Config()).analyze(code, "util.go")

    assert [f.rule_id for f in findings] == ["broad-suppression"]
    assert (findings[0].line, findings[0].severity) == (1, Severity.INFO)


def test_directive_without_rule_ids_is_a_wildcard():
    code = """package util

var cache = 1 // gostyle:ignore: generated
"""

    findings = GoAnalyzer(Config()).analyze(code, "util.go")

    assert _lines(findings, "global-mutable-state") == []
    assert _lines(findings, "broad-suppression") == [3]
    assert _lines(findings, "package-name-generic") == [1]


def test_engine_findings_are_never_suppressed():
    code = """// gostyle:ignore-file *: generated code
package store

// gostyle:ignore global-mutable-state
var cache = 1
"""

    findings = GoAnalyzer(Config()).analyze(code, "store.go")

    assert _lines(findings, "missing-justification") == [4]
    assert _lines(findings, "broad-suppression") == [1]
    assert _lines(findings, "global-mutable-state") == []


class TestParseDirectives(unittest.TestCase):
    """Test directive parsing on its own."""

    def _parse(self, code):
        model = adapt(code, "store.go")
        return parse_directives(model.comments, model.path, model.code_lines, model.line_count)

    def test_multiple_rule_ids(self):
        (suppression,) = self._parse("package store // gostyle:ignore a-rule, b-rule: reason\n")

        self.assertEqual(suppression.rules, ("a-rule", "b-rule"))
        self.assertEqual(suppression.justification, "reason")
        self.assertEqual((suppression.start_line, suppression.end_line), (1, 1))

    def test_unterminated_block_covers_rest_of_file(self):
        code = "package store\n\n// gostyle:ignore-start x: reason\nvar a = 1\n\nvar b = 2\n"

        with self.assertLogs("gostyle_lint", level=logging.WARNING) as logs:
            (suppression,) = self._parse(code)

        self.assertEqual((suppression.start_line, suppression.end_line), (3, 6))
        self.assertIn("never closed", logs.output[0])

    def test_stray_end_is_ignored(self):
        with self.assertLogs("gostyle_lint", level=logging.WARNING) as logs:
            suppressions = self._parse("package store\n// gostyle:ignore-end\n")

        self.assertEqual(suppressions, [])
        self.assertIn("without a matching ignore-start", logs.output[0])

    def test_ordinary_comments_are_not_directives(self):
        self.assertEqual(self._parse("package store\n// gostyle is great\n// gostyle:ignored x\n"), [])


class TestConfigSuppressions(unittest.TestCase):
    """Test [[suppressions]] entries from the config file."""

    CODE = """package store

var cache = 1

var other = 2
"""

    def test_path_glob_and_line_range(self):
        config = Config(suppressions=[
            SuppressionEntry(rule="global-mutable-state", paths=("*.go",), justification="reviewed", lines=(3, 3)),
        ])

        findings = GoAnalyzer(config).analyze(self.CODE, "store.go")

        self.assertEqual(_lines(findings, "global-mutable-state"), [5])

    def test_glob_not_matching(self):
        config = Config(suppressions=[
            SuppressionEntry(rule="global-mutable-state", paths=("vendor/**",), justification="third party"),
        ])

        findings = GoAnalyzer(config).analyze(self.CODE, "store.go")

        self.assertEqual(_lines(findings, "global-mutable-state"), [3, 5])

    def test_unjustified_entry(self):
        config = Config(suppressions=[SuppressionEntry(rule="global-mutable-state", paths=("**",), justification="")])

        findings = GoAnalyzer(config).analyze(self.CODE, "store.go")

        self.assertEqual(_lines(findings, "global-mutable-state"), [3, 5])
        self.assertEqual(_lines(findings, "missing-justification"), [1])

    def test_relative_to_root(self):
        entry = SuppressionEntry(rule="x", paths=("pkg/*.go",), justification="reason")

        matched = config_suppressions([entry], "pkg/store.go")
        unmatched = config_suppressions([entry], "other/store.go")

        self.assertEqual(len(matched), 1)
        self.assertEqual(matched[0].origin, "config")
        self.assertEqual(unmatched, [])


if __name__ == "__main__":
    unittest.main()
