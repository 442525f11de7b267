"""Tests for the matcher engine."""

import logging

from gostyle_lint.analyzers.matcher import MatcherEngine
from gostyle_lint.core.config import Config
from gostyle_lint.core.finding import Category, Severity
from gostyle_lint.rules import MatcherSet, build_registry, default_registry
from gostyle_lint.rules.registry import Hit
from gostyle_lint.source import UnitKind, adapt

CODE = """package store

func first() {}

func second() {}
"""


def _registry(matchers):
    entries = [
        {"id": "function-seen", "category": "naming", "severity": "info", "title": "Function seen"},
        {"id": "rule-internal-error", "category": "organization", "severity": "error",
         "title": "A rule failed", "engine": True},
    ]
    return build_registry(entries, [matchers])


def test_findings_take_unit_position_and_rule_metadata():
    matchers = MatcherSet(Category.NAMING)

    @matchers.register("function-seen", UnitKind.FUNCTION)
    def function_seen(unit, ctx):
        yield Hit(f"saw {unit['name']}")

    registry = _registry(matchers)
    engine = MatcherEngine(Config(), registry)

    findings = engine.run(registry.all(), adapt(CODE, "store.go").units)

    assert [(f.line, f.col, f.message) for f in findings] == [(3, 1, "saw first"), (5, 1, "saw second")]
    assert all(f.severity == Severity.INFO and f.category == Category.NAMING for f in findings)


def test_hit_overrides_and_configured_severity():
    matchers = MatcherSet(Category.NAMING)

    @matchers.register("function-seen", UnitKind.FUNCTION)
    def function_seen(unit, ctx):
        if unit["name"] == "first":
            yield Hit("escalated", severity=Severity.ERROR, line=4, col=7, suggestion="do it")
        else:
            yield Hit("plain")

    registry = _registry(matchers)
    config = Config(rule_severities={"function-seen": Severity.WARNING})
    findings = MatcherEngine(config, registry).run(registry.all(), adapt(CODE, "store.go").units)

    escalated, plain = findings
    assert (escalated.severity, escalated.line, escalated.col, escalated.suggestion) == (Severity.ERROR, 4, 7, "do it")
    assert plain.severity == Severity.WARNING


def test_failing_matcher_becomes_internal_error(caplog):
    matchers = MatcherSet(Category.NAMING)

    @matchers.register("function-seen", UnitKind.FUNCTION)
    def function_seen(unit, ctx):
        if unit["name"] == "first":
            raise ValueError("boom")
        yield Hit("ok")

    registry = _registry(matchers)
    engine = MatcherEngine(Config(), registry)

    with caplog.at_level(logging.ERROR, logger="gostyle_lint"):
        findings = engine.run(registry.all(), adapt(CODE, "store.go").units)

    internal, ok = findings
    assert internal.rule_id == "rule-internal-error"
    assert internal.severity == Severity.ERROR
    assert internal.line == 3
    assert "Rule 'function-seen' failed on function unit (ValueError: boom)" == internal.message
    assert ok.message == "ok"
    assert "function-seen" in caplog.text


def test_rule_options_reach_matchers():
    matchers = MatcherSet(Category.NAMING)

    @matchers.register("function-seen", UnitKind.FUNCTION)
    def function_seen(unit, ctx):
        if unit["name"] in ctx.option("names", ()):
            yield Hit("listed")

    registry = _registry(matchers)
    config = Config(rule_options={"function-seen": {"names": ["second"]}})
    findings = MatcherEngine(config, registry).run(registry.all(), adapt(CODE, "store.go").units)

    assert [f.line for f in findings] == [5]


def test_rule_order_does_not_change_findings():
    registry = default_registry()
    units = adapt(CODE.replace("first", "Get_Item"), "store.go").units
    engine = MatcherEngine(Config(), registry)

    forward = engine.run(registry.all(), units)
    backward = engine.run(list(reversed(registry.all())), units)

    assert sorted(forward, key=lambda f: f.sort_key) == sorted(backward, key=lambda f: f.sort_key)
