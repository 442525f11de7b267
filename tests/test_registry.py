"""Tests for the rule catalog and registry."""

import pytest

from gostyle_lint.core.config import Config
from gostyle_lint.core.errors import ConfigError, DuplicateRuleError
from gostyle_lint.core.finding import Category, Severity
from gostyle_lint.rules import MatcherSet, Rule, RuleRegistry, build_registry, default_registry, load_catalog
from gostyle_lint.rules.registry import Hit
from gostyle_lint.source.units import UnitKind

ENGINE_RULES = {"missing-justification", "broad-suppression", "rule-internal-error"}


def test_builtin_catalog():
    registry = default_registry()

    assert len(registry) == 54
    assert {rule.category for rule in registry} == set(Category)
    assert {rule.id for rule in registry if rule.engine} == ENGINE_RULES
    assert all(rule.matcher is not None for rule in registry if not rule.engine)


def test_rules_are_ordered_by_category_then_id():
    rules = default_registry().all()

    keys = [(rule.category.value, rule.id) for rule in rules]
    assert keys == sorted(keys)


def test_rule_metadata():
    rule = default_registry().get("goroutine-lifecycle")

    assert rule.category == Category.CONCURRENCY
    assert rule.severity == Severity.WARNING
    assert rule.title
    assert UnitKind.GO in rule.kinds
    assert default_registry().get("no-such-rule") is None


def test_enabled_rules_follow_config():
    registry = default_registry()

    only_naming = registry.enabled(Config(enabled_categories={"naming"}))
    assert {rule.category for rule in only_naming if not rule.engine} == {Category.NAMING}
    assert ENGINE_RULES <= {rule.id for rule in only_naming}

    without = registry.enabled(Config(disabled_rules={"select-empty"}))
    assert "select-empty" not in {rule.id for rule in without}

    single = registry.enabled(Config(enabled_rules={"dot-import"}))
    assert {rule.id for rule in single} == {"dot-import"} | ENGINE_RULES


def test_duplicate_registration():
    registry = RuleRegistry()
    rule = Rule("x", Category.NAMING, Severity.INFO, "X")
    registry.register(rule)

    with pytest.raises(DuplicateRuleError, match="'x'"):
        registry.register(rule)


def test_duplicate_matcher():
    matchers = MatcherSet(Category.NAMING)

    @matchers.register("x", UnitKind.FUNCTION)
    def first(unit, ctx):
        yield Hit("first")

    with pytest.raises(DuplicateRuleError):
        @matchers.register("x", UnitKind.FUNCTION)
        def second(unit, ctx):
            yield Hit("second")


def test_matcher_needs_a_kind():
    with pytest.raises(ValueError):
        MatcherSet(Category.NAMING).register("x")


class TestBuildRegistry:
    """Test joining catalog entries with matchers."""

    def _matchers(self, *rule_ids, category=Category.NAMING):
        matchers = MatcherSet(category)
        for rule_id in rule_ids:
            matchers.register(rule_id, UnitKind.FUNCTION)(lambda unit, ctx: ())
        return matchers

    def _entry(self, rule_id, **extra):
        entry = {"id": rule_id, "category": "naming", "severity": "info", "title": rule_id}
        entry.update(extra)
        return entry

    def test_joins_metadata_and_matchers(self):
        registry = build_registry([self._entry("a"), self._entry("b", engine=True)], [self._matchers("a")])

        assert registry.get("a").matcher is not None
        assert registry.get("b").engine

    def test_rule_without_matcher(self):
        with pytest.raises(ConfigError, match="no matcher"):
            build_registry([self._entry("a")], [])

    def test_matcher_without_rule(self):
        with pytest.raises(ConfigError, match="without catalog entries: b"):
            build_registry([self._entry("a")], [self._matchers("a", "b")])

    def test_duplicate_catalog_entry(self):
        with pytest.raises(DuplicateRuleError):
            build_registry([self._entry("a"), self._entry("a")], [self._matchers("a")])

    def test_category_mismatch(self):
        with pytest.raises(ConfigError, match="catalogued as naming"):
            build_registry([self._entry("a")], [self._matchers("a", category=Category.TESTING)])


class TestLoadCatalog:
    """Test catalog file validation."""

    def test_wrong_version(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("version: 2\nrules: []\n")

        with pytest.raises(ConfigError, match="Unsupported catalog version 2"):
            load_catalog(path)

    def test_missing_keys(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("version: 1\nrules:\n  - id: a\n    category: naming\n")

        with pytest.raises(ConfigError, match="missing required keys"):
            load_catalog(path)

    def test_unknown_severity(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("version: 1\nrules:\n  - {id: a, category: naming, severity: fatal, title: A}\n")

        with pytest.raises(ConfigError, match="unknown severity 'fatal'"):
            load_catalog(path)
