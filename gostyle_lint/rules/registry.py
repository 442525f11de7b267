"""
Rule registry.

Rule metadata (identifier, category, severity, title, suggestion) is kept in
``catalog.yaml`` next to this module; the matching logic lives in one module
per category, where each matcher attaches itself to a rule identifier with
:meth:`MatcherSet.register`. :func:`build_registry` joins the two and refuses
to start on a broken rule set: a duplicate identifier, a matcher without
metadata or metadata without a matcher.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import yaml

from gostyle_lint.core.errors import ConfigError, DuplicateRuleError
from gostyle_lint.core.finding import Category, Severity
from gostyle_lint.source.units import StructuralUnit, UnitIndex, UnitKind

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).with_name("catalog.yaml")

_SUPPORTED_VERSION = 1
_REQUIRED_KEYS = ("id", "category", "severity", "title")


@dataclass(frozen=True)
class Hit:
    """
    One violation reported by a matcher.

    Attributes:
        message: Rendered message
        severity: Overrides the rule's severity (e.g. escalation by size)
        suggestion: Overrides the rule's suggestion
        line: Overrides the unit's line
        col: Overrides the unit's column
    """
    message: str
    severity: Optional[Severity] = None
    suggestion: Optional[str] = None
    line: Optional[int] = None
    col: Optional[int] = None


@dataclass(frozen=True)
class MatchContext:
    """Read-only per-file data a matcher may consult besides its unit."""
    index: UnitIndex
    options: Mapping[str, Any] = field(default_factory=dict)

    def option(self, name: str, default: Any) -> Any:
        return self.options.get(name, default)


Predicate = Callable[[StructuralUnit, MatchContext], Iterable[Hit]]


@dataclass(frozen=True)
class Matcher:
    """Unit kinds a rule looks at and the predicate run on each of them."""
    kinds: Tuple[UnitKind, ...]
    predicate: Predicate


@dataclass(frozen=True)
class Rule:
    """
    A registered rule.

    Engine rules have no matcher: their findings are produced by the
    pipeline itself (suppression checks, matcher failures).
    """
    id: str
    category: Category
    severity: Severity
    title: str
    suggestion: Optional[str] = None
    matcher: Optional[Matcher] = None
    engine: bool = False

    @property
    def kinds(self) -> Tuple[UnitKind, ...]:
        return self.matcher.kinds if self.matcher is not None else ()


class MatcherSet:
    """Matchers of one category, collected with a decorator."""

    def __init__(self, category: Category):
        self.category = category
        self._matchers: Dict[str, Matcher] = {}

    def register(self, rule_id: str, *kinds: UnitKind):
        """
        Attach the decorated predicate to ``rule_id``.

        Example:
            @matchers.register("select-empty", UnitKind.SELECT)
            def select_empty(unit, ctx):
                ...
        """
        if not kinds:
            raise ValueError(f"Matcher for '{rule_id}' must declare at least one unit kind")

        def decorator(func: Predicate) -> Predicate:
            if rule_id in self._matchers:
                raise DuplicateRuleError(rule_id)
            self._matchers[rule_id] = Matcher(tuple(kinds), func)
            return func

        return decorator

    def items(self) -> List[Tuple[str, Matcher]]:
        return sorted(self._matchers.items())

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._matchers

    def __len__(self) -> int:
        return len(self._matchers)


class RuleRegistry:
    """Append-only set of rules keyed by identifier."""

    def __init__(self):
        self._rules: Dict[str, Rule] = {}

    def register(self, rule: Rule):
        """
        Add a rule.

        Raises:
            DuplicateRuleError: If a rule with the same identifier exists
        """
        if rule.id in self._rules:
            raise DuplicateRuleError(rule.id)
        self._rules[rule.id] = rule

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def all(self) -> List[Rule]:
        """All rules ordered by (category, identifier)."""
        return sorted(self._rules.values(), key=lambda rule: (rule.category.value, rule.id))

    def enabled(self, config) -> List[Rule]:
        """Rules selected by ``config``; engine rules are always enabled."""
        return [rule for rule in self.all() if rule.engine or config.is_rule_enabled(rule.id, rule.category)]

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.all())


def load_catalog(path: Path = CATALOG_PATH) -> List[dict]:
    """
    Load and validate rule metadata.

    Args:
        path: Path to a catalog YAML file

    Returns:
        Catalog entries in file order

    Raises:
        ConfigError: If the file is malformed
    """
    with open(path) as f:
        spec = yaml.safe_load(f)

    if not isinstance(spec, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    version = spec.get("version")
    if version != _SUPPORTED_VERSION:
        raise ConfigError(f"Unsupported catalog version {version!r} in {path} (expected {_SUPPORTED_VERSION})")
    rules = spec.get("rules")
    if not isinstance(rules, list):
        raise ConfigError(f"{path}: 'rules' must be a list")

    categories = {c.value for c in Category}
    severities = {s.value for s in Severity}
    for idx, entry in enumerate(rules):
        if not isinstance(entry, dict):
            raise ConfigError(f"{path}: rules[{idx}]: expected a mapping, got {type(entry).__name__}")
        missing = [key for key in _REQUIRED_KEYS if key not in entry]
        if missing:
            raise ConfigError(f"{path}: rules[{idx}]: missing required keys {missing}")
        if entry["category"] not in categories:
            raise ConfigError(f"{path}: rule '{entry['id']}': unknown category '{entry['category']}'")
        if entry["severity"] not in severities:
            raise ConfigError(f"{path}: rule '{entry['id']}': unknown severity '{entry['severity']}'")
    return rules


def build_registry(entries: Sequence[dict], matcher_sets: Iterable[MatcherSet]) -> RuleRegistry:
    """
    Join catalog metadata with matchers.

    Raises:
        DuplicateRuleError: If an identifier appears twice
        ConfigError: If a rule has no matcher or a matcher has no metadata
    """
    matchers: Dict[str, Matcher] = {}
    matcher_categories: Dict[str, Category] = {}
    for matcher_set in matcher_sets:
        for rule_id, matcher in matcher_set.items():
            if rule_id in matchers:
                raise DuplicateRuleError(rule_id)
            matchers[rule_id] = matcher
            matcher_categories[rule_id] = matcher_set.category

    registry = RuleRegistry()
    for entry in entries:
        rule_id = entry["id"]
        engine = bool(entry.get("engine", False))
        matcher = matchers.pop(rule_id, None)
        if matcher is None and not engine and rule_id not in registry:
            raise ConfigError(f"Rule '{rule_id}' has no matcher")
        if matcher is not None and engine:
            raise ConfigError(f"Engine rule '{rule_id}' must not have a matcher")
        category = Category(entry["category"])
        if matcher is not None and matcher_categories[rule_id] != category:
            raise ConfigError(f"Rule '{rule_id}' is catalogued as {category.value} "
                              f"but its matcher is in {matcher_categories[rule_id].value}")
        registry.register(Rule(
            id=rule_id,
            category=category,
            severity=Severity(entry["severity"]),
            title=entry["title"],
            suggestion=entry.get("suggestion"),
            matcher=matcher,
            engine=engine,
        ))

    if matchers:
        raise ConfigError(f"Matchers without catalog entries: {', '.join(sorted(matchers))}")
    logger.debug("Registered %d rules", len(registry))
    return registry
