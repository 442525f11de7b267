"""
Rules for detecting Go anti-patterns.

This package contains the built-in rule catalog. Rules are organized by
category (error_handling, interface_design, concurrency, naming, testing,
organization); their metadata lives in catalog.yaml.
"""

from typing import Optional

from gostyle_lint.rules import concurrency, error_handling, interface_design, naming, organization, testing
from gostyle_lint.rules.registry import (
    Hit,
    MatchContext,
    Matcher,
    MatcherSet,
    Rule,
    RuleRegistry,
    build_registry,
    load_catalog,
)

MATCHER_SETS = (
    error_handling.matchers,
    interface_design.matchers,
    concurrency.matchers,
    naming.matchers,
    testing.matchers,
    organization.matchers,
)

_default_registry: Optional[RuleRegistry] = None


def build_default_registry() -> RuleRegistry:
    """Build a fresh registry from the built-in catalog."""
    return build_registry(load_catalog(), MATCHER_SETS)


def default_registry() -> RuleRegistry:
    """The built-in registry, loaded once per process."""
    global _default_registry
    if _default_registry is None:
        _default_registry = build_default_registry()
    return _default_registry


__all__ = [
    "Hit",
    "MatchContext",
    "Matcher",
    "MatcherSet",
    "Rule",
    "RuleRegistry",
    "MATCHER_SETS",
    "build_default_registry",
    "build_registry",
    "default_registry",
    "load_catalog",
]
