"""
Matcher engine.

Runs rule matchers over the structural units of one file. Every unit of the
file is extracted before any rule runs, and matchers only read units and the
per-file index, so rules can be evaluated in any order and give the same
findings.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from gostyle_lint.core.config import Config
from gostyle_lint.core.errors import RuleInternalError
from gostyle_lint.core.finding import Finding
from gostyle_lint.core.result import RULE_INTERNAL_ERROR
from gostyle_lint.rules.registry import Hit, MatchContext, Rule, RuleRegistry
from gostyle_lint.source.units import StructuralUnit, UnitIndex

logger = logging.getLogger(__name__)


class MatcherEngine:
    """Evaluates rules against units and turns their hits into findings."""

    def __init__(self, config: Config, registry: RuleRegistry):
        self.config = config
        self.registry = registry

    def run(self, rules: Iterable[Rule], units: Sequence[StructuralUnit]) -> List[Finding]:
        """
        Evaluate every rule that has a matcher against one file's units.

        Args:
            rules: Enabled rules; engine rules are skipped
            units: All units of a single file

        Returns:
            Candidate findings, before suppression and de-duplication
        """
        index = UnitIndex(units)
        findings: List[Finding] = []
        for rule in rules:
            if rule.matcher is None:
                continue
            findings.extend(self.evaluate(rule, units, index))
        return findings

    def evaluate(self, rule: Rule, units: Sequence[StructuralUnit],
                 index: Optional[UnitIndex] = None) -> List[Finding]:
        """
        Evaluate one rule over the units whose kind its matcher accepts.

        A matcher that raises does not abort the run: the failure becomes a
        ``rule-internal-error`` finding at the unit it failed on and the
        rule moves on to the next unit.
        """
        if rule.matcher is None:
            return []
        if index is None:
            index = UnitIndex(units)

        kinds = set(rule.matcher.kinds)
        ctx = MatchContext(index, self.config.get_rule_options(rule.id))
        findings: List[Finding] = []
        for unit in units:
            if unit.kind not in kinds:
                continue
            try:
                hits = list(rule.matcher.predicate(unit, ctx) or ())
            except Exception as e:
                error = RuleInternalError(rule.id, unit.kind.value, e)
                logger.error("%s:%d:%d: %s", unit.path, unit.line, unit.col, error)
                logger.debug("Matcher traceback for '%s'", rule.id, exc_info=True)
                findings.append(self.internal_error(error, unit))
                continue
            findings.extend(self._finding(rule, unit, hit) for hit in hits)
        return findings

    def internal_error(self, error: RuleInternalError, unit: StructuralUnit) -> Finding:
        """Finding reported in place of a matcher that failed on ``unit``."""
        rule = self.registry.get(RULE_INTERNAL_ERROR)
        return Finding(
            rule_id=RULE_INTERNAL_ERROR,
            category=rule.category,
            severity=self.config.get_rule_severity(RULE_INTERNAL_ERROR, rule.severity),
            path=unit.path,
            line=unit.line,
            col=unit.col,
            message=str(error),
            suggestion=rule.suggestion,
        )

    def _finding(self, rule: Rule, unit: StructuralUnit, hit: Hit) -> Finding:
        # A severity chosen by the matcher itself (escalation) wins over configuration.
        severity = hit.severity or self.config.get_rule_severity(rule.id, rule.severity)
        return Finding(
            rule_id=rule.id,
            category=rule.category,
            severity=severity,
            path=unit.path,
            line=hit.line if hit.line is not None else unit.line,
            col=hit.col if hit.col is not None else unit.col,
            message=hit.message,
            suggestion=hit.suggestion if hit.suggestion is not None else rule.suggestion,
        )
