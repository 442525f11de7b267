"""
Suppression resolver.

Suppressions come from comment directives in the analyzed file::

    // gostyle:ignore rule-id[, rule-id...]: justification
    // gostyle:ignore-start rule-id: justification
    // gostyle:ignore-end
    // gostyle:ignore-file rule-id: justification

and from ``[[suppressions]]`` tables in the configuration. A suppression
only takes effect when it carries a justification; one without is reported
as ``missing-justification`` and removes nothing. A wildcard (``*``)
suppression works but is always reported as ``broad-suppression``.
"""

import fnmatch
import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from gostyle_lint.core.config import Config, SuppressionEntry
from gostyle_lint.core.finding import Finding
from gostyle_lint.rules.registry import RuleRegistry
from gostyle_lint.source.adapter import SourceModel
from gostyle_lint.source.lexer import Comment

logger = logging.getLogger(__name__)

WILDCARD = "*"
MISSING_JUSTIFICATION = "missing-justification"
BROAD_SUPPRESSION = "broad-suppression"

_DIRECTIVE = re.compile(r"^\s*gostyle:(ignore-start|ignore-end|ignore-file|ignore)(?![\w-])(.*)$", re.DOTALL)

_END_OF_FILE = sys.maxsize


@dataclass(frozen=True)
class Suppression:
    """
    An exemption of some rules over a line range of one file.

    Attributes:
        rules: Rule identifiers, or ``("*",)`` for every rule
        path: File the suppression applies to
        start_line: First covered line
        end_line: Last covered line (inclusive)
        justification: Reason given for the exemption, may be empty
        line: Where the suppression is declared
        col: Column of the declaration
        origin: ``comment`` or ``config``
    """
    rules: Tuple[str, ...]
    path: str
    start_line: int
    end_line: int
    justification: str
    line: int
    col: int = 1
    origin: str = "comment"

    @property
    def justified(self) -> bool:
        return bool(self.justification)

    @property
    def wildcard(self) -> bool:
        return WILDCARD in self.rules

    def covers(self, finding: Finding) -> bool:
        if finding.path != self.path or not self.start_line <= finding.line <= self.end_line:
            return False
        return self.wildcard or finding.rule_id in self.rules

    def describe(self) -> str:
        return ", ".join(self.rules)


def _split_directive(rest: str) -> Tuple[Tuple[str, ...], str]:
    """Split ``rule-a, rule-b: justification`` into ids and justification."""
    ids, _, justification = rest.partition(":")
    rules = tuple(part.strip() for part in ids.split(",") if part.strip())
    # A directive naming no rule suppresses everything.
    return rules or (WILDCARD,), justification.strip()


def _next_code_line(after: int, code_lines: Sequence[int]) -> Optional[int]:
    for line in code_lines:
        if line > after:
            return line
    return None


def parse_directives(comments: Iterable[Comment], path: str, code_lines: Iterable[int] = (),
                     line_count: int = _END_OF_FILE) -> List[Suppression]:
    """
    Collect suppression directives from a file's comments.

    Args:
        comments: Comments in source order
        path: Path of the file the comments belong to
        code_lines: Lines that hold code; a standalone directive covers the
            first of them after the comment
        line_count: Number of lines in the file, closes an unterminated
            ``ignore-start`` block

    Returns:
        Suppressions in declaration order
    """
    code_lines = sorted(code_lines)
    suppressions: List[Suppression] = []
    open_blocks: List[Tuple[Comment, Tuple[str, ...], str]] = []

    for comment in comments:
        match = _DIRECTIVE.match(comment.body)
        if match is None:
            continue
        kind, rest = match.group(1), match.group(2)

        if kind == "ignore-end":
            if not open_blocks:
                logger.warning("%s:%d: gostyle:ignore-end without a matching ignore-start", path, comment.line)
                continue
            start, rules, justification = open_blocks.pop()
            suppressions.append(Suppression(rules, path, start.line, comment.line, justification,
                                            start.line, start.col))
            continue

        rules, justification = _split_directive(rest)
        if kind == "ignore-start":
            open_blocks.append((comment, rules, justification))
        elif kind == "ignore-file":
            suppressions.append(Suppression(rules, path, 1, _END_OF_FILE, justification, comment.line, comment.col))
        elif comment.trailing:
            suppressions.append(Suppression(rules, path, comment.line, comment.line, justification,
                                            comment.line, comment.col))
        else:
            target = _next_code_line(comment.end_line, code_lines)
            if target is None:
                target = comment.line
            suppressions.append(Suppression(rules, path, target, target, justification, comment.line, comment.col))

    for start, rules, justification in open_blocks:
        logger.warning("%s:%d: gostyle:ignore-start is never closed; it covers the rest of the file", path,
                       start.line)
        suppressions.append(Suppression(rules, path, start.line, line_count, justification, start.line, start.col))

    suppressions.sort(key=lambda s: (s.line, s.col))
    return suppressions


def _relative(path: str, root: Optional[Path]) -> str:
    if root is None:
        return Path(path).as_posix()
    try:
        return Path(path).resolve().relative_to(root).as_posix()
    except ValueError:
        return Path(path).as_posix()


def config_suppressions(entries: Iterable[SuppressionEntry], path: str,
                        root: Optional[Path] = None) -> List[Suppression]:
    """
    Config file suppressions whose ``paths`` globs match ``path``.

    Globs are matched against the path relative to ``root`` (the directory
    of the config file) and against the path as given.
    """
    candidates = {Path(path).as_posix(), _relative(path, root)}
    suppressions = []
    for entry in entries:
        if not any(fnmatch.fnmatch(candidate, pattern) for pattern in entry.paths for candidate in candidates):
            continue
        start, end = entry.lines if entry.lines is not None else (1, _END_OF_FILE)
        suppressions.append(Suppression(
            rules=(entry.rule,),
            path=path,
            start_line=start,
            end_line=end,
            justification=entry.justification,
            line=start,
            origin="config",
        ))
    return suppressions


class SuppressionResolver:
    """Applies suppressions to the candidate findings of one file."""

    def __init__(self, config: Config, registry: RuleRegistry):
        self.config = config
        self.registry = registry
        self._engine_rules = frozenset(rule.id for rule in registry.all() if rule.engine)

    def suppressions_for(self, model: SourceModel) -> List[Suppression]:
        """Directive and configured suppressions applying to ``model``'s file."""
        suppressions = parse_directives(model.comments, model.path, model.code_lines, model.line_count)
        suppressions.extend(config_suppressions(self.config.suppressions, model.path, self.config.root))
        for suppression in suppressions:
            unknown = [r for r in suppression.rules if r != WILDCARD and r not in self.registry]
            if unknown:
                logger.warning("%s:%d: suppression names unknown rule(s) %s", suppression.path, suppression.line,
                               ", ".join(unknown))
        return suppressions

    def resolve(self, findings: Iterable[Finding], suppressions: Sequence[Suppression]) -> List[Finding]:
        """
        Remove covered findings and report problems with the suppressions.

        Args:
            findings: Candidate findings of one file
            suppressions: Suppressions of the same file

        Returns:
            Findings that survive, followed by ``missing-justification`` and
            ``broad-suppression`` findings for the suppressions themselves
        """
        justified = [s for s in suppressions if s.justified]
        kept = []
        for finding in findings:
            if finding.rule_id in self._engine_rules:
                kept.append(finding)
                continue
            cover = next((s for s in justified if s.covers(finding)), None)
            if cover is None:
                kept.append(finding)
            else:
                logger.debug("%s:%d: %s suppressed by %s at line %d", finding.path, finding.line, finding.rule_id,
                             cover.origin, cover.line)

        for suppression in suppressions:
            if not suppression.justified:
                kept.append(self._engine_finding(
                    MISSING_JUSTIFICATION, suppression,
                    f"suppression of {suppression.describe()} has no justification and is ignored"))
            if suppression.wildcard:
                kept.append(self._engine_finding(BROAD_SUPPRESSION, suppression,
                                                 "wildcard suppression silences every rule"))
        return kept

    def _engine_finding(self, rule_id: str, suppression: Suppression, message: str) -> Finding:
        rule = self.registry.get(rule_id)
        return Finding(
            rule_id=rule_id,
            category=rule.category,
            severity=self.config.get_rule_severity(rule_id, rule.severity),
            path=suppression.path,
            line=suppression.line,
            col=suppression.col,
            message=message,
            suggestion=rule.suggestion,
        )
