"""Exception hierarchy for gostyle_lint.

Tooling faults (a file that cannot be read or decomposed, a broken rule set,
a malformed configuration) are kept apart from policy findings so callers
can tell "your code violates a rule" from "the tool could not analyze this".
"""

from typing import Optional


class GostyleLintError(Exception):
    """Base class for all errors raised by gostyle_lint."""


class ParseError(GostyleLintError):
    """Source text could not be decomposed into structural units."""

    def __init__(self, message: str, path: str = "<source>", line: int = 1, col: int = 1):
        super().__init__(f"{path}:{line}:{col}: {message}")
        self.message = message
        self.path = path
        self.line = line
        self.col = col


class DuplicateRuleError(GostyleLintError):
    """A rule identifier was registered twice."""

    def __init__(self, rule_id: str):
        super().__init__(f"Rule '{rule_id}' is already registered")
        self.rule_id = rule_id


class ConfigError(GostyleLintError, ValueError):
    """Configuration file or rule catalog is malformed."""


class RuleInternalError(GostyleLintError):
    """A matcher failed on a specific unit.

    Raised inside the matcher engine and converted into a
    ``rule-internal-error`` finding; it never aborts the run.
    """

    def __init__(self, rule_id: str, unit_kind: str, cause: Optional[BaseException] = None):
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown failure"
        super().__init__(f"Rule '{rule_id}' failed on {unit_kind} unit ({detail})")
        self.rule_id = rule_id
        self.unit_kind = unit_kind
        self.cause = cause
