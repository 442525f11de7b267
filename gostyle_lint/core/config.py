"""Configuration management for gostyle_lint."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import toml

from gostyle_lint.core.errors import ConfigError
from gostyle_lint.core.finding import Category, Severity

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".gostyle_lint.toml"
OUTPUT_FORMATS = ("text", "structured", "sarif")

_OFF_VALUES = ("off", "false", "disabled")


@dataclass(frozen=True)
class SuppressionEntry:
    """A ``[[suppressions]]`` table from the config file."""
    rule: str
    paths: Tuple[str, ...]
    justification: str
    lines: Optional[Tuple[int, int]] = None


@dataclass
class Config:
    """
    Configuration for gostyle_lint analysis.

    Attributes:
        enabled_categories: Categories to run (None = all categories)
        enabled_rules: Rule IDs to enable on top of enabled categories
            (None = every rule of an enabled category)
        disabled_rules: Set of rule IDs to disable
        rule_severities: Override severities for specific rules
        rule_options: Per-rule thresholds, from ``[options.<rule-id>]``
        treat_warnings_as_errors: Whether warnings make the run fail
        show_suggestions: Whether to show fix suggestions in text output
        output_format: Output format (text, structured, sarif)
        jobs: Worker threads for file analysis (0 = one per CPU)
        exclude: Glob patterns of paths not to analyze
        suppressions: Suppressions declared in the config file
        root: Directory of the config file; relative suppression globs
            are matched against paths relative to it
    """
    enabled_categories: Optional[Set[str]] = None
    enabled_rules: Optional[Set[str]] = None
    disabled_rules: Set[str] = field(default_factory=set)
    rule_severities: Dict[str, Severity] = field(default_factory=dict)
    rule_options: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    treat_warnings_as_errors: bool = False
    show_suggestions: bool = False
    output_format: str = "text"
    jobs: int = 0
    exclude: List[str] = field(default_factory=list)
    suppressions: List[SuppressionEntry] = field(default_factory=list)
    root: Optional[Path] = None

    @classmethod
    def from_file(cls, config_path: Optional[Path] = None) -> "Config":
        """
        Load configuration from a TOML file.

        If config_path is None, searches for .gostyle_lint.toml in current
        directory and parent directories.

        Raises:
            ConfigError: If the file cannot be parsed or holds invalid values
        """
        if config_path is None:
            config_path = cls._find_config_file()

        if config_path is None or not config_path.exists():
            return cls()

        try:
            with open(config_path, "r") as f:
                data = toml.load(f)
        except toml.TomlDecodeError as e:
            raise ConfigError(f"{config_path}: {e}") from e

        logger.info("Loaded configuration from %s", config_path)
        config = cls._from_dict(data, source=str(config_path))
        config.root = config_path.resolve().parent
        return config

    @classmethod
    def _from_dict(cls, data: dict, source: str = "<config>") -> "Config":
        """Create Config from dictionary."""
        config = cls()

        # Parse rules section: rule-name = "off" | "error" | "warning" | "info"
        rules = _table(data, "rules", source)
        for rule_id, value in rules.items():
            if not isinstance(value, str):
                raise ConfigError(f"{source}: [rules] {rule_id} must be a string, got {type(value).__name__}")
            value = value.lower()
            if value in _OFF_VALUES:
                config.disabled_rules.add(rule_id)
            elif value in {s.value for s in Severity}:
                config.rule_severities[rule_id] = Severity(value)
            else:
                raise ConfigError(f"{source}: [rules] {rule_id} = {value!r} is not off/error/warning/info")

        categories = _table(data, "categories", source)
        if "enabled" in categories:
            config.enabled_categories = set(_string_list(categories["enabled"], "[categories] enabled", source))
            unknown = config.enabled_categories - {c.value for c in Category}
            if unknown:
                raise ConfigError(f"{source}: unknown categories {sorted(unknown)}")

        output = _table(data, "output", source)
        if "format" in output:
            config.output_format = output["format"]
            if config.output_format not in OUTPUT_FORMATS:
                raise ConfigError(f"{source}: [output] format must be one of {', '.join(OUTPUT_FORMATS)}")
        if "treat_warnings_as_errors" in output:
            config.treat_warnings_as_errors = _bool(output["treat_warnings_as_errors"],
                                                    "[output] treat_warnings_as_errors", source)
        if "show_suggestions" in output:
            config.show_suggestions = _bool(output["show_suggestions"], "[output] show_suggestions", source)

        analysis = _table(data, "analysis", source)
        if "jobs" in analysis:
            jobs = analysis["jobs"]
            if not isinstance(jobs, int) or isinstance(jobs, bool) or jobs < 0:
                raise ConfigError(f"{source}: [analysis] jobs must be a non-negative integer")
            config.jobs = jobs
        if "exclude" in analysis:
            config.exclude = _string_list(analysis["exclude"], "[analysis] exclude", source)

        for rule_id, options in _table(data, "options", source).items():
            if not isinstance(options, dict):
                raise ConfigError(f"{source}: [options.{rule_id}] must be a table")
            config.rule_options[rule_id] = dict(options)

        config.suppressions = [_suppression(entry, idx, source)
                               for idx, entry in enumerate(data.get("suppressions", []))]
        return config

    @staticmethod
    def _find_config_file() -> Optional[Path]:
        """Search for .gostyle_lint.toml in current and parent directories."""
        current = Path.cwd()

        while True:
            config_path = current / CONFIG_FILENAME
            if config_path.exists():
                return config_path

            # Check if we've reached the root
            parent = current.parent
            if parent == current:
                break
            current = parent

        return None

    def is_rule_enabled(self, rule_id: str, category=None) -> bool:
        """Check if a rule is enabled."""
        if rule_id in self.disabled_rules:
            return False
        if self.enabled_rules is not None and rule_id in self.enabled_rules:
            return True
        if self.enabled_categories is not None:
            value = category.value if isinstance(category, Category) else category
            return value in self.enabled_categories
        return self.enabled_rules is None

    def get_rule_severity(self, rule_id: str, default: Severity = Severity.WARNING) -> Severity:
        """Get the severity for a rule, with fallback to default."""
        return self.rule_severities.get(rule_id, default)

    def get_rule_options(self, rule_id: str) -> Dict[str, Any]:
        return self.rule_options.get(rule_id, {})


def _table(data: dict, name: str, source: str) -> dict:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"{source}: [{name}] must be a table")
    return value


def _string_list(value: Any, where: str, source: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{source}: {where} must be a list of strings")
    return list(value)


def _bool(value: Any, where: str, source: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{source}: {where} must be true or false")
    return value


def _suppression(entry: Any, idx: int, source: str) -> SuppressionEntry:
    where = f"{source}: suppressions[{idx}]"
    if not isinstance(entry, dict):
        raise ConfigError(f"{where}: expected a table")
    if "rule" not in entry or not isinstance(entry["rule"], str):
        raise ConfigError(f"{where}: 'rule' is required")
    paths = entry.get("paths", ["**"])
    if isinstance(paths, str):
        paths = [paths]
    paths = _string_list(paths, f"suppressions[{idx}] paths", source)

    lines = entry.get("lines")
    if lines is not None:
        if (not isinstance(lines, list) or len(lines) != 2 or not all(isinstance(n, int) for n in lines)
                or lines[0] > lines[1]):
            raise ConfigError(f"{where}: 'lines' must be [start, end]")
        lines = (lines[0], lines[1])

    justification = entry.get("justification", "")
    if not isinstance(justification, str):
        raise ConfigError(f"{where}: 'justification' must be a string")
    return SuppressionEntry(rule=entry["rule"], paths=tuple(paths), justification=justification.strip(), lines=lines)
