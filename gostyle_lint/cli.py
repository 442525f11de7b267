"""Command-line interface for gostyle_lint."""

import sys
import threading
from pathlib import Path
from typing import Optional

import click

from gostyle_lint import __version__
from gostyle_lint.analyzers.runner import LintRunner
from gostyle_lint.core.config import OUTPUT_FORMATS, Config
from gostyle_lint.core.errors import ConfigError, DuplicateRuleError
from gostyle_lint.core.finding import Category
from gostyle_lint.core.log import setup_logging, verbosity_to_level
from gostyle_lint.core.report import EXIT_TOOL_FAULT, Reporter
from gostyle_lint.rules import default_registry
from gostyle_lint.rules.registry import RuleRegistry


@click.command()
@click.version_option(version=__version__)
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to config file (.gostyle_lint.toml)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS),
    default=None,
    help="Output format (default: text, or [output] format from the config file)",
)
@click.option(
    "--enable-category",
    type=click.Choice([c.value for c in Category]),
    multiple=True,
    help="Only run rules of this category (can be used multiple times)",
)
@click.option(
    "--enable-rule",
    multiple=True,
    help="Enable specific rule (can be used multiple times)",
)
@click.option(
    "--disable-rule",
    multiple=True,
    help="Disable specific rule (can be used multiple times)",
)
@click.option(
    "--warnings-as-errors",
    is_flag=True,
    help="Exit with status 1 when warnings are found",
)
@click.option(
    "--jobs",
    "-j",
    type=click.IntRange(min=0),
    default=None,
    help="Number of files analyzed in parallel (0 = one per CPU)",
)
@click.option(
    "--suggestions",
    is_flag=True,
    help="Show fix suggestions in text output",
)
@click.option(
    "--list-rules",
    "list_rules_flag",
    is_flag=True,
    help="List all available rules and exit",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Log progress to stderr (-v for info, -vv for debug)",
)
def main(
    paths: tuple,
    config: Optional[str],
    output_format: Optional[str],
    enable_category: tuple,
    enable_rule: tuple,
    disable_rule: tuple,
    warnings_as_errors: bool,
    jobs: Optional[int],
    suggestions: bool,
    list_rules_flag: bool,
    verbose: int,
):
    """
    Gostyle-Lint - Static analyzer for Go style and idioms.

    Checks Go source files against rules on error handling, interface
    design, concurrency, naming, testing and code organization.

    Exit status is 0 when no blocking findings were reported, 1 when errors
    (or warnings with --warnings-as-errors) were found, and 2 when a file
    could not be analyzed, the configuration is invalid, or the run was
    interrupted. An interrupted run still reports the files it finished
    and lists the ones it skipped.

    Examples:

        # Analyze a package directory
        gostyle-lint ./internal/server

        # Only concurrency rules
        gostyle-lint --enable-category=concurrency .

        # Output as JSON
        gostyle-lint --format=structured . > report.json
    """
    setup_logging(verbosity_to_level(verbose))

    try:
        registry = default_registry()
    except (ConfigError, DuplicateRuleError) as e:
        click.echo(f"Error: broken rule catalog: {e}", err=True)
        sys.exit(EXIT_TOOL_FAULT)

    if list_rules_flag:
        _print_rules(registry)
        sys.exit(0)

    if not paths:
        raise click.UsageError("Provide at least one file or directory to analyze")

    # Load configuration
    try:
        cfg = Config.from_file(Path(config) if config else None)
    except ConfigError as e:
        click.echo(f"Error: invalid configuration: {e}", err=True)
        sys.exit(EXIT_TOOL_FAULT)

    # Override config with CLI options
    if output_format:
        cfg.output_format = output_format
    if enable_category:
        cfg.enabled_categories = set(enable_category)
    if enable_rule:
        cfg.enabled_rules = set(enable_rule)
    if disable_rule:
        cfg.disabled_rules |= set(disable_rule)
    if warnings_as_errors:
        cfg.treat_warnings_as_errors = True
    if jobs is not None:
        cfg.jobs = jobs
    if suggestions:
        cfg.show_suggestions = True

    cancel_event = threading.Event()
    runner = LintRunner(cfg, registry)
    try:
        run = runner.run(paths, cancel_event)
    except KeyboardInterrupt:
        cancel_event.set()
        click.echo("Interrupted", err=True)
        sys.exit(EXIT_TOOL_FAULT)

    reporter = Reporter(
        output_format=cfg.output_format,
        show_suggestions=cfg.show_suggestions,
        treat_warnings_as_errors=cfg.treat_warnings_as_errors,
        rule_titles={rule.id: rule.title for rule in registry.all()},
    )
    exit_code = reporter.report(run, sys.stdout)
    sys.exit(exit_code)


def _print_rules(registry: RuleRegistry):
    """Print all available rules."""
    click.echo("Available Rules:\n")

    # Group by category
    by_category = {}
    for rule in registry.all():
        by_category.setdefault(rule.category.value, []).append(rule)

    # Print by category
    for category, category_rules in sorted(by_category.items()):
        click.echo(f"{category.upper()}:")
        for rule in category_rules:
            click.echo(f"  {rule.id:<30} [{rule.severity.value:>7}]  {rule.title}")
        click.echo()


if __name__ == "__main__":
    main()
