"""
Gostyle-Lint - Static analyzer for Go style and idiom rules.

This package decomposes Go source files into structural units, matches them
against a catalog of style rules and reports categorized, deterministic
findings.
"""

__version__ = "0.1.0"

from gostyle_lint.core.finding import Category, Finding, Severity
from gostyle_lint.core.config import Config

__all__ = ["Category", "Finding", "Severity", "Config", "__version__"]
