"""
Per-file analysis pipeline for Go sources.

source text -> GoSourceAdapter -> MatcherEngine -> SuppressionResolver
-> aggregation. An instance holds no per-file state in its pipeline, so one
analyzer can serve every worker thread of a run.
"""

import logging
from typing import List, Optional

from gostyle_lint.analyzers.aggregator import DiagnosticAggregator, aggregate
from gostyle_lint.analyzers.base import Analyzer
from gostyle_lint.analyzers.matcher import MatcherEngine
from gostyle_lint.analyzers.suppression import SuppressionResolver
from gostyle_lint.core.config import Config
from gostyle_lint.core.errors import ParseError
from gostyle_lint.core.finding import Finding
from gostyle_lint.core.result import AnalysisResult, FileFault
from gostyle_lint.rules import default_registry
from gostyle_lint.rules.registry import RuleRegistry
from gostyle_lint.source.adapter import GoSourceAdapter

logger = logging.getLogger(__name__)

PARSE_ERROR = "parse-error"
READ_ERROR = "read-error"
INTERNAL_ERROR = "internal-error"


class GoAnalyzer(Analyzer):
    """
    Analyzer for Go source files.

    Runs every enabled rule of the registry over the structural units of a
    file, then applies the file's suppressions.
    """

    def __init__(self, config: Config, registry: Optional[RuleRegistry] = None):
        super().__init__(config)
        self.registry = registry if registry is not None else default_registry()
        self.rules = self.registry.enabled(config)
        self.adapter = GoSourceAdapter()
        self.engine = MatcherEngine(config, self.registry)
        self.resolver = SuppressionResolver(config, self.registry)
        self.aggregator = DiagnosticAggregator()

    def analyze(self, source_code: str, filename: str) -> List[Finding]:
        """
        Analyze Go source code.

        Raises:
            ParseError: If the source cannot be decomposed
        """
        self.reset()
        self.findings = self._findings(source_code, filename)
        return self.findings

    def analyze_source(self, source_code: str, filename: str) -> AnalysisResult:
        """Analyze source text, recording a parse failure as a fault."""
        try:
            findings = self._findings(source_code, filename)
        except ParseError as e:
            logger.warning("Skipping %s: %s", filename, e)
            fault = FileFault(filename, PARSE_ERROR, e.message, e.line, e.col)
            return self.aggregator.build(filename, (), fault)
        except RecursionError as e:
            # Pathologically deep nesting; the file is reported, the run goes on.
            logger.warning("Skipping %s: nesting too deep to analyze", filename)
            fault = FileFault(filename, PARSE_ERROR, f"nesting too deep to analyze ({e})")
            return self.aggregator.build(filename, (), fault)
        except Exception as e:
            logger.error("Internal error analyzing %s: %s: %s", filename, type(e).__name__, e)
            logger.debug("Traceback for %s", filename, exc_info=True)
            fault = FileFault(filename, INTERNAL_ERROR, f"{type(e).__name__}: {e}")
            return self.aggregator.build(filename, (), fault)
        return self.aggregator.build(filename, findings)

    def analyze_file(self, path: str) -> AnalysisResult:
        """Read and analyze one file."""
        logger.debug("Analyzing %s", path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                source_code = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return self.aggregator.build(path, (), FileFault(path, READ_ERROR, str(e)))
        return self.analyze_source(source_code, path)

    def _findings(self, source_code: str, filename: str) -> List[Finding]:
        model = self.adapter.adapt(source_code, filename)
        candidates = self.engine.run(self.rules, model.units)
        suppressions = self.resolver.suppressions_for(model)
        findings = aggregate(self.resolver.resolve(candidates, suppressions))
        logger.debug("%s: %d candidate findings, %d after suppression", filename, len(candidates), len(findings))
        return findings
