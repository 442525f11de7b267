"""
Run orchestration: file discovery and parallel per-file analysis.

Files are analyzed independently on a thread pool. Results are merged on the
calling thread and ordered by path, so the report does not depend on which
worker finished first.
"""

import fnmatch
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from gostyle_lint.analyzers.aggregator import DiagnosticAggregator
from gostyle_lint.analyzers.go_analyzer import READ_ERROR, GoAnalyzer
from gostyle_lint.core.config import Config
from gostyle_lint.core.result import AnalysisResult, FileFault, RunResult
from gostyle_lint.rules import default_registry
from gostyle_lint.rules.registry import RuleRegistry

logger = logging.getLogger(__name__)

GO_SUFFIX = ".go"
SKIPPED_DIRS = frozenset({"vendor", "testdata"})


def _skip_dir(name: str) -> bool:
    return name in SKIPPED_DIRS or name.startswith((".", "_"))


def _excluded(path: str, patterns: Iterable[str]) -> bool:
    posix = Path(path).as_posix()
    return any(fnmatch.fnmatch(posix, pattern) or fnmatch.fnmatch(Path(path).name, pattern) for pattern in patterns)


def discover_files(paths: Iterable[str], exclude: Iterable[str] = ()) -> Tuple[List[str], List[FileFault]]:
    """
    Expand paths into the Go files to analyze.

    Directories are walked recursively, skipping ``vendor``, ``testdata``,
    hidden and ``_``-prefixed directories, like the go tool does. Files
    named explicitly are analyzed whatever their suffix.

    Returns:
        Sorted unique file paths, and a fault for each path that does not exist
    """
    exclude = list(exclude)
    files = set()
    faults = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            for root, dirs, names in os.walk(path):
                dirs[:] = sorted(d for d in dirs if not _skip_dir(d))
                for name in names:
                    candidate = os.path.join(root, name)
                    if name.endswith(GO_SUFFIX) and not _excluded(candidate, exclude):
                        files.add(candidate)
        elif path.is_file():
            if not _excluded(raw, exclude):
                files.add(raw)
        else:
            logger.warning("No such file or directory: %s", raw)
            faults.append(FileFault(raw, READ_ERROR, "no such file or directory"))
    return sorted(files), faults


class LintRunner:
    """Analyzes a set of paths with one shared :class:`GoAnalyzer`."""

    def __init__(self, config: Config, registry: Optional[RuleRegistry] = None):
        self.config = config
        self.registry = registry if registry is not None else default_registry()
        self.analyzer = GoAnalyzer(config, self.registry)
        self.aggregator = DiagnosticAggregator()
        self._warn_unknown_rules()

    @property
    def jobs(self) -> int:
        return self.config.jobs or os.cpu_count() or 1

    def run(self, paths: Iterable[str], cancel_event: Optional[threading.Event] = None) -> RunResult:
        """
        Analyze every Go file under ``paths``.

        Args:
            paths: Files and directories
            cancel_event: When set, files not yet started are skipped; files
                already analyzed are still reported

        Returns:
            Per-file results ordered by path
        """
        if cancel_event is None:
            cancel_event = threading.Event()
        files, missing = discover_files(paths, self.config.exclude)
        logger.info("Analyzing %d file(s) with %d worker(s)", len(files), self.jobs)

        results: List[AnalysisResult] = []
        skipped: List[str] = []
        with ThreadPoolExecutor(max_workers=self.jobs, thread_name_prefix="gostyle-lint") as pool:
            futures = [(path, pool.submit(self._analyze_one, path, cancel_event)) for path in files]
            try:
                wait([future for _, future in futures])
            except KeyboardInterrupt:
                logger.warning("Interrupted; finishing files already in progress")
                cancel_event.set()
                pool.shutdown(wait=True, cancel_futures=True)

        for path, future in futures:
            result = None if future.cancelled() else future.result()
            if result is None:
                skipped.append(path)
            else:
                results.append(result)

        cancelled = cancel_event.is_set()
        if cancelled:
            logger.warning("Run cancelled; %d file(s) not analyzed", len(skipped))
        return RunResult(
            results=tuple(self.aggregator.merge(results)),
            skipped=tuple(sorted(skipped)),
            cancelled=cancelled,
            extra_faults=tuple(missing),
        )

    def _analyze_one(self, path: str, cancel_event: threading.Event) -> Optional[AnalysisResult]:
        if cancel_event.is_set():
            return None
        return self.analyzer.analyze_file(path)

    def _warn_unknown_rules(self):
        configured = set(self.config.disabled_rules) | set(self.config.rule_severities) | set(self.config.rule_options)
        if self.config.enabled_rules is not None:
            configured |= self.config.enabled_rules
        for rule_id in sorted(configured):
            if rule_id not in self.registry:
                logger.warning("Configuration names unknown rule '%s'", rule_id)
