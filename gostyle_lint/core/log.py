"""Logging setup for the command line entry point."""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def verbosity_to_level(verbose: int) -> int:
    """Map the number of -v flags to a logging level."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(level: int = logging.WARNING) -> logging.Logger:
    """
    Configure the ``gostyle_lint`` logger.

    Log records go to stderr; stdout carries the report only, so structured
    and SARIF output stay machine-readable.

    Args:
        level: Logging level for the package logger

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("gostyle_lint")
    logger.setLevel(level)

    # Avoid duplicate handlers when called more than once (tests, repeated CLI invocations)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(handler)
    return logger
