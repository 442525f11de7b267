"""Tests for the command-line interface."""

import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from gostyle_lint import __version__
from gostyle_lint.cli import main

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"
BAD = str(EXAMPLES / "bad_util.go")
GOOD = str(EXAMPLES / "good_store.go")

WARNING_ONLY = """package store

import "context"

func f(name string, ctx context.Context) {}
"""


@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI installs a stderr handler bound to the runner's stream."""
    yield
    logger = logging.getLogger("gostyle_lint")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def config(tmp_path):
    path = tmp_path / "empty.toml"
    path.write_text("")
    return str(path)


def _invoke(*args):
    return CliRunner().invoke(main, list(args))


def test_version():
    result = _invoke("--version")

    assert result.exit_code == 0
    assert __version__ in result.output


def test_list_rules():
    result = _invoke("--list-rules")

    assert result.exit_code == 0
    assert "Available Rules:" in result.output
    assert "CONCURRENCY:" in result.output
    assert "goroutine-lifecycle" in result.output


def test_paths_are_required():
    result = _invoke()

    assert result.exit_code == 2
    assert "Provide at least one file or directory" in result.output


def test_help_documents_interrupted_runs():
    result = _invoke("--help")

    assert result.exit_code == 0
    assert "interrupted" in result.output
    assert "skipped" in result.output


def test_clean_file(config):
    result = _invoke("--config", config, GOOD)

    assert result.exit_code == 0
    assert "No issues found in 1 file." in result.output


def test_error_findings(config):
    result = _invoke("--config", config, BAD)

    assert result.exit_code == 1
    assert "[error] mutex-copy:" in result.output
    assert "suggestion:" not in result.output


def test_suggestions_flag(config):
    result = _invoke("--config", config, "--suggestions", BAD)

    assert "    suggestion: Use a pointer receiver or pass a pointer" in result.output


def test_structured_output(config):
    result = _invoke("--config", config, "--format", "structured", BAD)
    report = json.loads(result.stdout)

    assert result.exit_code == 1
    assert report["exit_status"] == 1
    assert report["files"][0]["path"] == BAD
    assert report["summary"]["error"] > 0


def test_enable_category(config):
    result = _invoke("--config", config, "--format", "structured", "--enable-category", "naming", BAD)
    findings = json.loads(result.stdout)["files"][0]["findings"]

    assert findings
    assert {f["category"] for f in findings} == {"naming"}


def test_disable_rule(config):
    result = _invoke("--config", config, "--format", "structured", "--disable-rule", "mutex-copy", BAD)
    rule_ids = {f["rule_id"] for f in json.loads(result.stdout)["files"][0]["findings"]}

    assert "mutex-copy" not in rule_ids
    assert "mutex-embedded" in rule_ids


def test_warnings_as_errors(tmp_path, config):
    path = tmp_path / "store.go"
    path.write_text(WARNING_ONLY)

    assert _invoke("--config", config, str(path)).exit_code == 0
    assert _invoke("--config", config, "--warnings-as-errors", str(path)).exit_code == 1


def test_parse_error_exits_with_tool_fault(tmp_path, config):
    path = tmp_path / "broken.go"
    path.write_text("package store\n\nfunc f() {\n")

    result = _invoke("--config", config, str(path))

    assert result.exit_code == 2
    assert "Could not analyze 1 file:" in result.output


def test_invalid_config(tmp_path):
    path = tmp_path / "bad.toml"
    path.write_text('[output]\nformat = "html"\n')

    result = _invoke("--config", str(path), GOOD)

    assert result.exit_code == 2
    assert "invalid configuration" in result.output


def test_config_file_settings_apply(tmp_path):
    path = tmp_path / "gostyle.toml"
    path.write_text('[rules]\nmutex-copy = "off"\nmutex-embedded = "off"\nerror-not-wrapped = "warning"\n')

    result = _invoke("--config", str(path), BAD)

    assert result.exit_code == 0
    assert "mutex-copy" not in result.output
    assert "[warning] error-not-wrapped:" in result.output
