"""Rules for _test.go files."""

from gostyle_lint.core.finding import Category
from gostyle_lint.rules.registry import Hit, MatcherSet
from gostyle_lint.source.adapter import TEST_PREFIXES
from gostyle_lint.source.units import UnitKind

matchers = MatcherSet(Category.TESTING)

_PARAM_TYPES = {
    "Test": "*testing.T",
    "Benchmark": "*testing.B",
    "Fuzz": "*testing.F",
}

_GOEXIT_METHODS = frozenset({"Fatal", "Fatalf", "FailNow", "Skip", "Skipf", "SkipNow"})


def _recognized(unit) -> bool:
    """go test only picks up names whose suffix does not start in lower case."""
    suffix = unit["suffix"]
    return not suffix or not suffix[0].islower()


@matchers.register("test-name-format", UnitKind.TEST_FUNCTION)
def test_name_format(unit, ctx):
    if not _recognized(unit):
        yield Hit(f"{unit['name']} is ignored by go test: the letter after {unit['prefix']} is lower case")


@matchers.register("test-signature", UnitKind.TEST_FUNCTION)
def test_signature(unit, ctx):
    if not _recognized(unit):
        return
    name = unit["name"]
    if name == "TestMain":
        expected = ["*testing.M"]
    elif unit["prefix"] == "Example":
        expected = []
    else:
        expected = [_PARAM_TYPES[unit["prefix"]]]
    actual = [param.type for param in unit["params"]]
    if actual != expected or unit["results"]:
        yield Hit(f"{name} must be declared as func {name}({', '.join(expected)})")


@matchers.register("test-without-assertions", UnitKind.TEST_FUNCTION)
def test_without_assertions(unit, ctx):
    if unit["prefix"] != "Test" or unit["name"] == "TestMain" or not _recognized(unit):
        return
    if not unit["asserts"]:
        yield Hit(f"{unit['name']} never uses its *testing.T, so it cannot fail")


@matchers.register("test-sleep", UnitKind.CALL)
def test_sleep(unit, ctx):
    if unit["in_test_file"] and unit["callee"] == "time.Sleep":
        yield Hit(f"time.Sleep in {unit['function'] or 'test code'}")


@matchers.register("test-fatal-in-goroutine", UnitKind.CALL)
def test_fatal_in_goroutine(unit, ctx):
    if not unit["in_goroutine"] or unit["test_param"] is None:
        return
    if unit["receiver"] == unit["test_param"] and unit["name"] in _GOEXIT_METHODS:
        yield Hit(f"{unit['callee']} called from a goroutine does not stop the test")


@matchers.register("test-helper-missing", UnitKind.FUNCTION)
def test_helper_missing(unit, ctx):
    if not unit["in_test_file"] or unit["test_param"] is None:
        return
    if unit["receiver"] is None and unit["name"].startswith(TEST_PREFIXES):
        return
    if unit["reports_failure"] and not unit["calls_helper"]:
        yield Hit(f"helper {unit['name']} reports failures but does not call {unit['test_param']}.Helper()")
