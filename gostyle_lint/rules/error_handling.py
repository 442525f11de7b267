"""
Error-handling rules.

Most of these look at the error units the adapter extracts: returns in an
error result position (classified bare/wrapped/constructed/...), ``err !=
nil`` checks, ``errors.New``/``fmt.Errorf`` constructions, comparisons and
discarded results.
"""

from gostyle_lint.core.finding import Category
from gostyle_lint.rules.registry import Hit, MatcherSet
from gostyle_lint.source.units import UnitKind

matchers = MatcherSet(Category.ERROR_HANDLING)

# Where a bare returned error may come from and still need wrapping.
_UNWRAPPED_ORIGINS = frozenset({"call", "value", "unknown"})
_ACCEPTED_GUARDS = frozenset({"sentinel", "type-assert"})

_TRAILING_PUNCTUATION = (".", "!", ":", "\\n", "\n")


@matchers.register("error-not-wrapped", UnitKind.ERROR_RETURN)
def error_not_wrapped(unit, ctx):
    """
    A bare pass-through of an error is a violation unless the error was
    matched against a sentinel or an error type first.
    """
    if unit["handling"] != "bare" or unit["guard"] in _ACCEPTED_GUARDS:
        return
    if unit["origin"] not in _UNWRAPPED_ORIGINS:
        return
    function = unit["function"] or "function"
    yield Hit(f"error '{unit['variable']}' is returned from {function} without added context")


@matchers.register("error-ignored", UnitKind.ERROR_IGNORED, UnitKind.CALL)
def error_ignored(unit, ctx):
    if unit.kind == UnitKind.CALL:
        # A bare call statement to a function of this file that returns an error.
        if not unit["statement"] or unit["receiver"] is not None:
            return
        target = ctx.index.functions.get(unit["callee"])
        if target is None or not target["results"] or target["results"][-1].type != "error":
            return
        yield Hit(f"error returned by {unit['callee']}() is ignored")
        return

    target = ctx.index.functions.get(unit["callee"])
    if target is not None and (not target["results"] or target["results"][-1].type != "error"):
        return
    yield Hit(f"error returned by {unit['callee']}() is discarded with '_'")


@matchers.register("error-string-compare", UnitKind.ERROR_COMPARE)
def error_string_compare(unit, ctx):
    if unit["method"] != "string":
        return
    yield Hit(f"error compared by its message: {unit['expression']}")


@matchers.register("error-check-empty", UnitKind.ERROR_CHECK)
def error_check_empty(unit, ctx):
    if not unit["body_empty"]:
        return
    yield Hit(f"'if {unit['variable']} != nil' has an empty body")


@matchers.register("error-swallowed", UnitKind.ERROR_CHECK)
def error_swallowed(unit, ctx):
    if unit["body_empty"] or unit["returns"] or unit["terminates"] or unit["diverts"]:
        return
    if unit["references_error"]:
        return
    yield Hit(f"'{unit['variable']}' is checked but neither used nor propagated")


@matchers.register("log-and-return", UnitKind.ERROR_CHECK)
def log_and_return(unit, ctx):
    if unit["logs"] and unit["returns_error"]:
        yield Hit(f"'{unit['variable']}' is logged and also returned; it will be reported twice")


@matchers.register("error-string-format", UnitKind.ERROR_CONSTRUCT)
def error_string_format(unit, ctx):
    message = unit["message"]
    if not message:
        return
    problems = []
    if len(message) > 1 and message[0].isupper() and message[1].islower():
        problems.append("capitalized")
    if message.rstrip(" ").endswith(_TRAILING_PUNCTUATION):
        problems.append("ends with punctuation")
    if problems:
        yield Hit(f"error string {' and '.join(problems)}: \"{message}\"")


@matchers.register("error-wrap-verb", UnitKind.ERROR_CONSTRUCT)
def error_wrap_verb(unit, ctx):
    if unit["constructor"] != "fmt.Errorf" or unit["wraps"] or not unit["error_args"]:
        return
    if unit["message"] is None:
        return
    names = ", ".join(unit["error_args"])
    yield Hit(f"fmt.Errorf formats {names} without %w; the cause is lost")


@matchers.register("error-not-last-result", UnitKind.FUNCTION)
def error_not_last_result(unit, ctx):
    types = [result.type for result in unit["results"]]
    if "error" in types and types[-1] != "error":
        yield Hit(f"{unit['name']} returns error at position {types.index('error') + 1} of {len(types)}")


@matchers.register("panic-in-library", UnitKind.CALL)
def panic_in_library(unit, ctx):
    if unit["callee"] != "panic" or unit["in_test_file"] or unit["package"] == "main":
        return
    function = unit["function"] or ""
    if function == "init" or function.startswith(("Must", "must")):
        return
    yield Hit(f"panic in {function or 'package initialization'} of library package {unit['package']}")
