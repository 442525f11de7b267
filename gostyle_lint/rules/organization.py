"""
Organization rules: file and function size, package-level state, imports.

The engine rules of this category (missing-justification,
broad-suppression, rule-internal-error) have no matcher here; they are
reported by the suppression resolver and the matcher engine.
"""

from gostyle_lint.core.finding import Category
from gostyle_lint.rules.registry import Hit, MatcherSet
from gostyle_lint.source.units import UnitKind

matchers = MatcherSet(Category.ORGANIZATION)

EXIT_CALLS = frozenset({"os.Exit", "log.Fatal", "log.Fatalf", "log.Fatalln"})

# Package-level values that are conventionally initialized once and never mutated.
_IMMUTABLE_INITIALIZERS = ("regexp.MustCompile(", "template.Must(", "errors.New(", "fmt.Errorf(")


@matchers.register("init-function", UnitKind.FUNCTION)
def init_function(unit, ctx):
    if unit["name"] == "init" and unit["receiver"] is None:
        yield Hit("init() runs implicitly on import")


@matchers.register("global-mutable-state", UnitKind.VAR)
def global_mutable_state(unit, ctx):
    if unit["const"] or unit["sentinel"]:
        return
    names = [name for name in unit["names"] if name != "_" and not name.startswith(("Err", "err"))]
    if not names or unit["value"].startswith(_IMMUTABLE_INITIALIZERS):
        return
    yield Hit(f"package-level variable {', '.join(names)}")


@matchers.register("function-too-long", UnitKind.FUNCTION)
def function_too_long(unit, ctx):
    limit = ctx.option("max_lines", 80)
    if unit["body_lines"] > limit:
        yield Hit(f"{unit['name']} is {unit['body_lines']} lines long (limit {limit})")


@matchers.register("too-many-parameters", UnitKind.FUNCTION)
def too_many_parameters(unit, ctx):
    limit = ctx.option("max_params", 5)
    count = len(unit["params"])
    if count > limit:
        yield Hit(f"{unit['name']} takes {count} parameters (limit {limit})")


@matchers.register("deep-nesting", UnitKind.FUNCTION)
def deep_nesting(unit, ctx):
    limit = ctx.option("max_depth", 4)
    if unit["max_depth"] > limit:
        yield Hit(f"{unit['name']} nests control flow {unit['max_depth']} levels deep (limit {limit})")


@matchers.register("naked-return", UnitKind.FUNCTION)
def naked_return(unit, ctx):
    if not unit["named_results"] or unit["body_lines"] <= ctx.option("max_lines", 10):
        return
    for line, col in unit["naked_returns"]:
        yield Hit(f"naked return in {unit['name']} ({unit['body_lines']} lines)", line=line, col=col)


@matchers.register("dot-import", UnitKind.IMPORT)
def dot_import(unit, ctx):
    if unit["name"] == ".":
        yield Hit(f"dot import of \"{unit['import_path']}\"")


@matchers.register("file-too-long", UnitKind.FILE)
def file_too_long(unit, ctx):
    limit = ctx.option("max_lines", 1000)
    if unit["line_count"] > limit:
        yield Hit(f"file has {unit['line_count']} lines (limit {limit})")


@matchers.register("exit-outside-main", UnitKind.CALL)
def exit_outside_main(unit, ctx):
    if unit["callee"] not in EXIT_CALLS:
        return
    if unit["package"] == "main" and unit["function"] == "main":
        return
    if unit["in_test_file"] and unit["function"] == "TestMain":
        return
    yield Hit(f"{unit['callee']} in {unit['function'] or 'package initialization'}")
