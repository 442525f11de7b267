"""Interface-design rules."""

from gostyle_lint.core.finding import Category, Severity
from gostyle_lint.rules.registry import Hit, MatcherSet
from gostyle_lint.source.units import UnitKind

matchers = MatcherSet(Category.INTERFACE_DESIGN)

ANY_TYPES = frozenset({"interface{}", "any"})

# Interfaces every Go reader knows, for pointer-to-interface checks.
KNOWN_INTERFACES = frozenset({
    "error", "any", "interface{}", "context.Context", "fmt.Stringer", "sort.Interface", "http.Handler",
    "io.Reader", "io.Writer", "io.Closer", "io.ReadCloser", "io.ReadWriter", "io.WriteCloser",
    "io.ReadWriteCloser", "io.ReaderAt", "io.WriterTo", "io.ReaderFrom",
})


def _is_interface(type_name: str, ctx) -> bool:
    return type_name in KNOWN_INTERFACES or type_name in ctx.index.interfaces


@matchers.register("interface-too-large", UnitKind.INTERFACE)
def interface_too_large(unit, ctx):
    count = unit["method_count"]
    max_methods = ctx.option("max_methods", 2)
    error_at = ctx.option("error_at", 5)
    if count >= error_at:
        yield Hit(f"interface {unit['name']} has {count} methods (limit {max_methods})", severity=Severity.ERROR)
    elif count > max_methods:
        yield Hit(f"interface {unit['name']} has {count} methods (limit {max_methods})")


@matchers.register("interface-empty-param", UnitKind.FUNCTION)
def interface_empty_param(unit, ctx):
    for param in unit["params"]:
        if param.type in ANY_TYPES and not param.variadic:
            name = param.name or "parameter"
            yield Hit(f"'{name}' of {unit['name']} accepts {param.type}", line=param.line, col=param.col)


@matchers.register("interface-name-suffix", UnitKind.INTERFACE)
def interface_name_suffix(unit, ctx):
    if unit["method_count"] != 1 or unit["embedded"] or unit["constraint"]:
        return
    name = unit["name"]
    if name.lower().endswith("er"):
        return
    method = unit["methods"][0].name
    suggested = method + ("r" if method.endswith("e") else "er")
    yield Hit(f"single-method interface {name} should be named {suggested}")


@matchers.register("interface-return", UnitKind.FUNCTION)
def interface_return(unit, ctx):
    if not unit["exported"]:
        return
    for result in unit["results"]:
        if result.type in ctx.index.interfaces:
            yield Hit(f"{unit['name']} returns interface {result.type} instead of a concrete type",
                      line=result.line, col=result.col)


@matchers.register("interface-pointer", UnitKind.FUNCTION, UnitKind.STRUCT)
def interface_pointer(unit, ctx):
    if unit.kind == UnitKind.STRUCT:
        for field in unit["fields"]:
            if field.type.startswith("*") and _is_interface(field.type[1:], ctx):
                yield Hit(f"field {field.type} of {unit['name']} is a pointer to an interface",
                          line=field.line, col=field.col)
        return

    for param in list(unit["params"]) + list(unit["results"]):
        if param.is_pointer and _is_interface(param.type[1:], ctx):
            yield Hit(f"{unit['name']} uses {param.type}, a pointer to an interface", line=param.line, col=param.col)
