"""Naming rules."""

import re

from gostyle_lint.core.finding import Category
from gostyle_lint.rules.registry import Hit, MatcherSet
from gostyle_lint.source.adapter import TEST_PREFIXES
from gostyle_lint.source.units import UnitKind

matchers = MatcherSet(Category.NAMING)

GENERIC_PACKAGE_NAMES = ("util", "common", "helpers", "misc")

# golint's initialism list, in the mixed case that gives them away.
MIXED_INITIALISMS = frozenset({
    "Acl", "Api", "Ascii", "Cpu", "Css", "Dns", "Eof", "Guid", "Html", "Http", "Https", "Id", "Ip", "Json",
    "Qps", "Rpc", "Smtp", "Sql", "Ssh", "Tcp", "Tls", "Ttl", "Udp", "Uid", "Uuid", "Uri", "Url", "Xml",
    "Xsrf", "Xss",
})

_WORD = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+")

_NAMED_KINDS = (UnitKind.FUNCTION, UnitKind.STRUCT, UnitKind.INTERFACE, UnitKind.TYPE, UnitKind.VAR)


def _names(unit):
    """(name, line, col) of every name a unit declares; a None position means the unit's own."""
    if unit.kind == UnitKind.VAR:
        return [(name, line, col) for name, (line, col) in zip(unit["names"], unit["name_positions"])]
    if unit.kind == UnitKind.FUNCTION and unit["in_test_file"] and unit["receiver"] is None \
            and unit["name"].startswith(TEST_PREFIXES):
        return []
    return [(unit["name"], None, None)]


@matchers.register("method-stutter", UnitKind.FUNCTION)
def method_stutter(unit, ctx):
    receiver = unit["receiver"]
    if receiver is None or not unit["exported"] or not receiver.type_name:
        return
    if unit["name"].startswith(receiver.type_name):
        yield Hit(f"method {receiver.type_name}.{unit['name']} repeats the type name")


@matchers.register("getter-prefix", UnitKind.FUNCTION)
def getter_prefix(unit, ctx):
    name = unit["name"]
    if unit["receiver"] is None or unit["params"] or not unit["results"]:
        return
    if len(name) > 3 and name.startswith("Get") and name[3].isupper():
        yield Hit(f"accessor {name} should be named {name[3:]}", suggestion=f"rename {name} to {name[3:]}")


@matchers.register("receiver-name-self", UnitKind.FUNCTION)
def receiver_name_self(unit, ctx):
    receiver = unit["receiver"]
    if receiver is not None and receiver.name in ("this", "self"):
        yield Hit(f"receiver of {receiver.type_name}.{unit['name']} is named '{receiver.name}'")


@matchers.register("receiver-name-inconsistent", UnitKind.FUNCTION)
def receiver_name_inconsistent(unit, ctx):
    receiver = unit["receiver"]
    if receiver is None or receiver.name in (None, "_"):
        return
    siblings = sorted(
        (method for (type_name, _), method in ctx.index.methods.items() if type_name == receiver.type_name),
        key=lambda method: method.line,
    )
    first = next((m for m in siblings if m["receiver"].name not in (None, "_")), None)
    if first is None or first["receiver"].name == receiver.name:
        return
    yield Hit(f"receiver '{receiver.name}' of {receiver.type_name}.{unit['name']} differs from "
              f"'{first['receiver'].name}' used by {receiver.type_name}.{first['name']}")


def _package_name(unit) -> str:
    name = unit["name"]
    if unit["is_test"] and name.endswith("_test"):
        return name[:-len("_test")]
    return name


@matchers.register("package-name-generic", UnitKind.PACKAGE)
def package_name_generic(unit, ctx):
    name = _package_name(unit)
    if name in ctx.option("names", GENERIC_PACKAGE_NAMES):
        yield Hit(f"package name '{name}' says nothing about its contents")


@matchers.register("package-name-format", UnitKind.PACKAGE)
def package_name_format(unit, ctx):
    name = _package_name(unit)
    if name != name.lower() or "_" in name:
        yield Hit(f"package name '{name}' should be lower case without underscores")


@matchers.register("name-underscore", *_NAMED_KINDS)
def name_underscore(unit, ctx):
    for name, line, col in _names(unit):
        if "_" in name.strip("_"):
            yield Hit(f"'{name}' contains an underscore", line=line, col=col)


@matchers.register("initialism-case", *_NAMED_KINDS)
def initialism_case(unit, ctx):
    for name, line, col in _names(unit):
        mixed = [word for word in _WORD.findall(name) if word in MIXED_INITIALISMS]
        if mixed:
            fixed = ", ".join(f"{word} -> {word.upper()}" for word in mixed)
            yield Hit(f"'{name}' writes initialisms in mixed case ({fixed})", line=line, col=col)


@matchers.register("type-package-stutter", UnitKind.STRUCT, UnitKind.INTERFACE, UnitKind.TYPE)
def type_package_stutter(unit, ctx):
    package = ctx.index.package
    name = unit["name"]
    if not package or package == "main" or not unit["exported"]:
        return
    if len(name) > len(package) and name.lower().startswith(package.lower()) and name[len(package)].isupper():
        yield Hit(f"{package}.{name} stutters; consider {package}.{name[len(package):]}")


@matchers.register("error-var-naming", UnitKind.VAR, UnitKind.STRUCT, UnitKind.TYPE)
def error_var_naming(unit, ctx):
    if unit.kind == UnitKind.VAR:
        if not unit["sentinel"]:
            return
        for name, (line, col) in zip(unit["names"], unit["name_positions"]):
            expected = "Err" if name[0].isupper() else "err"
            if name != "_" and not name.startswith(expected):
                yield Hit(f"error value {name} should be named {expected}{name[0].upper()}{name[1:]}",
                          line=line, col=col)
        return

    name = unit["name"]
    if (name, "Error") in ctx.index.methods and not name.endswith("Error"):
        yield Hit(f"error type {name} should be named {name}Error")
