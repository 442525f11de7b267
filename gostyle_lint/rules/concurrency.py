"""
Concurrency rules.

goroutine-lifecycle is the only one that needs real flow information: the
adapter records, for every function literal launched with ``go`` and for
every declared function, whether the body waits on a cancellation signal on
each path that does not terminate. Named callees are resolved through the
file's unit index.
"""

from gostyle_lint.core.finding import Category
from gostyle_lint.rules.registry import Hit, MatcherSet
from gostyle_lint.source.adapter import MUTEX_TYPES
from gostyle_lint.source.units import UnitKind

matchers = MatcherSet(Category.CONCURRENCY)


def _resolve_callee(unit, ctx):
    callee = unit["callee"]
    if unit["callee_type"]:
        return ctx.index.methods.get((unit["callee_type"], callee.split(".", 1)[1]))
    if callee and "." not in callee:
        return ctx.index.functions.get(callee)
    return None


@matchers.register("goroutine-lifecycle", UnitKind.GO)
def goroutine_lifecycle(unit, ctx):
    if unit["literal"]:
        if not unit["cancellation_safe"]:
            yield Hit("goroutine does not wait on a cancellation signal on every path")
        return

    target = _resolve_callee(unit, ctx)
    if target is not None and target["has_body"]:
        if not target["cancellation_safe"]:
            yield Hit(f"goroutine runs {unit['callee']}, which never waits on a cancellation signal")
        return
    if not unit["passes_context"]:
        yield Hit(f"goroutine runs {unit['callee']} without a context or done channel")


def _holds_mutex(type_name: str, ctx) -> bool:
    if type_name in MUTEX_TYPES:
        return True
    struct = ctx.index.structs.get(type_name)
    return struct is not None and struct["has_mutex"]


@matchers.register("mutex-copy", UnitKind.FUNCTION)
def mutex_copy(unit, ctx):
    receiver = unit["receiver"]
    if receiver is not None and not receiver.pointer and _holds_mutex(receiver.type_name, ctx):
        yield Hit(f"value receiver of {receiver.type_name}.{unit['name']} copies a mutex",
                  line=receiver.line, col=receiver.col)
    for param in unit["params"]:
        if _holds_mutex(param.type, ctx):
            yield Hit(f"parameter '{param.name or param.type}' of {unit['name']} copies a mutex ({param.type})",
                      line=param.line, col=param.col)


@matchers.register("waitgroup-by-value", UnitKind.FUNCTION, UnitKind.GO)
def waitgroup_by_value(unit, ctx):
    owner = unit["name"] if unit.kind == UnitKind.FUNCTION else "goroutine literal"
    for param in unit["params"]:
        if param.type == "sync.WaitGroup":
            yield Hit(f"{owner} takes sync.WaitGroup '{param.name or '_'}' by value", line=param.line, col=param.col)


@matchers.register("defer-in-loop", UnitKind.DEFER)
def defer_in_loop(unit, ctx):
    if unit["in_loop"]:
        target = unit["callee"] or "function literal"
        yield Hit(f"defer {target} inside a loop runs only when {unit['function'] or 'the function'} returns")


@matchers.register("goroutine-loop-capture", UnitKind.GO)
def goroutine_loop_capture(unit, ctx):
    captured = unit["captured_loop_vars"]
    if captured:
        yield Hit(f"goroutine captures loop variable {', '.join(captured)}")


@matchers.register("channel-buffer-size", UnitKind.CHANNEL_MAKE)
def channel_buffer_size(unit, ctx):
    size = unit["size"]
    if size is not None and size > ctx.option("max_size", 1):
        yield Hit(f"channel of {unit['element']} has a buffer of {size}")


@matchers.register("select-single-case", UnitKind.SELECT)
def select_single_case(unit, ctx):
    if unit["cases"] == 1 and not unit["has_default"]:
        yield Hit("select with a single case")


@matchers.register("select-empty", UnitKind.SELECT)
def select_empty(unit, ctx):
    if unit["cases"] == 0 and not unit["has_default"]:
        yield Hit("empty select blocks forever")


@matchers.register("context-not-first", UnitKind.FUNCTION)
def context_not_first(unit, ctx):
    position = unit["context_index"]
    if position is not None and position > 0:
        yield Hit(f"context.Context is parameter {position + 1} of {unit['name']}")


@matchers.register("context-in-struct", UnitKind.STRUCT)
def context_in_struct(unit, ctx):
    for field in unit["context_fields"]:
        name = ", ".join(field.names) or "embedded field"
        yield Hit(f"{unit['name']} stores a context.Context in {name}", line=field.line, col=field.col)


@matchers.register("mutex-embedded", UnitKind.STRUCT)
def mutex_embedded(unit, ctx):
    for field in unit["fields"]:
        if field.embedded and field.type in MUTEX_TYPES:
            yield Hit(f"{unit['name']} embeds {field.type}, exporting Lock and Unlock",
                      line=field.line, col=field.col)
