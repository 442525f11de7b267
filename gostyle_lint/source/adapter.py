"""
Go source model adapter.

Turns the text of one Go file into the ordered list of
:class:`~gostyle_lint.source.units.StructuralUnit` values the rule catalog
runs against. Extraction is a single pass over the file: every unit exists
before any rule is evaluated, and nothing downstream sees a token or a
statement tree.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from gostyle_lint.source import flow
from gostyle_lint.source.lexer import Comment, GoLexer, Token, TokenKind
from gostyle_lint.source.syntax import (
    FuncLiteral,
    Statement,
    SyntaxParser,
    render,
    split_top_level,
)
from gostyle_lint.source.units import Field, Method, Param, Receiver, StructuralUnit, UnitKind

logger = logging.getLogger(__name__)

ERRISH_NAME = re.compile(r"^(?:err|[a-z][A-Za-z0-9]*Err|err[A-Z0-9][A-Za-z0-9]*)$")
TESTING_TYPES = frozenset({"*testing.T", "*testing.B", "*testing.F", "testing.TB"})
TEST_PREFIXES = ("Test", "Benchmark", "Example", "Fuzz")
MUTEX_TYPES = frozenset({"sync.Mutex", "sync.RWMutex"})
CONTEXT_TYPE = "context.Context"

_CONTEXT_ARG = re.compile(r"(?i)(ctx$|^context\.|\.Done\(\)$)")
_FORMAT_VERB = re.compile(r"%[-+# 0]*(?:\d+|\*)?(?:\.(?:\d+|\*))?(\[\d+\])?([a-zA-Z%])")
_FAILING_TEST_CALL = re.compile(r"^\w+\.(?:Fatal|Fatalf|FailNow)\(")

_WRAPPING_CALLS = frozenset({
    "errors.Wrap", "errors.Wrapf", "errors.WithMessage", "errors.WithMessagef", "errors.WithStack", "errors.Join",
})
_CONSTRUCTING_CALLS = frozenset({"errors.New", "fmt.Errorf"})
_STRING_MATCHERS = frozenset({
    "strings.Contains", "strings.HasPrefix", "strings.HasSuffix", "strings.EqualFold", "strings.Index",
})
_PRINT_CALLS = frozenset({"fmt.Print", "fmt.Printf", "fmt.Println", "fmt.Fprint", "fmt.Fprintf", "fmt.Fprintln"})

_GUARD_STRENGTH = {None: 0, "nil-check": 1, "type-assert": 2, "sentinel": 3}
_ORIGIN_OF_HANDLING = {
    "wrapped": "wrapped", "constructed": "constructed", "delegated": "call", "nil": "nil", "asserted": "asserted",
}


@dataclass(frozen=True)
class SourceModel:
    """Everything the rest of the pipeline needs to know about one file."""

    path: str
    units: Tuple[StructuralUnit, ...]
    comments: Tuple[Comment, ...]
    package: str
    line_count: int
    is_test: bool
    code_lines: FrozenSet[int] = frozenset()  # lines holding at least one token


def is_errish(name: str) -> bool:
    """Whether an identifier is conventionally an error variable."""
    return bool(ERRISH_NAME.match(name))


def is_log_call(callee: str) -> bool:
    if callee in _PRINT_CALLS:
        return True
    if "." not in callee:
        return False
    receiver = callee.rsplit(".", 1)[0]
    return "log" in receiver.lower()


def _stronger(first: Optional[str], second: Optional[str]) -> Optional[str]:
    return first if _GUARD_STRENGTH[first] >= _GUARD_STRENGTH[second] else second


def _pairs(tokens: Sequence[Token]) -> Dict[int, int]:
    pairs: Dict[int, int] = {}
    stack: List[int] = []
    for index, tok in enumerate(tokens):
        if tok.is_op("(", "[", "{"):
            stack.append(index)
        elif tok.is_op(")", "]", "}") and stack:
            pairs[stack.pop()] = index
    return pairs


def _assignment_index(tokens: Sequence[Token]) -> Optional[int]:
    depth = 0
    for index, tok in enumerate(tokens):
        if tok.is_op("(", "[", "{"):
            depth += 1
        elif tok.is_op(")", "]", "}"):
            depth -= 1
        elif depth == 0 and tok.is_op(":=", "="):
            return index
    return None


def _defined_names(tokens: Sequence[Token]) -> List[str]:
    """Identifiers declared by a ``:=`` in a header clause."""
    index = _assignment_index(tokens)
    if index is None or not tokens[index].is_op(":="):
        return []
    names = []
    for group in split_top_level(tokens[:index], ","):
        if len(group) == 1 and group[0].kind == TokenKind.IDENT and group[0].value != "_":
            names.append(group[0].value)
    return names


def _trailing_call(tokens: Sequence[Token]) -> Optional[int]:
    """Index of the '(' when tokens form a call expression, else None."""
    if not tokens or not tokens[-1].is_op(")"):
        return None
    for open_index, close in _pairs(tokens).items():
        if close == len(tokens) - 1:
            if open_index == 0:
                return None
            prev = tokens[open_index - 1]
            if prev.kind == TokenKind.IDENT or prev.is_op(")", "]", "}"):
                return open_index
            return None
    return None


def _type_assertion(tokens: Sequence[Token]) -> bool:
    """Whether tokens form a type assertion ``x.(T)``."""
    if not tokens or not tokens[-1].is_op(")"):
        return False
    for open_index, close in _pairs(tokens).items():
        if close == len(tokens) - 1:
            return open_index > 0 and tokens[open_index - 1].is_op(".")
    return False


def _string_value(tok: Token) -> str:
    return tok.value[1:-1]


@dataclass(frozen=True)
class _Call:
    callee: str
    args: Tuple[Tuple[Token, ...], ...]
    first: Token
    start: int
    close: int

    @property
    def name(self) -> str:
        return self.callee.rsplit(".", 1)[-1]

    @property
    def receiver(self) -> Optional[str]:
        return self.callee.rsplit(".", 1)[0] if "." in self.callee else None


def _calls(tokens: Sequence[Token]) -> List[_Call]:
    """Every call site in a token run, in source order."""
    calls = []
    for open_index, close in sorted(_pairs(tokens).items()):
        if not tokens[open_index].is_op("(") or open_index == 0:
            continue
        start = open_index - 1
        if tokens[start].kind != TokenKind.IDENT:
            continue
        while start >= 2 and tokens[start - 1].is_op(".") and tokens[start - 2].kind == TokenKind.IDENT:
            start -= 2
        args = tuple(tuple(group) for group in split_top_level(tokens[open_index + 1:close], ",") if group)
        calls.append(_Call(render(tokens[start:open_index]), args, tokens[start], start, close))
    return calls


def condition_guard(tokens: Sequence[Token]) -> Optional[str]:
    """Strongest error guard expressed by a condition: sentinel, type-assert or nil-check."""
    text = render(tokens)
    if "errors.Is(" in text:
        return "sentinel"
    guard = None
    for index, tok in enumerate(tokens):
        if not tok.is_op("==", "!=") or index == 0:
            continue
        left = tokens[index - 1]
        right = flow.operand(tokens, index + 1)
        right_text = render(right)
        left_errish = left.kind == TokenKind.IDENT and is_errish(left.value)
        right_errish = len(right) == 1 and is_errish(right[0].value)
        if left_errish and right_text == "nil":
            guard = _stronger(guard, "nil-check")
        elif (left_errish and right_text) or (right_errish and left.value != "nil"):
            return "sentinel"
    if "errors.As(" in text or ".(" in text:
        return "type-assert"
    return guard


def init_guard(tokens: Sequence[Token]) -> Optional[str]:
    """
    Error guard established by the init statement of an if, as in
    ``if _, ok := err.(*NotFound); ok``.
    """
    index = _assignment_index(tokens)
    if index is None:
        return None
    value = tokens[index + 1:]
    text = render(value)
    if text.startswith("errors.Is("):
        return "sentinel"
    if text.startswith("errors.As("):
        return "type-assert"
    if _type_assertion(value) and value[0].kind == TokenKind.IDENT and is_errish(value[0].value):
        return "type-assert"
    return None


class _Stats:
    """Body measurements shared by a declared function and its closures."""

    def __init__(self):
        self.max_depth = 0
        self.callees: List[str] = []


class _Scope:
    """A function or function literal: its signature and where its variables come from."""

    def __init__(self, name: str, params: Sequence[Param], results: Sequence[Param],
                 parent: Optional["_Scope"] = None, receiver: Optional[Receiver] = None):
        self.name = name
        self.params = list(params)
        self.results = list(results)
        self.parent = parent
        self.receiver = receiver if receiver is not None else (parent.receiver if parent else None)
        self.stats = parent.stats if parent else _Stats()
        self.assignments: Dict[str, List[Tuple[int, int, str]]] = {}
        self.naked_returns: List[Tuple[int, int]] = []
        self.param_names = {p.name for p in self.params if p.name}
        self.result_names = {p.name for p in self.results if p.name}

        own_test_param = next((p.name for p in self.params if p.type in TESTING_TYPES and p.name), None)
        self.test_param = own_test_param or (parent.test_param if parent else None)
        self.own_test_param = own_test_param

        error_positions = [i for i, p in enumerate(self.results) if p.type == "error"]
        self.error_index = error_positions[-1] if error_positions else None

    @property
    def named_results(self) -> bool:
        return bool(self.result_names)

    def knows(self, name: str) -> bool:
        scope = self
        while scope is not None:
            if name in scope.assignments or name in scope.param_names or name in scope.result_names:
                return True
            scope = scope.parent
        return False

    def origin(self, name: str, line: int, col: int) -> str:
        """Where the value of ``name`` visible at (line, col) was produced."""
        scope = self
        while scope is not None:
            earlier = [entry for entry in scope.assignments.get(name, ()) if (entry[0], entry[1]) < (line, col)]
            if earlier:
                return earlier[-1][2]
            if name in scope.param_names:
                return "param"
            if name in scope.result_names:
                return "result"
            scope = scope.parent
        return "unknown"

    def collect(self, stmts: Sequence[Statement]):
        """Record every assignment of the body (closures excluded)."""
        for stmt in stmts:
            if stmt.kind in ("simple", "decl"):
                self._record(stmt.tokens)
            elif stmt.kind in ("if", "switch"):
                groups = split_top_level(stmt.tokens, ";")
                if len(groups) == 2:
                    self._record(groups[0])
                elif stmt.kind == "switch":
                    self._record(stmt.tokens)
            elif stmt.kind == "for":
                groups = split_top_level(stmt.tokens, ";")
                self._record(groups[0] if len(groups) == 3 else stmt.tokens)
            self.collect(stmt.body)
            if stmt.else_body:
                self.collect(stmt.else_body)
            for clause in stmt.clauses:
                self.collect(clause.body)

    def _record(self, tokens: Sequence[Token]):
        if not tokens:
            return
        if tokens[0].is_keyword("var"):
            tokens = tokens[1:]
            index = _assignment_index(tokens)
            names = []
            position = 0
            while position < len(tokens) and tokens[position].kind == TokenKind.IDENT:
                names.append(tokens[position])
                position += 1
                if position < len(tokens) and tokens[position].is_op(","):
                    position += 1
                else:
                    break
            lhs = [[tok] for tok in names]
            if index is None:
                for tok in names:
                    self._assign(tok, "nil")
                return
        else:
            index = _assignment_index(tokens)
            if index is None:
                return
            lhs = split_top_level(tokens[:index], ",")
        rhs = [group for group in split_top_level(tokens[index + 1:], ",") if group]
        for position, group in enumerate(lhs):
            if len(group) != 1 or group[0].kind != TokenKind.IDENT or group[0].value == "_":
                continue
            if len(rhs) == len(lhs):
                expr = rhs[position]
            elif len(rhs) == 1:
                expr = rhs[0]
            else:
                continue
            self._assign(group[0], _ORIGIN_OF_HANDLING.get(classify_error_expr(expr, self), "value"))

    def _assign(self, tok: Token, origin: str):
        self.assignments.setdefault(tok.value, []).append((tok.line, tok.col, origin))


def classify_error_expr(expr: Sequence[Token], scope: _Scope) -> str:
    """Classify an expression returned in an error position."""
    if not expr:
        return "other"
    text = render(expr)
    if text == "nil":
        return "nil"
    if len(expr) == 1 and expr[0].kind == TokenKind.IDENT:
        name = expr[0].value
        if name == "err" or scope.knows(name):
            return "bare"
        return "sentinel"
    if all(tok.kind == TokenKind.IDENT if i % 2 == 0 else tok.is_op(".") for i, tok in enumerate(expr)):
        return "other" if scope.knows(expr[0].value) else "sentinel"

    if _type_assertion(expr):
        return "asserted"

    open_index = _trailing_call(expr)
    if open_index is not None:
        callee = render(expr[:open_index])
        if callee in _WRAPPING_CALLS:
            return "wrapped"
        if callee == "fmt.Errorf":
            first = expr[open_index + 1] if open_index + 1 < len(expr) else None
            if first is not None and first.kind == TokenKind.STRING and "%w" in first.value:
                return "wrapped"
            return "constructed"
        if callee == "errors.New":
            return "constructed"
        return "delegated"
    if expr[0].is_op("&") or expr[-1].is_op("}"):
        return "constructed"
    return "other"


@dataclass(frozen=True)
class _Context:
    scope: _Scope
    depth: int = 0
    loop_depth: int = 0
    loop_vars: FrozenSet[str] = frozenset()
    guard: Optional[str] = None
    in_goroutine: bool = False


class GoSourceAdapter:
    """Builds a :class:`SourceModel` from Go source text."""

    def adapt(self, source: str, path: str) -> SourceModel:
        """
        Decompose one file.

        Args:
            source: Go source code
            path: Path reported on every unit

        Returns:
            The file's source model

        Raises:
            ParseError: If the file cannot be decomposed
        """
        tokens, comments = GoLexer(path).tokenize(source)
        builder = _ModelBuilder(tokens, path)
        units = builder.build()

        line_count = source.count("\n") + (1 if source and not source.endswith("\n") else 0)
        file_unit = StructuralUnit.create(
            UnitKind.FILE, path, 1, 1, end_line=max(line_count, 1),
            line_count=line_count, is_test=builder.is_test, package=builder.package,
        )
        logger.debug("%s: %d units, %d comments", path, len(units) + 1, len(comments))
        return SourceModel(
            path=path,
            units=tuple([file_unit] + units),
            comments=tuple(comments),
            package=builder.package,
            line_count=line_count,
            is_test=builder.is_test,
            code_lines=frozenset(tok.line for tok in tokens if not tok.is_semi),
        )


class _ModelBuilder:
    """Walks one file's tokens and emits units."""

    def __init__(self, tokens: Sequence[Token], path: str):
        self.tokens = list(tokens)
        self.path = path
        self.is_test = path.endswith("_test.go")
        self.parser = SyntaxParser(self.tokens, path)
        self.units: List[StructuralUnit] = []
        self.package = ""

    def emit(self, kind: UnitKind, at, end_line: Optional[int] = None, **attrs):
        """Append a unit positioned at a token or statement."""
        self.units.append(StructuralUnit.create(kind, self.path, at.line, at.col, end_line, **attrs))

    # Top level

    def build(self) -> List[StructuralUnit]:
        tokens = self.tokens
        index = 0
        while index < len(tokens) and tokens[index].is_semi:
            index += 1
        if index >= len(tokens) or not tokens[index].is_keyword("package"):
            raise self.parser.error("expected 'package' clause", index)
        if index + 1 >= len(tokens) or tokens[index + 1].kind != TokenKind.IDENT:
            raise self.parser.error("expected package name", index + 1)
        self.package = tokens[index + 1].value
        self.emit(UnitKind.PACKAGE, tokens[index + 1], name=self.package, is_test=self.is_test)
        index += 2

        while index < len(tokens):
            tok = tokens[index]
            if tok.is_semi:
                index += 1
            elif tok.is_keyword("import"):
                index = self._grouped(index, self._import_spec)
            elif tok.is_keyword("type"):
                index = self._grouped(index, self._type_spec)
            elif tok.is_keyword("var", "const"):
                index = self._grouped(index, self._var_spec)
            elif tok.is_keyword("func"):
                index = self._func_decl(index)
            else:
                raise self.parser.error(f"unexpected {tok.value!r} at top level", index)
        return self.units

    def _grouped(self, index: int, handler) -> int:
        keyword = self.tokens[index]
        following = index + 1
        if following < len(self.tokens) and self.tokens[following].is_op("("):
            close = self.parser.pairs[following]
            for start, end in self.parser.split(following + 1, close, ";"):
                handler(keyword, start, end)
            return close + 1
        end = self.parser.statement_end(following, len(self.tokens))
        if end == following:
            raise self.parser.error(f"expected declaration after '{keyword.value}'", following)
        handler(keyword, following, end)
        return end

    def _import_spec(self, keyword: Token, start: int, end: int):
        path_tok = self.tokens[end - 1]
        if path_tok.kind != TokenKind.STRING:
            raise self.parser.error("expected import path", end - 1)
        alias = self.tokens[start].value if end - start > 1 else None
        self.emit(UnitKind.IMPORT, self.tokens[start], import_path=_string_value(path_tok), name=alias)

    def _is_type_params(self, open_index: int) -> bool:
        inner = self.tokens[open_index + 1:self.parser.pairs[open_index]]
        return (len(inner) >= 2 and inner[0].kind == TokenKind.IDENT
                and (inner[1].kind in (TokenKind.IDENT, TokenKind.KEYWORD) or inner[1].is_op(",", "~")))

    def _type_spec(self, keyword: Token, start: int, end: int):
        tokens = self.tokens
        name_tok = tokens[start]
        if name_tok.kind != TokenKind.IDENT:
            raise self.parser.error("expected type name", start)
        index = start + 1
        type_params: List[Param] = []
        if index < end and tokens[index].is_op("[") and self._is_type_params(index):
            type_params = self.parser.parse_params(index)
            index = self.parser.pairs[index] + 1
        alias = index < end and tokens[index].is_op("=")
        if alias:
            index += 1
        if index >= end:
            raise self.parser.error("expected type", index)

        name = name_tok.value
        end_line = tokens[end - 1].line
        common = dict(name=name, exported=name[0].isupper(), type_params=type_params)
        if tokens[index].is_keyword("interface") and index + 1 < end and tokens[index + 1].is_op("{"):
            self._interface(name_tok, index + 1, end_line, common)
        elif tokens[index].is_keyword("struct") and index + 1 < end and tokens[index + 1].is_op("{"):
            self._struct(name_tok, index + 1, end_line, common)
        else:
            self.emit(UnitKind.TYPE, name_tok, end_line, underlying=render(tokens[index:end]), alias=alias, **common)

    def _interface(self, name_tok: Token, open_index: int, end_line: int, common: dict):
        methods: List[Method] = []
        embedded: List[str] = []
        constraint = False
        for start, end in self.parser.split(open_index + 1, self.parser.pairs[open_index], ";"):
            first = self.tokens[start]
            element = self.tokens[start:end]
            if first.kind == TokenKind.IDENT and end - start > 1 and self.tokens[start + 1].is_op("("):
                methods.append(Method(first.value, render(element[1:]), first.line))
            elif all(tok.kind == TokenKind.IDENT or tok.is_op(".") for tok in element):
                embedded.append(render(element))
            else:
                constraint = True
        self.emit(UnitKind.INTERFACE, name_tok, end_line, methods=methods, method_count=len(methods),
                  embedded=embedded, constraint=constraint, **common)

    def _struct(self, name_tok: Token, open_index: int, end_line: int, common: dict):
        fields: List[Field] = []
        for start, end in self.parser.split(open_index + 1, self.parser.pairs[open_index], ";"):
            element = self.tokens[start:end]
            if len(element) > 1 and element[-1].kind == TokenKind.STRING:
                element = element[:-1]
            fields.append(self._field(element))
        self.emit(
            UnitKind.STRUCT, name_tok, end_line,
            fields=fields,
            has_mutex=any(f.type in MUTEX_TYPES for f in fields),
            has_waitgroup=any(f.type == "sync.WaitGroup" for f in fields),
            context_fields=[f for f in fields if f.type == CONTEXT_TYPE],
            **common,
        )

    def _field(self, element: Sequence[Token]) -> Field:
        first = element[0]
        named = first.kind == TokenKind.IDENT and len(element) > 1 and not element[1].is_op(".")
        if named and element[1].is_op("["):
            close = _pairs(element)[1]
            inner = element[2:close]
            named = not inner or (len(inner) == 1 and inner[0].kind == TokenKind.NUMBER) or inner[0].is_op("...")
        if not named:
            return Field((), render(element), first.line, first.col)
        names = [first.value]
        index = 1
        while index + 1 < len(element) and element[index].is_op(",") and element[index + 1].kind == TokenKind.IDENT:
            names.append(element[index + 1].value)
            index += 2
        return Field(tuple(names), render(element[index:]), first.line, first.col)

    def _var_spec(self, keyword: Token, start: int, end: int):
        tokens = self.tokens
        names: List[str] = []
        positions: List[Tuple[int, int]] = []
        index = start
        while index < end and tokens[index].kind == TokenKind.IDENT:
            names.append(tokens[index].value)
            positions.append((tokens[index].line, tokens[index].col))
            index += 1
            if index < end and tokens[index].is_op(","):
                index += 1
            else:
                break
        if not names:
            raise self.parser.error(f"expected name in '{keyword.value}' declaration", start)

        equals = index
        while equals < end and not tokens[equals].is_op("="):
            equals = self.parser.skip(equals)
        funclits, value = self.parser.cut_funclits(equals + 1, end) if equals < end else ([], [])
        self.emit(
            UnitKind.VAR, tokens[start], tokens[end - 1].line,
            names=names,
            name_positions=positions,
            name=names[0],
            const=keyword.value == "const",
            type=render(tokens[index:equals]),
            value=render(value),
            sentinel=render(value).startswith(("errors.New(", "fmt.Errorf(")),
            exported=names[0][0].isupper(),
        )

        ctx = _Context(scope=_Scope("", [], []))
        self._expressions(value, ctx)
        for literal in funclits:
            self._literal(literal, ctx)

    def _func_decl(self, index: int) -> int:
        tokens = self.tokens
        parser = self.parser
        func_tok = tokens[index]
        cursor = index + 1
        receiver = None
        if cursor < len(tokens) and tokens[cursor].is_op("("):
            receivers = parser.parse_params(cursor)
            if len(receivers) != 1:
                raise parser.error("method has multiple receivers", cursor)
            receiver_type = receivers[0].type
            receiver = Receiver(
                name=receivers[0].name,
                type_name=receiver_type.lstrip("*").split("[")[0],
                pointer=receiver_type.startswith("*"),
                line=receivers[0].line,
                col=receivers[0].col,
            )
            cursor = parser.pairs[cursor] + 1
        if cursor >= len(tokens) or tokens[cursor].kind != TokenKind.IDENT:
            raise parser.error("expected function name", cursor)
        name = tokens[cursor].value
        cursor += 1

        type_params: List[Param] = []
        if cursor < len(tokens) and tokens[cursor].is_op("["):
            type_params = parser.parse_params(cursor)
            cursor = parser.pairs[cursor] + 1
        if cursor >= len(tokens) or not tokens[cursor].is_op("("):
            raise parser.error("expected '(' after function name", cursor)
        params = parser.parse_params(cursor)
        cursor = parser.pairs[cursor] + 1

        end = parser.statement_end(cursor, len(tokens))
        body = parser.find_body_brace(cursor, end)
        results = parser.parse_results(cursor, body if body is not None else end)

        scope = _Scope(name, params, results, receiver=receiver)
        stmts = parser.block(body) if body is not None else []
        scope.collect(stmts)
        self._walk(stmts, _Context(scope=scope))

        body_lines = 0
        if body is not None:
            body_lines = max(0, tokens[parser.pairs[body]].line - tokens[body].line - 1)
        context_index = next((i for i, p in enumerate(params) if p.type == CONTEXT_TYPE), None)
        callees = list(dict.fromkeys(scope.stats.callees))
        test_param = scope.own_test_param
        self.emit(
            UnitKind.FUNCTION, func_tok, tokens[end - 1].line,
            name=name,
            receiver=receiver,
            params=params,
            results=results,
            type_params=type_params,
            exported=name[0].isupper(),
            has_body=body is not None,
            context_index=context_index,
            has_context=context_index is not None,
            body_lines=body_lines,
            max_depth=scope.stats.max_depth,
            naked_returns=scope.naked_returns,
            named_results=scope.named_results,
            callees=callees,
            cancellation_safe=flow.waits_for_cancellation(stmts),
            in_test_file=self.is_test,
            package=self.package,
            test_param=test_param,
            calls_helper=test_param is not None and f"{test_param}.Helper" in callees,
            reports_failure=test_param is not None and any(
                callee.startswith(f"{test_param}.") and callee.split(".", 1)[1].startswith(("Error", "Fatal", "Fail"))
                for callee in callees),
        )

        if self.is_test and receiver is None and name.startswith(TEST_PREFIXES):
            prefix = next(p for p in TEST_PREFIXES if name.startswith(p))
            uses_test_param = bool(test_param) and bool(flow.references(stmts, [test_param]))
            self.emit(
                UnitKind.TEST_FUNCTION, func_tok, tokens[end - 1].line,
                name=name,
                prefix=prefix,
                suffix=name[len(prefix):],
                params=params,
                results=results,
                test_param=test_param,
                asserts=uses_test_param or any(c.startswith(("assert.", "require.")) for c in callees),
            )
        return end

    # Function bodies

    def _enter(self, ctx: _Context, **changes) -> _Context:
        inner = replace(ctx, depth=ctx.depth + 1, **changes)
        stats = ctx.scope.stats
        stats.max_depth = max(stats.max_depth, inner.depth)
        return inner

    def _walk(self, stmts: Sequence[Statement], ctx: _Context):
        for stmt in stmts:
            self._statement(stmt, ctx)

    def _statement(self, stmt: Statement, ctx: _Context):
        kind = stmt.kind
        launched = None
        if kind == "go":
            launched = self._go(stmt, ctx)
        elif kind == "defer":
            self._defer(stmt, ctx)
        elif kind == "return":
            self._return(stmt, ctx)
        elif kind == "simple":
            self._ignored(stmt)

        self._expressions(stmt.tokens, ctx, statement=kind == "simple")
        for literal in stmt.funclits:
            self._literal(literal, ctx, in_goroutine=literal is launched)

        if kind == "if":
            self._if(stmt, ctx)
        elif kind == "for":
            self._for(stmt, ctx)
        elif kind == "switch":
            self._switch(stmt, ctx)
        elif kind == "select":
            self._select(stmt, ctx)
        elif kind == "block":
            self._walk(stmt.body, ctx)

    def _literal(self, literal: FuncLiteral, ctx: _Context, in_goroutine: bool = False):
        scope = _Scope(ctx.scope.name, literal.params, literal.results, parent=ctx.scope)
        scope.collect(literal.body)
        inner = self._enter(ctx, scope=scope, loop_depth=0, guard=None,
                            in_goroutine=ctx.in_goroutine or in_goroutine)
        self._walk(literal.body, inner)

    def _if(self, stmt: Statement, ctx: _Context):
        groups = split_top_level(stmt.tokens, ";")
        condition = groups[-1]
        self._error_check(stmt, condition, ctx)
        guard = condition_guard(condition)
        for init in groups[:-1]:
            guard = _stronger(guard, init_guard(init))
        self._walk(stmt.body, self._enter(ctx, guard=_stronger(ctx.guard, guard)))
        if stmt.else_body is None:
            return
        if len(stmt.else_body) == 1 and stmt.else_body[0].kind == "if":
            self._statement(stmt.else_body[0], ctx)
        else:
            self._walk(stmt.else_body, self._enter(ctx))

    def _for(self, stmt: Statement, ctx: _Context):
        header = stmt.tokens
        groups = split_top_level(header, ";")
        if any(tok.is_keyword("range") for tok in header):
            form, variables = "range", _defined_names(header)
        elif len(groups) == 3:
            form, variables = "clause", _defined_names(groups[0])
        elif not header or render(header) == "true":
            form, variables = "infinite", []
        else:
            form, variables = "condition", []
        self.emit(UnitKind.LOOP, stmt, stmt.end_line, form=form, variables=variables,
                  depth=ctx.loop_depth + 1, function=ctx.scope.name)
        inner = self._enter(ctx, loop_depth=ctx.loop_depth + 1, loop_vars=ctx.loop_vars | frozenset(variables))
        self._walk(stmt.body, inner)

    def _switch(self, stmt: Statement, ctx: _Context):
        tag = split_top_level(stmt.tokens, ";")[-1]
        tag_text = render(tag)
        subject = None
        type_switch = tag_text.endswith(".(type)")
        if type_switch:
            subject_tokens = tag[_assignment_index(tag) + 1:] if _assignment_index(tag) is not None else tag
            subject = subject_tokens[0].value if subject_tokens else None
        elif len(tag) == 1:
            subject = tag[0].value
        if tag_text.endswith(".Error()"):
            self.emit(UnitKind.ERROR_COMPARE, stmt, method="string", operator="switch",
                      expression=tag_text, function=ctx.scope.name)

        for clause in stmt.clauses:
            self._expressions(clause.header, ctx)
            guard = None
            if subject is not None and is_errish(subject):
                if type_switch:
                    guard = "type-assert"
                elif not clause.is_default and render(clause.header) != "nil":
                    guard = "sentinel"
            elif not tag:
                guard = condition_guard(clause.header)
            self._walk(clause.body, self._enter(ctx, guard=_stronger(ctx.guard, guard)))

    def _select(self, stmt: Statement, ctx: _Context):
        cases = [clause for clause in stmt.clauses if not clause.is_default]
        self.emit(
            UnitKind.SELECT, stmt, stmt.end_line,
            cases=len(cases),
            has_default=len(cases) != len(stmt.clauses),
            waits_for_cancellation=any(flow.receives_cancellation(c.header) for c in cases),
            in_loop=ctx.loop_depth > 0,
            function=ctx.scope.name,
        )
        for clause in stmt.clauses:
            self._expressions(clause.header, ctx)
            self._walk(clause.body, self._enter(ctx))

    def _error_check(self, stmt: Statement, condition: Sequence[Token], ctx: _Context):
        variable = None
        for index, tok in enumerate(condition):
            if (tok.is_op("!=") and 0 < index < len(condition) - 1
                    and condition[index + 1].kind == TokenKind.IDENT and condition[index + 1].value == "nil"):
                left = condition[index - 1]
                selected = index >= 2 and condition[index - 2].is_op(".")
                if left.kind == TokenKind.IDENT and is_errish(left.value) and not selected:
                    variable = left.value
                    break
        if variable is None:
            return

        nested = list(_flatten(stmt.body))
        returns = [s for s in nested if s.kind == "return"]
        self.emit(
            UnitKind.ERROR_CHECK, stmt, stmt.end_line,
            variable=variable,
            body_empty=not stmt.body,
            statements=len(stmt.body),
            returns=bool(returns),
            returns_error=any(_mentions(s.tokens, variable) for s in returns),
            terminates=any(flow.terminates(s.tokens) or _FAILING_TEST_CALL.match(render(s.tokens)) for s in nested),
            diverts=any(s.kind in ("continue", "break", "goto") for s in nested),
            logs=any(is_log_call(call.callee) for s in nested for call in _calls(s.tokens)),
            references_error=bool(flow.references(stmt.body, [variable])),
            has_else=stmt.else_body is not None,
            function=ctx.scope.name,
        )

    def _return(self, stmt: Statement, ctx: _Context):
        scope = ctx.scope
        values = [group for group in split_top_level(stmt.tokens[1:], ",") if group]
        if not values:
            if scope.named_results:
                scope.naked_returns.append((stmt.line, stmt.col))
            return
        if scope.error_index is None:
            return
        if len(values) == len(scope.results):
            expr = values[scope.error_index]
            handling = classify_error_expr(expr, scope)
        elif len(values) == 1:
            expr = values[0]
            handling = "delegated" if _trailing_call(expr) is not None else "other"
        else:
            return

        variable = expr[0].value if len(expr) == 1 and expr[0].kind == TokenKind.IDENT else None
        origin = None
        if handling == "bare" and variable is not None:
            origin = scope.origin(variable, stmt.line, stmt.col)
        self.emit(
            UnitKind.ERROR_RETURN, expr[0],
            handling=handling,
            variable=variable,
            origin=origin,
            guard=ctx.guard,
            expression=render(expr),
            function=scope.name,
        )

    def _go(self, stmt: Statement, ctx: _Context) -> Optional[FuncLiteral]:
        expr = stmt.tokens[1:]
        literal = stmt.funclits[0] if expr and expr[0].is_keyword("func") and stmt.funclits else None
        args: List[List[Token]] = []
        callee = None
        open_index = _trailing_call(expr)
        if open_index is not None:
            args = [g for g in split_top_level(expr[open_index + 1:-1], ",") if g]
            if literal is None:
                callee = render(expr[:open_index])

        callee_type = None
        receiver = ctx.scope.receiver
        if callee is not None and callee.count(".") == 1 and receiver is not None:
            base = callee.split(".")[0]
            if base == receiver.name:
                callee_type = receiver.type_name

        captured: List[str] = []
        safe = None
        if literal is not None:
            shadowed = {p.name for p in literal.params}
            captured = [name for name in flow.references(literal.body, sorted(ctx.loop_vars)) if name not in shadowed]
            safe = flow.waits_for_cancellation(literal.body)

        self.emit(
            UnitKind.GO, stmt, stmt.end_line,
            literal=literal is not None,
            callee=callee,
            callee_type=callee_type,
            args=[render(a) for a in args],
            passes_context=any(_CONTEXT_ARG.search(render(a)) or flow.is_cancellation_operand(a) for a in args),
            cancellation_safe=safe,
            captured_loop_vars=captured,
            params=literal.params if literal is not None else [],
            in_loop=ctx.loop_depth > 0,
            function=ctx.scope.name,
        )
        return literal

    def _defer(self, stmt: Statement, ctx: _Context):
        expr = stmt.tokens[1:]
        literal = bool(expr) and expr[0].is_keyword("func")
        open_index = _trailing_call(expr)
        callee = None if literal or open_index is None else render(expr[:open_index])
        self.emit(UnitKind.DEFER, stmt, stmt.end_line, callee=callee, literal=literal,
                  in_loop=ctx.loop_depth > 0, loop_depth=ctx.loop_depth, function=ctx.scope.name)

    def _ignored(self, stmt: Statement):
        tokens = stmt.tokens
        index = _assignment_index(tokens)
        if index is None:
            return
        lhs = split_top_level(tokens[:index], ",")
        rhs = [group for group in split_top_level(tokens[index + 1:], ",") if group]
        if len(rhs) != 1 or not lhs or not lhs[-1]:
            return
        open_index = _trailing_call(rhs[0])
        last = lhs[-1]
        if open_index is None or len(last) != 1 or last[0].value != "_":
            return
        self.emit(
            UnitKind.ERROR_IGNORED, last[0],
            callee=render(rhs[0][:open_index]),
            results=len(lhs),
            discards_all=all(len(g) == 1 and g[0].value == "_" for g in lhs),
        )

    def _expressions(self, tokens: Sequence[Token], ctx: _Context, statement: bool = False):
        scope = ctx.scope
        for call in _calls(tokens):
            scope.stats.callees.append(call.callee)
            self.emit(
                UnitKind.CALL, call.first,
                callee=call.callee,
                name=call.name,
                receiver=call.receiver,
                args=[render(arg) for arg in call.args],
                statement=statement and call.start == 0 and call.close == len(tokens) - 1,
                function=scope.name,
                in_goroutine=ctx.in_goroutine,
                in_loop=ctx.loop_depth > 0,
                in_test_file=self.is_test,
                test_param=scope.test_param,
                package=self.package,
            )
            if call.callee == "make" and call.args and call.args[0][0].is_keyword("chan"):
                self._channel_make(call)
            elif call.callee in _CONSTRUCTING_CALLS:
                self._error_construct(call, scope)
            elif call.callee in _STRING_MATCHERS and call.args and render(call.args[0]).endswith(".Error()"):
                self.emit(UnitKind.ERROR_COMPARE, call.first, method="string", operator=call.callee,
                          expression=render(tokens[call.start:call.close + 1]), function=scope.name)
            elif call.callee in ("errors.Is", "errors.As"):
                self.emit(UnitKind.ERROR_COMPARE, call.first, method=call.callee.replace(".", "-").lower(),
                          operator=call.callee, expression=render(tokens[call.start:call.close + 1]),
                          function=scope.name)
        self._comparisons(tokens, ctx)

    def _channel_make(self, call: _Call):
        chan_type = call.args[0]
        buffer = call.args[1] if len(call.args) > 1 else None
        size = None
        if buffer is not None and len(buffer) == 1 and buffer[0].value.isdigit():
            size = int(buffer[0].value)
        self.emit(
            UnitKind.CHANNEL_MAKE, call.first,
            element=render(chan_type[1:]),
            buffered=buffer is not None and size != 0,
            buffer=render(buffer) if buffer is not None else None,
            size=size,
        )

    def _error_construct(self, call: _Call, scope: _Scope):
        message = None
        raw = False
        verbs: List[str] = []
        if call.args and len(call.args[0]) == 1 and call.args[0][0].kind == TokenKind.STRING:
            literal = call.args[0][0]
            message = _string_value(literal)
            raw = literal.value.startswith("`")
            verbs = [verb for _, verb in _FORMAT_VERB.findall(message) if verb != "%"]
        error_args = [render(arg) for arg in call.args[1:] if len(arg) == 1 and is_errish(arg[0].value)]
        self.emit(
            UnitKind.ERROR_CONSTRUCT, call.first,
            constructor=call.callee,
            message=message,
            raw=raw,
            verbs=verbs,
            wraps="w" in verbs,
            error_args=error_args,
            function=scope.name,
        )

    def _comparisons(self, tokens: Sequence[Token], ctx: _Context):
        for index, tok in enumerate(tokens):
            if not tok.is_op("==", "!=") or index == 0:
                continue
            right = flow.operand(tokens, index + 1)
            right_text = render(right)
            left_string = (index >= 4 and tokens[index - 1].is_op(")") and tokens[index - 2].is_op("(")
                           and tokens[index - 3].value == "Error" and tokens[index - 4].is_op("."))
            if left_string or right_text.endswith(".Error()"):
                method = "string"
            else:
                left = tokens[index - 1]
                left_errish = (left.kind == TokenKind.IDENT and is_errish(left.value)
                               and not (index >= 2 and tokens[index - 2].is_op(".")))
                right_errish = len(right) == 1 and is_errish(right[0].value)
                if not ((left_errish and right_text not in ("", "nil")) or (right_errish and left.value != "nil")):
                    continue
                method = "equality"
            start = max(0, index - 4) if left_string else index - 1
            self.emit(UnitKind.ERROR_COMPARE, tok, method=method, operator=tok.value,
                      expression=render(list(tokens[start:index + 1]) + right), function=ctx.scope.name)


def _flatten(stmts: Sequence[Statement]):
    """All statements of a tree, closures excluded."""
    for stmt in stmts:
        yield stmt
        yield from _flatten(stmt.body)
        if stmt.else_body:
            yield from _flatten(stmt.else_body)
        for clause in stmt.clauses:
            yield from _flatten(clause.body)


def _mentions(tokens: Sequence[Token], name: str) -> bool:
    return any(tok.kind == TokenKind.IDENT and tok.value == name for tok in tokens)


def adapt(source: str, path: str = "<source>") -> SourceModel:
    """Convenience wrapper around :class:`GoSourceAdapter`."""
    return GoSourceAdapter().adapt(source, path)
