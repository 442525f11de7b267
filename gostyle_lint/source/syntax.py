"""
Statement trees for Go declarations and function bodies.

This is deliberately not a full Go parser. It recovers the structure the
rule catalog needs (blocks, control statements, switch/select clauses,
function literals and signatures) from the token stream, and treats
expressions as flat token runs.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from gostyle_lint.core.errors import ParseError
from gostyle_lint.source.lexer import Token, TokenKind
from gostyle_lint.source.units import Param

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")": "(", "]": "[", "}": "{"}

_WORDS = (TokenKind.IDENT, TokenKind.KEYWORD, TokenKind.NUMBER, TokenKind.STRING, TokenKind.CHAR)
_SPACED_OPS = frozenset({"==", "!=", "&&", "||", ":=", "=", "<=", ">=", "+=", "-=", "|"})

_SIMPLE_KINDS = frozenset({"go", "defer", "return", "break", "continue", "goto", "fallthrough"})
_DECL_KINDS = frozenset({"var", "const", "type"})


@dataclass
class FuncLiteral:
    """A function literal (closure) found inside a statement."""

    params: List[Param]
    results: List[Param]
    body: List["Statement"]
    line: int
    col: int
    end_line: int


@dataclass
class Clause:
    """A case or default clause of a switch/select statement."""

    header: List[Token]
    is_default: bool
    body: List["Statement"]
    line: int
    col: int


@dataclass
class Statement:
    """
    One statement of a function body.

    Attributes:
        kind: "simple", "decl", a simple keyword statement ("go", "defer",
            "return", "break", "continue", "goto", "fallthrough"), a compound
            statement ("if", "for", "switch", "select") or "block"
        tokens: For simple statements, the statement's tokens with function
            literal bodies cut down to an empty "{}"; for compound statements,
            the header between the keyword and the opening brace
        body: Nested statements of if/for/block
        else_body: Statements of the else branch; an else-if is a single
            nested "if" statement
        clauses: Clauses of switch/select
        funclits: Function literals appearing in tokens
        label: Label attached to the statement, if any
    """

    kind: str
    tokens: List[Token]
    line: int
    col: int
    end_line: int
    body: List["Statement"] = field(default_factory=list)
    else_body: Optional[List["Statement"]] = None
    clauses: List[Clause] = field(default_factory=list)
    funclits: List[FuncLiteral] = field(default_factory=list)
    label: Optional[str] = None


def render(tokens: Sequence[Token]) -> str:
    """Render tokens back to compact, canonical source text."""
    parts: List[str] = []
    prev: Optional[Token] = None
    for tok in tokens:
        if tok.is_semi:
            parts.append(";")
            prev = tok
            continue
        if prev is not None and _needs_space(prev, tok):
            parts.append(" ")
        parts.append(tok.value)
        prev = tok
    return "".join(parts)


def _needs_space(prev: Token, tok: Token) -> bool:
    if prev.is_semi or prev.is_op(","):
        return True
    if prev.kind == TokenKind.OP and prev.value in _SPACED_OPS:
        return True
    if tok.kind == TokenKind.OP and tok.value in _SPACED_OPS:
        return True
    if tok.kind in _WORDS:
        return prev.kind in _WORDS or prev.is_op(")")
    return False


def split_top_level(tokens: Sequence[Token], *separators: str) -> List[List[Token]]:
    """Split a token run on separator operators outside any brackets."""
    groups: List[List[Token]] = [[]]
    depth = 0
    for tok in tokens:
        if tok.kind == TokenKind.OP:
            if tok.value in _OPENERS:
                depth += 1
            elif tok.value in _CLOSERS:
                depth -= 1
            elif depth == 0 and tok.value in separators:
                groups.append([])
                continue
        if depth == 0 and tok.is_semi and ";" in separators:
            groups.append([])
            continue
        groups[-1].append(tok)
    return groups


def match_delimiters(tokens: Sequence[Token], path: str) -> Dict[int, int]:
    """
    Pair every opening bracket with its closing bracket.

    Returns:
        Mapping of opener index to closer index

    Raises:
        ParseError: On unbalanced or mismatched brackets
    """
    pairs: Dict[int, int] = {}
    stack: List[int] = []
    for index, tok in enumerate(tokens):
        if tok.kind != TokenKind.OP:
            continue
        if tok.value in _OPENERS:
            stack.append(index)
        elif tok.value in _CLOSERS:
            if not stack:
                raise ParseError(f"unexpected '{tok.value}'", path, tok.line, tok.col)
            opener = stack.pop()
            if tokens[opener].value != _CLOSERS[tok.value]:
                raise ParseError(
                    f"'{tokens[opener].value}' at {tokens[opener].line}:{tokens[opener].col} closed by '{tok.value}'",
                    path, tok.line, tok.col)
            pairs[opener] = index
    if stack:
        tok = tokens[stack[-1]]
        raise ParseError(f"unclosed '{tok.value}'", path, tok.line, tok.col)
    return pairs


class SyntaxParser:
    """Builds statement trees and signatures over one file's tokens."""

    def __init__(self, tokens: Sequence[Token], path: str):
        self.tokens = list(tokens)
        self.path = path
        self.pairs = match_delimiters(self.tokens, path)

    # Token navigation

    def skip(self, index: int) -> int:
        """Index after the token, jumping over a bracketed group."""
        if index in self.pairs:
            return self.pairs[index] + 1
        return index + 1

    def statement_end(self, index: int, end: int) -> int:
        """Index of the semicolon ending the statement that starts at index."""
        while index < end and not self.tokens[index].is_semi:
            index = self.skip(index)
        return min(index, end)

    def split(self, start: int, end: int, separator: str = ",") -> List[Tuple[int, int]]:
        """Split [start, end) on a top-level separator; returns index ranges."""
        ranges: List[Tuple[int, int]] = []
        group_start = start
        index = start
        while index < end:
            tok = self.tokens[index]
            if (separator == ";" and tok.is_semi) or tok.is_op(separator):
                ranges.append((group_start, index))
                group_start = index + 1
                index += 1
                continue
            index = self.skip(index)
        ranges.append((group_start, end))
        return [(a, b) for a, b in ranges if a < b]

    def error(self, message: str, index: int) -> ParseError:
        tok = self.tokens[min(index, len(self.tokens) - 1)] if self.tokens else None
        if tok is None:
            return ParseError(message, self.path)
        return ParseError(message, self.path, tok.line, tok.col)

    def find_body_brace(self, index: int, end: int) -> Optional[int]:
        """
        Find the brace opening a function body after a signature.

        Braces that belong to interface{...} or struct{...} result types are
        skipped. Returns None when the signature has no body (a function
        type or an external declaration).
        """
        while index < end:
            tok = self.tokens[index]
            if tok.is_semi:
                return None
            if tok.is_op("{"):
                if index > 0 and self.tokens[index - 1].is_keyword("interface", "struct"):
                    index = self.pairs[index] + 1
                    continue
                return index
            index = self.skip(index)
        return None

    def find_block_brace(self, index: int, end: int) -> int:
        """
        Find the brace opening the block of an if/for/switch/select.

        Composite literals may appear in headers (``range []int{1, 2} {``).
        The block brace is the one whose closing brace ends the statement,
        i.e. is followed by a semicolon, ``else`` or the enclosing block's end.
        """
        start = index
        while index < end:
            tok = self.tokens[index]
            if tok.is_keyword("func") and index + 1 < end and self.tokens[index + 1].is_op("("):
                params_close = self.pairs[index + 1]
                body = self.find_body_brace(params_close + 1, end)
                if body is not None:
                    index = self.pairs[body] + 1
                    continue
            if tok.is_op("{"):
                close = self.pairs[index]
                if index > 0 and self.tokens[index - 1].is_keyword("interface", "struct"):
                    index = close + 1
                    continue
                after = close + 1
                if (after >= end or self.tokens[after].is_semi or self.tokens[after].is_keyword("else")
                        or self.tokens[after].is_op("}")):
                    return index
                index = close + 1
                continue
            index = self.skip(index)
        raise self.error("expected '{' to open block", start - 1)

    # Signatures

    def parse_params(self, open_index: int) -> List[Param]:
        """Parse a parenthesized parameter (or result) list."""
        close = self.pairs[open_index]
        # (name, type tokens, first token of the entry)
        entries: List[Tuple[Optional[str], List[Token], Token]] = []
        for start, end in self.split(open_index + 1, close):
            group = self.tokens[start:end]
            if self._is_named(group, start):
                entries.append((group[0].value, group[1:], group[0]))
            else:
                entries.append((None, group, group[0]))

        if any(name is not None for name, _, _ in entries):
            # `a, b int` groups: bare names take the type of the next named entry.
            resolved: List[Tuple[Optional[str], List[Token], Token]] = []
            pending: List[Token] = []
            for name, type_tokens, first in reversed(entries):
                if name is None and len(type_tokens) == 1 and type_tokens[0].kind == TokenKind.IDENT:
                    resolved.append((type_tokens[0].value, pending, first))
                else:
                    pending = type_tokens
                    resolved.append((name, type_tokens, first))
            entries = list(reversed(resolved))

        params: List[Param] = []
        for name, type_tokens, first in entries:
            variadic = bool(type_tokens) and type_tokens[0].is_op("...")
            if variadic:
                type_tokens = type_tokens[1:]
            params.append(Param(name=name, type=render(type_tokens), variadic=variadic, line=first.line, col=first.col))
        return params

    def _is_named(self, group: List[Token], start: int) -> bool:
        if len(group) < 2 or group[0].kind != TokenKind.IDENT:
            return False
        second = group[1]
        if second.is_op("."):
            return False
        if second.is_op("["):
            # `xs []int` / `buf [4]byte` are named; `List[int]` is a generic type.
            close = self.pairs[start + 1]
            inner = self.tokens[start + 2:close]
            return not inner or (len(inner) == 1 and inner[0].kind == TokenKind.NUMBER) or inner[0].is_op("...")
        return True

    def parse_results(self, index: int, limit: int) -> List[Param]:
        """Parse the result part of a signature that starts at index."""
        if index >= limit:
            return []
        if self.tokens[index].is_op("("):
            return self.parse_params(index)
        first = self.tokens[index]
        return [Param(name=None, type=render(self.tokens[index:limit]), line=first.line, col=first.col)]

    def func_literal(self, index: int, end: int) -> Optional[Tuple[FuncLiteral, int, int]]:
        """
        Parse a function literal starting at the ``func`` keyword.

        Returns:
            (literal, body_open, body_close), or None for a function type
        """
        params_open = index + 1
        params_close = self.pairs[params_open]
        body_open = self.find_body_brace(params_close + 1, end)
        if body_open is None:
            return None
        body_close = self.pairs[body_open]
        tok = self.tokens[index]
        literal = FuncLiteral(
            params=self.parse_params(params_open),
            results=self.parse_results(params_close + 1, body_open),
            body=self.statements(body_open + 1, body_close),
            line=tok.line,
            col=tok.col,
            end_line=self.tokens[body_close].line,
        )
        return literal, body_open, body_close

    # Statements

    def block(self, open_index: int) -> List[Statement]:
        """Parse the statements of the block opened at open_index."""
        return self.statements(open_index + 1, self.pairs[open_index])

    def statements(self, start: int, end: int) -> List[Statement]:
        stmts: List[Statement] = []
        label: Optional[str] = None
        index = start
        while index < end:
            tok = self.tokens[index]
            if tok.is_semi:
                index += 1
                continue
            if tok.kind == TokenKind.IDENT and index + 1 < end and self.tokens[index + 1].is_op(":"):
                label = tok.value
                index += 2
                continue

            if tok.is_keyword("if", "for", "switch", "select"):
                stmt, index = self._compound(index, end)
            elif tok.is_op("{"):
                close = self.pairs[index]
                stmt = Statement("block", [], tok.line, tok.col, self.tokens[close].line,
                                 body=self.statements(index + 1, close))
                index = close + 1
            else:
                stmt_end = self.statement_end(index, end)
                stmt = self._simple(index, stmt_end)
                index = stmt_end

            stmt.label = label
            label = None
            stmts.append(stmt)
        return stmts

    def _simple(self, start: int, end: int) -> Statement:
        first = self.tokens[start]
        funclits, own = self.cut_funclits(start, end)
        if first.kind == TokenKind.KEYWORD and first.value in _SIMPLE_KINDS:
            kind = first.value
        elif first.kind == TokenKind.KEYWORD and first.value in _DECL_KINDS:
            kind = "decl"
        else:
            kind = "simple"
        return Statement(kind, own, first.line, first.col, self.tokens[end - 1].line, funclits=funclits)

    def _compound(self, start: int, end: int) -> Tuple[Statement, int]:
        tok = self.tokens[start]
        brace = self.find_block_brace(start + 1, end)
        close = self.pairs[brace]
        funclits, header = self.cut_funclits(start + 1, brace)
        stmt = Statement(tok.value, header, tok.line, tok.col, self.tokens[close].line, funclits=funclits)
        if tok.value in ("switch", "select"):
            stmt.clauses = self._clauses(brace + 1, close)
        else:
            stmt.body = self.statements(brace + 1, close)

        index = close + 1
        if tok.value == "if" and index < end and self.tokens[index].is_keyword("else"):
            following = index + 1
            if following < end and self.tokens[following].is_keyword("if"):
                else_stmt, index = self._compound(following, end)
                stmt.else_body = [else_stmt]
            elif following < end and self.tokens[following].is_op("{"):
                else_close = self.pairs[following]
                stmt.else_body = self.statements(following + 1, else_close)
                index = else_close + 1
            else:
                raise self.error("expected 'if' or '{' after 'else'", following)
            stmt.end_line = self.tokens[index - 1].line
        return stmt, index

    def _clauses(self, start: int, end: int) -> List[Clause]:
        starts: List[int] = []
        index = start
        while index < end:
            if self.tokens[index].is_keyword("case", "default"):
                starts.append(index)
                index += 1
            else:
                index = self.skip(index)

        clauses: List[Clause] = []
        for position, clause_start in enumerate(starts):
            clause_end = starts[position + 1] if position + 1 < len(starts) else end
            colon = clause_start + 1
            while colon < clause_end and not self.tokens[colon].is_op(":"):
                colon = self.skip(colon)
            if colon >= clause_end:
                raise self.error("expected ':' after case", clause_start)
            tok = self.tokens[clause_start]
            clauses.append(Clause(
                header=self.tokens[clause_start + 1:colon],
                is_default=tok.value == "default",
                body=self.statements(colon + 1, clause_end),
                line=tok.line,
                col=tok.col,
            ))
        return clauses

    def cut_funclits(self, start: int, end: int) -> Tuple[List[FuncLiteral], List[Token]]:
        """Extract function literals from [start, end), leaving "{}" in their place."""
        funclits: List[FuncLiteral] = []
        own: List[Token] = []
        index = start
        while index < end:
            tok = self.tokens[index]
            if tok.is_keyword("func") and index + 1 < end and self.tokens[index + 1].is_op("("):
                parsed = self.func_literal(index, end)
                if parsed is not None:
                    literal, body_open, body_close = parsed
                    funclits.append(literal)
                    own.extend(self.tokens[index:body_open + 1])
                    own.append(self.tokens[body_close])
                    index = body_close + 1
                    continue
            own.append(tok)
            index += 1
        return funclits, own


def iter_tokens(stmts: Sequence[Statement], funclits: bool = True):
    """Yield every token of a statement tree, optionally descending into closures."""
    for stmt in stmts:
        yield from stmt.tokens
        yield from iter_tokens(stmt.body, funclits)
        if stmt.else_body:
            yield from iter_tokens(stmt.else_body, funclits)
        for clause in stmt.clauses:
            yield from clause.header
            yield from iter_tokens(clause.body, funclits)
        if funclits:
            for literal in stmt.funclits:
                yield from iter_tokens(literal.body, funclits)
