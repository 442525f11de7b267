"""
Cancellation reachability for goroutine bodies.

A body is cancellation-safe when it contains at least one wait on a
cancellation signal and every control path through it either reaches such a
wait or terminates explicitly (``return``, ``panic``, ``runtime.Goexit``,
``os.Exit``, ``log.Fatal``). Paths that fall off the end of the body, leave a
bounded loop or ``break`` out of an infinite one without waiting are unsafe.
"""

import re
from typing import List, NamedTuple, Sequence

from gostyle_lint.source.lexer import Token, TokenKind
from gostyle_lint.source.syntax import Clause, Statement, iter_tokens, render

CANCEL_NAME = re.compile(r"(?i)(done|quit|stop|cancel|shutdown|closing|close|exit|term|kill|abort)")

_TERMINATING_CALL = re.compile(
    r"^(?:panic|runtime\.Goexit|os\.Exit|log\.(?:Fatal|Fatalf|Fatalln|Panic|Panicf|Panicln))\("
)

_OPERAND_END = (TokenKind.IDENT, TokenKind.NUMBER, TokenKind.STRING, TokenKind.CHAR)


class Flow(NamedTuple):
    safe: bool  # every path waited or terminated
    breaks: bool  # some path leaves the enclosing loop via break without waiting


def operand(tokens: Sequence[Token], start: int) -> List[Token]:
    """Primary expression starting at start: a selector chain with calls/indexes."""
    parts: List[Token] = []
    depth = 0
    index = start
    while index < len(tokens):
        tok = tokens[index]
        if depth == 0:
            if tok.kind == TokenKind.IDENT or tok.is_op("."):
                pass
            elif tok.is_op("(", "["):
                depth += 1
            else:
                break
        elif tok.is_op("(", "["):
            depth += 1
        elif tok.is_op(")", "]"):
            depth -= 1
        parts.append(tok)
        index += 1
    return parts


def is_cancellation_operand(tokens: Sequence[Token]) -> bool:
    """True for ``ctx.Done()`` or a channel whose name says it signals shutdown."""
    if not tokens:
        return False
    text = render(tokens)
    if text.endswith(".Done()"):
        return True
    names = [tok.value for tok in tokens if tok.kind == TokenKind.IDENT]
    if not names or text.endswith(")"):
        return False
    return bool(CANCEL_NAME.search(names[-1]))


def receives_cancellation(tokens: Sequence[Token]) -> bool:
    """True if the tokens contain a receive from a cancellation signal."""
    for index, tok in enumerate(tokens):
        if not tok.is_op("<-"):
            continue
        prev = tokens[index - 1] if index > 0 else None
        if prev is not None and (prev.kind in _OPERAND_END or prev.is_op(")", "]", "}")):
            continue  # send statement
        if prev is not None and prev.is_keyword("chan"):
            continue  # channel type
        if is_cancellation_operand(operand(tokens, index + 1)):
            return True
    return False


def ranges_over_cancellation(header: Sequence[Token]) -> bool:
    for index, tok in enumerate(header):
        if tok.is_keyword("range"):
            return is_cancellation_operand(operand(header, index + 1))
    return False


def terminates(tokens: Sequence[Token]) -> bool:
    return bool(_TERMINATING_CALL.match(render(tokens)))


def _is_infinite(header: Sequence[Token]) -> bool:
    return not header or (len(header) == 1 and header[0].kind == TokenKind.IDENT and header[0].value == "true")


def sequence_flow(stmts: Sequence[Statement]) -> Flow:
    breaks = False
    for stmt in stmts:
        if stmt.kind == "continue":
            return Flow(False, breaks)
        flow = statement_flow(stmt)
        breaks = breaks or flow.breaks
        if flow.safe:
            return Flow(True, breaks)
    return Flow(False, breaks)


def _clause_flows(clauses: Sequence[Clause]) -> List[Flow]:
    flows: List[Flow] = []
    for clause in reversed(clauses):
        if clause.body and clause.body[-1].kind == "fallthrough" and flows:
            flow = sequence_flow(clause.body[:-1])
            flows.append(flow if flow.safe else flows[-1])
        else:
            flows.append(sequence_flow(clause.body))
    flows.reverse()
    return flows


def statement_flow(stmt: Statement) -> Flow:
    kind = stmt.kind
    if kind in ("return", "goto"):
        return Flow(True, False)
    if kind == "break":
        return Flow(True, True)
    if kind in ("simple", "decl"):
        return Flow(receives_cancellation(stmt.tokens) or terminates(stmt.tokens), False)
    if kind == "block":
        return sequence_flow(stmt.body)

    if receives_cancellation(stmt.tokens):
        return Flow(True, False)

    if kind == "if":
        then_flow = sequence_flow(stmt.body)
        if stmt.else_body is None:
            return Flow(False, then_flow.breaks)
        else_flow = sequence_flow(stmt.else_body)
        return Flow(then_flow.safe and else_flow.safe, then_flow.breaks or else_flow.breaks)

    if kind == "for":
        if ranges_over_cancellation(stmt.tokens):
            return Flow(True, False)
        if not _is_infinite(stmt.tokens):
            return Flow(False, False)
        body = sequence_flow(stmt.body)
        return Flow(body.safe and not body.breaks, False)

    if kind == "switch":
        flows = _clause_flows(stmt.clauses)
        has_default = any(clause.is_default for clause in stmt.clauses)
        return Flow(has_default and all(f.safe and not f.breaks for f in flows), False)

    if kind == "select":
        for clause in stmt.clauses:
            if not clause.is_default and receives_cancellation(clause.header):
                return Flow(True, False)
        flows = _clause_flows(stmt.clauses)
        return Flow(bool(flows) and all(f.safe and not f.breaks for f in flows), False)

    return Flow(False, False)


def contains_wait(stmts: Sequence[Statement]) -> bool:
    """True if any statement (closures excluded) waits on a cancellation signal."""
    for stmt in stmts:
        if receives_cancellation(stmt.tokens):
            return True
        if stmt.kind == "for" and ranges_over_cancellation(stmt.tokens):
            return True
        if contains_wait(stmt.body) or (stmt.else_body and contains_wait(stmt.else_body)):
            return True
        for clause in stmt.clauses:
            if receives_cancellation(clause.header) or contains_wait(clause.body):
                return True
    return False


def waits_for_cancellation(body: Sequence[Statement]) -> bool:
    """Whether a goroutine running this body can always be stopped."""
    return contains_wait(body) and sequence_flow(body).safe


def references(stmts: Sequence[Statement], names) -> List[str]:
    """Names from ``names`` used anywhere in the statements, closures included."""
    wanted = set(names)
    found = []
    prev = None
    for tok in iter_tokens(stmts):
        selected = prev is not None and prev.is_op(".")
        if tok.kind == TokenKind.IDENT and not selected and tok.value in wanted and tok.value not in found:
            found.append(tok.value)
        prev = tok
    return found
