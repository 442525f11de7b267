"""Tests for the Go lexer."""

import pytest

from gostyle_lint.core.errors import ParseError
from gostyle_lint.source.lexer import TokenKind, tokenize


def test_semicolons_inserted_at_line_ends():
    code = "package p\n\nfunc f() int {\n\treturn 1\n}\n"

    tokens, comments = tokenize(code)

    values = [t.value for t in tokens if not t.is_semi]
    assert values == ["package", "p", "func", "f", "(", ")", "int", "{", "return", "1", "}"]
    # after "p", after "1" and after the closing brace; none after "{"
    semis = [(t.line, t.col) for t in tokens if t.is_semi]
    assert [line for line, _ in semis] == [1, 4, 5]
    assert comments == []


def test_positions_are_one_based():
    tokens, _ = tokenize("x := 42")

    assert (tokens[0].value, tokens[0].line, tokens[0].col) == ("x", 1, 1)
    assert (tokens[1].value, tokens[1].col) == (":=", 3)
    assert (tokens[2].kind, tokens[2].col) == (TokenKind.NUMBER, 6)


def test_keywords_and_operators():
    tokens, _ = tokenize("go func() { ch <- v }()")

    assert tokens[0].is_keyword("go")
    assert tokens[1].is_keyword("func")
    assert any(t.is_op("<-") for t in tokens)


def test_comments_are_kept_apart():
    code = "x := 1 // trailing\n// standalone\n/* block\n   comment */\ny := 2\n"

    tokens, comments = tokenize(code)

    assert [c.trailing for c in comments] == [True, False, False]
    assert comments[0].body == " trailing"
    assert comments[2].line == 3
    assert comments[2].end_line == 4
    assert all(t.value not in ("trailing", "standalone") for t in tokens)
    assert [t.value for t in tokens if t.kind == TokenKind.IDENT] == ["x", "y"]


def test_raw_string_spanning_lines():
    code = "s := `a\nb`\nt := 1\n"

    tokens, _ = tokenize(code)

    t = next(tok for tok in tokens if tok.value == "t")
    assert t.line == 3


def test_unterminated_string():
    with pytest.raises(ParseError, match="string literal not terminated") as exc:
        tokenize('s := "abc\n', "bad.go")

    assert exc.value.path == "bad.go"
    assert (exc.value.line, exc.value.col) == (1, 6)


def test_unterminated_comment():
    with pytest.raises(ParseError, match="comment not terminated"):
        tokenize("x := 1 /* never closed")
