"""
Go lexer.

Splits Go source into tokens with 1-indexed line/column positions and
applies the language's automatic semicolon insertion, so statement
boundaries are explicit for the structural parser. Comments are not part of
the token stream; they are returned separately because the only consumer
that cares about them is the suppression directive parser.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from gostyle_lint.core.errors import ParseError


class TokenKind(str, Enum):
    IDENT = "ident"
    KEYWORD = "keyword"
    NUMBER = "number"
    STRING = "string"
    CHAR = "char"
    OP = "op"
    SEMI = "semi"


KEYWORDS = frozenset({
    "break", "case", "chan", "const", "continue", "default", "defer", "else",
    "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
    "map", "package", "range", "return", "select", "struct", "switch", "type",
    "var",
})

# Keywords and closing operators after which a newline ends the statement.
_SEMI_KEYWORDS = frozenset({"break", "continue", "fallthrough", "return"})
_SEMI_OPS = frozenset({"++", "--", ")", "]", "}"})


@dataclass(frozen=True)
class Token:
    """A single lexical token."""

    kind: TokenKind
    value: str
    line: int  # 1-indexed
    col: int  # 1-indexed

    def is_op(self, *values: str) -> bool:
        return self.kind == TokenKind.OP and self.value in values

    def is_keyword(self, *values: str) -> bool:
        return self.kind == TokenKind.KEYWORD and self.value in values

    @property
    def is_semi(self) -> bool:
        return self.kind == TokenKind.SEMI


@dataclass(frozen=True)
class Comment:
    """A line or block comment."""

    text: str  # raw text, including the // or /* */ markers
    line: int
    col: int
    end_line: int
    trailing: bool  # code precedes the comment on its first line

    @property
    def body(self) -> str:
        """Comment text without markers."""
        if self.text.startswith("//"):
            return self.text[2:]
        return self.text[2:-2]


_OPERATORS = [
    "<<=", ">>=", "&^=", "...", "&&", "||", "<-", "++", "--", "==", "!=", "<=",
    ">=", ":=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<", ">>",
    "&^", "+", "-", "*", "/", "%", "&", "|", "^", "<", ">", "=", "!", "(",
    ")", "[", "]", "{", "}", ",", ";", ".", ":", "~",
]

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<newline>\n)
    |(?P<space>[ \t\r\f\v]+)
    |(?P<line_comment>//[^\n]*)
    |(?P<block_comment>/\*.*?\*/)
    |(?P<open_comment>/\*)
    |(?P<raw_string>`[^`]*`)
    |(?P<open_raw>`)
    |(?P<string>"(?:[^"\\\n]|\\.)*")
    |(?P<open_string>")
    |(?P<char>'(?:[^'\\\n]|\\.)*')
    |(?P<open_char>')
    |(?P<number>
        0[xX][0-9a-fA-F_]*(?:\.[0-9a-fA-F_]*)?(?:[pP][+-]?[0-9_]+)?i?
        |0[bB][01_]+i?
        |0[oO][0-7_]+i?
        |(?:[0-9][0-9_]*(?:\.[0-9_]*)?|\.[0-9][0-9_]*)(?:[eE][+-]?[0-9_]+)?i?
    )
    |(?P<ident>[^\W\d]\w*)
    |(?P<op>""" + "|".join(re.escape(op) for op in _OPERATORS) + r""")
    """,
    re.VERBOSE | re.DOTALL,
)


class GoLexer:
    """Tokenizes Go source text."""

    def __init__(self, path: str = "<source>"):
        self.path = path
        self.tokens: List[Token] = []
        self.comments: List[Comment] = []
        self._code_on_line = False

    def tokenize(self, source: str) -> Tuple[List[Token], List[Comment]]:
        """
        Tokenize source text.

        Args:
            source: Go source code

        Returns:
            (tokens, comments); tokens include inserted semicolons

        Raises:
            ParseError: On unterminated literals/comments or stray characters
        """
        self.tokens = []
        self.comments = []
        self._code_on_line = False

        pos = 0
        line = 1
        line_start = 0
        length = len(source)

        while pos < length:
            match = _TOKEN_PATTERN.match(source, pos)
            col = pos - line_start + 1
            if match is None:
                raise ParseError(f"unexpected character {source[pos]!r}", self.path, line, col)

            group = match.lastgroup
            text = match.group()

            if group == "newline":
                self._insert_semicolon(line, col)
                line += 1
                line_start = match.end()
            elif group == "space":
                pass
            elif group == "line_comment":
                self._add_comment(text, line, col, line)
            elif group == "block_comment":
                newlines = text.count("\n")
                self._add_comment(text, line, col, line + newlines)
                if newlines:
                    # A block comment spanning lines acts like a newline.
                    self._insert_semicolon(line, col)
                    line += newlines
                    line_start = pos + text.rfind("\n") + 1
            elif group == "open_comment":
                raise ParseError("comment not terminated", self.path, line, col)
            elif group in ("open_raw", "open_string"):
                raise ParseError("string literal not terminated", self.path, line, col)
            elif group == "open_char":
                raise ParseError("rune literal not terminated", self.path, line, col)
            elif group == "raw_string":
                self._emit(TokenKind.STRING, text, line, col)
                newlines = text.count("\n")
                if newlines:
                    line += newlines
                    line_start = pos + text.rfind("\n") + 1
            elif group == "string":
                self._emit(TokenKind.STRING, text, line, col)
            elif group == "char":
                self._emit(TokenKind.CHAR, text, line, col)
            elif group == "number":
                self._emit(TokenKind.NUMBER, text, line, col)
            elif group == "ident":
                self._emit(TokenKind.KEYWORD if text in KEYWORDS else TokenKind.IDENT, text, line, col)
            elif text == ";":
                self._emit(TokenKind.SEMI, ";", line, col)
            else:
                self._emit(TokenKind.OP, text, line, col)

            pos = match.end()

        self._insert_semicolon(line, pos - line_start + 1)
        return self.tokens, self.comments

    def _emit(self, kind: TokenKind, value: str, line: int, col: int):
        self.tokens.append(Token(kind, value, line, col))
        self._code_on_line = True

    def _insert_semicolon(self, line: int, col: int):
        """Apply Go's semicolon insertion rule at a line break."""
        code_on_line, self._code_on_line = self._code_on_line, False
        last = self.tokens[-1] if self.tokens else None
        if last is None or not code_on_line:
            return
        if (last.kind in (TokenKind.IDENT, TokenKind.NUMBER, TokenKind.STRING, TokenKind.CHAR)
                or (last.kind == TokenKind.KEYWORD and last.value in _SEMI_KEYWORDS)
                or (last.kind == TokenKind.OP and last.value in _SEMI_OPS)):
            self.tokens.append(Token(TokenKind.SEMI, "\n", line, col))

    def _add_comment(self, text: str, line: int, col: int, end_line: int):
        self.comments.append(Comment(text=text, line=line, col=col, end_line=end_line, trailing=self._code_on_line))


def tokenize(source: str, path: str = "<source>") -> Tuple[List[Token], List[Comment]]:
    """Convenience wrapper around :class:`GoLexer`."""
    return GoLexer(path).tokenize(source)
