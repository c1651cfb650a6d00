"""Lexer for splitting SQL text into statements.

The lexer does not understand SQL; it only knows enough to find the
semicolons that end statements, skipping those inside string literals,
quoted identifiers and comments.
"""

from __future__ import annotations

import ply.lex as lex


class SqlLexer:
    """Lexer for tokenizing SQL scripts at statement granularity."""

    tokens = [
        "STRING",
        "QUOTED_IDENTIFIER",
        "LINE_COMMENT",
        "BLOCK_COMMENT",
        "SEMICOLON",
        "TEXT",
        "WHITESPACE",
    ]

    t_SEMICOLON = r";"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r"'(?:[^']|'')*'"
        t.lexer.lineno += t.value.count("\n")
        return t

    def t_QUOTED_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r'"(?:[^"]|"")*"|`[^`]*`|\[[^\]]*\]'
        return t

    def t_LINE_COMMENT(self, t: lex.LexToken) -> lex.LexToken:
        r"--[^\n]*"
        return t

    def t_BLOCK_COMMENT(self, t: lex.LexToken) -> lex.LexToken:
        r"/\*(?:.|\n)*?\*/"
        t.lexer.lineno += t.value.count("\n")
        return t

    def t_WHITESPACE(self, t: lex.LexToken) -> lex.LexToken:
        r"\s+"
        t.lexer.lineno += t.value.count("\n")
        return t

    def t_TEXT(self, t: lex.LexToken) -> lex.LexToken:
        r"(?:[^'\"`\[;\s\-/]|-(?!-)|/(?!\*))+"
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(
            f"Unterminated {_describe_opening(t.value[0])} at line {t.lexer.lineno}, position {t.lexpos}"
        )

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens


def _describe_opening(ch: str) -> str:
    if ch == "'":
        return "string literal"
    if ch == "/":
        return "block comment"
    return "quoted identifier"


_IGNORABLE = frozenset({"WHITESPACE", "LINE_COMMENT", "BLOCK_COMMENT"})


def _new_lexer() -> SqlLexer:
    lexer = SqlLexer()
    lexer.build()
    return lexer


def split_statements(text: str) -> list[str]:
    """Split ``text`` into statements on top-level semicolons.

    Comments are kept with the statement they appear in; statements made
    only of whitespace and comments are dropped.

    Raises:
        SyntaxError: If a string, quoted identifier or block comment is
            not terminated.
    """
    statements: list[str] = []
    current: list[str] = []
    significant = False

    for tok in _new_lexer().tokenize(text):
        if tok.type == "SEMICOLON":
            if significant:
                statements.append("".join(current).strip())
            current = []
            significant = False
            continue
        current.append(tok.value)
        if tok.type not in _IGNORABLE:
            significant = True

    if significant:
        statements.append("".join(current).strip())
    return statements


def is_complete(text: str) -> bool:
    """Return whether ``text`` ends with a terminated statement.

    Used by the REPL to decide whether to prompt for another line.
    """
    last = None
    try:
        for tok in _new_lexer().tokenize(text):
            if tok.type not in _IGNORABLE:
                last = tok.type
    except SyntaxError:
        return False
    return last == "SEMICOLON"
