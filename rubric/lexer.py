"""Tokenizer for Rubric source text.

The character-level scanning is delegated to a lexer-only Lark grammar.
Lark yields raw terminals; this module maps them onto `TokenType`,
resolves keywords, strips string quotes and appends the EOF token the
parser relies on.
"""

from __future__ import annotations

from typing import Iterator, List, Optional

from lark import Lark

from .tokens import Token, TokenType, lookup_ident


RUBRIC_LEXER_GRAMMAR = r"""
FLOAT.2: /\d+\.\d+/
INT: /\d+/
STRING: /"[^"]*"/ | /'[^']*'/
NAME: /[A-Za-z_][A-Za-z0-9_]*/

EQ: "=="
NOT_EQ: "!="
LT_EQ: "<="
GT_EQ: ">="
AND: "&&"
OR: "||"
INCREMENT: "++"
DECREMENT: "--"
ARROW: "=>"

ASSIGN: "="
BANG: "!"
PLUS: "+"
MINUS: "-"
ASTERISK: "*"
SLASH: "/"
PERCENT: "%"
LT: "<"
GT: ">"
QUESTION: "?"
COLON: ":"
SEMICOLON: ";"
COMMA: ","
LPAREN: "("
RPAREN: ")"
LBRACE: "{"
RBRACE: "}"

COMMENT: /\/\/[^\n]*/

ILLEGAL.-1: /./

%import common.WS
%ignore WS
%ignore COMMENT
"""

RUBRIC_LEXER = Lark(
    RUBRIC_LEXER_GRAMMAR,
    parser=None,
    lexer='basic',
)


class Lexer:
    """Token source over a source string.

    `next_token` advances monotonically and keeps returning the EOF token
    once the input is exhausted.
    """

    def __init__(self, source: str):
        self.source = source
        self._stream = RUBRIC_LEXER.lex(source)
        self._eof: Optional[Token] = None

    def next_token(self) -> Token:
        if self._eof is not None:
            return self._eof
        raw = next(self._stream, None)
        if raw is None:
            self._eof = self._end_token()
            return self._eof
        return convert_token(raw)

    def __iter__(self) -> Iterator[Token]:
        while True:
            tok = self.next_token()
            yield tok
            if tok.type == TokenType.EOF:
                return

    def _end_token(self) -> Token:
        lines = self.source.split('\n')
        return Token(TokenType.EOF, '', len(lines), len(lines[-1]) + 1)


def convert_token(raw) -> Token:
    """Turn a Lark token into a Rubric token."""
    kind = raw.type
    text = str(raw)
    if kind == 'NAME':
        return Token(lookup_ident(text), text, raw.line, raw.column)
    if kind == 'STRING':
        return Token(TokenType.STRING, text[1:-1], raw.line, raw.column)
    return Token(TokenType[kind], text, raw.line, raw.column)


def tokenize(source: str) -> List[Token]:
    """Return every token of `source`, including the trailing EOF token."""
    return list(Lexer(source))
