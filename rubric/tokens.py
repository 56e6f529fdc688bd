"""Token definitions shared by the lexer and the parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class TokenType(str, Enum):
    ILLEGAL = 'ILLEGAL'
    EOF = 'EOF'

    # Identifiers and literals
    IDENT = 'IDENT'
    INT = 'INT'
    FLOAT = 'FLOAT'
    STRING = 'STRING'
    BOOLEAN = 'BOOLEAN'

    # Operators
    ASSIGN = '='
    PLUS = '+'
    MINUS = '-'
    BANG = '!'
    ASTERISK = '*'
    SLASH = '/'
    PERCENT = '%'
    LT = '<'
    GT = '>'
    LT_EQ = '<='
    GT_EQ = '>='
    EQ = '=='
    NOT_EQ = '!='
    AND = '&&'
    OR = '||'
    INCREMENT = '++'
    DECREMENT = '--'
    QUESTION = '?'
    ARROW = '=>'

    # Delimiters
    COMMA = ','
    SEMICOLON = ';'
    COLON = ':'
    LPAREN = '('
    RPAREN = ')'
    LBRACE = '{'
    RBRACE = '}'

    # Keywords
    VAR = 'VAR'
    CONST = 'CONST'
    FUNCTION = 'FUNCTION'
    RETURN = 'RETURN'
    IF = 'IF'
    ELSE = 'ELSE'
    FOR = 'FOR'
    WHILE = 'WHILE'
    DO = 'DO'
    DISPLAY = 'DISPLAY'

    # Built-in type names
    TYPE_INT = 'TYPE_INT'
    TYPE_FLOAT = 'TYPE_FLOAT'
    TYPE_STRING = 'TYPE_STRING'
    TYPE_BOOLEAN = 'TYPE_BOOLEAN'
    TYPE_VOID = 'TYPE_VOID'

    def __str__(self) -> str:
        return self.value


KEYWORDS: Dict[str, TokenType] = {
    'var': TokenType.VAR,
    'const': TokenType.CONST,
    'fn': TokenType.FUNCTION,
    'return': TokenType.RETURN,
    'if': TokenType.IF,
    'else': TokenType.ELSE,
    'for': TokenType.FOR,
    'while': TokenType.WHILE,
    'do': TokenType.DO,
    'display': TokenType.DISPLAY,
    'true': TokenType.BOOLEAN,
    'false': TokenType.BOOLEAN,
    'int': TokenType.TYPE_INT,
    'float': TokenType.TYPE_FLOAT,
    'string': TokenType.TYPE_STRING,
    'boolean': TokenType.TYPE_BOOLEAN,
    'void': TokenType.TYPE_VOID,
}

# Token kinds that may appear as a type annotation.
TYPE_TOKENS = (
    TokenType.TYPE_INT,
    TokenType.TYPE_FLOAT,
    TokenType.TYPE_STRING,
    TokenType.TYPE_BOOLEAN,
    TokenType.TYPE_VOID,
    TokenType.IDENT,
)


def lookup_ident(name: str) -> TokenType:
    """Return the keyword kind for `name`, or IDENT for plain identifiers."""
    return KEYWORDS.get(name, TokenType.IDENT)


@dataclass(frozen=True)
class Token:
    type: TokenType
    literal: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f'Type: {self.type.name}, Literal: "{self.literal}", Line: {self.line}, Col: {self.column}'
