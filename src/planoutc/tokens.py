"""Token kinds and token representation for the PlanOut lexer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from planoutc.source import Span


class TokenKind(Enum):
    # Keywords
    SWITCH = auto()
    IF = auto()
    ELSE = auto()
    RETURN = auto()

    # Literals
    TRUE = auto()
    FALSE = auto()
    NULL = auto()
    NUMBER_LIT = auto()
    STRING_LIT = auto()
    AT = auto()  # embedded literal marker

    # Operators
    ARROW_ASSIGN = auto()
    OR = auto()
    AND = auto()
    COALESCE = auto()
    EQUAL = auto()
    NOT_EQUAL = auto()
    GREATER_EQUAL = auto()
    LESS_EQUAL = auto()
    FAT_ARROW = auto()
    ASSIGN = auto()
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    GREATER = auto()
    LESS = auto()
    BANG = auto()

    # Punctuation
    COLON = auto()
    COMMA = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LBRACE = auto()
    RBRACE = auto()
    SEMICOLON = auto()

    IDENTIFIER = auto()

    # Special
    EOF = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    span: Span
    literal: object = field(default=None, compare=False)  # decoded number/string

    @property
    def line(self) -> int:
        return self.span.start_line


KEYWORDS: dict[str, TokenKind] = {
    "switch": TokenKind.SWITCH,
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "return": TokenKind.RETURN,
    "true": TokenKind.TRUE,
    "false": TokenKind.FALSE,
    "null": TokenKind.NULL,
}

TWO_CHAR_OPERATORS: dict[str, TokenKind] = {
    "<-": TokenKind.ARROW_ASSIGN,
    "||": TokenKind.OR,
    "&&": TokenKind.AND,
    "??": TokenKind.COALESCE,
    "==": TokenKind.EQUAL,
    ">=": TokenKind.GREATER_EQUAL,
    "<=": TokenKind.LESS_EQUAL,
    "!=": TokenKind.NOT_EQUAL,
    "=>": TokenKind.FAT_ARROW,
}

ONE_CHAR_OPERATORS: dict[str, TokenKind] = {
    "=": TokenKind.ASSIGN,
    ":": TokenKind.COLON,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    ",": TokenKind.COMMA,
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "+": TokenKind.PLUS,
    "%": TokenKind.PERCENT,
    "*": TokenKind.STAR,
    "-": TokenKind.MINUS,
    "/": TokenKind.SLASH,
    ">": TokenKind.GREATER,
    "<": TokenKind.LESS,
    "!": TokenKind.BANG,
    ";": TokenKind.SEMICOLON,
    "@": TokenKind.AT,
}

# Token kinds that complete an operand; a sign after one of these is an
# operator, not part of a number.
VALUE_END: frozenset[TokenKind] = frozenset({
    TokenKind.IDENTIFIER,
    TokenKind.NUMBER_LIT,
    TokenKind.STRING_LIT,
    TokenKind.TRUE,
    TokenKind.FALSE,
    TokenKind.NULL,
    TokenKind.RPAREN,
    TokenKind.RBRACKET,
    TokenKind.RBRACE,
})

# Token kinds that can begin an expression.
EXPR_START: frozenset[TokenKind] = frozenset({
    TokenKind.IDENTIFIER,
    TokenKind.NUMBER_LIT,
    TokenKind.STRING_LIT,
    TokenKind.TRUE,
    TokenKind.FALSE,
    TokenKind.NULL,
    TokenKind.AT,
    TokenKind.LPAREN,
    TokenKind.LBRACKET,
    TokenKind.LBRACE,
    TokenKind.BANG,
    TokenKind.MINUS,
    TokenKind.SWITCH,
    TokenKind.IF,
    TokenKind.RETURN,
})

DISPLAY: dict[TokenKind, str] = {
    **{kind: text for text, kind in TWO_CHAR_OPERATORS.items()},
    **{kind: text for text, kind in ONE_CHAR_OPERATORS.items()},
    **{kind: text for text, kind in KEYWORDS.items()},
    TokenKind.IDENTIFIER: "identifier",
    TokenKind.NUMBER_LIT: "number",
    TokenKind.STRING_LIT: "string",
    TokenKind.EOF: "end of input",
}


def describe(kind: TokenKind) -> str:
    """Human-readable name of a token kind for error messages."""
    return DISPLAY.get(kind, kind.name)
