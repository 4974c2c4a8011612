"""Lexer for PlanOut scripts.

Produces a flat token stream from source text. Number and string
constants are decoded here, so the parser only ever sees their values.
"""

from __future__ import annotations

import math
import re

from planoutc.errors import LexError
from planoutc.source import Span
from planoutc.tokens import (
    KEYWORDS,
    ONE_CHAR_OPERATORS,
    TWO_CHAR_OPERATORS,
    VALUE_END,
    Token,
    TokenKind,
)

_NUMBER_RE = re.compile(r"[-+]?[0-9]*\.?[0-9]+(?:[eE][-+]?[0-9]+)?")

_ESCAPES = {
    '"': '"', '\\': '\\', '/': '/',
    'b': '\b', 'f': '\f', 'n': '\n', 'r': '\r', 't': '\t',
}


class Lexer:
    """Tokenizes PlanOut source code."""

    def __init__(self, source: str, filename: str = "<input>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.col = 1
        self.prev_token: Token | None = None
        self.tokens: list[Token] = []

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list."""
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch.isspace():
                self._advance()
            elif ch == '#':
                self._skip_comment()
            elif ch == '"':
                self._lex_double_quoted()
            elif ch == "'":
                self._lex_single_quoted()
            elif self._at_number():
                self._lex_number()
            elif ch.isascii() and ch.isalpha():
                self._lex_identifier()
            else:
                self._lex_operator_or_punct()

        self._emit(TokenKind.EOF, "", self.line, self.col)
        return self.tokens

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _emit(
        self,
        kind: TokenKind,
        value: str,
        start_line: int,
        start_col: int,
        literal: object = None,
    ) -> Token:
        end_col = self.col - 1 if self.col > 1 else 1
        span = Span(self.filename, start_line, start_col, self.line, end_col)
        tok = Token(kind, value, span, literal)
        self.tokens.append(tok)
        self.prev_token = tok
        return tok

    def _error(self, message: str, line: int, col: int) -> LexError:
        return LexError(message, Span(self.filename, line, col, line, col))

    def _skip_comment(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos] != '\n':
            self._advance()

    # ── Strings ──────────────────────────────────────────────────

    def _lex_double_quoted(self) -> None:
        start_line = self.line
        start_col = self.col
        start = self.pos
        self._advance()  # skip opening "
        text = []
        while self.pos < len(self.source) and self.source[self.pos] != '"':
            if self.source[self.pos] == '\\':
                text.append(self._lex_escape_sequence(start_line, start_col))
            else:
                text.append(self._advance())
        if self.pos >= len(self.source):
            raise self._error("unterminated string literal", start_line, start_col)
        self._advance()  # skip closing "
        self._emit(
            TokenKind.STRING_LIT, self.source[start:self.pos],
            start_line, start_col, ''.join(text),
        )

    def _lex_escape_sequence(self, start_line: int, start_col: int) -> str:
        self._advance()  # skip backslash
        if self.pos >= len(self.source):
            raise self._error("unterminated string literal", start_line, start_col)
        ch = self._advance()
        if ch in _ESCAPES:
            return _ESCAPES[ch]
        if ch == 'u':
            digits = self.source[self.pos:self.pos + 4]
            if len(digits) == 4 and all(c in '0123456789abcdefABCDEF' for c in digits):
                for _ in range(4):
                    self._advance()
                return chr(int(digits, 16))
        # Unrecognised escapes are kept as written.
        return "\\" + ch

    def _lex_single_quoted(self) -> None:
        start_line = self.line
        start_col = self.col
        start = self.pos
        self._advance()  # skip opening '
        text = []
        while self.pos < len(self.source) and self.source[self.pos] != "'":
            text.append(self._advance())
        if self.pos >= len(self.source):
            raise self._error("unterminated string literal", start_line, start_col)
        self._advance()  # skip closing '
        self._emit(
            TokenKind.STRING_LIT, self.source[start:self.pos],
            start_line, start_col, ''.join(text),
        )

    # ── Numbers ──────────────────────────────────────────────────

    def _at_number(self) -> bool:
        ch = self._peek()
        if ch.isdigit():
            return True
        if ch == '.':
            return self._peek(1).isdigit()
        if ch in '+-' and self._sign_allowed():
            nxt = self._peek(1)
            return nxt.isdigit() or (nxt == '.' and self._peek(2).isdigit())
        return False

    def _sign_allowed(self) -> bool:
        """A sign belongs to a number only where an operand may start."""
        if self.prev_token is None:
            return True
        return self.prev_token.kind not in VALUE_END

    def _lex_number(self) -> None:
        start_line = self.line
        start_col = self.col
        match = _NUMBER_RE.match(self.source, self.pos)
        if match is None:
            raise self._error("malformed number", start_line, start_col)
        text = match.group()
        for _ in text:
            self._advance()
        if '.' in text or 'e' in text or 'E' in text:
            value: int | float = float(text)
            if not math.isfinite(value):
                raise self._error(f"number out of range: {text}", start_line, start_col)
        else:
            try:
                value = int(text)
            except ValueError:
                raise self._error("number out of range", start_line, start_col) from None
        self._emit(TokenKind.NUMBER_LIT, text, start_line, start_col, value)

    # ── Identifiers and Keywords ─────────────────────────────────

    def _lex_identifier(self) -> None:
        start_line = self.line
        start_col = self.col
        text = []
        while self.pos < len(self.source) and self._is_ident_char():
            text.append(self._advance())
        word = ''.join(text)
        self._emit(KEYWORDS.get(word, TokenKind.IDENTIFIER), word, start_line, start_col)

    def _is_ident_char(self) -> bool:
        ch = self.source[self.pos]
        return ch.isascii() and (ch.isalnum() or ch == '_')

    # ── Operators and Punctuation ────────────────────────────────

    def _lex_operator_or_punct(self) -> None:
        start_line = self.line
        start_col = self.col

        two = self.source[self.pos:self.pos + 2]
        if two in TWO_CHAR_OPERATORS:
            self._advance()
            self._advance()
            self._emit(TWO_CHAR_OPERATORS[two], two, start_line, start_col)
            return

        ch = self.source[self.pos]
        if ch in ONE_CHAR_OPERATORS:
            self._advance()
            self._emit(ONE_CHAR_OPERATORS[ch], ch, start_line, start_col)
            return

        raise self._error(f"unexpected character: {ch!r}", start_line, start_col)


def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """Lex ``source`` into tokens, ending with an EOF token."""
    return Lexer(source, filename).lex()
