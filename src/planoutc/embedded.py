"""Reader for ``@`` embedded literals.

The embedded syntax is looser than JSON: map keys are bare identifiers
and a bare identifier in value position is a string. String constants
are run through a JSON decoder a second time when ``strict_scalars`` is
set, so ``@"5"`` reads as the number 5 and ``@"abc"`` is rejected.
"""

from __future__ import annotations

import json
import math

from planoutc.errors import EmbeddedLiteralError
from planoutc.tokens import Token, TokenKind, describe

_CONSTANTS: dict[TokenKind, object] = {
    TokenKind.TRUE: True,
    TokenKind.FALSE: False,
    TokenKind.NULL: None,
}

_VALUE_START = frozenset({
    TokenKind.IDENTIFIER, TokenKind.NUMBER_LIT, TokenKind.STRING_LIT,
    TokenKind.LBRACKET, TokenKind.LBRACE, *_CONSTANTS,
})


def _reject_constant(name: str) -> object:
    raise ValueError(f"{name} is not a JSON value")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"{text} is out of range")
    return value


class EmbeddedLiteralReader:
    """Reads one embedded literal value starting at ``tokens[pos]``.

    The reader advances ``pos`` past the value; the caller picks the
    position back up from there.
    """

    def __init__(self, tokens: list[Token], pos: int, *, strict_scalars: bool = True) -> None:
        self.tokens = tokens
        self.pos = pos
        self.strict_scalars = strict_scalars

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _fail(self, expected: frozenset[TokenKind]) -> EmbeddedLiteralError:
        tok = self._current()
        found = describe(tok.kind) if tok.kind == TokenKind.EOF else repr(tok.value)
        return EmbeddedLiteralError(
            f"unexpected {found} in embedded literal", tok, expected,
        )

    def _expect(self, kind: TokenKind) -> Token:
        if self._current().kind != kind:
            raise self._fail(frozenset({kind}))
        return self._advance()

    def read(self) -> object:
        """Read a value: scalar, ``[...]`` list, or ``{key: ...}`` map."""
        try:
            return self._read_value()
        except RecursionError:
            raise EmbeddedLiteralError(
                "embedded literal is nested too deeply", self._current(),
            ) from None

    def _read_value(self) -> object:
        tok = self._current()
        kind = tok.kind
        if kind == TokenKind.LBRACKET:
            return self._read_array()
        if kind == TokenKind.LBRACE:
            return self._read_map()
        if kind == TokenKind.IDENTIFIER:
            self._advance()
            return tok.value
        if kind == TokenKind.NUMBER_LIT:
            self._advance()
            return tok.literal
        if kind == TokenKind.STRING_LIT:
            self._advance()
            return self._decode_string(tok)
        if kind in _CONSTANTS:
            self._advance()
            return _CONSTANTS[kind]
        raise self._fail(_VALUE_START)

    def _decode_string(self, tok: Token) -> object:
        if not self.strict_scalars:
            return tok.literal
        try:
            return json.loads(
                tok.literal, parse_float=_finite_float, parse_constant=_reject_constant,
            )
        except ValueError:
            raise EmbeddedLiteralError(
                f"embedded string {tok.value} is not a JSON value", tok,
            ) from None

    def _read_array(self) -> list[object]:
        self._advance()  # [
        values: list[object] = []
        if self._current().kind == TokenKind.RBRACKET:
            self._advance()
            return values
        values.append(self._read_value())
        while self._current().kind == TokenKind.COMMA:
            self._advance()
            values.append(self._read_value())
        if self._current().kind != TokenKind.RBRACKET:
            raise self._fail(frozenset({TokenKind.COMMA, TokenKind.RBRACKET}))
        self._advance()
        return values

    def _read_map(self) -> dict[str, object]:
        self._advance()  # {
        result: dict[str, object] = {}
        if self._current().kind == TokenKind.RBRACE:
            self._advance()
            return result
        while True:
            key = self._expect(TokenKind.IDENTIFIER).value
            self._expect(TokenKind.COLON)
            result[key] = self._read_value()
            if self._current().kind == TokenKind.COMMA:
                self._advance()
                continue
            if self._current().kind != TokenKind.RBRACE:
                raise self._fail(frozenset({TokenKind.COMMA, TokenKind.RBRACE}))
            self._advance()
            return result
