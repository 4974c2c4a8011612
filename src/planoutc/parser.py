"""Parser for PlanOut scripts.

Transforms a token stream into an AST using a Pratt expression parser
for operators and recursive descent for statements, blocks, ``switch``
and ``if`` chains. Parsing stops at the first error.
"""

from __future__ import annotations

from planoutc.ast_nodes import (
    AlwaysTrue,
    And,
    ArrayLit,
    Assign,
    Branch,
    Case,
    Coalesce,
    Cond,
    Div,
    Equals,
    Gt,
    Gte,
    Index,
    Literal,
    Lt,
    Lte,
    Mod,
    NamedArgs,
    Negate,
    Node,
    Not,
    OperatorCall,
    Or,
    PositionalArgs,
    Product,
    Return,
    Sequence,
    Sum,
    Switch,
    VarRef,
)
from planoutc.embedded import EmbeddedLiteralReader
from planoutc.errors import ParseError
from planoutc.lexer import tokenize
from planoutc.source import Span
from planoutc.tokens import EXPR_START, Token, TokenKind, describe

# ── Binding powers for Pratt parser ─────────────────────────────

# (left_bp, right_bp) for infix operators
_INFIX_BP: dict[TokenKind, tuple[int, int]] = {
    TokenKind.OR: (1, 2),
    TokenKind.COALESCE: (1, 2),
    TokenKind.AND: (3, 4),
    TokenKind.EQUAL: (5, 6),
    TokenKind.NOT_EQUAL: (5, 6),
    TokenKind.GREATER: (7, 8),
    TokenKind.LESS: (7, 8),
    TokenKind.GREATER_EQUAL: (7, 8),
    TokenKind.LESS_EQUAL: (7, 8),
    TokenKind.PLUS: (9, 10),
    TokenKind.MINUS: (9, 10),
    TokenKind.STAR: (11, 12),
    TokenKind.SLASH: (11, 12),
    TokenKind.PERCENT: (11, 12),
}

_PREFIX_BP = 13  # right bp for unary ! and -
_POSTFIX_BP = 15  # left bp for [] and ()

_VARIADIC: dict[TokenKind, type] = {
    TokenKind.PLUS: Sum,
    TokenKind.MINUS: Sum,
    TokenKind.STAR: Product,
    TokenKind.OR: Or,
    TokenKind.AND: And,
    TokenKind.COALESCE: Coalesce,
}

_BINARY: dict[TokenKind, type] = {
    TokenKind.PERCENT: Mod,
    TokenKind.SLASH: Div,
    TokenKind.GREATER: Gt,
    TokenKind.LESS: Lt,
    TokenKind.EQUAL: Equals,
    TokenKind.LESS_EQUAL: Lte,
    TokenKind.GREATER_EQUAL: Gte,
}

_CONSTANTS: dict[TokenKind, object] = {
    TokenKind.TRUE: True,
    TokenKind.FALSE: False,
    TokenKind.NULL: None,
}


class Parser:
    """Parses a list of tokens into a PlanOut AST.

    The parser records every token kind it tests at the current position,
    so a failure can report exactly which continuations were valid.
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        *,
        strict_embedded_scalars: bool = True,
    ) -> None:
        self.tokens = tokens
        self.pos = 0
        self.filename = filename
        self.strict_embedded_scalars = strict_embedded_scalars
        self._expected: set[TokenKind] = set()

    # ── Token access ─────────────────────────────────────────────

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]

    def _previous(self) -> Token:
        return self.tokens[max(self.pos - 1, 0)]

    def _at(self, kind: TokenKind) -> bool:
        self._expected.add(kind)
        return self._current().kind == kind

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        self._expected.clear()
        return tok

    def _expect(self, kind: TokenKind) -> Token:
        if self._at(kind):
            return self._advance()
        raise self._unexpected()

    def _unexpected(self) -> ParseError:
        tok = self._current()
        found = describe(tok.kind) if tok.kind == TokenKind.EOF else repr(tok.value)
        return ParseError(f"unexpected {found}", tok, frozenset(self._expected))

    def _span_from(self, start: Span) -> Span:
        return start.to(self._previous().span)

    def _at_soft_keyword(self, word: str) -> bool:
        """``case`` and ``then`` are connectives only before an expression."""
        tok = self._current()
        return (
            tok.kind == TokenKind.IDENTIFIER
            and tok.value == word
            and self._peek(1).kind in EXPR_START
        )

    # ── Statements ───────────────────────────────────────────────

    def parse(self) -> Sequence:
        """Parse the entire token stream into the root Sequence."""
        try:
            statements = self._parse_statements(TokenKind.EOF)
        except RecursionError:
            raise ParseError(
                "expression is nested too deeply", self._current(),
            ) from None
        end = self._current().span
        return Sequence(statements, Span(self.filename, 1, 1, end.end_line, end.end_col))

    def _parse_statements(self, end: TokenKind) -> list[Node]:
        """Parse statements up to (not including) ``end``."""
        statements: list[Node] = []
        while not self._at(end):
            statements.append(self._parse_statement())
            if self._at(TokenKind.SEMICOLON):
                self._advance()
                continue
            if self._at(end):
                break
            # A statement ending in a closing brace needs no terminator.
            if self._previous().kind == TokenKind.RBRACE:
                continue
            raise self._unexpected()
        return statements

    def _parse_statement(self) -> Node:
        tok = self._current()
        if (tok.kind == TokenKind.IDENTIFIER
                and self._peek(1).kind in (TokenKind.ASSIGN, TokenKind.ARROW_ASSIGN)):
            self._advance()
            self._advance()
            value = self._parse_expression(0)
            return Assign(tok.value, value, self._span_from(tok.span))
        return self._parse_expression(0)

    # ── Expressions ──────────────────────────────────────────────

    def _parse_expression(self, min_bp: int) -> Node:
        """Parse an expression using Pratt parsing with binding powers."""
        left = self._parse_prefix()
        chain: type | None = None  # variadic node being extended

        while True:
            tok = self._current()
            self._expected.update(_INFIX_BP)
            self._expected.add(TokenKind.LBRACKET)
            if isinstance(left, VarRef):
                self._expected.add(TokenKind.LPAREN)

            if tok.kind == TokenKind.LBRACKET:
                if _POSTFIX_BP < min_bp:
                    break
                self._advance()
                index = self._parse_expression(0)
                self._expect(TokenKind.RBRACKET)
                left = Index(left, index, self._span_from(left.span))
                chain = None
                continue

            if tok.kind == TokenKind.LPAREN and isinstance(left, VarRef):
                if _POSTFIX_BP < min_bp:
                    break
                left = self._parse_call(left)
                chain = None
                continue

            if tok.kind in _INFIX_BP:
                left_bp, right_bp = _INFIX_BP[tok.kind]
                if left_bp < min_bp:
                    break
                self._advance()
                right = self._parse_expression(right_bp)
                left, chain = self._combine(tok, left, right, chain)
                continue

            break

        return left

    def _combine(
        self,
        op: Token,
        left: Node,
        right: Node,
        chain: type | None,
    ) -> tuple[Node, type | None]:
        """Build the node for ``left op right``.

        Repeating the same variadic operator extends the node built by the
        previous step instead of nesting it.
        """
        span = left.span.to(right.span)
        kind = op.kind

        if kind in _VARIADIC:
            cls = _VARIADIC[kind]
            if kind == TokenKind.MINUS:
                right = Negate(right, right.span)
            if chain is cls:
                return cls([*left.values, right], span), cls
            return cls([left, right], span), cls

        if kind == TokenKind.NOT_EQUAL:
            return Not(Equals(left, right, span), span), None

        return _BINARY[kind](left, right, span), None

    def _parse_prefix(self) -> Node:
        """Parse a prefix expression (atom or unary operator)."""
        tok = self._current()
        kind = tok.kind

        if kind == TokenKind.BANG:
            self._advance()
            operand = self._parse_expression(_PREFIX_BP)
            return Not(operand, self._span_from(tok.span))

        if kind == TokenKind.MINUS:
            self._advance()
            operand = self._parse_expression(_PREFIX_BP)
            return Negate(operand, self._span_from(tok.span))

        if kind in _CONSTANTS:
            self._advance()
            return Literal(_CONSTANTS[kind], span=tok.span)

        if kind in (TokenKind.NUMBER_LIT, TokenKind.STRING_LIT):
            self._advance()
            return Literal(tok.literal, span=tok.span)

        if kind == TokenKind.IDENTIFIER:
            self._advance()
            return VarRef(tok.value, tok.span)

        if kind == TokenKind.LPAREN:
            self._advance()
            inner = self._parse_expression(0)
            self._expect(TokenKind.RPAREN)
            return inner

        if kind == TokenKind.LBRACKET:
            return self._parse_array()

        if kind == TokenKind.LBRACE:
            self._advance()
            statements = self._parse_statements(TokenKind.RBRACE)
            self._expect(TokenKind.RBRACE)
            return Sequence(statements, self._span_from(tok.span))

        if kind == TokenKind.AT:
            return self._parse_embedded()

        if kind == TokenKind.SWITCH:
            return self._parse_switch()

        if kind == TokenKind.IF:
            return self._parse_if()

        if kind == TokenKind.RETURN:
            self._advance()
            value = self._parse_expression(0)
            return Return(value, self._span_from(tok.span))

        self._expected.update(EXPR_START)
        raise self._unexpected()

    def _parse_array(self) -> ArrayLit:
        start = self._advance().span  # [
        values: list[Node] = []
        if not self._at(TokenKind.RBRACKET):
            values.append(self._parse_expression(0))
            while self._at(TokenKind.COMMA):
                self._advance()
                values.append(self._parse_expression(0))
        self._expect(TokenKind.RBRACKET)
        return ArrayLit(values, self._span_from(start))

    def _parse_call(self, func: VarRef) -> OperatorCall:
        """Parse ``name(...)`` with either positional or named arguments."""
        self._advance()  # (
        if self._at(TokenKind.RPAREN):
            self._advance()
            return OperatorCall(func.name, NamedArgs({}), self._span_from(func.span))

        if (self._current().kind == TokenKind.IDENTIFIER
                and self._peek(1).kind in (TokenKind.COLON, TokenKind.ASSIGN)):
            named: dict[str, Node] = {}
            while True:
                key = self._expect(TokenKind.IDENTIFIER)
                if not (self._at(TokenKind.COLON) or self._at(TokenKind.ASSIGN)):
                    raise self._unexpected()
                self._advance()
                named[key.value] = self._parse_expression(0)
                if not self._at(TokenKind.COMMA):
                    break
                self._advance()
            self._expect(TokenKind.RPAREN)
            return OperatorCall(func.name, NamedArgs(named), self._span_from(func.span))

        values = [self._parse_expression(0)]
        while self._at(TokenKind.COMMA):
            self._advance()
            values.append(self._parse_expression(0))
        self._expect(TokenKind.RPAREN)
        return OperatorCall(func.name, PositionalArgs(values), self._span_from(func.span))

    def _parse_embedded(self) -> Literal:
        start = self._advance().span  # @
        reader = EmbeddedLiteralReader(
            self.tokens, self.pos, strict_scalars=self.strict_embedded_scalars,
        )
        value = reader.read()
        self.pos = reader.pos
        self._expected.clear()
        return Literal(value, embedded=True, span=self._span_from(start))

    def _parse_switch(self) -> Switch:
        start = self._advance().span  # switch
        self._expect(TokenKind.LBRACE)
        cases: list[Case] = []
        while not self._at(TokenKind.RBRACE):
            if self._at_soft_keyword("case"):
                self._advance()
            guard = self._parse_expression(0)
            if not (self._at(TokenKind.COLON) or self._at(TokenKind.FAT_ARROW)):
                raise self._unexpected()
            self._advance()
            result = self._parse_expression(0)
            cases.append(Case(guard, result))
            if self._at(TokenKind.SEMICOLON):
                self._advance()
        self._advance()  # }
        return Switch(cases, self._span_from(start))

    def _parse_if(self) -> Cond:
        """Parse an if/else-if/else chain into one flat Cond."""
        start = self._advance().span  # if
        branches: list[Branch] = []
        while True:
            self._expect(TokenKind.LPAREN)
            guard = self._parse_expression(0)
            self._expect(TokenKind.RPAREN)
            if self._at(TokenKind.FAT_ARROW) or self._at_soft_keyword("then"):
                self._advance()
            consequence = self._parse_expression(0)
            branches.append(Branch(guard, consequence))
            if not self._at(TokenKind.ELSE):
                break
            self._advance()
            if self._at(TokenKind.IF):
                self._advance()
                continue
            branches.append(Branch(AlwaysTrue(), self._parse_expression(0)))
            break
        return Cond(branches, self._span_from(start))


def parse(
    source: str | list[Token],
    filename: str = "<input>",
    *,
    strict_embedded_scalars: bool = True,
) -> Sequence:
    """Lex (when given text) and parse a script into its root Sequence."""
    tokens = tokenize(source, filename) if isinstance(source, str) else source
    return Parser(
        tokens, filename, strict_embedded_scalars=strict_embedded_scalars,
    ).parse()
