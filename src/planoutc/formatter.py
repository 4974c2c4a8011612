"""AST-walking pretty-printer for PlanOut scripts.

Produces canonical formatting: one statement per line, every statement
terminated by ``;``, blocks and switch bodies indented, and only the
parentheses the precedence table requires. Formatting a parsed tree and
parsing the result again yields an equal tree.

Comments are not preserved (the lexer discards them).
"""

from __future__ import annotations

import json
import math
import re

from planoutc.ast_nodes import (
    BINARY_NODES,
    VARIADIC_NODES,
    AlwaysTrue,
    And,
    ArrayLit,
    Assign,
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
    Product,
    Return,
    Sequence,
    Sum,
    Switch,
    VariadicNode,
    VarRef,
)
from planoutc.tokens import KEYWORDS

_IDENT_RE = re.compile(r"[a-zA-Z][a-zA-Z0-9_]*\Z")
# after ")" a leading sign would lex as an operator
_SIGNED_NUMBER_RE = re.compile(r"-[0-9.]")

# Operator precedence table (higher binds tighter)
_OPEN = 0  # if-chains and return extend as far right as they can
_PREC: dict[type, int] = {
    Or: 1, Coalesce: 1,
    And: 2,
    Equals: 3,
    Gt: 4, Lt: 4, Gte: 4, Lte: 4,
    Sum: 5,
    Product: 6, Div: 6, Mod: 6,
    Negate: 7, Not: 7,
    Index: 8, OperatorCall: 8,
}
_ATOM = 9

_SYMBOLS: dict[type, str] = {
    Or: "||", Coalesce: "??", And: "&&", Sum: "+", Product: "*",
    Equals: "==", Gt: ">", Lt: "<", Gte: ">=", Lte: "<=",
    Div: "/", Mod: "%",
}


def _is_not_equal(node: Node) -> bool:
    return isinstance(node, Not) and isinstance(node.value, Equals)


def _precedence(node: Node) -> int:
    if isinstance(node, (Cond, Return)):
        return _OPEN
    if _is_not_equal(node):
        return _PREC[Equals]
    return _PREC.get(type(node), _ATOM)


def _starts_with_word(text: str, word: str) -> bool:
    """True when ``word`` would be read as a connective at the start of text."""
    return text != word and re.match(rf"{word}\b", text) is not None


class ScriptFormatter:
    """Format a parsed Sequence back to canonical source text."""

    def __init__(self, indent: int = 4, *, strict_embedded_scalars: bool = True) -> None:
        self.indent = indent
        self.strict_embedded_scalars = strict_embedded_scalars

    # ── Public API ─────────────────────────────────────────────

    def format(self, script: Sequence) -> str:
        """Format a root Sequence to canonical source text."""
        lines = [self._format_stmt(stmt, 0) for stmt in script.statements]
        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    # ── Statements ─────────────────────────────────────────────

    def _format_stmt(self, stmt: Node, depth: int) -> str:
        prefix = " " * (self.indent * depth)
        if isinstance(stmt, Assign):
            return f"{prefix}{stmt.name} = {self._format_expr(stmt.value, depth)};"
        return f"{prefix}{self._format_expr(stmt, depth)};"

    def _format_block(self, block: Sequence, depth: int) -> str:
        if not block.statements:
            return "{}"
        inner = [self._format_stmt(s, depth + 1) for s in block.statements]
        closing = " " * (self.indent * depth) + "}"
        return "{\n" + "\n".join(inner) + "\n" + closing

    # ── Expressions ────────────────────────────────────────────

    def _format_expr(self, expr: Node, depth: int, min_prec: int = 0) -> str:
        text = self._format_bare(expr, depth)
        if _precedence(expr) < min_prec:
            return f"({text})"
        return text

    def _format_bare(self, expr: Node, depth: int) -> str:
        if isinstance(expr, Literal):
            if expr.embedded:
                return "@" + self._format_embedded(expr.value)
            return self._format_constant(expr.value)
        if isinstance(expr, VarRef):
            return expr.name
        if isinstance(expr, Sequence):
            return self._format_block(expr, depth)
        if isinstance(expr, ArrayLit):
            return "[" + ", ".join(self._format_expr(v, depth) for v in expr.values) + "]"
        if isinstance(expr, Index):
            base = self._format_expr(expr.base, depth, _PREC[Index])
            return f"{base}[{self._format_expr(expr.index, depth)}]"
        if isinstance(expr, OperatorCall):
            return self._format_call(expr, depth)
        if _is_not_equal(expr):
            eq = expr.value
            prec = _PREC[Equals]
            left = self._format_expr(eq.left, depth, prec)
            right = self._format_expr(eq.right, depth, prec + 1)
            return f"{left} != {right}"
        if isinstance(expr, Not):
            return "!" + self._format_expr(expr.value, depth, _PREC[Not])
        if isinstance(expr, Negate):
            operand = self._format_expr(expr.value, depth, _PREC[Negate])
            # "- 5" keeps the sign from being lexed into the number
            sep = " " if operand[:1].isdigit() or operand[:1] == "." else ""
            return f"-{sep}{operand}"
        if isinstance(expr, VARIADIC_NODES):
            return self._format_variadic(expr, depth)
        if isinstance(expr, BINARY_NODES):
            prec = _PREC[type(expr)]
            left = self._format_expr(expr.left, depth, prec)
            right = self._format_expr(expr.right, depth, prec + 1)
            return f"{left} {_SYMBOLS[type(expr)]} {right}"
        if isinstance(expr, Switch):
            return self._format_switch(expr, depth)
        if isinstance(expr, Cond):
            return self._format_cond(expr, depth)
        if isinstance(expr, Return):
            return "return " + self._format_expr(expr.value, depth)
        raise TypeError(f"cannot format {type(expr).__name__}")

    def _format_variadic(self, expr: VariadicNode, depth: int) -> str:
        cls = type(expr)
        prec = _PREC[cls]
        first, *rest = expr.values
        if type(first) is cls:
            parts = [f"({self._format_bare(first, depth)})"]
        else:
            parts = [self._format_expr(first, depth, prec)]
        for value in rest:
            if cls is Sum and isinstance(value, Negate):
                parts.append("- " + self._format_expr(value.value, depth, prec + 1))
            else:
                parts.append(f"{_SYMBOLS[cls]} " + self._format_expr(value, depth, prec + 1))
        return " ".join(parts)

    def _format_call(self, call: OperatorCall, depth: int) -> str:
        if isinstance(call.args, NamedArgs):
            args = ", ".join(
                f"{key}={self._format_expr(value, depth)}"
                for key, value in call.args.args.items()
            )
        else:
            args = ", ".join(self._format_expr(v, depth) for v in call.args.values)
        return f"{call.name}({args})"

    def _format_switch(self, switch: Switch, depth: int) -> str:
        if not switch.cases:
            return "switch {}"
        prefix = " " * (self.indent * (depth + 1))
        lines = ["switch {"]
        for case in switch.cases:
            guard = self._format_expr(case.guard, depth + 1)
            if _starts_with_word(guard, "case"):
                guard = f"({guard})"
            result = self._format_expr(case.result, depth + 1)
            lines.append(f"{prefix}{guard} => {result};")
        lines.append(" " * (self.indent * depth) + "}")
        return "\n".join(lines)

    def _format_cond(self, cond: Cond, depth: int) -> str:
        parts: list[str] = []
        for branch in cond.branches:
            consequence = self._format_expr(branch.consequence, depth)
            # A nested if would capture the following else, or be flattened.
            if (isinstance(branch.consequence, (Cond, Return))
                    or _starts_with_word(consequence, "then")
                    or _SIGNED_NUMBER_RE.match(consequence)):
                consequence = f"({consequence})"
            if isinstance(branch.guard, AlwaysTrue):
                parts.append(f"else {consequence}")
            else:
                keyword = "if" if not parts else "else if"
                guard = self._format_expr(branch.guard, depth)
                parts.append(f"{keyword} ({guard}) {consequence}")
        return " ".join(parts)

    # ── Constants ──────────────────────────────────────────────

    @staticmethod
    def _format_constant(value: object) -> str:
        if value is None:
            return "null"
        if value is True:
            return "true"
        if value is False:
            return "false"
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError(f"{value!r} has no source representation")
            return repr(value)
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str):
            return json.dumps(value, ensure_ascii=False)
        raise TypeError(f"cannot format constant {value!r}")

    def _format_embedded(self, value: object) -> str:
        if isinstance(value, list):
            return "[" + ", ".join(self._format_embedded(v) for v in value) + "]"
        if isinstance(value, dict):
            items = []
            for key, item in value.items():
                if not _IDENT_RE.match(key) or key in KEYWORDS:
                    raise ValueError(f"embedded map key {key!r} is not an identifier")
                items.append(f"{key}: {self._format_embedded(item)}")
            return "{" + ", ".join(items) + "}"
        if isinstance(value, str):
            if _IDENT_RE.match(value) and value not in KEYWORDS:
                return value
            if not self.strict_embedded_scalars:
                return json.dumps(value, ensure_ascii=False)
            # strict readers JSON-decode string constants a second time
            encoded = json.dumps(value, ensure_ascii=False)
            if "'" not in encoded:
                return f"'{encoded}'"
            return json.dumps(encoded, ensure_ascii=False)
        return self._format_constant(value)
