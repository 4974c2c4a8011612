"""Serialization of the AST into the interpreter's JSON form.

The interpreter reads nested dicts tagged with ``op``. Plain constants
are emitted bare; ``@`` literals are wrapped as ``{"op": "literal"}``.
The switch case field keeps its historical spelling ``condidion``
unless a different key is asked for.
"""

from __future__ import annotations

import json

from planoutc.ast_nodes import (
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
    VarRef,
)

CASE_CONDITION_KEY = "condidion"

_BINARY_OPS: dict[type, str] = {
    Mod: "%",
    Div: "/",
    Gt: ">",
    Lt: "<",
    Equals: "equals",
    Lte: "<=",
    Gte: ">=",
}

_VARIADIC_OPS: dict[type, str] = {
    Sum: "sum",
    Product: "product",
    Or: "or",
    And: "and",
    Coalesce: "coalesce",
}


class WireEncoder:
    """Converts AST nodes into JSON-compatible values."""

    def __init__(self, *, case_condition_key: str = CASE_CONDITION_KEY) -> None:
        self.case_condition_key = case_condition_key

    def encode(self, node: Node) -> object:
        if isinstance(node, Literal):
            if node.embedded:
                return {"op": "literal", "value": node.value}
            return node.value
        if isinstance(node, Sequence):
            return {"op": "seq", "seq": [self.encode(s) for s in node.statements]}
        if isinstance(node, Assign):
            return {"op": "set", "var": node.name, "value": self.encode(node.value)}
        if isinstance(node, VarRef):
            return {"op": "get", "var": node.name}
        if isinstance(node, ArrayLit):
            return {"op": "array", "values": [self.encode(v) for v in node.values]}
        if isinstance(node, Index):
            return {
                "op": "index",
                "base": self.encode(node.base),
                "index": self.encode(node.index),
            }
        if isinstance(node, OperatorCall):
            return self._encode_call(node)
        if isinstance(node, Negate):
            return {"op": "negative", "value": self.encode(node.value)}
        if isinstance(node, Not):
            return {"op": "not", "value": self.encode(node.value)}
        if isinstance(node, Return):
            return {"op": "return", "value": self.encode(node.value)}
        if type(node) in _BINARY_OPS:
            return {
                "op": _BINARY_OPS[type(node)],
                "left": self.encode(node.left),
                "right": self.encode(node.right),
            }
        if type(node) in _VARIADIC_OPS:
            return {
                "op": _VARIADIC_OPS[type(node)],
                "values": [self.encode(v) for v in node.values],
            }
        if isinstance(node, Switch):
            return {"op": "switch", "cases": [
                {
                    "op": "case",
                    self.case_condition_key: self.encode(case.guard),
                    "result": self.encode(case.result),
                }
                for case in node.cases
            ]}
        if isinstance(node, Cond):
            return {"op": "cond", "cond": [
                {
                    "if": True if isinstance(b.guard, AlwaysTrue) else self.encode(b.guard),
                    "then": self.encode(b.consequence),
                }
                for b in node.branches
            ]}
        raise TypeError(f"cannot serialize {type(node).__name__}")

    def _encode_call(self, node: OperatorCall) -> dict[str, object]:
        """Arguments become fields of the call object, then ``op`` is set."""
        result: dict[str, object]
        if isinstance(node.args, NamedArgs):
            result = {k: self.encode(v) for k, v in node.args.args.items()}
        elif len(node.args.values) == 1:
            result = {"value": self.encode(node.args.values[0])}
        else:
            result = {"values": [self.encode(v) for v in node.args.values]}
        result["op"] = node.name
        return result


def to_wire(node: Node, *, case_condition_key: str = CASE_CONDITION_KEY) -> object:
    """Convert a tree into the interpreter's JSON-compatible structure."""
    return WireEncoder(case_condition_key=case_condition_key).encode(node)


def dumps(
    node: Node,
    *,
    indent: int | None = 2,
    case_condition_key: str = CASE_CONDITION_KEY,
) -> str:
    """Serialize a tree to interpreter JSON text."""
    return json.dumps(
        to_wire(node, case_condition_key=case_condition_key),
        indent=indent, allow_nan=False,
    )
