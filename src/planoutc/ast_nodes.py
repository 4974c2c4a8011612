"""AST node definitions for PlanOut scripts.

Every node is a frozen dataclass. The optional ``span`` is excluded from
equality so that structurally identical trees compare equal regardless
of where they came from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from planoutc.source import Span


def _span() -> Span | None:
    return field(default=None, compare=False, repr=False)


# ── Statements and structure ─────────────────────────────────────


@dataclass(frozen=True)
class Sequence:
    statements: list[Node]
    span: Span | None = _span()


@dataclass(frozen=True)
class Assign:
    name: str
    value: Node
    span: Span | None = _span()


@dataclass(frozen=True)
class Return:
    value: Node
    span: Span | None = _span()


# ── Values ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class VarRef:
    name: str
    span: Span | None = _span()


@dataclass(frozen=True)
class Literal:
    """A constant. ``embedded`` marks values written with the ``@`` syntax."""

    value: object
    embedded: bool = False
    span: Span | None = _span()


@dataclass(frozen=True)
class ArrayLit:
    values: list[Node]
    span: Span | None = _span()


@dataclass(frozen=True)
class Index:
    base: Node
    index: Node
    span: Span | None = _span()


@dataclass(frozen=True)
class PositionalArgs:
    values: list[Node]


@dataclass(frozen=True)
class NamedArgs:
    args: dict[str, Node]


@dataclass(frozen=True)
class OperatorCall:
    name: str
    args: PositionalArgs | NamedArgs
    span: Span | None = _span()


# ── Unary ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Negate:
    value: Node
    span: Span | None = _span()


@dataclass(frozen=True)
class Not:
    value: Node
    span: Span | None = _span()


# ── Binary ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class Mod:
    left: Node
    right: Node
    span: Span | None = _span()


@dataclass(frozen=True)
class Div:
    left: Node
    right: Node
    span: Span | None = _span()


@dataclass(frozen=True)
class Gt:
    left: Node
    right: Node
    span: Span | None = _span()


@dataclass(frozen=True)
class Lt:
    left: Node
    right: Node
    span: Span | None = _span()


@dataclass(frozen=True)
class Equals:
    left: Node
    right: Node
    span: Span | None = _span()


@dataclass(frozen=True)
class Lte:
    left: Node
    right: Node
    span: Span | None = _span()


@dataclass(frozen=True)
class Gte:
    left: Node
    right: Node
    span: Span | None = _span()


# ── Variadic ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Sum:
    values: list[Node]
    span: Span | None = _span()


@dataclass(frozen=True)
class Product:
    values: list[Node]
    span: Span | None = _span()


@dataclass(frozen=True)
class Or:
    values: list[Node]
    span: Span | None = _span()


@dataclass(frozen=True)
class And:
    values: list[Node]
    span: Span | None = _span()


@dataclass(frozen=True)
class Coalesce:
    values: list[Node]
    span: Span | None = _span()


# ── Branching ────────────────────────────────────────────────────


@dataclass(frozen=True)
class Case:
    guard: Node
    result: Node


@dataclass(frozen=True)
class Switch:
    cases: list[Case]
    span: Span | None = _span()


@dataclass(frozen=True)
class AlwaysTrue:
    """Guard of a trailing ``else`` branch."""


@dataclass(frozen=True)
class Branch:
    guard: Node | AlwaysTrue
    consequence: Node


@dataclass(frozen=True)
class Cond:
    branches: list[Branch]
    span: Span | None = _span()


VariadicNode = Union[Sum, Product, Or, And, Coalesce]
Node = Union[
    Sequence, Assign, Return, VarRef, Literal, ArrayLit, Index, OperatorCall,
    Negate, Not, Mod, Div, Gt, Lt, Equals, Lte, Gte,
    Sum, Product, Or, And, Coalesce, Switch, Cond,
]

BINARY_NODES: tuple[type, ...] = (Mod, Div, Gt, Lt, Equals, Lte, Gte)
VARIADIC_NODES: tuple[type, ...] = (Sum, Product, Or, And, Coalesce)
