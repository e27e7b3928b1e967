"""Expression nodes for ``{@if}`` conditions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from stencil.nodes.base import Node


@dataclass(frozen=True, slots=True)
class Expr(Node):
    """Base class for expressions."""


@dataclass(frozen=True, slots=True)
class Const(Expr):
    """Literal value: string, number, boolean, null or undefined."""

    value: object


@dataclass(frozen=True, slots=True)
class PathRef(Expr):
    """Dotted path into the data context: ``user.name`` or ``${user.name}``.

    ``safe`` marks the ``${...}`` form, which yields undefined instead of
    failing when the root name is not in the context.
    """

    path: str
    safe: bool = False

    @property
    def root(self) -> str:
        return self.path.split(".", 1)[0]


@dataclass(frozen=True, slots=True)
class UnaryOp(Expr):
    """Unary operation: ``!x``, ``-x``, ``typeof x``"""

    op: Literal["!", "-", "typeof"]
    operand: Expr


@dataclass(frozen=True, slots=True)
class Compare(Expr):
    """Comparison chain: left op1 right1 op2 right2 ...

    Chains evaluate left to right, each result feeding the next operator,
    so ``a < b < c`` compares the boolean ``a < b`` with ``c``.
    """

    left: Expr
    ops: Sequence[str]
    comparators: Sequence[Expr]


@dataclass(frozen=True, slots=True)
class BoolOp(Expr):
    """Short-circuit combination: ``a && b``, ``a || b``"""

    op: Literal["&&", "||"]
    values: Sequence[Expr]


AnyExpr = Const | PathRef | UnaryOp | Compare | BoolOp
