"""Control flow nodes for Stencil directive trees."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from stencil.nodes.base import Node
from stencil.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class If(Node):
    """Conditional: {@if cond}...{@else}...{/@if}

    ``test`` is None when the condition failed to parse; ``error`` then holds
    the parser message so the failure can be reported each time the node
    is evaluated.
    """

    condition: str
    test: Expr | None
    body: Sequence[Node]
    else_: Sequence[Node] = ()
    error: str | None = None


@dataclass(frozen=True, slots=True)
class For(Node):
    """Loop: {@for item in items}...{/@for}"""

    target: str
    iter: str
    body: Sequence[Node]
