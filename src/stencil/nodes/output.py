"""Output nodes for Stencil directive trees."""

from __future__ import annotations

from dataclasses import dataclass

from stencil.nodes.base import Node


@dataclass(frozen=True, slots=True)
class Output(Node):
    """Variable placeholder: {{ dotted.path }}"""

    path: str


@dataclass(frozen=True, slots=True)
class Data(Node):
    """Literal text between directives."""

    value: str
