"""Template structure nodes for Stencil directive trees."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from stencil.nodes.base import Node


@dataclass(frozen=True, slots=True)
class Extends(Node):
    """Template inheritance: {@extends base.html}"""

    template: str


@dataclass(frozen=True, slots=True)
class Block(Node):
    """Named block for inheritance: {@block name}...{/@block}"""

    name: str
    body: Sequence[Node]


@dataclass(frozen=True, slots=True)
class Parent(Node):
    """Parent block content marker: {@parent}"""


@dataclass(frozen=True, slots=True)
class Include(Node):
    """Include another template: {@include partial.html}"""

    template: str


@dataclass(frozen=True, slots=True)
class TemplateNode(Node):
    """Root node representing a complete template."""

    body: Sequence[Node]
    extends: Extends | None = None
