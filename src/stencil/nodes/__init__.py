"""Stencil directive tree nodes.

Immutable, slotted dataclasses produced by the parser and consumed by the
resolver. Expression nodes describe ``{@if}`` conditions.
"""

from stencil.nodes.base import Node
from stencil.nodes.control_flow import For, If
from stencil.nodes.expressions import AnyExpr, BoolOp, Compare, Const, Expr, PathRef, UnaryOp
from stencil.nodes.output import Data, Output
from stencil.nodes.structure import Block, Extends, Include, Parent, TemplateNode

__all__ = [
    "AnyExpr",
    "Block",
    "BoolOp",
    "Compare",
    "Const",
    "Data",
    "Expr",
    "Extends",
    "For",
    "If",
    "Include",
    "Node",
    "Output",
    "Parent",
    "PathRef",
    "TemplateNode",
    "UnaryOp",
]
