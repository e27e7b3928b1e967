"""Stencil parser: directive tree and condition expressions."""

from stencil.parser.core import Parser, parse
from stencil.parser.errors import ParseError
from stencil.parser.expressions import ExpressionParser, parse_condition

__all__ = ["ExpressionParser", "ParseError", "Parser", "parse", "parse_condition"]
