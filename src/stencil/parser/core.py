"""Directive parser — builds an immutable directive tree from tokens.

Nesting is resolved structurally: each ``{@if}``, ``{@for}`` and
``{@block}`` owns the tokens up to its matching close tag, so nested
directives of the same kind pair up correctly and ``{@else}`` always
belongs to the innermost open ``{@if}``.

Conditions are parsed here as well. A condition that fails to parse does
not raise: the ``If`` node keeps the parser message and the failure is
reported (and the condition treated as false) each time it is evaluated.
"""

from __future__ import annotations

import re

from stencil._types import Token, TokenType
from stencil.environment.exceptions import TemplateSyntaxError
from stencil.lexer import Lexer
from stencil.nodes import (
    Block,
    Data,
    Extends,
    For,
    If,
    Include,
    Node,
    Output,
    Parent,
    TemplateNode,
)
from stencil.parser.errors import ParseError
from stencil.parser.expressions import parse_condition

_FOR_HEADER_RE = re.compile(r"^([A-Za-z_$][\w$]*)\s+in\s+(\S+)$")

# Maximum nesting of {@if}, {@for} and {@block} directives.
MAX_NESTING_DEPTH = 100


class Parser:
    """Parse one template source into a ``TemplateNode``.

    Example:
            >>> tree = Parser("{@if a}{{ a }}{/@if}").parse()
            >>> type(tree.body[0]).__name__
            'If'
    """

    __slots__ = ("_depth", "_extends", "_index", "_name", "_open", "_source", "_tokens")

    def __init__(self, source: str, name: str | None = None):
        self._source = source
        self._name = name
        self._tokens = list(Lexer(source).tokenize())
        self._index = 0
        self._depth = 0
        self._extends: Extends | None = None
        self._open: list[Token] = []

    @property
    def _current(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        tok = self._tokens[self._index]
        self._index += 1
        return tok

    def _error(self, message: str, tok: Token) -> TemplateSyntaxError:
        return TemplateSyntaxError(
            message,
            lineno=tok.lineno,
            name=self._name,
            source=self._source,
            col_offset=tok.col_offset,
        )

    def parse(self) -> TemplateNode:
        body = self._parse_body()
        tok = self._current
        if tok.type is TokenType.BLOCK_END:
            raise self._error(f"Unexpected {tok.raw} with no open {{@{tok.value}}}", tok)
        if tok.type is TokenType.BLOCK_BEGIN and tok.value == "else":
            raise self._error("{@else} outside of {@if}", tok)
        return TemplateNode(lineno=1, col_offset=0, body=tuple(body), extends=self._extends)

    def _parse_body(self) -> list[Node]:
        """Parse nodes until EOF, a close tag, or an ``{@else}``."""
        body: list[Node] = []
        while True:
            tok = self._current
            if tok.type is TokenType.EOF or tok.type is TokenType.BLOCK_END:
                return body
            if tok.type is TokenType.DATA:
                self._advance()
                body.append(Data(tok.lineno, tok.col_offset, tok.value))
            elif tok.type is TokenType.VARIABLE:
                self._advance()
                body.append(Output(tok.lineno, tok.col_offset, tok.value))
            elif tok.value == "else":
                return body
            else:
                node = self._parse_directive()
                if node is not None:
                    body.append(node)

    def _parse_directive(self) -> Node | None:
        tok = self._current
        handler = {
            "if": self._parse_if,
            "for": self._parse_for,
            "block": self._parse_block,
            "include": self._parse_include,
            "extends": self._parse_extends,
            "parent": self._parse_parent,
        }[tok.value]
        return handler()

    def _parse_nested(self, start: Token) -> list[Node]:
        if self._depth >= MAX_NESTING_DEPTH:
            raise self._error(
                f"{start.raw} nested more than {MAX_NESTING_DEPTH} levels deep", start
            )
        self._open.append(start)
        self._depth += 1
        try:
            return self._parse_body()
        finally:
            self._depth -= 1
            self._open.pop()

    def _consume_end(self, start: Token) -> None:
        tok = self._current
        if tok.type is TokenType.EOF:
            raise self._error(
                f"Unclosed {start.raw}: expected {{/@{start.value}}} before end of template",
                start,
            )
        if tok.type is TokenType.BLOCK_BEGIN and tok.value == "else":
            raise self._error(f"{{@else}} outside of {{@if}} (inside {start.raw})", tok)
        if tok.type is not TokenType.BLOCK_END or tok.value != start.value:
            raise self._error(
                f"Mismatched {tok.raw}: {start.raw} on line {start.lineno} "
                f"expects {{/@{start.value}}}",
                tok,
            )
        self._advance()

    def _parse_if(self) -> If:
        start = self._advance()
        test = None
        error = None
        try:
            test = parse_condition(start.args, start.lineno)
        except ParseError as e:
            error = e.reason

        body = self._parse_nested(start)
        else_: list[Node] = []
        tok = self._current
        if tok.type is TokenType.BLOCK_BEGIN and tok.value == "else":
            self._advance()
            if tok.args:
                raise self._error("{@else} takes no arguments", tok)
            else_ = self._parse_nested(start)
            extra = self._current
            if extra.type is TokenType.BLOCK_BEGIN and extra.value == "else":
                raise self._error("Duplicate {@else} in {@if}", extra)
        self._consume_end(start)

        return If(
            lineno=start.lineno,
            col_offset=start.col_offset,
            condition=start.args,
            test=test,
            body=tuple(body),
            else_=tuple(else_),
            error=error,
        )

    def _parse_for(self) -> For:
        start = self._advance()
        match = _FOR_HEADER_RE.match(start.args)
        if match is None:
            raise self._error(
                f"Malformed loop header {start.args!r}: expected {{@for VAR in PATH}}", start
            )
        body = self._parse_nested(start)
        self._consume_end(start)
        return For(
            lineno=start.lineno,
            col_offset=start.col_offset,
            target=match.group(1),
            iter=match.group(2),
            body=tuple(body),
        )

    def _parse_block(self) -> Block:
        start = self._advance()
        if not start.args:
            raise self._error("{@block} requires a name", start)
        body = self._parse_nested(start)
        self._consume_end(start)
        return Block(
            lineno=start.lineno,
            col_offset=start.col_offset,
            name=start.args,
            body=tuple(body),
        )

    def _parse_include(self) -> Include:
        start = self._advance()
        if not start.args:
            raise self._error("{@include} requires a template name", start)
        return Include(lineno=start.lineno, col_offset=start.col_offset, template=start.args)

    def _parse_extends(self) -> None:
        start = self._advance()
        if not start.args:
            raise self._error("{@extends} requires a template name", start)
        if self._depth:
            raise self._error(
                f"{start.raw} must be at the top level, not inside {self._open[-1].raw}", start
            )
        if self._extends is not None:
            raise self._error(
                f"Template already extends '{self._extends.template}' "
                f"(line {self._extends.lineno})",
                start,
            )
        self._extends = Extends(
            lineno=start.lineno, col_offset=start.col_offset, template=start.args
        )
        return None

    def _parse_parent(self) -> Parent:
        start = self._advance()
        if start.args:
            raise self._error("{@parent} takes no arguments", start)
        return Parent(lineno=start.lineno, col_offset=start.col_offset)


def parse(source: str, name: str | None = None) -> TemplateNode:
    """Parse template source into a directive tree."""
    return Parser(source, name).parse()
