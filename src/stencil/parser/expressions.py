"""Condition expression parser.

Parses the text of an ``{@if ...}`` tag into a small typed tree
(``Const | PathRef | UnaryOp | Compare | BoolOp``). There is no dynamic
code construction anywhere: the tree is evaluated directly against the
data context by ``stencil.template.evaluator``.

Grammar (lowest to highest precedence):

    or       := and ( "||" and )*
    and      := equality ( "&&" equality )*
    equality := relation ( ("===" | "!==" | "==" | "!=") relation )*
    relation := unary ( (">" | "<" | ">=" | "<=") unary )*
    unary    := ("!" | "-" | "typeof") unary | primary
    primary  := NUMBER | STRING | "true" | "false" | "null" | "undefined"
              | "${" PATH "}" | PATH | "(" or ")"

Example:
    >>> parse_condition('user.age >= 18 && typeof user.name === "string"')
    BoolOp(op='&&', values=[Compare(...), Compare(...)])
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from stencil.nodes import BoolOp, Compare, Const, Expr, PathRef, UnaryOp
from stencil.parser.errors import ParseError
from stencil.template.helpers import UNDEFINED

EQUALITY_OPS = ("===", "!==", "==", "!=")
RELATION_OPS = (">=", "<=", ">", "<")

# Longest operators first so "===" wins over "==" and ">=" over ">".
_OPERATORS = ("===", "!==", "==", "!=", ">=", "<=", "&&", "||", ">", "<", "!", "-", "(", ")")

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")
_PATH_RE = re.compile(r"[A-Za-z_$][\w$]*(?:\.[\w$]+)*")
_DOLLAR_PATH_RE = re.compile(r"\$\{\s*([^}]*?)\s*\}")

_KEYWORDS: dict[str, object] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": UNDEFINED,
}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"'}


@dataclass(frozen=True, slots=True)
class _Tok:
    kind: str  # "op" | "num" | "str" | "path" | "safe_path" | "kw" | "typeof" | "end"
    value: object
    pos: int


def _tokenize(text: str) -> list[_Tok]:
    tokens: list[_Tok] = []
    pos = 0
    length = len(text)
    while pos < length:
        char = text[pos]
        if char.isspace():
            pos += 1
            continue

        if text.startswith("${", pos):
            match = _DOLLAR_PATH_RE.match(text, pos)
            if match is None:
                raise ParseError("unterminated '${'", text, pos)
            if not match.group(1):
                raise ParseError("empty '${}' reference", text, pos)
            tokens.append(_Tok("safe_path", match.group(1), pos))
            pos = match.end()
            continue

        if char in "'\"":
            value, end = _read_string(text, pos)
            tokens.append(_Tok("str", value, pos))
            pos = end
            continue

        match = _NUMBER_RE.match(text, pos)
        if match:
            literal = match.group()
            number: int | float = float(literal) if any(c in literal for c in ".eE") else int(literal)
            tokens.append(_Tok("num", number, pos))
            pos = match.end()
            continue

        match = _PATH_RE.match(text, pos)
        if match:
            word = match.group()
            if word in _KEYWORDS:
                tokens.append(_Tok("kw", _KEYWORDS[word], pos))
            elif word == "typeof":
                tokens.append(_Tok("typeof", word, pos))
            else:
                tokens.append(_Tok("path", word, pos))
            pos = match.end()
            continue

        for op in _OPERATORS:
            if text.startswith(op, pos):
                tokens.append(_Tok("op", op, pos))
                pos += len(op)
                break
        else:
            raise ParseError(f"unexpected character {char!r}", text, pos)

    tokens.append(_Tok("end", None, length))
    return tokens


def _read_string(text: str, start: int) -> tuple[str, int]:
    quote = text[start]
    chars: list[str] = []
    pos = start + 1
    while pos < len(text):
        char = text[pos]
        if char == "\\" and pos + 1 < len(text):
            chars.append(_ESCAPES.get(text[pos + 1], text[pos + 1]))
            pos += 2
            continue
        if char == quote:
            return "".join(chars), pos + 1
        chars.append(char)
        pos += 1
    raise ParseError("unterminated string literal", text, start)


class ExpressionParser:
    """Recursive-descent parser for one condition."""

    __slots__ = ("_index", "_lineno", "_text", "_tokens")

    def __init__(self, text: str, lineno: int = 1):
        self._text = text
        self._lineno = lineno
        self._tokens = _tokenize(text)
        self._index = 0

    def parse(self) -> Expr:
        if self._peek().kind == "end":
            raise ParseError("empty condition", self._text, 0)
        expr = self._parse_or()
        tok = self._peek()
        if tok.kind != "end":
            raise ParseError(f"unexpected {self._describe(tok)}", self._text, tok.pos)
        return expr

    def _peek(self) -> _Tok:
        return self._tokens[self._index]

    def _advance(self) -> _Tok:
        tok = self._tokens[self._index]
        self._index += 1
        return tok

    def _at_op(self, *ops: str) -> bool:
        tok = self._peek()
        return tok.kind == "op" and tok.value in ops

    @staticmethod
    def _describe(tok: _Tok) -> str:
        if tok.kind == "end":
            return "end of condition"
        if tok.kind == "str":
            return f"string {tok.value!r}"
        return repr(str(tok.value))

    def _bool_op(self, op: str, operand) -> Expr:
        first = self._peek()
        values = [operand()]
        while self._at_op(op):
            self._advance()
            values.append(operand())
        if len(values) == 1:
            return values[0]
        return BoolOp(self._lineno, first.pos, op, values)

    def _parse_or(self) -> Expr:
        return self._bool_op("||", self._parse_and)

    def _parse_and(self) -> Expr:
        return self._bool_op("&&", self._parse_equality)

    def _compare(self, ops: tuple[str, ...], operand) -> Expr:
        first = self._peek()
        left = operand()
        found: list[str] = []
        comparators: list[Expr] = []
        while self._at_op(*ops):
            found.append(str(self._advance().value))
            comparators.append(operand())
        if not found:
            return left
        return Compare(self._lineno, first.pos, left, found, comparators)

    def _parse_equality(self) -> Expr:
        return self._compare(EQUALITY_OPS, self._parse_relation)

    def _parse_relation(self) -> Expr:
        return self._compare(RELATION_OPS, self._parse_unary)

    def _parse_unary(self) -> Expr:
        tok = self._peek()
        if tok.kind == "typeof":
            self._advance()
            return UnaryOp(self._lineno, tok.pos, "typeof", self._parse_unary())
        if self._at_op("!", "-"):
            self._advance()
            return UnaryOp(self._lineno, tok.pos, str(tok.value), self._parse_unary())
        return self._parse_primary()

    def _parse_primary(self) -> Expr:
        tok = self._advance()
        if tok.kind in ("num", "str", "kw"):
            return Const(self._lineno, tok.pos, tok.value)
        if tok.kind == "path":
            return PathRef(self._lineno, tok.pos, str(tok.value))
        if tok.kind == "safe_path":
            return PathRef(self._lineno, tok.pos, str(tok.value), safe=True)
        if tok.kind == "op" and tok.value == "(":
            expr = self._parse_or()
            if not self._at_op(")"):
                raise ParseError("expected ')'", self._text, self._peek().pos)
            self._advance()
            return expr
        raise ParseError(f"unexpected {self._describe(tok)}", self._text, tok.pos)


def parse_condition(text: str, lineno: int = 1) -> Expr:
    """Parse condition text, raising ParseError on malformed input."""
    return ExpressionParser(text, lineno).parse()
