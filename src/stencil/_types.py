"""Token types shared by the Stencil lexer and parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TokenType(Enum):
    """Kinds of tokens produced by the lexer."""

    DATA = "data"
    VARIABLE = "variable"  # {{ path }}
    BLOCK_BEGIN = "block_begin"  # {@name args}
    BLOCK_END = "block_end"  # {/@name}
    EOF = "eof"


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexer token.

    Attributes:
        type: Token kind
        value: Raw payload. DATA carries literal text, VARIABLE the path,
            BLOCK_BEGIN / BLOCK_END the directive name.
        lineno: 1-based line of the token start
        col_offset: 0-based column of the token start
        args: Argument text of a BLOCK_BEGIN directive (stripped)
        raw: Exact source text of the token
    """

    type: TokenType
    value: str
    lineno: int
    col_offset: int
    args: str = ""
    raw: str = ""

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.lineno}:{self.col_offset})"
