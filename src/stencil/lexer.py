"""Stencil lexer — splits template source into a token stream.

Recognized syntax:
    {{ dotted.path }}           VARIABLE
    {@if EXPR} {@else}          BLOCK_BEGIN
    {@for VAR in PATH}          BLOCK_BEGIN
    {@extends ID} {@include ID} BLOCK_BEGIN
    {@block NAME} {@parent}     BLOCK_BEGIN
    {/@if} {/@for} {/@block}    BLOCK_END

Anything else, including unknown ``{@word}`` tags and ``{{`` without a
matching ``}}``, is literal text. A template with no directives therefore
lexes to a single DATA token holding the whole source.

The tag of an ``{@if}`` directive ends at the first ``}`` that is outside
a string literal and outside a ``${...}`` reference, so conditions such as
``{@if ${user.name} === "}"}`` lex correctly. All other tags end at the
first ``}``.

Thread-Safety:
    Lexer instances hold per-call state only; create one per source.
"""

from __future__ import annotations

import re
from bisect import bisect_right
from collections.abc import Iterator

from stencil._types import Token, TokenType

DIRECTIVES = frozenset({"if", "else", "for", "extends", "block", "parent", "include"})
CLOSABLE = frozenset({"if", "for", "block"})

_NAME_RE = re.compile(r"[a-z]+")


class Lexer:
    """Tokenize template source.

    Example:
            >>> [t.type.name for t in Lexer("Hi {{ name }}").tokenize()]
        ['DATA', 'VARIABLE', 'EOF']
    """

    __slots__ = ("_line_starts", "_source")

    def __init__(self, source: str):
        self._source = source
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", source)]

    def _location(self, pos: int) -> tuple[int, int]:
        line_index = bisect_right(self._line_starts, pos) - 1
        return line_index + 1, pos - self._line_starts[line_index]

    def tokenize(self) -> Iterator[Token]:
        """Yield tokens for the whole source, ending with EOF."""
        source = self._source
        length = len(source)
        pos = 0
        data_start = 0

        while True:
            pos = source.find("{", pos)
            if pos == -1:
                break

            token: Token | None = None
            end = pos + 1
            if source.startswith("{{", pos):
                token, end = self._lex_variable(pos)
            elif source.startswith("{@", pos):
                token, end = self._lex_directive(pos)
            elif source.startswith("{/@", pos):
                token, end = self._lex_close(pos)

            if token is None:
                pos += 1
                continue

            if data_start < pos:
                yield self._data(data_start, pos)
            yield token
            pos = data_start = end

        if data_start < length:
            yield self._data(data_start, length)
        lineno, col = self._location(length)
        yield Token(TokenType.EOF, "", lineno, col)

    def _data(self, start: int, end: int) -> Token:
        lineno, col = self._location(start)
        text = self._source[start:end]
        return Token(TokenType.DATA, text, lineno, col, raw=text)

    def _lex_variable(self, pos: int) -> tuple[Token | None, int]:
        close = self._source.find("}}", pos + 2)
        if close == -1:
            return None, pos + 1
        content = self._source[pos + 2 : close]
        if not content or "}" in content:
            return None, pos + 1
        lineno, col = self._location(pos)
        raw = self._source[pos : close + 2]
        return Token(TokenType.VARIABLE, content.strip(), lineno, col, raw=raw), close + 2

    def _lex_directive(self, pos: int) -> tuple[Token | None, int]:
        source = self._source
        match = _NAME_RE.match(source, pos + 2)
        if match is None or match.group() not in DIRECTIVES:
            return None, pos + 1
        name = match.group()
        after = match.end()
        if after >= len(source) or not (source[after] == "}" or source[after].isspace()):
            return None, pos + 1

        close = self._scan_condition_end(after) if name == "if" else source.find("}", after)
        if close == -1:
            return None, pos + 1

        lineno, col = self._location(pos)
        token = Token(
            TokenType.BLOCK_BEGIN,
            name,
            lineno,
            col,
            args=source[after:close].strip(),
            raw=source[pos : close + 1],
        )
        return token, close + 1

    def _lex_close(self, pos: int) -> tuple[Token | None, int]:
        match = _NAME_RE.match(self._source, pos + 3)
        if match is None or match.group() not in CLOSABLE:
            return None, pos + 1
        if not self._source.startswith("}", match.end()):
            return None, pos + 1
        lineno, col = self._location(pos)
        raw = self._source[pos : match.end() + 1]
        return Token(TokenType.BLOCK_END, match.group(), lineno, col, raw=raw), match.end() + 1

    def _scan_condition_end(self, start: int) -> int:
        """Find the ``}`` closing an ``{@if ...}`` tag, or -1."""
        source = self._source
        quote: str | None = None
        depth = 0
        i = start
        while i < len(source):
            char = source[i]
            if quote:
                if char == "\\":
                    i += 2
                    continue
                if char == quote:
                    quote = None
            elif char in "'\"":
                quote = char
            elif char == "$" and source.startswith("{", i + 1):
                depth += 1
                i += 2
                continue
            elif char == "}":
                if depth == 0:
                    return i
                depth -= 1
            i += 1
        return -1


def tokenize(source: str) -> list[Token]:
    """Tokenize source into a list (convenience wrapper)."""
    return list(Lexer(source).tokenize())
