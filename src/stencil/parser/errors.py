"""Condition parse errors.

``ParseError`` is internal to the parser: a condition that fails to parse
does not abort parsing of the template. The message is stored on the
``If`` node and surfaces as an ExpressionEvaluationError whenever that
node is evaluated.
"""

from __future__ import annotations


class ParseError(Exception):
    """Condition parse failure with a pointer into the condition text.

    Example:
        >>> str(ParseError("unexpected '>'", "a >> b", 3))
        "unexpected '>' at column 3\\n  a >> b\\n     ^"
    """

    def __init__(self, message: str, text: str, position: int):
        self.message = message
        self.text = text
        self.position = position
        super().__init__(self._format())

    def _format(self) -> str:
        pointer = " " * (self.position + 2) + "^"
        return f"{self.message} at column {self.position}\n  {self.text}\n{pointer}"

    @property
    def reason(self) -> str:
        """Message without the source pointer."""
        return f"{self.message} at column {self.position}"
