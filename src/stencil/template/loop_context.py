"""Loop iteration metadata for ``{@for VAR in PATH}`` blocks."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import Any


class LoopContext:
    """Iterates a loop collection and builds each iteration's bindings.

    Sequences iterate their elements. Mappings iterate their entries in
    insertion order, each bound as ``{"key": k, "value": v}``.

    Every iteration binds, on top of the enclosing context:
        VAR:   the element (or the key/value entry)
        index: 0-based position
        first: True on the first iteration
        last:  True on the final iteration

    Example:
            ```
            {@for u in users}{{index}}:{{u.name}}{@if last}.{@else}, {/@if}{/@for}
            ```

    Output for ``users=[{"name": "A"}, {"name": "B"}]``:
            ```
            0:A, 1:B.
            ```

    """

    __slots__ = ("_index", "_items", "_length")

    def __init__(self, items: Sequence[Any]) -> None:
        self._items = items
        self._length = len(items)
        self._index = 0

    @classmethod
    def from_value(cls, value: Any) -> LoopContext | None:
        """Build a loop over ``value``, or None when it is not loopable.

        Strings, bytes, numbers, None, undefined and unordered collections
        are not loopable; a loop over them renders nothing.
        """
        if isinstance(value, Mapping):
            return cls([{"key": key, "value": item} for key, item in value.items()])
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
            return cls(value)
        return None

    def __iter__(self) -> Iterator[Any]:
        """Iterate through items, updating index for each."""
        for i, item in enumerate(self._items):
            self._index = i
            yield item

    @property
    def index(self) -> int:
        """0-based iteration count."""
        return self._index

    @property
    def first(self) -> bool:
        return self._index == 0

    @property
    def last(self) -> bool:
        return self._index == self._length - 1

    @property
    def length(self) -> int:
        return self._length

    def bindings(self, target: str, item: Any) -> dict[str, Any]:
        """Loop-local names for the current iteration.

        The implicit names are applied last, so a loop variable named
        ``index``, ``first`` or ``last`` is shadowed by them.
        """
        return {target: item, "index": self.index, "first": self.first, "last": self.last}

    def __repr__(self) -> str:
        return f"<LoopContext {self.index}/{self.length}>"
