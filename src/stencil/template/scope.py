"""Read-only layered view over a data context.

Loop iterations bind ``VAR``, ``index``, ``first`` and ``last`` without
copying or mutating the caller's data: each iteration gets a ``Scope``
whose overlay is checked before the parent mapping.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any


class Scope(Mapping[str, Any]):
    """Overlay mapping on top of a parent mapping.

    Example:
        >>> data = {"name": "outer", "x": 1}
        >>> scope = Scope({"name": "inner"}, data)
        >>> scope["name"], scope["x"]
        ('inner', 1)
        >>> data["name"]
        'outer'
    """

    __slots__ = ("_overlay", "_parent")

    def __init__(self, overlay: Mapping[str, Any], parent: Mapping[str, Any]):
        self._overlay = overlay
        self._parent = parent

    def __getitem__(self, key: str) -> Any:
        if key in self._overlay:
            return self._overlay[key]
        return self._parent[key]

    def __contains__(self, key: object) -> bool:
        return key in self._overlay or key in self._parent

    def __iter__(self) -> Iterator[str]:
        yield from self._overlay
        for key in self._parent:
            if key not in self._overlay:
                yield key

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"<Scope {dict(self._overlay)!r}>"
