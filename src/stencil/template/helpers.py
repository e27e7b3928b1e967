"""Pure runtime helpers used while resolving templates.

``resolve_path`` is the safe-navigation lookup behind ``{{ a.b.c }}``,
``{@for x in a.b}`` and path references inside conditions. It never
raises: any missing segment produces the ``UNDEFINED`` sentinel, which
renders as an empty string.

Thread-Safety:
All functions are stateless and safe for concurrent use.

"""

from __future__ import annotations

from collections.abc import Mapping, Sequence, Sized
from typing import Any, Final


class _Undefined:
    """Sentinel for a path that did not resolve.

    Distinct from ``None``: a context value can legitimately be ``None``
    (``null`` in conditions) while a missing key is ``undefined``.
    """

    __slots__ = ()
    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED: Final = _Undefined()


def resolve_path(context: Any, path: str) -> Any:
    """Walk ``path`` (dot-separated) through ``context``.

    Segment rules:
        - Mapping: key lookup
        - Sequence (not str/bytes): integer index, non-negative only
        - ``length`` on a sized value without such a key: ``len(value)``
        - Other objects: public attribute (names starting with ``_``
          never resolve)

    Returns:
        The resolved value, or ``UNDEFINED`` if any segment is missing,
        any segment is empty, or an intermediate value is None/undefined.

    Example:
        >>> resolve_path({"a": {"b": "x"}}, "a.b")
        'x'
        >>> resolve_path({"a": {}}, "a.b")
        UNDEFINED
    """
    if not isinstance(path, str):
        return UNDEFINED
    current = context
    for part in path.split("."):
        if not part or current is None or current is UNDEFINED:
            return UNDEFINED
        current = _step(current, part)
    return current


def _step(current: Any, part: str) -> Any:
    if isinstance(current, Mapping):
        try:
            return current[part]
        except (KeyError, TypeError):
            return len(current) if part == "length" else UNDEFINED

    if isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
        if part.isdigit():
            index = int(part)
            return current[index] if index < len(current) else UNDEFINED
        return len(current) if part == "length" else UNDEFINED

    if part == "length" and isinstance(current, Sized):
        return len(current)

    if part.startswith("_") or isinstance(current, (str, bytes, int, float)):
        return UNDEFINED

    try:
        return getattr(current, part)
    except Exception:
        return UNDEFINED


def to_output(value: Any) -> str:
    """Convert a resolved value to its rendered string form.

    ``UNDEFINED`` and None render as an empty string; booleans render as
    ``true``/``false`` to match the condition literals.
    """
    if value is UNDEFINED or value is None:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


def is_truthy(value: Any) -> bool:
    """Template truthiness.

    None, undefined, False, 0, NaN and the empty string are falsy.
    Everything else is truthy, including empty lists and mappings.
    """
    if value is None or value is UNDEFINED or value is False:
        return False
    if isinstance(value, (int, float)):
        return value == value and value != 0
    if isinstance(value, str):
        return value != ""
    return True
