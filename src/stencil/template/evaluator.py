"""Restricted evaluation of ``{@if}`` conditions.

Conditions are parsed into a typed tree (see ``stencil.parser.expressions``)
and evaluated here by direct dispatch on node type. The evaluator sees only
the mapping it is given: names resolve exclusively to the top-level keys of
the current data context (nested values through dot paths). There is no
access to globals, builtins, modules or callables, and nothing in a
condition can cause side effects.

Failure Policy:
Evaluation failures raise ExpressionEvaluationError from ``evaluate()``.
``evaluate_condition()`` is the recovering entry point used while
rendering: it reports the failure through ``report_expression_error`` and
returns False, so a malformed condition hides its guarded block instead of
aborting the render.

Thread-Safety:
Stateless. Safe for concurrent use.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from typing import Any

from stencil.environment.exceptions import ExpressionEvaluationError
from stencil.nodes import BoolOp, Compare, Const, Expr, PathRef, UnaryOp
from stencil.template.helpers import UNDEFINED, is_truthy, resolve_path

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[ExpressionEvaluationError], None]


class _Failure(Exception):
    """Evaluation failure; converted to ExpressionEvaluationError with the condition text."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def type_name(value: Any) -> str:
    """Name reported by ``typeof``."""
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def _category(value: Any) -> str:
    if value is None:
        return "null"
    return type_name(value)


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if _is_number(value):
        return float(value)
    text = str(value).strip()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return math.nan


def strict_equal(left: Any, right: Any) -> bool:
    """``===``: same type category and equal value."""
    if _category(left) != _category(right):
        return False
    return left == right


def loose_equal(left: Any, right: Any) -> bool:
    """``==``: null equals undefined; numbers coerce strings and booleans."""
    left_cat, right_cat = _category(left), _category(right)
    if left_cat == right_cat:
        return left == right
    nullish = {"null", "undefined"}
    if left_cat in nullish or right_cat in nullish:
        return left_cat in nullish and right_cat in nullish
    if {left_cat, right_cat} <= {"number", "string", "boolean"}:
        return _to_number(left) == _to_number(right)
    return False


def _order(op: str, left: Any, right: Any) -> bool:
    if not (
        (_is_number(left) and _is_number(right))
        or (isinstance(left, str) and isinstance(right, str))
    ):
        raise _Failure(
            f"cannot compare {type_name(left) if left is not None else 'null'} "
            f"{op} {type_name(right) if right is not None else 'null'}"
        )
    if op == ">":
        return left > right
    if op == "<":
        return left < right
    if op == ">=":
        return left >= right
    return left <= right


_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "===": strict_equal,
    "!==": lambda a, b: not strict_equal(a, b),
    "==": loose_equal,
    "!=": lambda a, b: not loose_equal(a, b),
    ">": lambda a, b: _order(">", a, b),
    "<": lambda a, b: _order("<", a, b),
    ">=": lambda a, b: _order(">=", a, b),
    "<=": lambda a, b: _order("<=", a, b),
}


def _eval_const(node: Const, context: Mapping[str, Any]) -> Any:
    return node.value


def _eval_path(node: PathRef, context: Mapping[str, Any]) -> Any:
    if not node.safe and node.root not in context:
        raise _Failure(f"name {node.root!r} is not defined")
    return resolve_path(context, node.path)


def _eval_unary(node: UnaryOp, context: Mapping[str, Any]) -> Any:
    if node.op == "typeof":
        operand = node.operand
        if isinstance(operand, PathRef) and operand.root not in context:
            return "undefined"
        return type_name(_eval(operand, context))
    value = _eval(node.operand, context)
    if node.op == "!":
        return not is_truthy(value)
    if not _is_number(value):
        raise _Failure(f"cannot negate {type_name(value)}")
    return -value


def _eval_bool(node: BoolOp, context: Mapping[str, Any]) -> Any:
    value: Any = UNDEFINED
    for operand in node.values:
        value = _eval(operand, context)
        if node.op == "&&" and not is_truthy(value):
            return value
        if node.op == "||" and is_truthy(value):
            return value
    return value


def _eval_compare(node: Compare, context: Mapping[str, Any]) -> Any:
    result = _eval(node.left, context)
    for op, comparator in zip(node.ops, node.comparators, strict=True):
        result = _COMPARATORS[op](result, _eval(comparator, context))
    return result


_DISPATCH: dict[type, Callable[[Any, Mapping[str, Any]], Any]] = {
    Const: _eval_const,
    PathRef: _eval_path,
    UnaryOp: _eval_unary,
    BoolOp: _eval_bool,
    Compare: _eval_compare,
}


def _eval(node: Expr, context: Mapping[str, Any]) -> Any:
    try:
        handler = _DISPATCH[type(node)]
    except KeyError:
        raise _Failure(f"unsupported expression node {type(node).__name__}") from None
    return handler(node, context)


def evaluate(expr: Expr, context: Mapping[str, Any], *, source: str = "") -> Any:
    """Evaluate a parsed condition and return its value.

    Raises:
        ExpressionEvaluationError: On undefined names, unsupported operand
            types for ordering or negation.
    """
    try:
        return _eval(expr, context)
    except _Failure as e:
        raise ExpressionEvaluationError(source, str(e)) from None


def report_expression_error(
    error: ExpressionEvaluationError, on_error: ErrorHandler | None = None
) -> None:
    """Send a recovered condition failure to the error channel."""
    if on_error is not None:
        on_error(error)
    else:
        logger.warning("%s", error)


def evaluate_condition(
    condition: str | Expr,
    context: Mapping[str, Any],
    on_error: ErrorHandler | None = None,
) -> bool:
    """Evaluate a condition to a boolean, never raising for bad conditions.

    Args:
        condition: Condition text (as written after ``{@if``) or a parsed tree
        context: Data context; its top-level keys are the only visible names
        on_error: Receives the ExpressionEvaluationError on failure.
            Defaults to logging a warning.

    Returns:
        The truthiness of the condition, or False if it failed.

    Example:
        >>> evaluate_condition("1 > 0", {})
        True
        >>> evaluate_condition("missing > 0", {})  # logs a warning
        False
    """
    from stencil.parser.errors import ParseError
    from stencil.parser.expressions import parse_condition

    text = condition if isinstance(condition, str) else ""
    try:
        expr = parse_condition(condition) if isinstance(condition, str) else condition
        return is_truthy(evaluate(expr, context, source=text))
    except ParseError as e:
        report_expression_error(ExpressionEvaluationError(text, e.reason), on_error)
    except ExpressionEvaluationError as e:
        report_expression_error(e, on_error)
    return False
