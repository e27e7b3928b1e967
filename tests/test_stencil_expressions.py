"""Tests for condition parsing and restricted evaluation."""

from __future__ import annotations

import logging
import math

import pytest

from stencil.environment.exceptions import ExpressionEvaluationError
from stencil.nodes import BoolOp, Compare, Const, PathRef, UnaryOp
from stencil.parser import ParseError, parse_condition
from stencil.template.evaluator import (
    evaluate,
    evaluate_condition,
    loose_equal,
    strict_equal,
    type_name,
)
from stencil.template.helpers import UNDEFINED


def value_of(text: str, context: dict | None = None):
    return evaluate(parse_condition(text), context or {}, source=text)


class TestConditionParsing:
    """Precedence and node shapes."""

    def test_or_binds_loosest(self) -> None:
        """a && b || c parses as (a && b) || c."""
        expr = parse_condition("a && b || c")
        assert isinstance(expr, BoolOp) and expr.op == "||"
        assert isinstance(expr.values[0], BoolOp) and expr.values[0].op == "&&"

    def test_equality_below_relation(self) -> None:
        """a > 1 === true compares the relation result."""
        expr = parse_condition("a > 1 === true")
        assert isinstance(expr, Compare) and list(expr.ops) == ["==="]
        assert isinstance(expr.left, Compare) and list(expr.left.ops) == [">"]

    def test_unary_and_literals(self) -> None:
        """Prefix operators wrap their operand; keywords are constants."""
        expr = parse_condition("!typeof x")
        assert isinstance(expr, UnaryOp) and expr.op == "!"
        assert isinstance(expr.operand, UnaryOp) and expr.operand.op == "typeof"
        assert parse_condition("null").value is None
        assert parse_condition("undefined").value is UNDEFINED
        assert parse_condition("2.5").value == 2.5

    def test_paths(self) -> None:
        """Bare and ${} paths both parse to PathRef; only ${} is safe."""
        bare = parse_condition("user.name")
        safe = parse_condition("${ user.name }")
        assert isinstance(bare, PathRef) and not bare.safe
        assert isinstance(safe, PathRef) and safe.safe
        assert bare.path == safe.path == "user.name"
        assert bare.root == "user"

    def test_string_escapes(self) -> None:
        """Backslash escapes inside quoted strings."""
        expr = parse_condition(r"'it\'s'")
        assert isinstance(expr, Const) and expr.value == "it's"

    @pytest.mark.parametrize(
        "text",
        ["", "a >", "(a", "a b", "'open", "${", "${}", "a = 1", "a + 1", "f(x)", "@"],
    )
    def test_invalid(self, text: str) -> None:
        """Malformed conditions raise ParseError."""
        with pytest.raises(ParseError):
            parse_condition(text)


class TestEvaluation:
    """Operator semantics."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1 > 0", True),
            ("1 > 2", False),
            ("2 >= 2", True),
            ("'a' < 'b'", True),
            ("1 === 1", True),
            ("1 === '1'", False),
            ("1 == '1'", True),
            ("0 == ''", True),
            ("true == 1", True),
            ("true === 1", False),
            ("null == undefined", True),
            ("null === undefined", False),
            ("null == 0", False),
            ("'x' !== 'y'", True),
            ("1 != '1'", False),
            ("-1 < 0", True),
            ("!(1 > 2)", True),
            ("typeof 1 === 'number'", True),
        ],
    )
    def test_literals(self, text: str, expected: bool) -> None:
        """Comparison and equality rules on literals."""
        assert value_of(text) is expected

    def test_context_paths(self) -> None:
        """Dotted paths read nested context values."""
        ctx = {"user": {"age": 20, "tags": ["a", "b"]}}
        assert value_of("user.age >= 18", ctx) is True
        assert value_of("user.tags.length === 2", ctx) is True
        assert value_of("user.tags.0 === 'a'", ctx) is True

    def test_bool_ops_return_operands(self) -> None:
        """&& and || short-circuit and yield an operand."""
        assert value_of("0 || 'fallback'") == "fallback"
        assert value_of("'a' && 'b'") == "b"
        assert value_of("'' && missing") == ""

    def test_short_circuit_skips_undefined_name(self) -> None:
        """The right side is not evaluated when the left decides."""
        assert value_of("true || missing") is True
        assert value_of("false && missing") is False

    def test_typeof(self) -> None:
        """typeof names every value category and tolerates unknown names."""
        ctx = {"n": 1.5, "s": "x", "b": False, "o": {}, "l": [], "z": None}
        assert value_of("typeof n", ctx) == "number"
        assert value_of("typeof s", ctx) == "string"
        assert value_of("typeof b", ctx) == "boolean"
        assert value_of("typeof o", ctx) == "object"
        assert value_of("typeof l", ctx) == "object"
        assert value_of("typeof z", ctx) == "object"
        assert value_of("typeof nothing", ctx) == "undefined"
        assert value_of("typeof o.missing", ctx) == "undefined"

    def test_safe_path_is_undefined(self) -> None:
        """${path} never fails; a missing root is undefined."""
        assert value_of("${missing} === undefined") is True
        assert value_of("${a.b.c} == null", {"a": {}}) is True


class TestEvaluationFailures:
    """Failures raise ExpressionEvaluationError with a reason."""

    def test_undefined_name(self) -> None:
        """A bare name that is not a context key is an error."""
        with pytest.raises(ExpressionEvaluationError) as exc_info:
            value_of("missing > 1")
        assert exc_info.value.reason == "name 'missing' is not defined"
        assert exc_info.value.expression == "missing > 1"

    def test_no_ambient_names(self) -> None:
        """Python builtins and modules are not visible."""
        for name in ("len", "__import__", "os", "print"):
            with pytest.raises(ExpressionEvaluationError):
                value_of(name)

    def test_ordering_mixed_types(self) -> None:
        """Ordering needs two numbers or two strings."""
        with pytest.raises(ExpressionEvaluationError, match="cannot compare"):
            value_of("1 < 'a'")
        with pytest.raises(ExpressionEvaluationError, match="cannot compare"):
            value_of("${missing} > 0")

    def test_negate_non_number(self) -> None:
        """Unary minus only applies to numbers."""
        with pytest.raises(ExpressionEvaluationError, match="cannot negate"):
            value_of("-'a'")


class TestEvaluateCondition:
    """The recovering entry point used while rendering."""

    def test_true_and_false(self) -> None:
        """Valid conditions return their truthiness."""
        assert evaluate_condition("1 > 0", {}) is True
        assert evaluate_condition("items", {"items": []}) is True
        assert evaluate_condition("count", {"count": 0}) is False

    def test_failure_goes_to_callback(self) -> None:
        """A failing condition is false and reported once."""
        errors: list[ExpressionEvaluationError] = []
        assert evaluate_condition("missing > 1", {}, errors.append) is False
        assert len(errors) == 1
        assert errors[0].reason == "name 'missing' is not defined"

    def test_parse_failure_goes_to_callback(self) -> None:
        """Unparseable conditions are reported the same way."""
        errors: list[ExpressionEvaluationError] = []
        assert evaluate_condition("a >>> b", {"a": 1, "b": 2}, errors.append) is False
        assert errors[0].expression == "a >>> b"

    def test_failure_logged_without_callback(self, caplog) -> None:
        """Without a callback the failure is logged as a warning."""
        with caplog.at_level(logging.WARNING, logger="stencil.template.evaluator"):
            assert evaluate_condition("nope", {}) is False
        assert "name 'nope' is not defined" in caplog.text

    def test_parsed_tree_accepted(self) -> None:
        """A pre-parsed expression can be passed directly."""
        assert evaluate_condition(parse_condition("x === 'y'"), {"x": "y"}) is True


class TestEqualityHelpers:
    """Direct checks of the equality rules and typeof names."""

    def test_nan(self) -> None:
        """NaN equals nothing, itself included."""
        assert not strict_equal(math.nan, math.nan)
        assert not loose_equal(math.nan, math.nan)

    def test_numeric_string_coercion(self) -> None:
        """Loose equality parses numeric strings."""
        assert loose_equal("  42 ", 42)
        assert not loose_equal("4x", 4)

    def test_type_name(self) -> None:
        """Values map onto the typeof categories."""
        assert type_name(UNDEFINED) == "undefined"
        assert type_name(True) == "boolean"
        assert type_name(3) == "number"
        assert type_name(object()) == "object"
