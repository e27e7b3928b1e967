"""Tests for error types, codes and compact diagnostics."""

from __future__ import annotations

import pytest

from stencil import DictLoader, Environment
from stencil.environment import terminal
from stencil.environment.exceptions import (
    ErrorCode,
    ExpressionEvaluationError,
    IncludeTemplateMissingError,
    ParentTemplateMissingError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    build_source_snippet,
)


@pytest.fixture(autouse=True)
def no_colors(monkeypatch):
    monkeypatch.setattr(terminal, "_USE_COLORS", False)


class TestErrorCodes:
    """Every error kind has a searchable code."""

    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (TemplateNotFoundError("x", name="a"), ErrorCode.TEMPLATE_NOT_FOUND),
            (ParentTemplateMissingError("a"), ErrorCode.PARENT_MISSING),
            (IncludeTemplateMissingError("a"), ErrorCode.INCLUDE_MISSING),
            (TemplateSyntaxError("bad"), ErrorCode.SYNTAX_ERROR),
            (TemplateRuntimeError("deep"), ErrorCode.RUNTIME_ERROR),
            (ExpressionEvaluationError("a", "b"), ErrorCode.EXPRESSION_ERROR),
        ],
    )
    def test_codes(self, error: TemplateError, code: ErrorCode) -> None:
        assert error.code is code
        assert isinstance(error, TemplateError)

    def test_categories(self) -> None:
        """Codes group into template and runtime categories."""
        assert ErrorCode.INCLUDE_MISSING.category == "template"
        assert ErrorCode.EXPRESSION_ERROR.category == "runtime"


class TestFormatCompact:
    """Human-readable diagnostics."""

    def test_not_found(self) -> None:
        """The code is prefixed to the message."""
        err = TemplateNotFoundError("Template 'a' not found", name="a")
        assert err.format_compact() == "S-TPL-001: Template 'a' not found"

    def test_include_missing_with_snippet(self) -> None:
        """Missing includes show the referencing line and a hint."""
        err = IncludeTemplateMissingError(
            "nav.html",
            referenced_by="page.html",
            lineno=2,
            source="<html>\n<body>{@include nav.html}\n</html>",
        )
        out = err.format_compact()
        assert out.startswith("S-TPL-004: Included template 'nav.html' not found in store")
        assert "Referenced by: page.html:2" in out
        assert ">  2 | <body>{@include nav.html}" in out
        assert "Hint: Load 'nav.html' with Environment.preload()" in out

    def test_parent_missing_message(self) -> None:
        err = ParentTemplateMissingError("base.html", referenced_by="child.html", lineno=1)
        assert str(err) == "Parent template 'base.html' not found in store"
        assert err.source_snippet is None

    def test_syntax_error(self) -> None:
        """Syntax errors point at the offending line."""
        err = TemplateSyntaxError("Unclosed {@if}", lineno=1, name="t.html", source="{@if a}x")
        assert "--> t.html:1" in str(err)
        out = err.format_compact()
        assert out.startswith("S-TPL-002: Unclosed {@if}")
        assert ">  1 | {@if a}x" in out

    def test_expression_error(self) -> None:
        """Condition failures name the condition and its location."""
        err = ExpressionEvaluationError("a > 1", "name 'a' is not defined")
        located = err.with_location("page.html", 4)
        assert err.template_name is None
        out = located.format_compact()
        assert "Cannot evaluate condition 'a > 1': name 'a' is not defined" in out
        assert "Location: page.html:4" in out
        assert "Condition: a > 1" in out

    def test_runtime_error_stack(self) -> None:
        """The include chain is listed in the message."""
        err = TemplateRuntimeError(
            "Maximum include depth exceeded",
            template_name="a.html",
            suggestion="Check for recursive includes",
            template_stack=[("a.html", 1), ("b.html", 3)],
        )
        text = str(err)
        assert "Location: a.html" in text
        assert "b.html:3" in text
        assert "Suggestion: Check for recursive includes" in text


class TestSourceSnippet:
    """Context lines around an error."""

    def test_context_window(self) -> None:
        snippet = build_source_snippet("a\nb\nc\nd", 3)
        assert snippet.lines == ((2, "b"), (3, "c"), (4, "d"))

    def test_first_line(self) -> None:
        snippet = build_source_snippet("a\nb", 1, column=0)
        assert snippet.lines == ((1, "a"), (2, "b"))
        assert "^" in snippet.format()


class TestRaisedFromRendering:
    """Errors raised by the engine carry usable context."""

    def test_include_depth_stack(self) -> None:
        """Depth errors list the include chain."""
        env = Environment(
            loader=DictLoader({"a.html": "{@include b.html}", "b.html": "\n{@include a.html}"}),
            max_include_depth=3,
        )
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.render("a.html")
        assert exc_info.value.template_stack
        assert "Maximum include depth exceeded (3)" in str(exc_info.value)

    def test_missing_include_snippet(self) -> None:
        """The raised error shows the directive line."""
        env = Environment(loader=DictLoader({"p.html": "x\n{@include nav.html}"}))
        with pytest.raises(IncludeTemplateMissingError) as exc_info:
            env.render("p.html")
        assert "{@include nav.html}" in exc_info.value.format_compact()
