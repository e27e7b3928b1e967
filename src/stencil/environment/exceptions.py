"""Exceptions for the Stencil template engine.

Exception Hierarchy:
TemplateError (base)
├── TemplateNotFoundError             # No text could be loaded for a name
│   ├── ParentTemplateMissingError    # {@extends X}: X not in the store
│   └── IncludeTemplateMissingError   # {@include X}: X not in the store
├── TemplateSyntaxError               # Malformed directive structure
├── TemplateRuntimeError              # Include depth / inheritance cycle
└── ExpressionEvaluationError         # {@if} condition failed (recovered)

Propagation:
Structural failures (everything except ExpressionEvaluationError) abort the
render call. Expression failures never escape ``render()``: the condition
is treated as false and the error is handed to the environment's
``on_expression_error`` callback, or logged as a warning.

Example:
    ```
    S-TPL-004: Included template 'nav.html' not found in store
      Referenced by: page.html:3
       |
    >  3 | <body>{@include nav.html}
       |
      Hint: Load 'nav.html' with Environment.preload() or enable auto_load
    ```

"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from stencil.environment import terminal


class ErrorCode(Enum):
    """Searchable error codes.

    Format: S-{CATEGORY}-{NUMBER}
    Categories: TPL (template loading and structure), RUN (render time)
    """

    TEMPLATE_NOT_FOUND = "S-TPL-001"
    SYNTAX_ERROR = "S-TPL-002"
    PARENT_MISSING = "S-TPL-003"
    INCLUDE_MISSING = "S-TPL-004"

    EXPRESSION_ERROR = "S-RUN-001"
    RUNTIME_ERROR = "S-RUN-002"

    @property
    def category(self) -> str:
        """Error category (``template`` or ``runtime``)."""
        return {"TPL": "template", "RUN": "runtime"}.get(self.value.split("-")[1], "unknown")


@dataclass(frozen=True, slots=True)
class SourceSnippet:
    """Template source lines around an error.

    Attributes:
        lines: Tuple of (line_number, line_content) pairs around the error.
        error_line: The 1-based line number where the error occurred.
        column: Optional column offset for a caret pointer.
    """

    lines: tuple[tuple[int, str], ...]
    error_line: int
    column: int | None = None

    def format(self) -> str:
        parts = [terminal.dim("   |")]
        for lineno, content in self.lines:
            parts.append(terminal.source_line(lineno, content, is_error=lineno == self.error_line))
        if self.column is not None:
            parts.append(f"{terminal.dim('   |')}  {' ' * self.column}{terminal.code('^')}")
        parts.append(terminal.dim("   |"))
        return "\n".join(parts)


def build_source_snippet(
    source: str,
    error_line: int,
    *,
    context_lines: int = 1,
    column: int | None = None,
) -> SourceSnippet:
    """Build a SourceSnippet showing ``context_lines`` around ``error_line``."""
    all_lines = source.splitlines()
    start = max(0, error_line - 1 - context_lines)
    end = min(len(all_lines), error_line + context_lines)
    lines = tuple((i + 1, all_lines[i]) for i in range(start, end))
    return SourceSnippet(lines=lines, error_line=error_line, column=column)


def _where(name: str | None, lineno: int | None) -> str:
    loc = name or "<template>"
    if lineno:
        loc += f":{lineno}"
    return loc


class TemplateError(Exception):
    """Base exception for all Stencil template errors.

        >>> try:
        ...     env.render("page.html", data)
        ... except TemplateError as e:
        ...     log.error(e.format_compact())

    Attributes:
        code: ErrorCode identifying the failure kind.
    """

    code: ErrorCode | None = None

    def format_compact(self) -> str:
        """Single-block diagnostic: code, message and any extra context."""
        message = str(self)
        if self.code and self.code.value not in message:
            return terminal.header(self.code.value, message)
        return message


class TemplateNotFoundError(TemplateError):
    """No text could be supplied for a template name.

    Raised by loaders and by the template store when the name is not cached
    and no loader is configured, or the loader fails (missing file, HTTP
    error, network failure).

    Attributes:
        name: The template name that could not be loaded (when known).
    """

    code: ErrorCode | None = ErrorCode.TEMPLATE_NOT_FOUND

    def __init__(self, message: str, *, name: str | None = None):
        self.name = name
        super().__init__(message)


class _ReferencedTemplateMissing(TemplateNotFoundError):
    """A template referenced by a directive is absent from the store."""

    label = ""

    def __init__(
        self,
        name: str,
        *,
        referenced_by: str | None = None,
        lineno: int | None = None,
        source: str | None = None,
    ):
        self.referenced_by = referenced_by
        self.lineno = lineno
        self.source_snippet = build_source_snippet(source, lineno) if source and lineno else None
        super().__init__(f"{self.label} template '{name}' not found in store", name=name)

    def format_compact(self) -> str:
        parts = [super().format_compact()]
        parts.append(f"  Referenced by: {terminal.location(_where(self.referenced_by, self.lineno))}")
        if self.source_snippet:
            parts.append(self.source_snippet.format())
        parts.append(
            f"  {terminal.hint('Hint:')} Load '{self.name}' with Environment.preload() "
            f"or enable auto_load"
        )
        return "\n".join(parts)


class ParentTemplateMissingError(_ReferencedTemplateMissing):
    """``{@extends NAME}`` names a template that is not in the store."""

    code: ErrorCode | None = ErrorCode.PARENT_MISSING
    label = "Parent"


class IncludeTemplateMissingError(_ReferencedTemplateMissing):
    """``{@include NAME}`` names a template that is not in the store."""

    code: ErrorCode | None = ErrorCode.INCLUDE_MISSING
    label = "Included"


class TemplateSyntaxError(TemplateError):
    """Malformed directive structure in template source.

    Raised by the parser for unclosed or mismatched directives, a stray
    ``{@else}``, a malformed ``{@for}`` header and similar problems.
    Conditions that fail to parse are not syntax errors; they are reported
    as ExpressionEvaluationError at render time.
    """

    code: ErrorCode | None = ErrorCode.SYNTAX_ERROR

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        name: str | None = None,
        source: str | None = None,
        col_offset: int | None = None,
    ):
        self.message = message
        self.lineno = lineno
        self.name = name
        self.source = source
        self.col_offset = col_offset
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        location = _where(self.name, self.lineno)
        if self.lineno and self.col_offset is not None:
            location += f":{self.col_offset}"
        return f"Syntax Error: {self.message}\n  --> {location}"

    def format_compact(self) -> str:
        parts = [terminal.header(self.code.value if self.code else None, self.message)]
        parts.append(f"  --> {terminal.location(_where(self.name, self.lineno))}")
        if self.source and self.lineno:
            parts.append(
                build_source_snippet(self.source, self.lineno, column=self.col_offset).format()
            )
        return "\n".join(parts)


class TemplateRuntimeError(TemplateError):
    """Structural failure discovered while resolving.

    Covers include recursion beyond the configured depth and inheritance
    cycles (``a`` extends ``b`` extends ``a``).

    Attributes:
        message: Error description
        template_name: Template being resolved
        suggestion: Actionable fix suggestion
        template_stack: (template_name, line) pairs of the include chain
    """

    code: ErrorCode | None = ErrorCode.RUNTIME_ERROR

    def __init__(
        self,
        message: str,
        *,
        template_name: str | None = None,
        suggestion: str | None = None,
        template_stack: list[tuple[str, int]] | None = None,
    ):
        self.message = message
        self.template_name = template_name
        self.suggestion = suggestion
        self.template_stack = template_stack or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [f"Runtime Error: {self.message}"]
        if self.template_name:
            parts.append(f"  Location: {terminal.location(self.template_name)}")
        if self.template_stack:
            parts.append(terminal.dim("  Template stack:"))
            parts.extend(
                f"    • {terminal.location(_where(name, line))}"
                for name, line in self.template_stack
            )
        if self.suggestion:
            parts.append(f"  {terminal.hint('Suggestion:')} {self.suggestion}")
        return "\n".join(parts)


class ExpressionEvaluationError(TemplateError):
    """An ``{@if}`` condition could not be parsed or evaluated.

    Never propagates out of ``render()``. The resolver builds one of these,
    passes it to the error channel, and continues with the condition false.

    Attributes:
        expression: Condition text as written in the template
        reason: What went wrong (``"name 'x' is not defined"``, ...)
        template_name: Template holding the condition
        lineno: Line of the ``{@if}`` tag
    """

    code: ErrorCode | None = ErrorCode.EXPRESSION_ERROR

    def __init__(
        self,
        expression: str,
        reason: str,
        *,
        template_name: str | None = None,
        lineno: int | None = None,
    ):
        self.expression = expression
        self.reason = reason
        self.template_name = template_name
        self.lineno = lineno
        super().__init__(f"Cannot evaluate condition {expression!r}: {reason}")

    def with_location(self, template_name: str | None, lineno: int | None) -> ExpressionEvaluationError:
        """Copy of this error carrying the template location."""
        return ExpressionEvaluationError(
            self.expression, self.reason, template_name=template_name, lineno=lineno
        )

    def format_compact(self) -> str:
        parts = [super().format_compact()]
        parts.append(f"  Location: {terminal.location(_where(self.template_name, self.lineno))}")
        parts.append(f"  Condition: {terminal.expression(self.expression)}")
        return "\n".join(parts)
