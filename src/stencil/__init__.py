"""Stencil — a small directive template engine.

Turns text containing directives into a rendered string given a data
context: variable interpolation, conditionals, loops, inheritance and
includes.

Quickstart:
    >>> from stencil import Environment
    >>> env = Environment()
    >>> env.render_string("Hello, {{name}}!", {"name": "World"})
    'Hello, World!'

Loader-based templates:
    >>> from stencil import DictLoader, Environment
    >>> env = Environment(loader=DictLoader({
    ...     "base.html": "<title>{@block title}Site{/@block}</title>",
    ...     "page.html": "{@extends base.html}{@block title}{@parent}: {{page}}{/@block}",
    ... }))
    >>> env.render("page.html", page="About")
    '<title>Site: About</title>'

Directive Syntax:
- Variable: ``{{dotted.path}}`` (missing paths render as empty)
- Conditional: ``{@if EXPR}...{@else}...{/@if}``
- Loop: ``{@for VAR in PATH}...{/@for}`` with ``index``, ``first``, ``last``
- Inheritance: ``{@extends NAME}``, ``{@block NAME}...{/@block}``, ``{@parent}``
- Include: ``{@include NAME}``

Architecture:
Template Source → Lexer → Parser → Directive Tree → Resolver → str

Resolution order is fixed: extends → include → if → for → var. Conditions
are parsed into a typed expression tree and evaluated against the data
context only; there is no ``eval`` and no access to Python globals.

Thread-Safety:
Parsed templates are immutable. Per-render state lives in a ContextVar
(``stencil.render_context``), so concurrent renders never share it.

"""

from stencil._types import Token, TokenType
from stencil.environment import (
    AsyncLoader,
    ChoiceLoader,
    DictLoader,
    Environment,
    ErrorCode,
    ExpressionEvaluationError,
    FileSystemLoader,
    FunctionLoader,
    HttpLoader,
    IncludeTemplateMissingError,
    Loader,
    ParentTemplateMissingError,
    SourceSnippet,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateStore,
    TemplateSyntaxError,
    build_source_snippet,
)
from stencil.render_context import RenderContext, get_render_context, render_context
from stencil.template import UNDEFINED, LoopContext, Scope, Template, resolve_path, to_output
from stencil.template.evaluator import evaluate_condition

__version__ = "0.1.0"

__all__ = [
    "UNDEFINED",
    "AsyncLoader",
    "ChoiceLoader",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "ExpressionEvaluationError",
    "FileSystemLoader",
    "FunctionLoader",
    "HttpLoader",
    "IncludeTemplateMissingError",
    "Loader",
    "LoopContext",
    "ParentTemplateMissingError",
    "RenderContext",
    "Scope",
    "SourceSnippet",
    "Template",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateStore",
    "TemplateSyntaxError",
    "Token",
    "TokenType",
    "__version__",
    "build_source_snippet",
    "evaluate_condition",
    "get_render_context",
    "render_context",
    "resolve_path",
    "to_output",
]
