"""Stencil environment: configuration, template store, loaders and errors."""

from stencil.environment.exceptions import (
    ErrorCode,
    ExpressionEvaluationError,
    IncludeTemplateMissingError,
    ParentTemplateMissingError,
    SourceSnippet,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    build_source_snippet,
)
from stencil.environment.loaders import (
    AsyncLoader,
    ChoiceLoader,
    DictLoader,
    FileSystemLoader,
    FunctionLoader,
    HttpLoader,
    Loader,
)
from stencil.environment.store import TemplateStore
from stencil.environment.core import Environment

__all__ = [
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
    "ParentTemplateMissingError",
    "SourceSnippet",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateStore",
    "TemplateSyntaxError",
    "build_source_snippet",
]
