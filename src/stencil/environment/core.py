"""Stencil Environment — the engine instance callers render through.

An Environment owns a TemplateStore (name → raw text, load-once) and a
cache of parsed templates derived from it. Both live exactly as long as
the Environment and are only cleared through ``clear_cache()``.

Dependency Loading:
``{@extends}`` and ``{@include}`` targets are resolved from the store
only. With ``auto_load=True`` (default) the environment walks the static
dependency graph of a template before resolving it and loads every name
the loader can supply; names it cannot supply stay absent so resolution
fails with ParentTemplateMissingError/IncludeTemplateMissingError. With
``auto_load=False`` dependencies must be loaded beforehand through
``preload()``/``preload_async()``.

Thread-Safety:
Rendering is safe from multiple threads. Cache inserts are
insert-if-absent; a duplicated parse during a race is discarded.

"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from stencil.environment.exceptions import TemplateNotFoundError
from stencil.environment.loaders import Loader
from stencil.environment.store import TemplateStore
from stencil.template.core import Template
from stencil.template.evaluator import ErrorHandler

logger = logging.getLogger(__name__)


class Environment:
    """Central configuration and entry point for rendering templates.

    Args:
        loader: Supplies template text on a store cache miss
        auto_load: Load ``{@extends}``/``{@include}`` targets through the
            loader before resolving
        max_include_depth: Nesting limit for ``{@include}``; exceeding it
            raises TemplateRuntimeError
        on_expression_error: Receives each recovered
            ExpressionEvaluationError. When None, failures are logged as
            warnings on ``stencil.template.evaluator``.

    Example:
            >>> env = Environment(loader=DictLoader({
            ...     "base.html": "<h1>{@block title}Site{/@block}</h1>",
            ...     "page.html": "{@extends base.html}{@block title}{{title}}{/@block}",
            ... }))
            >>> env.render("page.html", {"title": "Home"})
            '<h1>Home</h1>'

    Collecting condition failures:
            >>> errors = []
            >>> env = Environment(on_expression_error=errors.append)
            >>> env.render_string("{@if missing > 1}x{/@if}")
            ''
            >>> errors[0].reason
            "name 'missing' is not defined"
    """

    def __init__(
        self,
        loader: Loader | None = None,
        *,
        auto_load: bool = True,
        max_include_depth: int = 50,
        on_expression_error: ErrorHandler | None = None,
    ):
        if max_include_depth < 1:
            raise ValueError(f"max_include_depth must be >= 1, got {max_include_depth}")
        self.auto_load = auto_load
        self.max_include_depth = max_include_depth
        self.on_expression_error = on_expression_error
        self._store = TemplateStore(loader)
        self._templates: dict[str, Template] = {}

    @property
    def loader(self) -> Loader | None:
        return self._store.loader

    @property
    def store(self) -> TemplateStore:
        """The template text cache (seed it with ``store.put(name, text)``)."""
        return self._store

    def _compile(self, source: str, name: str | None) -> Template:
        from stencil.parser import parse

        return Template(self, parse(source, name), name, source)

    def _template_for(self, name: str, source: str) -> Template:
        cached = self._templates.get(name)
        if cached is not None and cached.source is source:
            return cached
        template = self._compile(source, name)
        if cached is not None:
            # Source was evicted and stored again; replace the stale parse.
            self._templates[name] = template
            return template
        return self._templates.setdefault(name, template)

    def get_cached_template(self, name: str) -> Template | None:
        """Parsed template for ``name`` if its text is in the store, else None.

        Never calls the loader.
        """
        source = self._store.get_cached(name)
        if source is None:
            return None
        return self._template_for(name, source)

    def get_template(self, name: str) -> Template:
        """Load (once) and parse a template by name.

        Raises:
            TemplateNotFoundError: The loader cannot supply ``name``
            TemplateSyntaxError: The text has malformed directives
        """
        return self._template_for(name, self._store.load(name))

    async def get_template_async(self, name: str) -> Template:
        """Async ``get_template()``; concurrent loads of one name are coalesced."""
        return self._template_for(name, await self._store.load_async(name))

    def from_string(self, source: str, name: str | None = None) -> Template:
        """Parse template text directly. The result is not cached.

        Example:
            >>> env.from_string("Hi {{user.name}}").render(user={"name": "Ada"})
            'Hi Ada'
        """
        return self._compile(source, name)

    def render(self, name: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> str:
        """Render the named template against ``data``.

        Either returns the fully resolved text or raises; there is no
        partial output.
        """
        return self.get_template(name).render(data, **kwargs)

    async def render_async(
        self, name: str, data: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> str:
        template = await self.get_template_async(name)
        return await template.render_async(data, **kwargs)

    def render_string(
        self, source: str, data: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> str:
        return self.from_string(source).render(data, **kwargs)

    def preload(self, *names: str) -> None:
        """Load templates into the store ahead of rendering.

        Raises:
            TemplateNotFoundError: Any name the loader cannot supply
        """
        for name in names:
            self._store.load(name)

    async def preload_async(self, *names: str) -> None:
        await asyncio.gather(*(self._store.load_async(name) for name in names))

    def clear_cache(self) -> None:
        """Drop all cached template text and parsed templates."""
        self._store.clear()
        self._templates.clear()

    def _dependency_names(self, templates: Iterable[Template], seen: set[str]) -> list[str]:
        names = []
        for template in templates:
            for name in template.dependencies():
                if name not in seen:
                    seen.add(name)
                    names.append(name)
        return names

    def _load_dependencies(self, template: Template) -> None:
        """Load the static extends/include graph of ``template`` into the store."""
        seen = {template.name} if template.name else set()
        pending = self._dependency_names([template], seen)
        while pending:
            loaded = []
            for name in pending:
                dep = self.get_cached_template(name)
                if dep is None:
                    try:
                        self._store.load(name)
                    except TemplateNotFoundError as e:
                        logger.debug("Dependency %r of %r not loadable: %s", name, template.name, e)
                        continue
                    dep = self.get_cached_template(name)
                if dep is not None:
                    loaded.append(dep)
            pending = self._dependency_names(loaded, seen)

    async def _load_dependencies_async(self, template: Template) -> None:
        """Async ``_load_dependencies``; each level of the graph loads concurrently."""
        seen = {template.name} if template.name else set()
        pending = self._dependency_names([template], seen)
        while pending:
            missing = [name for name in pending if name not in self._store]
            results = await asyncio.gather(
                *(self._store.load_async(name) for name in missing), return_exceptions=True
            )
            for name, result in zip(missing, results, strict=True):
                if isinstance(result, TemplateNotFoundError):
                    logger.debug(
                        "Dependency %r of %r not loadable: %s", name, template.name, result
                    )
                elif isinstance(result, BaseException):
                    raise result
            loaded = [dep for name in pending if (dep := self.get_cached_template(name))]
            pending = self._dependency_names(loaded, seen)

    def __repr__(self) -> str:
        return (
            f"<Environment loader={self.loader!r} auto_load={self.auto_load} "
            f"cached={len(self._store)}>"
        )

