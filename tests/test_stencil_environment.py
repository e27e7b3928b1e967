"""Tests for the Environment: caching, rendering entry points, async paths."""

from __future__ import annotations

import asyncio
import gc
import logging

import pytest

from stencil import DictLoader, Environment, FunctionLoader, Template
from stencil.environment.exceptions import (
    IncludeTemplateMissingError,
    TemplateNotFoundError,
    TemplateSyntaxError,
)

from .conftest import assert_template_equal


class CountingAsyncLoader:
    """Async loader that yields to the event loop and counts fetches."""

    def __init__(self, mapping: dict[str, str]):
        self.mapping = mapping
        self.calls: dict[str, int] = {}

    def get_source(self, name: str) -> str:
        raise AssertionError("async environment must not load synchronously")

    async def get_source_async(self, name: str) -> str:
        self.calls[name] = self.calls.get(name, 0) + 1
        await asyncio.sleep(0.01)
        if name not in self.mapping:
            raise TemplateNotFoundError(f"Template '{name}' not found", name=name)
        return self.mapping[name]


class TestConfiguration:
    """Constructor arguments."""

    def test_defaults(self, env: Environment) -> None:
        assert env.loader is None
        assert env.auto_load is True
        assert env.max_include_depth == 50
        assert "auto_load=True" in repr(env)

    def test_invalid_include_depth(self) -> None:
        """The include limit must allow at least one level."""
        with pytest.raises(ValueError, match="max_include_depth"):
            Environment(max_include_depth=0)

    def test_data_must_be_mapping(self, env: Environment) -> None:
        """Non-mapping data is rejected before rendering."""
        with pytest.raises(TypeError, match="must be a mapping"):
            env.render_string("x", ["not", "a", "mapping"])


class TestTemplateCache:
    """Parsed templates are cached alongside their text."""

    def test_get_template_identity(self, env_with_loader: Environment) -> None:
        """Repeated lookups return the same Template."""
        first = env_with_loader.get_template("partial.html")
        assert isinstance(first, Template)
        assert env_with_loader.get_template("partial.html") is first
        assert first.name == "partial.html"
        assert repr(first) == "<Template partial.html>"

    def test_from_string_not_cached(self, env: Environment) -> None:
        """Inline templates never enter the store."""
        env.from_string("x")
        assert len(env.store) == 0
        assert repr(env.from_string("x")) == "<Template (inline)>"

    def test_clear_cache_reloads(self) -> None:
        """After clear_cache the loader is consulted again."""
        calls: list[str] = []

        def load(name: str) -> str:
            calls.append(name)
            return f"v{len(calls)}"

        env = Environment(loader=FunctionLoader(load))
        assert env.render("a") == "v1"
        assert env.render("a") == "v1"
        env.clear_cache()
        assert env.render("a") == "v2"
        assert calls == ["a", "a"]

    def test_replaced_text_reparses(self) -> None:
        """Evicting and re-seeding a name yields a fresh parse."""
        env = Environment()
        env.store.put("a", "old")
        assert env.render("a") == "old"
        env.store.evict("a")
        env.store.put("a", "new")
        assert env.render("a") == "new"

    def test_get_cached_template_never_loads(self, env_with_loader: Environment) -> None:
        """Cached lookups do not call the loader."""
        assert env_with_loader.get_cached_template("partial.html") is None
        env_with_loader.preload("partial.html")
        assert env_with_loader.get_cached_template("partial.html") is not None

    def test_preload_missing(self, env_with_loader: Environment) -> None:
        with pytest.raises(TemplateNotFoundError, match="Did you mean"):
            env_with_loader.preload("partial.htm")


class TestTemplateIntrospection:
    """Static information about parsed templates."""

    def test_dependencies(self, env: Environment) -> None:
        """The parent comes first, then includes in source order, once each."""
        tpl = env.from_string(
            "{@extends base.html}{@block a}{@include x.html}"
            "{@if c}{@include y.html}{@else}{@include x.html}{/@if}"
            "{@for i in xs}{@include z.html}{/@for}{/@block}"
        )
        assert tpl.dependencies() == ["base.html", "x.html", "y.html", "z.html"]

    def test_list_blocks(self, env: Environment) -> None:
        """Nested and repeated blocks are listed once in source order."""
        tpl = env.from_string("{@block a}{@block b}{/@block}{/@block}{@block a}{/@block}")
        assert tpl.list_blocks() == ["a", "b"]

    def test_source_kept(self, env: Environment) -> None:
        tpl = env.from_string("Hello {{name}}", name="hello.html")
        assert tpl.source == "Hello {{name}}"
        assert tpl.name == "hello.html"

    def test_environment_collected(self) -> None:
        """A template outliving its environment cannot render."""
        tpl = Environment().from_string("x")
        gc.collect()
        with pytest.raises(RuntimeError, match="garbage collected"):
            tpl.render()


class TestRenderEntryPoints:
    """render, render_string and syntax errors."""

    def test_render_whitespace_insensitive(self, env_with_loader: Environment) -> None:
        out = env_with_loader.render("child.html", {"name": "Ada"})
        assert_template_equal(
            out,
            "<html><head><title>Default</title></head><body>Hello Ada</body></html>",
        )

    def test_syntax_error_propagates(self, env: Environment) -> None:
        """Malformed directives fail at parse time with a location."""
        with pytest.raises(TemplateSyntaxError) as exc_info:
            env.render_string("ok\n{@if a}never closed")
        assert exc_info.value.lineno is not None

    def test_syntax_error_from_loader(self) -> None:
        env = Environment(loader=DictLoader({"bad.html": "{@for x xs}{/@for}"}))
        with pytest.raises(TemplateSyntaxError) as exc_info:
            env.render("bad.html")
        assert exc_info.value.name == "bad.html"

    def test_unloadable_dependency_logged(self, caplog) -> None:
        """Auto-load skips names it cannot fetch, then resolution fails."""
        env = Environment(loader=DictLoader({"p.html": "{@include gone.html}"}))
        with caplog.at_level(logging.DEBUG, logger="stencil.environment.core"):
            with pytest.raises(IncludeTemplateMissingError):
                env.render("p.html")
        assert "gone.html" in caplog.text


class TestAsync:
    """Async loading and rendering."""

    @pytest.mark.asyncio
    async def test_render_async(self, env_with_loader: Environment) -> None:
        """Sync loaders work through the async entry point."""
        out = await env_with_loader.render_async("page.html", name="Ada")
        assert out == "<main><p>Ada</p></main>"

    @pytest.mark.asyncio
    async def test_template_render_async(self, env: Environment) -> None:
        tpl = env.from_string("{@for x in xs}{{x}}{/@for}")
        assert await tpl.render_async(xs=[1, 2, 3]) == "123"

    @pytest.mark.asyncio
    async def test_concurrent_renders_share_loads(self) -> None:
        """Concurrent renders fetch each template once."""
        loader = CountingAsyncLoader({
            "base.html": "<{@block a}{/@block}>",
            "nav.html": "nav",
            "page.html": "{@extends base.html}{@block a}{@include nav.html}{{n}}{/@block}",
        })
        env = Environment(loader=loader)
        results = await asyncio.gather(*(env.render_async("page.html", n=i) for i in range(5)))
        assert results == [f"<nav{i}>" for i in range(5)]
        assert loader.calls == {"page.html": 1, "base.html": 1, "nav.html": 1}

    @pytest.mark.asyncio
    async def test_get_template_async(self) -> None:
        loader = CountingAsyncLoader({"a.html": "A"})
        env = Environment(loader=loader)
        first, second = await asyncio.gather(
            env.get_template_async("a.html"), env.get_template_async("a.html")
        )
        assert first is second
        assert loader.calls == {"a.html": 1}

    @pytest.mark.asyncio
    async def test_preload_async(self) -> None:
        """Preloaded names render without auto-load."""
        loader = CountingAsyncLoader({"base.html": "B", "page.html": "{@extends base.html}"})
        env = Environment(loader=loader, auto_load=False)
        await env.preload_async("base.html", "page.html")
        assert env.store.cached_names() == ["base.html", "page.html"]
        assert env.render("page.html") == "B"

    @pytest.mark.asyncio
    async def test_missing_async_dependency(self) -> None:
        """An include the loader lacks still surfaces as a typed error."""
        env = Environment(loader=CountingAsyncLoader({"p.html": "{@include ghost.html}"}))
        with pytest.raises(IncludeTemplateMissingError):
            await env.render_async("p.html")

    @pytest.mark.asyncio
    async def test_missing_root_async(self) -> None:
        env = Environment(loader=CountingAsyncLoader({}))
        with pytest.raises(TemplateNotFoundError):
            await env.render_async("nothing.html")
