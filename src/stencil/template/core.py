"""Stencil Template — parsed template object ready for rendering.

Architecture:
    ```
    Template
    ├── _env_ref: WeakRef[Environment]  # Prevents circular refs
    ├── _tree: TemplateNode             # Immutable directive tree
    └── _name, _source                  # For error messages
    ```

Memory Safety:
Uses ``weakref.ref(env)`` to break potential cycles:
``Template → (weak) → Environment → cache → Template``

Thread-Safety:
- Templates are immutable after construction
- ``render()`` creates only local state (output buffer, loop scopes)
- Multiple threads can call ``render()`` concurrently

"""

from __future__ import annotations

import weakref
from collections.abc import Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from stencil.nodes import Block, For, If, Include, Node, TemplateNode

if TYPE_CHECKING:
    from stencil.environment.core import Environment


def _walk_nodes(nodes: Sequence[Node]) -> Iterator[Node]:
    for node in nodes:
        yield node
        if isinstance(node, If):
            yield from _walk_nodes(node.body)
            yield from _walk_nodes(node.else_)
        elif isinstance(node, (For, Block)):
            yield from _walk_nodes(node.body)


class Template:
    """Parsed template ready for rendering.

    Attributes:
        name: Template identifier (None for ``from_string`` templates)
        source: Raw template text
        tree: Parsed directive tree

    Example:
            >>> env = Environment()
            >>> t = env.from_string("Hello, {{name}}!")
            >>> t.render(name="World")
            'Hello, World!'

            >>> t.render({"name": "World"})  # Mapping context also works
            'Hello, World!'
    """

    __slots__ = ("_env_ref", "_name", "_source", "_tree")

    def __init__(
        self,
        env: Environment,
        tree: TemplateNode,
        name: str | None,
        source: str,
    ):
        self._env_ref: weakref.ref[Environment] = weakref.ref(env)
        self._tree = tree
        self._name = name
        self._source = source

    @property
    def _env(self) -> Environment:
        """Get the Environment (dereferences weak reference)."""
        env = self._env_ref()
        if env is None:
            raise RuntimeError(
                f"Environment has been garbage collected (template: {self._name or 'unknown'})"
            )
        return env

    @property
    def name(self) -> str | None:
        """Template name."""
        return self._name

    @property
    def source(self) -> str:
        return self._source

    @property
    def tree(self) -> TemplateNode:
        return self._tree

    @staticmethod
    def _build_context(data: Mapping[str, Any] | None, kwargs: dict[str, Any]) -> Mapping[str, Any]:
        if data is None:
            return kwargs
        if not isinstance(data, Mapping):
            raise TypeError(f"render() data must be a mapping, got {type(data).__name__}")
        if kwargs:
            return {**data, **kwargs}
        return data

    def render(self, data: Mapping[str, Any] | None = None, **kwargs: Any) -> str:
        """Render template with given context.

        The caller's mapping is read, never mutated. Keyword arguments are
        layered over ``data`` in a new mapping.

        Raises:
            ParentTemplateMissingError: ``{@extends}`` target unavailable
            IncludeTemplateMissingError: ``{@include}`` target unavailable
            TemplateRuntimeError: Inheritance cycle or include depth exceeded

        Example:
            >>> t.render(name="World")
            'Hello, World!'
        """
        ctx = self._build_context(data, kwargs)
        if self._env.auto_load:
            self._env._load_dependencies(self)
        return self._resolve(ctx)

    async def render_async(self, data: Mapping[str, Any] | None = None, **kwargs: Any) -> str:
        """Async render: dependencies load concurrently, resolution runs in a thread."""
        import asyncio

        ctx = self._build_context(data, kwargs)
        env = self._env
        if env.auto_load:
            await env._load_dependencies_async(self)
        return await asyncio.to_thread(self._resolve, ctx)

    def _resolve(self, ctx: Mapping[str, Any]) -> str:
        from stencil.render_context import render_context
        from stencil.template.resolver import Resolver

        env = self._env
        resolver = Resolver(env.get_cached_template, env.on_expression_error)
        with render_context(template_name=self._name, max_include_depth=env.max_include_depth):
            return resolver.render(self, ctx)

    def dependencies(self) -> list[str]:
        """Names this template references through ``{@extends}`` and ``{@include}``.

        Only direct references; the parent's own references are not
        followed. The parent (if any) comes first.
        """
        names: list[str] = []
        if self._tree.extends is not None:
            names.append(self._tree.extends.template)
        for node in _walk_nodes(self._tree.body):
            if isinstance(node, Include) and node.template not in names:
                names.append(node.template)
        return names

    def list_blocks(self) -> list[str]:
        """Names of all blocks declared in this template, in source order."""
        names: list[str] = []
        for node in _walk_nodes(self._tree.body):
            if isinstance(node, Block) and node.name not in names:
                names.append(node.name)
        return names

    def __repr__(self) -> str:
        return f"<Template {self._name or '(inline)'}>"
