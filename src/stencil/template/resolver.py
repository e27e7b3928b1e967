"""Directive resolution: directive tree + data context → rendered text.

Resolution keeps the fixed precedence of the directive kinds:

1. ``{@extends}``  inheritance merge (tree rewrite, no data needed)
2. ``{@include}``  every include replaced by its fully resolved text
3. ``{@if}``       \\
4. ``{@for}``       } one walk over the merged, include-free tree
5. ``{{ path }}``  /

Passes 1 and 2 rewrite the tree before anything is evaluated, so a
template's conditionals, loops and placeholders only ever see literal text
from its parents and includes. The walk never re-scans the text it
produces: a value rendered by ``{{ x }}`` that happens to contain
``{{ y }}`` stays literal.

Thread-Safety:
A Resolver holds no per-render state. Include depth and the include chain
live in the ContextVar-backed RenderContext.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from stencil.environment.exceptions import (
    ExpressionEvaluationError,
    IncludeTemplateMissingError,
    ParentTemplateMissingError,
    TemplateRuntimeError,
)
from stencil.nodes import Block, Data, For, If, Include, Node, Output, Parent, TemplateNode
from stencil.render_context import get_render_context, included_context
from stencil.template.evaluator import ErrorHandler, evaluate, report_expression_error
from stencil.template.helpers import is_truthy, resolve_path, to_output
from stencil.template.loop_context import LoopContext
from stencil.template.scope import Scope

if TYPE_CHECKING:
    from stencil.template.core import Template

TemplateLookup = Callable[[str], "Template | None"]


def collect_blocks(nodes: Sequence[Node], into: dict[str, Block] | None = None) -> dict[str, Block]:
    """Every block declared anywhere in ``nodes``; the last declaration wins."""
    blocks = {} if into is None else into
    for node in nodes:
        if isinstance(node, Block):
            blocks[node.name] = node
            collect_blocks(node.body, blocks)
        elif isinstance(node, If):
            collect_blocks(node.body, blocks)
            collect_blocks(node.else_, blocks)
        elif isinstance(node, For):
            collect_blocks(node.body, blocks)
    return blocks


def _substitute_parent(
    nodes: Sequence[Node], default: Sequence[Node], defaults: Mapping[str, Block]
) -> tuple[Node, ...]:
    """Replace ``{@parent}`` with the parent block's own default body."""
    result: list[Node] = []
    for node in nodes:
        if isinstance(node, Parent):
            result.extend(default)
        elif isinstance(node, Block):
            inner = defaults.get(node.name)
            result.append(
                replace(node, body=_substitute_parent(node.body, inner.body if inner else (), defaults))
            )
        elif isinstance(node, If):
            result.append(
                replace(
                    node,
                    body=_substitute_parent(node.body, default, defaults),
                    else_=_substitute_parent(node.else_, default, defaults),
                )
            )
        elif isinstance(node, For):
            result.append(replace(node, body=_substitute_parent(node.body, default, defaults)))
        else:
            result.append(node)
    return tuple(result)


def _has_content(nodes: Sequence[Node]) -> bool:
    return any(not (isinstance(node, Data) and not node.value) for node in nodes)


def merge_blocks(
    parent: Sequence[Node],
    overrides: Mapping[str, Block],
    defaults: Mapping[str, Block],
) -> tuple[Node, ...]:
    """Single-level merge of a child's blocks into a parent body.

    A parent block with a same-named child block takes the child's body
    (``{@parent}`` inside it becoming the parent's default body, verbatim).
    Parent blocks without an override, or whose override is empty, keep
    their default, with nested blocks still eligible for override.
    """
    result: list[Node] = []
    for node in parent:
        if isinstance(node, Block):
            override = overrides.get(node.name)
            if override is not None and _has_content(override.body):
                body = _substitute_parent(override.body, node.body, defaults)
            else:
                body = merge_blocks(node.body, overrides, defaults)
            result.append(replace(node, body=body))
        elif isinstance(node, If):
            result.append(
                replace(
                    node,
                    body=merge_blocks(node.body, overrides, defaults),
                    else_=merge_blocks(node.else_, overrides, defaults),
                )
            )
        elif isinstance(node, For):
            result.append(replace(node, body=merge_blocks(node.body, overrides, defaults)))
        else:
            result.append(node)
    return tuple(result)


class Resolver:
    """Resolve parsed templates against data contexts.

    Args:
        lookup: Returns the cached Template for a name, or None when the
            name is not in the store. Parents and includes are never
            loaded from here; they must already be cached.
        on_error: Receives recovered condition failures. Defaults to
            logging a warning.

    Example:
        >>> resolver = Resolver(env.get_cached_template)
        >>> resolver.render(template, {"a": {"b": "x"}})
        'x'
    """

    __slots__ = ("_lookup", "_on_error")

    def __init__(self, lookup: TemplateLookup, on_error: ErrorHandler | None = None):
        self._lookup = lookup
        self._on_error = on_error

    def render(self, template: Template, context: Mapping[str, Any]) -> str:
        """Resolve ``template`` against ``context`` and return the text.

        Raises:
            ParentTemplateMissingError: An ``{@extends}`` target is not cached
            IncludeTemplateMissingError: An ``{@include}`` target is not cached
            TemplateRuntimeError: Inheritance cycle or include depth exceeded
        """
        body = self.merge_inheritance(template)
        body = self.expand_includes(body, context, template)
        buf: list[str] = []
        self._walk(body, context, buf, template.name)
        return "".join(buf)

    def merge_inheritance(self, template: Template) -> tuple[Node, ...]:
        """Apply ``{@extends}`` chains, returning the merged body.

        Each level is a single-level merge of the body so far into its
        parent, so a grandparent chain resolves by repeated merges.
        """
        tree: TemplateNode = template.tree
        body = tuple(tree.body)
        extends = tree.extends
        child = template
        chain = [template.name or "<template>"]

        while extends is not None:
            parent_name = extends.template
            if parent_name in chain:
                raise TemplateRuntimeError(
                    f"Inheritance cycle: {' → '.join([*chain, parent_name])}",
                    template_name=template.name,
                    suggestion=f"Remove the {{@extends}} in '{child.name}' or '{parent_name}'",
                )
            parent = self._lookup(parent_name)
            if parent is None:
                raise ParentTemplateMissingError(
                    parent_name,
                    referenced_by=child.name,
                    lineno=extends.lineno,
                    source=child.source,
                )
            parent_body = parent.tree.body
            body = merge_blocks(parent_body, collect_blocks(body), collect_blocks(parent_body))
            extends = parent.tree.extends
            child = parent
            chain.append(parent_name)

        return body

    def expand_includes(
        self, nodes: Sequence[Node], context: Mapping[str, Any], template: Template
    ) -> tuple[Node, ...]:
        """Replace every ``{@include}`` with literal text resolved against ``context``.

        Includes inside conditional branches and loop bodies are expanded
        too, whether or not the branch is later taken.
        """
        result: list[Node] = []
        for node in nodes:
            if isinstance(node, Include):
                text = self._render_include(node, context, template)
                result.append(Data(node.lineno, node.col_offset, text))
            elif isinstance(node, Block):
                result.append(replace(node, body=self.expand_includes(node.body, context, template)))
            elif isinstance(node, If):
                result.append(
                    replace(
                        node,
                        body=self.expand_includes(node.body, context, template),
                        else_=self.expand_includes(node.else_, context, template),
                    )
                )
            elif isinstance(node, For):
                result.append(replace(node, body=self.expand_includes(node.body, context, template)))
            else:
                result.append(node)
        return tuple(result)

    def _render_include(self, node: Include, context: Mapping[str, Any], template: Template) -> str:
        included = self._lookup(node.template)
        if included is None:
            raise IncludeTemplateMissingError(
                node.template,
                referenced_by=template.name,
                lineno=node.lineno,
                source=template.source,
            )
        current = get_render_context()
        if current is not None:
            current.line = node.lineno
        with included_context(node.template):
            return self.render(included, context)

    def _walk(
        self,
        nodes: Sequence[Node],
        scope: Mapping[str, Any],
        buf: list[str],
        name: str | None,
    ) -> None:
        append = buf.append
        for node in nodes:
            node_type = type(node)
            if node_type is Data:
                append(node.value)
            elif node_type is Output:
                append(to_output(resolve_path(scope, node.path)))
            elif node_type is If:
                branch = node.body if self._test(node, scope, name) else node.else_
                self._walk(branch, scope, buf, name)
            elif node_type is For:
                loop = LoopContext.from_value(resolve_path(scope, node.iter))
                if loop is None:
                    continue
                for item in loop:
                    self._walk(node.body, Scope(loop.bindings(node.target, item), scope), buf, name)
            elif node_type is Block:
                self._walk(node.body, scope, buf, name)
            # A {@parent} outside an overriding block has nothing to insert.

    def _test(self, node: If, scope: Mapping[str, Any], name: str | None) -> bool:
        if node.test is None:
            error = ExpressionEvaluationError(
                node.condition,
                node.error or "invalid condition",
                template_name=name,
                lineno=node.lineno,
            )
            report_expression_error(error, self._on_error)
            return False
        try:
            return is_truthy(evaluate(node.test, scope, source=node.condition))
        except ExpressionEvaluationError as e:
            report_expression_error(e.with_location(name, node.lineno), self._on_error)
            return False
