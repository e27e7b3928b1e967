"""Stencil RenderContext — per-render state isolated from user data.

Include depth and the include chain used for error traces live in a
ContextVar rather than in the caller's data mapping, so the data context
is never mutated and concurrent renders (threads or asyncio tasks) never
observe each other's state.

"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field


@dataclass
class RenderContext:
    """Per-render state isolated from user context.

    Thread Safety:
        ContextVars are per thread and per asyncio task. Each one
        has its own RenderContext instance.

    Attributes:
        template_name: Template currently being resolved
        line: Line of the directive being expanded (for error traces)
        include_depth: Current include depth (DoS protection)
        max_include_depth: Maximum allowed include depth
        template_stack: Stack of (template_name, line) for error traces
    """

    template_name: str | None = None
    line: int = 0

    include_depth: int = 0
    max_include_depth: int = 50

    template_stack: list[tuple[str, int]] = field(default_factory=list)

    def check_include_depth(self, template_name: str) -> None:
        """Check if include depth limit exceeded.

        Raises:
            TemplateRuntimeError: If depth >= max_include_depth
        """
        if self.include_depth >= self.max_include_depth:
            from stencil.environment.exceptions import TemplateRuntimeError

            raise TemplateRuntimeError(
                f"Maximum include depth exceeded ({self.max_include_depth}) "
                f"when including '{template_name}'",
                template_name=self.template_name,
                suggestion="Check for circular includes: A → B → A",
                template_stack=self.template_stack,
            )

    def child_context(self, template_name: str) -> RenderContext:
        """Create child context for an include with incremented depth.

        Appends the current location to template_stack for error traces.
        """
        new_stack = self.template_stack.copy()
        if self.template_name:
            new_stack.append((self.template_name, self.line))

        return RenderContext(
            template_name=template_name,
            line=0,
            include_depth=self.include_depth + 1,
            max_include_depth=self.max_include_depth,
            template_stack=new_stack,
        )


_render_context: ContextVar[RenderContext | None] = ContextVar(
    "stencil_render_context",
    default=None,
)


def get_render_context() -> RenderContext | None:
    """Get current render context (None if not in render)."""
    return _render_context.get()


@contextmanager
def render_context(
    template_name: str | None = None,
    *,
    max_include_depth: int = 50,
) -> Iterator[RenderContext]:
    """Context manager for render-scoped state.

    Creates a new RenderContext and sets it as the current context for
    the duration of the with block, restoring the previous one on exit.

    Example:
        with render_context(template_name="page.html") as ctx:
            text = resolver.render(tree, data)
    """
    ctx = RenderContext(template_name=template_name, max_include_depth=max_include_depth)
    token: Token[RenderContext | None] = _render_context.set(ctx)
    try:
        yield ctx
    finally:
        _render_context.reset(token)


@contextmanager
def included_context(template_name: str) -> Iterator[RenderContext]:
    """Enter an include: child of the current context, depth-checked.

    Raises:
        TemplateRuntimeError: If the include depth limit would be exceeded
    """
    parent = _render_context.get() or RenderContext()
    parent.check_include_depth(template_name)
    ctx = parent.child_context(template_name)
    token: Token[RenderContext | None] = _render_context.set(ctx)
    try:
        yield ctx
    finally:
        _render_context.reset(token)
