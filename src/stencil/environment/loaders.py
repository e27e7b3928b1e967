"""Template loaders for the Stencil environment.

Loaders provide raw template text to the TemplateStore. They implement
``get_source(name)`` returning the source string, and raise
TemplateNotFoundError when they cannot supply it.

Built-in Loaders:
- `DictLoader`: Load from an in-memory dictionary (testing/embedded)
- `FileSystemLoader`: Load from filesystem directories
- `FunctionLoader`: Wrap a callable as a loader (quick one-offs)
- `ChoiceLoader`: Try multiple loaders in order (theme fallback)
- `HttpLoader`: Fetch ``base_url + name`` over HTTP (async-first)

Custom Loaders:
Implement the Loader protocol; add ``get_source_async`` for loaders whose
I/O is natively asynchronous:
    ```python
    class DatabaseLoader:
        def get_source(self, name: str) -> str:
            row = db.query("SELECT source FROM templates WHERE name = ?", name)
            if not row:
                raise TemplateNotFoundError(f"Template '{name}' not found", name=name)
            return row.source
    ```

Thread-Safety:
Loaders should be thread-safe for concurrent ``get_source()`` calls; the
store runs synchronous loaders in worker threads for async loads.

"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from difflib import get_close_matches
from pathlib import Path
from typing import Protocol, runtime_checkable

import httpx

from stencil.environment.exceptions import TemplateNotFoundError


@runtime_checkable
class Loader(Protocol):
    """Anything that can supply template text by name."""

    def get_source(self, name: str) -> str: ...


@runtime_checkable
class AsyncLoader(Loader, Protocol):
    """Loader with a native coroutine for fetching text."""

    async def get_source_async(self, name: str) -> str: ...


class DictLoader:
    """Load templates from an in-memory dictionary.

    Example:
            >>> loader = DictLoader({
            ...     "base.html": "<title>{@block title}Site{/@block}</title>",
            ...     "page.html": "{@extends base.html}{@block title}Home{/@block}",
            ... })
            >>> Environment(loader=loader).render("page.html")
            '<title>Home</title>'

    Raises:
        TemplateNotFoundError: If template name not in mapping, with a
            close-match suggestion when one exists
    """

    __slots__ = ("_mapping",)

    def __init__(self, mapping: Mapping[str, str]):
        self._mapping = mapping

    def get_source(self, name: str) -> str:
        if name not in self._mapping:
            available = sorted(self._mapping.keys())
            msg = f"Template '{name}' not found"
            matches = get_close_matches(name, available, n=1, cutoff=0.6)
            if matches:
                msg += f". Did you mean '{matches[0]}'?"
            elif available:
                msg += f". Available: {', '.join(available[:10])}"
                if len(available) > 10:
                    msg += f" ... ({len(available)} total)"
            raise TemplateNotFoundError(msg, name=name)
        return self._mapping[name]

    def list_templates(self) -> list[str]:
        return sorted(self._mapping.keys())


class FileSystemLoader:
    """Load templates from filesystem directories.

    Directories are searched in order and the first matching file wins.
    Names that resolve outside a search directory (``../secret``, absolute
    paths) are never read.

    Example:
            >>> loader = FileSystemLoader(["themes/custom/", "themes/default/"])
            >>> loader.get_source("pages/about.html")

    Raises:
        TemplateNotFoundError: If template not found in any search path
    """

    __slots__ = ("_encoding", "_paths")

    def __init__(
        self,
        paths: str | Path | Sequence[str | Path],
        encoding: str = "utf-8",
    ):
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self._paths = [Path(p) for p in paths]
        self._encoding = encoding

    def get_source(self, name: str) -> str:
        """Load template source from filesystem."""
        for base in self._paths:
            root = base.resolve()
            path = (root / name).resolve()
            if not path.is_relative_to(root):
                continue
            if path.is_file():
                try:
                    return path.read_text(self._encoding)
                except (OSError, UnicodeDecodeError) as e:
                    raise TemplateNotFoundError(
                        f"Template '{name}' could not be read: {e}", name=name
                    ) from e

        raise TemplateNotFoundError(
            f"Template '{name}' not found in: {', '.join(str(p) for p in self._paths)}",
            name=name,
        )

    def list_templates(self) -> list[str]:
        """List all files in search paths, as template names."""
        templates = set()
        for base in self._paths:
            if base.is_dir():
                for path in base.rglob("*"):
                    if path.is_file():
                        templates.add(path.relative_to(base).as_posix())
        return sorted(templates)


class FunctionLoader:
    """Wrap a callable as a template loader.

    The function takes a template name and returns the source, or ``None``
    if the template does not exist.

    Example:
            >>> def load(name):
            ...     return "Hello, {{name}}!" if name == "greeting" else None
            >>> Environment(loader=FunctionLoader(load)).render("greeting", name="World")
            'Hello, World!'

    Raises:
        TemplateNotFoundError: If ``load_func`` returns ``None``
    """

    __slots__ = ("_load_func",)

    def __init__(self, load_func: Callable[[str], str | None]):
        self._load_func = load_func

    def get_source(self, name: str) -> str:
        result = self._load_func(name)
        if result is None:
            raise TemplateNotFoundError(f"Template '{name}' not found", name=name)
        return result


class ChoiceLoader:
    """Try multiple loaders in order, returning the first match.

    Example:
            >>> loader = ChoiceLoader([
            ...     DictLoader({"nav.html": "<nav>Custom</nav>"}),
            ...     FileSystemLoader("themes/default/"),
            ... ])

    Raises:
        TemplateNotFoundError: If no loader can find the template

    Thread-Safety:
        Safe if all child loaders are thread-safe.
    """

    __slots__ = ("_loaders",)

    def __init__(self, loaders: Sequence[Loader]):
        self._loaders = list(loaders)

    def get_source(self, name: str) -> str:
        """Try each loader in order, return first match."""
        for loader in self._loaders:
            try:
                return loader.get_source(name)
            except TemplateNotFoundError:
                continue
        raise TemplateNotFoundError(
            f"Template '{name}' not found in any of {len(self._loaders)} loaders",
            name=name,
        )

    async def get_source_async(self, name: str) -> str:
        """Async variant; awaits child loaders that support it."""
        import asyncio

        for loader in self._loaders:
            try:
                if isinstance(loader, AsyncLoader):
                    return await loader.get_source_async(name)
                return await asyncio.to_thread(loader.get_source, name)
            except TemplateNotFoundError:
                continue
        raise TemplateNotFoundError(
            f"Template '{name}' not found in any of {len(self._loaders)} loaders",
            name=name,
        )

    def list_templates(self) -> list[str]:
        """Merge template lists from all loaders (deduplicated, sorted)."""
        templates: set[str] = set()
        for loader in self._loaders:
            if hasattr(loader, "list_templates"):
                templates.update(loader.list_templates())
        return sorted(templates)


class HttpLoader:
    """Fetch template text over HTTP from ``base_url + name``.

    ``base_url`` always ends with ``/`` (one is appended if missing), so
    ``HttpLoader("https://cdn.example.com/tpl")`` fetches ``page.html``
    from ``https://cdn.example.com/tpl/page.html``.

    Args:
        base_url: Prefix prepended to every template name
        timeout: Request timeout in seconds
        headers: Extra request headers (auth tokens, ...)
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``
            in tests

    Raises:
        TemplateNotFoundError: On a non-2xx response or any transport
            error (connection refused, timeout, ...)

    Example:
            >>> env = Environment(loader=HttpLoader("https://example.com/templates"))
            >>> html = await env.render_async("index.html", {"title": "Home"})
    """

    __slots__ = ("_base_url", "_headers", "_timeout", "_transport")

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, name: str) -> str:
        return self._base_url + name.lstrip("/")

    def _check(self, name: str, response: httpx.Response) -> str:
        if not response.is_success:
            raise TemplateNotFoundError(
                f"Template '{name}' not found: HTTP {response.status_code} "
                f"from {response.request.url}",
                name=name,
            )
        return response.text

    async def get_source_async(self, name: str) -> str:
        url = self.url_for(name)
        kwargs = {"transport": self._transport} if isinstance(
            self._transport, httpx.AsyncBaseTransport
        ) else {}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, headers=self._headers, **kwargs
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise TemplateNotFoundError(
                f"Template '{name}' could not be fetched from {url}: {e}", name=name
            ) from e
        return self._check(name, response)

    def get_source(self, name: str) -> str:
        url = self.url_for(name)
        kwargs = {"transport": self._transport} if isinstance(
            self._transport, httpx.BaseTransport
        ) else {}
        try:
            with httpx.Client(timeout=self._timeout, headers=self._headers, **kwargs) as client:
                response = client.get(url)
        except httpx.HTTPError as e:
            raise TemplateNotFoundError(
                f"Template '{name}' could not be fetched from {url}: {e}", name=name
            ) from e
        return self._check(name, response)
