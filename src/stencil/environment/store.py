"""Template store: name → raw text, loaded once and cached.

The cache is append-only for the life of the store: entries are inserted
with an atomic insert-if-absent (``dict.setdefault``), so when two loads
of the same name race the first stored text wins and every caller sees
the same value. Nothing is evicted unless ``evict()`` or ``clear()`` is
called explicitly.

Async loads of the same uncached name are coalesced: the first caller
starts a task and later callers await that task instead of invoking the
loader again.

"""

from __future__ import annotations

import asyncio
import logging

from stencil.environment.exceptions import TemplateNotFoundError
from stencil.environment.loaders import AsyncLoader, Loader

logger = logging.getLogger(__name__)


class TemplateStore:
    """Load-once cache of template source text.

    Args:
        loader: Supplies text on a cache miss. Without a loader only
            names seeded through ``put()`` can be loaded.

    Example:
        >>> store = TemplateStore(DictLoader({"a.html": "A"}))
        >>> store.load("a.html")
        'A'
        >>> "a.html" in store
        True
    """

    __slots__ = ("_cache", "_inflight", "loader")

    def __init__(self, loader: Loader | None = None):
        self.loader = loader
        self._cache: dict[str, str] = {}
        self._inflight: dict[str, asyncio.Task[str]] = {}

    def _missing(self, name: str) -> TemplateNotFoundError:
        return TemplateNotFoundError(
            f"Template '{name}' not found: no loader configured", name=name
        )

    def load(self, name: str) -> str:
        """Return the text for ``name``, loading it on a cache miss.

        Raises:
            TemplateNotFoundError: No loader, or the loader cannot supply it
        """
        cached = self._cache.get(name)
        if cached is not None:
            logger.debug("Template cache hit: %s", name)
            return cached
        if self.loader is None:
            raise self._missing(name)
        logger.debug("Loading template: %s", name)
        source = self.loader.get_source(name)
        return self._cache.setdefault(name, source)

    async def load_async(self, name: str) -> str:
        """Async ``load()``; concurrent calls for one name share one fetch.

        Raises:
            TemplateNotFoundError: No loader, or the loader cannot supply it
        """
        cached = self._cache.get(name)
        if cached is not None:
            logger.debug("Template cache hit: %s", name)
            return cached
        if self.loader is None:
            raise self._missing(name)

        task = self._inflight.get(name)
        if task is None:
            logger.debug("Loading template (async): %s", name)
            task = asyncio.ensure_future(self._fetch(name))
            self._inflight[name] = task
            task.add_done_callback(lambda _t, n=name: self._inflight.pop(n, None))
        else:
            logger.debug("Joining in-flight load: %s", name)
        # shield: one cancelled waiter must not cancel the shared load
        return await asyncio.shield(task)

    async def _fetch(self, name: str) -> str:
        loader = self.loader
        if isinstance(loader, AsyncLoader):
            source = await loader.get_source_async(name)
        else:
            source = await asyncio.to_thread(loader.get_source, name)
        return self._cache.setdefault(name, source)

    def get_cached(self, name: str) -> str | None:
        """Cached text for ``name`` without loading."""
        return self._cache.get(name)

    def put(self, name: str, source: str) -> str:
        """Seed the cache; returns the stored text (an existing entry wins)."""
        return self._cache.setdefault(name, source)

    def __contains__(self, name: object) -> bool:
        return name in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def cached_names(self) -> list[str]:
        return sorted(self._cache)

    def evict(self, name: str) -> bool:
        """Drop one entry. Returns True if it was cached."""
        return self._cache.pop(name, None) is not None

    def clear(self) -> None:
        self._cache.clear()

    def __repr__(self) -> str:
        return f"<TemplateStore {len(self._cache)} cached, loader={self.loader!r}>"
