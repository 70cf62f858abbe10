"""
Secret Cache — Time- and size-bounded read-through cache of decrypted scopes.

Each entry maps a scope to the ``get_all`` result for that scope. Guarantees:
    - a hit within the TTL never calls the loader,
    - at most one load runs per scope key at a time; concurrent callers
      await the same in-flight task, other scope keys are never blocked,
    - ``invalidate_all`` is a point-in-time barrier: loads started before it
      neither populate the cache nor serve callers arriving after it,
    - failed loads propagate to their callers and are never cached.

The cache is bound to a single asyncio event loop. Its bookkeeping happens
between ``await`` points and therefore needs no lock.

Security Note:
    Entries hold plaintext secret values. Never log entry contents.
"""
import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import NamedTuple, Optional

from .scope import Scope

logger = logging.getLogger("navigator.secrets")

Loader = Callable[[Scope], Awaitable[dict[str, str]]]


class _Entry(NamedTuple):
    value: dict[str, str]
    written_at: float


def _retrieve_exception(task: asyncio.Task) -> None:
    # every waiter may have been cancelled before a failing load finished
    if not task.cancelled():
        task.exception()


class SecretCache:
    """Read-through cache keyed by scope.

    Args:
        loader: Coroutine function returning the decrypted secrets of a scope.
        ttl: Seconds an entry may be served after it was written.
        max_size: Maximum number of cached scopes; least recently used
            entries are evicted first.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        loader: Loader,
        ttl: float = 60.0,
        max_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl < 0:
            raise ValueError("Cache ttl cannot be negative")
        if max_size < 1:
            raise ValueError("Cache max_size must be at least 1")
        self._loader = loader
        self._ttl = ttl
        self._max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[Scope, _Entry]" = OrderedDict()
        self._loading: dict[Scope, asyncio.Task] = {}
        self._generation = 0
        self.hits = 0
        self.misses = 0
        self.loads = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def max_size(self) -> int:
        return self._max_size

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, scope: object) -> bool:
        return self._fresh(scope) is not None

    def _fresh(self, scope) -> Optional[_Entry]:
        entry = self._entries.get(scope)
        if entry is None:
            return None
        if self._clock() - entry.written_at >= self._ttl:
            del self._entries[scope]
            return None
        return entry

    async def get(self, scope: Scope) -> dict[str, str]:
        """Return the secrets of ``scope``, loading them on a miss.

        Returns:
            A copy of the cached mapping; callers may mutate it freely.

        Raises:
            Exception: Whatever the loader raised for this load.
        """
        entry = self._fresh(scope)
        if entry is not None:
            self.hits += 1
            self._entries.move_to_end(scope)
            return dict(entry.value)
        self.misses += 1
        task = self._loading.get(scope)
        if task is None:
            task = asyncio.get_running_loop().create_task(
                self._load(scope, self._generation)
            )
            self._loading[scope] = task
            task.add_done_callback(_retrieve_exception)
        # a cancelled caller must not cancel the load other callers share
        value = await asyncio.shield(task)
        return dict(value)

    async def _load(self, scope: Scope, generation: int) -> dict[str, str]:
        self.loads += 1
        logger.debug("Loading secrets for scope %s", scope)
        try:
            value = await self._loader(scope)
        finally:
            if self._loading.get(scope) is asyncio.current_task():
                del self._loading[scope]
        if generation == self._generation:
            self._store(scope, dict(value))
        else:
            logger.debug("Discarding secrets loaded for %s before invalidation", scope)
        return value

    def _store(self, scope: Scope, value: dict[str, str]) -> None:
        self._entries[scope] = _Entry(value, self._clock())
        self._entries.move_to_end(scope)
        while len(self._entries) > self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted secrets cache entry for %s", evicted)

    def invalidate(self, scope: Scope) -> None:
        """Drop the entry for one scope."""
        # in-flight loads of every scope become stale too
        self._generation += 1
        self._entries.pop(scope, None)
        self._loading.pop(scope, None)

    def invalidate_all(self) -> None:
        """Drop every entry and detach every in-flight load."""
        self._generation += 1
        self._entries.clear()
        self._loading.clear()
        logger.debug("Secrets cache invalidated (generation %d)", self._generation)
