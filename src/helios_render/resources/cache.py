"""
Resource Cache
==============

Async-safe memoization of mesh and texture loads.

Several frame stores may ask for the same mesh (every hemisphere model
shares one) or the same texture url at the same time. The cache makes
sure each key is loaded at most once at a time.

Entry Lifecycle:
    absent --get()--> pending --success--> resolved
                         |
                         +----failure----> absent (error sent to all waiters)

Design Rules:
    - The first request starts the load as its own task
    - Every successful get() takes a reference; release() drops one and
      evicts the entry once no references remain
    - Requests arriving while a load is pending wait on that same task
    - A failed load is never cached; the next request retries
    - Different keys load fully in parallel
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable


logger = logging.getLogger(__name__)


Loader = Callable[[Any], Awaitable[Any]]


class ResourceCache:
    """
    Keyed memoization for asynchronous loads.

    Attributes:
        hits: Requests answered from a resolved entry
        joins: Requests that attached to a pending load
        loads: Loads started
        failures: Loads that raised

    Example:
        cache = ResourceCache()

        mesh = await cache.get("models/sun.glb", renderer.load_mesh)
    """

    def __init__(self) -> None:
        self._resolved: Dict[Hashable, Any] = {}
        self._pending: Dict[Hashable, asyncio.Task] = {}
        self._refs: Dict[Hashable, int] = {}
        self._hits: int = 0
        self._joins: int = 0
        self._loads: int = 0
        self._failures: int = 0

    @property
    def hits(self) -> int:
        return self._hits

    @property
    def joins(self) -> int:
        return self._joins

    @property
    def loads(self) -> int:
        return self._loads

    @property
    def failures(self) -> int:
        return self._failures

    def __contains__(self, key: Hashable) -> bool:
        return key in self._resolved

    def __len__(self) -> int:
        return len(self._resolved)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    def references(self, key: Hashable) -> int:
        """Number of unreleased get() results handed out for key."""
        return self._refs.get(key, 0)

    async def get(self, key: Hashable, loader: Loader) -> Any:
        """
        Get the resource for key, loading it if needed.

        Args:
            key: Resource path or url
            loader: Async callable invoked as loader(key) when a load is needed

        Returns:
            The loaded resource. Concurrent callers for the same key
            receive the identical object. Each successful call takes a
            reference that the caller gives back with release(key).

        Raises:
            Exception: Whatever the loader raised, for every waiter of
                the failed load
        """
        if key in self._resolved:
            self._hits += 1
            logger.debug(f"Cache hit: {key}")
            self._refs[key] = self._refs.get(key, 0) + 1
            return self._resolved[key]

        task = self._pending.get(key)
        if task is None:
            self._loads += 1
            logger.debug(f"Cache miss, loading: {key}")
            task = asyncio.get_running_loop().create_task(self._load(key, loader))
            self._pending[key] = task
        else:
            self._joins += 1
            logger.debug(f"Joining pending load: {key}")

        # Shield so a cancelled waiter does not cancel the shared load
        resource = await asyncio.shield(task)
        self._refs[key] = self._refs.get(key, 0) + 1
        return resource

    async def _load(self, key: Hashable, loader: Loader) -> Any:
        try:
            resource = await loader(key)
        except BaseException:
            self._failures += 1
            logger.warning(f"Load failed, not caching: {key}")
            raise
        else:
            self._resolved[key] = resource
            return resource
        finally:
            self._pending.pop(key, None)

    def release(self, key: Hashable) -> bool:
        """
        Give back one reference taken by get().

        The entry is evicted once its last reference is released, so
        resources still held by other users stay cached.

        Returns:
            True if the entry was evicted
        """
        remaining = self._refs.get(key, 0) - 1
        if remaining > 0:
            self._refs[key] = remaining
            return False
        return self.evict(key)

    def evict(self, key: Hashable) -> bool:
        """
        Remove a resolved entry.

        Returns:
            True if an entry was removed
        """
        self._refs.pop(key, None)
        return self._resolved.pop(key, None) is not None

    def clear(self) -> int:
        """
        Remove all resolved entries. Pending loads are left running.

        Returns:
            Number of entries removed
        """
        cleared = len(self._resolved)
        self._resolved.clear()
        self._refs.clear()
        return cleared

    def metrics(self) -> dict:
        """
        Get cache metrics for observability.

        Returns:
            Dict with hits, joins, loads, failures, resolved, pending
        """
        return {
            "hits": self._hits,
            "joins": self._joins,
            "loads": self._loads,
            "failures": self._failures,
            "resolved": len(self._resolved),
            "pending": len(self._pending),
        }


_default_cache = ResourceCache()


def default_cache() -> ResourceCache:
    """Cache shared by frame stores that are not given one explicitly."""
    return _default_cache
