"""
Per-key memoization of upstream computations.

A RequestCache stores the pending task for a key before the computation
starts, so every concurrent caller with the same key awaits the same
upstream call. Entries are never evicted except by the RETRY failure policy.

Usage:
    cache: RequestCache[list[Artifact]] = RequestCache("artifacts")
    artifacts = await cache.get_or_compute(path, lambda: fetch(path))
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FailurePolicy(str, Enum):
    """What happens to a cache entry whose computation failed."""

    PIN = "pin"  # Keep the failure; later callers get the same error
    RETRY = "retry"  # Drop the failure; the next caller recomputes


@dataclass
class CacheStats:
    """Hit/miss counters for a single cache."""

    hits: int = 0
    misses: int = 0
    failures: int = 0


class RequestCache(Generic[T]):
    """
    Process-lifetime cache of in-flight and completed computations.

    Callers for the same key share one asyncio.Task. Callers for different
    keys never wait on each other. A caller being cancelled does not cancel
    the shared computation.
    """

    def __init__(self, name: str, policy: FailurePolicy = FailurePolicy.PIN) -> None:
        """
        Initialize the cache.

        Args:
            name: Cache name used in logs and metrics.
            policy: Failure policy (default PIN keeps failed results cached).
        """
        self.name = name
        self.policy = policy
        self.stats = CacheStats()
        self._tasks: dict[str, asyncio.Task[T]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    async def get_or_compute(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Return the cached result for key, computing it once if absent.

        Args:
            key: Memoization key.
            factory: Zero-argument coroutine factory. Called at most once per
                key under PIN.

        Returns:
            The computation result shared by all callers of this key.

        Raises:
            Whatever the factory raised, identically for every waiter.
        """
        task = self._tasks.get(key)
        if task is None:
            self.stats.misses += 1
            # Stored before the first await so concurrent callers find it.
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda t: self._on_done(key, t))
            logger.debug("Cache miss", extra={"cache": self.name, "key": key})
        else:
            self.stats.hits += 1
            logger.debug("Cache hit", extra={"cache": self.name, "key": key})

        return await asyncio.shield(task)

    def _on_done(self, key: str, task: asyncio.Task[T]) -> None:
        if task.cancelled():
            self._tasks.pop(key, None)
            return
        error = task.exception()
        if error is None:
            return
        self.stats.failures += 1
        if self.policy is FailurePolicy.RETRY and self._tasks.get(key) is task:
            del self._tasks[key]
        logger.warning(
            "Cached computation failed",
            extra={"cache": self.name, "key": key, "policy": self.policy.value, "error": str(error)},
        )
