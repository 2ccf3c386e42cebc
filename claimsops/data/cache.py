"""
SourceCache — single-flight, write-once cache of loaded sources.

At most one fetch+parse runs per key. Concurrent callers await the same task
and receive the identical result object. A successful result is memoized until
``invalidate()``; a failure leaves the key empty so the next call retries.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheStats:
    hits: int = 0      # served from a memoized value
    misses: int = 0    # started a new load
    joins: int = 0     # awaited a load already in flight
    failures: int = 0


class SourceCache:
    """Explicit, injectable cache scoped to whoever owns it."""

    def __init__(self, name: str = "sources") -> None:
        self.name = name
        self._values: dict[str, Any] = {}
        self._inflight: dict[str, asyncio.Task] = {}
        self._generation = 0
        self._key_generations: dict[str, int] = {}
        self.stats = CacheStats()

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    async def get(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """Return the value for key, running loader at most once concurrently."""
        if key in self._values:
            self.stats.hits += 1
            return self._values[key]

        task = self._inflight.get(key)
        if task is None:
            self.stats.misses += 1
            task = asyncio.ensure_future(self._run(key, loader, self._token(key)))
            task.add_done_callback(_retrieve_exception)
            self._inflight[key] = task
        else:
            self.stats.joins += 1

        # A cancelled caller must not cancel the shared load
        return await asyncio.shield(task)

    def _token(self, key: str) -> tuple[int, int]:
        return self._generation, self._key_generations.get(key, 0)

    async def _run(self, key: str, loader: Callable[[], Awaitable[T]], token: tuple[int, int]) -> T:
        try:
            value = await loader()
        except Exception as exc:
            self.stats.failures += 1
            logger.error(f"[Cache] Load failed for {key}: {exc}")
            raise
        else:
            if token == self._token(key):
                self._values[key] = value
            return value
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]

    def peek(self, key: str) -> Optional[Any]:
        """Memoized value or None — never triggers a load."""
        return self._values.get(key)

    def is_loading(self, key: str) -> bool:
        return key in self._inflight

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def keys(self) -> list[str]:
        return list(self._values)

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, key: Optional[str] = None) -> None:
        """Forget one key (or all). In-flight loads finish but are not memoized."""
        if key is None:
            self._generation += 1
            self._values.clear()
            self._inflight.clear()
            logger.info(f"[Cache] {self.name}: invalidated all keys")
        else:
            self._key_generations[key] = self._key_generations.get(key, 0) + 1
            self._values.pop(key, None)
            self._inflight.pop(key, None)
            logger.info(f"[Cache] {self.name}: invalidated {key}")


def _retrieve_exception(task: asyncio.Task) -> None:
    # awaiting callers re-raise the failure themselves
    if not task.cancelled():
        task.exception()
