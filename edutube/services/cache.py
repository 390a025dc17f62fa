from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

from edutube.services.errors import GenerationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CACHE_DURATION_SEC = 5 * 60
COOLDOWN_SEC = 30


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    created_at: float


class GenerationCache(Generic[T]):
    """
    Process-local result cache with single-flight generation.

    The in-flight check and insert happen in one synchronous step, so with a
    single event loop two callers can never both start work for the same key.
    Generation runs as its own task; callers that give up (timeout) leave it
    running and it still fills the cache.
    """

    def __init__(
        self,
        ttl: float = CACHE_DURATION_SEC,
        cooldown: float = COOLDOWN_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = float(ttl)
        self.cooldown = float(cooldown)
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._in_flight: dict[str, asyncio.Task[T]] = {}

    # ----------------------------
    # Lookups
    # ----------------------------

    def _age(self, entry: CacheEntry[T]) -> float:
        return self._clock() - entry.created_at

    def get(self, key: str) -> T | None:
        """Fresh cached value or None; expired entries are evicted here."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._age(entry) > self.ttl:
            del self._entries[key]
            logger.debug("Cache entry %s expired", key)
            return None
        return entry.data

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    # ----------------------------
    # Single-flight
    # ----------------------------

    def _on_done(self, key: str, task: asyncio.Task[T]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

        if task.cancelled():
            logger.warning("Generation for %s was cancelled", key)
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Generation for %s failed; not cached: %s", key, exc)
            return
        self._entries[key] = CacheEntry(data=task.result(), created_at=self._clock())

    def _start(self, key: str, generate_fn: Callable[[], Awaitable[T]]) -> asyncio.Task[T]:
        async def run() -> T:
            return await generate_fn()

        task = asyncio.ensure_future(run())
        self._in_flight[key] = task
        task.add_done_callback(lambda t: self._on_done(key, t))
        return task

    async def get_or_generate(
        self,
        key: str,
        generate_fn: Callable[[], Awaitable[T]],
        *,
        timeout: float | None = None,
        force_refresh: bool = False,
    ) -> T:
        entry = self._entries.get(key)
        if force_refresh and entry is not None and self._age(entry) < self.cooldown:
            logger.info("Refresh of %s within %.0fs cooldown; serving cached result", key, self.cooldown)
            return entry.data

        if not force_refresh:
            cached = self.get(key)
            if cached is not None:
                logger.info("Cache hit for %s", key)
                return cached

        task = self._in_flight.get(key)
        if task is not None:
            logger.info("Joining in-flight generation for %s", key)
        else:
            task = self._start(key, generate_fn)

        if timeout is None:
            return await asyncio.shield(task)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError as e:
            raise GenerationTimeoutError(
                f"Generation for {key} did not finish within {timeout:.0f}s; it continues in the background"
            ) from e
