"""Resource Cache: time-boxed memoization of upstream payloads.

Entries live for a fixed TTL and are keyed by resource kind plus its
identifying parameters, so identical logical requests share an entry.
A per-key lock makes check-then-write atomic across ``await`` points, and a
generation counter keeps producers that started before ``invalidate_all``
from repopulating the cache afterwards.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0

T = TypeVar("T")


def cache_key(kind: str, *parts: str) -> str:
    """Compose a deterministic key, e.g. ``transactions-rbs-a1-owner``."""
    return "-".join((kind, *parts))


@dataclass(frozen=True)
class CacheEntry:
    key: str
    captured_at: float
    payload: Any

    def is_live(self, now: float, ttl: float) -> bool:
        return now - self.captured_at < ttl


class ResourceCache:
    """In-memory cache shared by every fetch in a session context."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._live(key) is not None

    def _live(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is not None and entry.is_live(self._clock(), self.ttl_seconds):
            return entry
        return None

    async def get_or_fetch(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        """Return the cached payload for ``key``, producing it if missing or stale.

        Producer failures propagate and nothing is cached.

        Args:
            key: Resource key built with ``cache_key``
            producer: Zero-argument coroutine function fetching the payload

        Returns:
            The cached or freshly produced payload
        """
        entry = self._live(key)
        if entry is not None:
            logger.debug(f"Using cached data for {key}")
            return entry.payload

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            # Another caller may have filled the entry while we waited
            entry = self._live(key)
            if entry is not None:
                logger.debug(f"Using cached data for {key}")
                return entry.payload

            generation = self._generation
            payload = await producer()

            if generation == self._generation:
                self._entries[key] = CacheEntry(key, self._clock(), payload)
                logger.debug(f"Cached fresh data for {key}")
            else:
                logger.debug(f"Cache invalidated while fetching {key}, not storing")
            return payload

    def invalidate_all(self) -> None:
        """Drop every entry. In-flight producers still return to their callers."""
        count = len(self._entries)
        self._entries.clear()
        self._generation += 1
        logger.info(f"Cleared {count} cached entries")
