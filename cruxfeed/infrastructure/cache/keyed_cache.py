"""
Keyed in-memory cache.

Best-effort memoization for lookups that fan out (users by id, follow
sets). Writes are serialized by an asyncio.Lock; reads are lock-free and
may observe a value that is about to be replaced. Entries never expire on
their own: the owning repository invalidates them after mutations, and
the cache dies with the repository instance.
"""

import asyncio
from typing import Dict, Generic, Hashable, Iterable, Mapping, Optional, TypeVar

import structlog

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

logger = structlog.get_logger(__name__)


class KeyedCache(Generic[K, V]):
    """
    Mutex-guarded dict with explicit invalidation.

    Example:
        >>> cache: KeyedCache[str, int] = KeyedCache("demo")
        >>> await cache.put("a", 1)
        >>> cache.get("a")
        1
        >>> await cache.invalidate("a")
        >>> cache.get("a") is None
        True
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: Dict[K, V] = {}
        self._lock = asyncio.Lock()

    def get(self, key: K) -> Optional[V]:
        value = self._entries.get(key)
        logger.debug("Cache hit" if value is not None else "Cache miss", cache=self.name, key=key)
        return value

    def get_many(self, keys: Iterable[K]) -> Dict[K, V]:
        """Cached subset of keys."""
        return {k: self._entries[k] for k in keys if k in self._entries}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def put(self, key: K, value: V) -> None:
        async with self._lock:
            self._entries[key] = value

    async def put_many(self, values: Mapping[K, V]) -> None:
        async with self._lock:
            self._entries.update(values)

    async def invalidate(self, key: K) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
        logger.info("Cache cleared", cache=self.name)
