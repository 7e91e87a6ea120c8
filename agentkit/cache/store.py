"""Cache stores backing cached tools."""
from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol


@dataclass(frozen=True, slots=True)
class CacheEntry:
    result: Any
    timestamp: float
    key: str


class CacheStore(Protocol):
    """Key-value store for cache entries; implementations may be remote."""

    async def get(self, key: str) -> Optional[CacheEntry]:
        ...

    async def set(self, key: str, entry: CacheEntry) -> None:
        ...

    async def delete(self, key: str) -> bool:
        ...

    async def clear(self) -> None:
        ...

    async def size(self) -> int:
        ...


class LRUCacheStore:
    """In-process store evicting the least recently used entry when full."""

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: float = 300.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    async def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        self._entries.move_to_end(key)
        return entry

    async def set(self, key: str, entry: CacheEntry) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
        self._entries[key] = entry

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        self._entries.clear()

    async def size(self) -> int:
        return len(self._entries)

    def keys(self) -> List[str]:
        return list(self._entries)

    def cleanup(self) -> int:
        """Drop entries older than the default TTL; returns how many went."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now - entry.timestamp > self.default_ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)
