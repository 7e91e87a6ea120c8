"""Result caching for tools.

``cached`` wraps a tool's execute function and hands back the wrapped tool
together with a :class:`ToolCache` for statistics and cache control.
"""
from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel

from agentkit.cache.store import CacheEntry, CacheStore, LRUCacheStore
from agentkit.core.models import AgentContext, ToolCallDetails, maybe_await
from agentkit.tools.tool import Tool

logger = logging.getLogger(__name__)


def serialize_value(value: Any) -> str:
    """Stable string form of ``value``; mapping keys are sorted."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return serialize_value(value.model_dump())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return serialize_value(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        pairs = [f"{key}:{serialize_value(value[key])}" for key in sorted(value, key=str)]
        return "{" + ",".join(pairs) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(serialize_value(item) for item in value) + "]"
    return str(value)


def default_key_generator(params: Any, context: Optional[str] = None) -> str:
    key = serialize_value(params)
    if context:
        return f"{key}|{context}"
    return key


@dataclass
class CacheOptions:
    ttl: float = 300.0
    max_size: int = 1000
    store: Optional[CacheStore] = None
    key_generator: Callable[[Any, Optional[str]], str] = default_key_generator
    cache_key: Optional[Callable[[AgentContext], str]] = None
    should_cache: Callable[[Any, Any], bool] = lambda params, result: True
    on_hit: Optional[Callable[[str], None]] = None
    on_miss: Optional[Callable[[str], None]] = None
    clock: Callable[[], float] = time.monotonic


@dataclass(frozen=True, slots=True)
class CacheStats:
    hits: int
    misses: int
    hit_rate: float
    size: int
    max_size: int


class ToolCache:
    """Hit/miss bookkeeping and cache controls for one cached tool."""

    def __init__(self, options: CacheOptions) -> None:
        self.options = options
        self.store: CacheStore = options.store or LRUCacheStore(options.max_size, options.ttl, clock=options.clock)
        self.hits = 0
        self.misses = 0

    def get_cache_key(self, params: Any, context: Optional[AgentContext] = None) -> str:
        scope = None
        if self.options.cache_key is not None:
            scope = self.options.cache_key(context or AgentContext())
        return self.options.key_generator(params, scope)

    async def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return a live entry, dropping it if it outlived the TTL."""
        entry = await self.store.get(key)
        if entry is None:
            return None
        if self.options.clock() - entry.timestamp >= self.options.ttl:
            await self.store.delete(key)
            return None
        return entry

    async def is_cached(self, params: Any, context: Optional[AgentContext] = None) -> bool:
        return await self.lookup(self.get_cache_key(params, context)) is not None

    async def clear_cache(self, key: Optional[str] = None) -> None:
        if key:
            await self.store.delete(key)
        else:
            await self.store.clear()

    async def get_stats(self) -> CacheStats:
        total = self.hits + self.misses
        return CacheStats(
            hits=self.hits,
            misses=self.misses,
            hit_rate=self.hits / total if total else 0.0,
            size=await self.store.size(),
            max_size=self.options.max_size,
        )

    def record_hit(self, key: str) -> None:
        self.hits += 1
        logger.debug("Cache HIT for key: %s", key)
        if self.options.on_hit:
            self.options.on_hit(key)

    def record_miss(self, key: str) -> None:
        self.misses += 1
        logger.debug("Cache MISS for key: %s", key)
        if self.options.on_miss:
            self.options.on_miss(key)


def cached(tool_def: Tool, options: Optional[CacheOptions] = None) -> Tuple[Tool, ToolCache]:
    """Wrap a tool with caching."""
    cache = ToolCache(options or CacheOptions())
    inner = tool_def.execute

    async def _execute(params: Any, context: AgentContext, details: Optional[ToolCallDetails]) -> Any:
        key = cache.get_cache_key(params, context)
        now = cache.options.clock()
        entry = await cache.lookup(key)
        if entry is not None:
            cache.record_hit(key)
            return entry.result

        cache.record_miss(key)
        result = await maybe_await(inner(params, context, details))
        if cache.options.should_cache(params, result):
            await cache.store.set(key, CacheEntry(result=result, timestamp=now, key=key))
        return result

    return tool_def.with_execute(_execute), cache


def cache_tools(
    tools: Mapping[str, Tool],
    options: Optional[CacheOptions] = None,
) -> Tuple[Dict[str, Tool], Dict[str, ToolCache]]:
    """Cache several tools with the same configuration and separate statistics."""
    wrapped: Dict[str, Tool] = {}
    caches: Dict[str, ToolCache] = {}
    for name, tool_def in tools.items():
        opts = dataclasses.replace(options) if options else CacheOptions()
        wrapped[name], caches[name] = cached(tool_def, opts)
    return wrapped, caches
