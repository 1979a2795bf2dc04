"""
Read-through cache for catalog lookups.

    products = (
        cache(lambda pid: f"product:{pid}", fetch_product)
        .tier(LocalTier(max_size=256))
        .build()
    )
    result = await products.get("1")
    await products.invalidate("1")
"""

from __future__ import annotations

import fnmatch
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from kungfu import LazyCoroResult, Result, Ok, Error

from kixstore._logging import get_logger

log = get_logger("cache")

type KeyFn[K] = Callable[[K], str]


class Tier[T](Protocol):
    """Cache tier protocol. Misses return None."""

    @property
    def name(self) -> str: ...

    async def get(self, key: str) -> T | None: ...

    async def set(self, key: str, value: T) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def delete_pattern(self, pattern: str) -> int: ...


class LocalTier[T]:
    """In-memory LRU tier."""

    def __init__(self, max_size: int = 1000) -> None:
        self._max_size = max_size
        self._entries: OrderedDict[str, T] = OrderedDict()

    @property
    def name(self) -> str:
        return "local"

    async def get(self, key: str) -> T | None:
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    async def set(self, key: str, value: T) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)
        self._entries[key] = value

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        doomed = [k for k in self._entries if fnmatch.fnmatch(k, pattern)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True, slots=True)
class CacheResult[T]:
    value: T
    hit: bool
    tier: str | None


@dataclass(slots=True, frozen=True)
class Cache[K, T, E]:
    _key_fn: KeyFn[K]
    _fetch: Callable[[K], LazyCoroResult[T, E]]
    _tiers: tuple[Tier[T], ...]

    def tier(self, t: Tier[T]) -> Cache[K, T, E]:
        return Cache(_key_fn=self._key_fn, _fetch=self._fetch, _tiers=(*self._tiers, t))

    def build(self) -> CacheExecutor[K, T, E]:
        return CacheExecutor(key_fn=self._key_fn, tiers=self._tiers, fetch=self._fetch)


@dataclass(slots=True, frozen=True)
class CacheExecutor[K, T, E]:
    key_fn: KeyFn[K]
    tiers: tuple[Tier[T], ...]
    fetch: Callable[[K], LazyCoroResult[T, E]]

    def get(self, key: K) -> LazyCoroResult[CacheResult[T], E]:
        """Tiers in order, then fetch; a fetched value fills every tier."""
        cache_key = self.key_fn(key)
        tiers = self.tiers
        fetch = self.fetch

        async def execute() -> Result[CacheResult[T], E]:
            for t in tiers:
                try:
                    value = await t.get(cache_key)
                except Exception as exc:
                    log.warning("cache_tier_failed", tier=t.name, key=cache_key, error=str(exc))
                    continue
                if value is not None:
                    return Ok(CacheResult(value=value, hit=True, tier=t.name))

            match await fetch(key):
                case Ok(value):
                    for t in tiers:
                        try:
                            await t.set(cache_key, value)
                        except Exception as exc:
                            log.warning("cache_fill_failed", tier=t.name, key=cache_key, error=str(exc))
                    return Ok(CacheResult(value=value, hit=False, tier=None))
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)

    async def invalidate(self, key: K) -> bool:
        cache_key = self.key_fn(key)
        deleted = False
        for t in self.tiers:
            if await t.delete(cache_key):
                deleted = True
        return deleted

    async def invalidate_pattern(self, pattern: str) -> int:
        total = 0
        for t in self.tiers:
            total += await t.delete_pattern(pattern)
        return total


def cache[K, T, E](
    key: KeyFn[K],
    fetch: Callable[[K], LazyCoroResult[T, E]],
) -> Cache[K, T, E]:
    return Cache(_key_fn=key, _fetch=fetch, _tiers=())


__all__ = ("Tier", "LocalTier", "CacheResult", "Cache", "CacheExecutor", "cache")
