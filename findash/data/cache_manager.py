"""
Two-tier cache coordinator
Composes the in-memory tier (fast path) with the persistent tier (durable
fallback) into a single get-or-compute primitive
"""

import asyncio
import functools
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from ..config import Config, get_config
from ..utils import get_logger
from .cache import CacheEntry, FileStorage, PersistentCache
from .memory_cache import InMemoryCache

logger = get_logger(__name__)

_MISSING = object()

@dataclass(frozen=True)
class CacheTTL:
    """TTL policy per data class, in seconds"""
    quote: float = 60
    profile: float = 24 * 60 * 60
    statistics: float = 60 * 60
    news: float = 60 * 60
    fundamentals: float = 24 * 60 * 60
    market: float = 5 * 60
    sentiment: float = 15 * 60

    @classmethod
    def from_config(cls, config: Config) -> 'CacheTTL':
        """Read cache.<name>_ttl_seconds, honouring runtime overrides"""
        return cls(**{
            name: float(config.get(f"cache.{name}_ttl_seconds"))
            for name in cls.__dataclass_fields__
        })

class CacheManager:
    """
    Caching facade used by every data-fetching function

    Owns the lifecycle of cache entries in both tiers. Failures of the
    persistent tier are logged and swallowed so that a broken disk
    degrades to "always fetch fresh"; failures of the fetch function
    propagate unchanged.

    Concurrent misses for the same key share one in-flight fetch.
    """

    def __init__(
        self,
        memory: Optional[InMemoryCache] = None,
        persistent: Optional[PersistentCache] = None,
        ttl: Optional[CacheTTL] = None,
        clock: Callable[[], float] = time.time
    ):
        self.config = get_config()
        self._clock = clock
        self.memory = memory if memory is not None else InMemoryCache(clock)
        self.persistent = persistent if persistent is not None else PersistentCache(
            FileStorage(self.config.system.cache_dir)
        )
        self.ttl = ttl or CacheTTL.from_config(self.config)

        self._in_flight: Dict[str, asyncio.Task] = {}
        self._cleanup_task: Optional[asyncio.Task] = None

    async def get_cached_data(
        self,
        key: str,
        ttl: float,
        fetch_fn: Callable[[], Awaitable[Any]]
    ) -> Any:
        """
        Return the value for key, computing it with fetch_fn on a miss

        Args:
            key: Namespaced cache key (see get_cache_key)
            ttl: Freshness window in seconds
            fetch_fn: Upstream-calling coroutine factory

        Returns:
            Cached or freshly fetched value
        """
        value = self.memory.get(key, _MISSING)
        if value is not _MISSING:
            logger.debug(f"Memory cache hit for {key}")
            return value

        task = self._in_flight.get(key)
        if task is None:
            # Shared by every caller; cancelling one caller leaves it running
            task = asyncio.ensure_future(self._load(key, ttl, fetch_fn))
            self._in_flight[key] = task
            task.add_done_callback(functools.partial(self._release, key))
        else:
            logger.debug(f"Joining in-flight fetch for {key}")

        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task):
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            # Mark retrieved so an unawaited failure is not reported twice
            task.exception()

    async def _load(self, key: str, ttl: float, fetch_fn: Callable[[], Awaitable[Any]]) -> Any:
        try:
            entry = await self.persistent.read(key)
            if entry is not None:
                if not entry.is_expired(self._clock(), ttl):
                    self.memory.set(key, entry.data, ttl)
                    logger.debug(f"Disk cache hit for {key} (age: {entry.age_seconds(self._clock()):.1f}s)")
                    return entry.data
                logger.debug(f"Disk cache expired for {key}")
        except Exception as e:
            logger.error(f"Persistent cache lookup failed for {key}: {e}")

        logger.debug(f"Cache miss for {key}")
        data = await fetch_fn()

        entry = CacheEntry(data=data, timestamp=self._clock(), ttl=ttl)
        self.memory.set(key, data, ttl)
        try:
            await self.persistent.write(key, entry)
        except Exception as e:
            logger.error(f"Persistent cache write failed for {key}: {e}")

        return data

    async def invalidate_cache(self, key: str) -> bool:
        """Remove key from both tiers, True when either tier held it"""
        key = key.lower()
        in_memory = self.memory.invalidate(key)
        try:
            on_disk = await self.persistent.remove(key)
        except Exception as e:
            logger.error(f"Failed to remove {key} from persistent cache: {e}")
            on_disk = False

        logger.info(f"Invalidated cache key {key}")
        return in_memory or on_disk

    async def clear(self):
        """Empty both tiers"""
        self.memory.clear()
        try:
            removed = await self.persistent.clear()
        except Exception as e:
            logger.error(f"Failed to clear persistent cache: {e}")
            removed = 0
        logger.info(f"Cleared cache ({removed} persisted records removed)")

    async def get_cache_stats(self) -> Dict[str, Any]:
        """Memory-tier counters merged with the persistent record count"""
        try:
            file_count = await self.persistent.count()
        except Exception as e:
            logger.warning(f"Failed to count persistent records: {e}")
            file_count = 0

        return {
            'memory_cache': self.memory.get_stats().to_dict(),
            'file_cache': {'size': file_count}
        }

    def cleanup(self) -> int:
        """Sweep expired entries out of the memory tier"""
        return self.memory.cleanup()

    async def _cleanup_loop(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            removed = self.cleanup()
            if removed:
                logger.info(f"Periodic sweep removed {removed} expired entries")

    def start_cleanup_task(self, interval: Optional[float] = None) -> asyncio.Task:
        """Run the memory sweep every `interval` seconds on the current loop"""
        if self._cleanup_task is None or self._cleanup_task.done():
            interval = interval or self.config.cache.cleanup_interval_seconds
            self._cleanup_task = asyncio.create_task(self._cleanup_loop(interval))
            logger.info(f"Started cache sweep every {interval}s")
        return self._cleanup_task

    async def stop(self):
        """Cancel the periodic sweep"""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

# Process-wide cache instance
_cache_manager: Optional[CacheManager] = None

def get_cache_manager() -> CacheManager:
    """Get or create the process-wide cache manager"""
    global _cache_manager
    if _cache_manager is None:
        _cache_manager = CacheManager()
    return _cache_manager
