"""
Process-local TTL cache with hit/miss/invalidation accounting
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .cache import CacheEntry
from ..utils import get_logger

logger = get_logger(__name__)

@dataclass(frozen=True)
class CacheStats:
    """Snapshot of in-memory cache counters"""
    hits: int
    misses: int
    invalidations: int
    size: int

    @property
    def hit_rate(self) -> float:
        accesses = self.hits + self.misses
        return self.hits / accesses if accesses else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hits': self.hits,
            'misses': self.misses,
            'invalidations': self.invalidations,
            'size': self.size,
            'hit_rate': round(self.hit_rate, 4)
        }

class InMemoryCache:
    """
    Fast-path cache tier

    Created once per process and shared by every data manager through the
    CacheManager. Mutations only happen between await points, so no lock
    is needed under asyncio. Expired entries are dropped when read and by
    the periodic `cleanup` sweep.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._invalidations = 0

    def get(self, key: str, default: Any = None) -> Optional[Any]:
        """Return the stored value, or `default` when absent or expired"""
        entry = self._entries.get(key)

        if entry is None:
            self._misses += 1
            return default

        if entry.is_expired(self._clock()):
            self.invalidate(key)
            self._misses += 1
            return default

        self._hits += 1
        return entry.data

    def set(self, key: str, value: Any, ttl: float):
        """Store value for ttl seconds, replacing any existing entry"""
        self._entries[key] = CacheEntry(data=value, timestamp=self._clock(), ttl=ttl)

    def invalidate(self, key: str) -> bool:
        """Remove key; returns True when an entry was actually removed"""
        if key in self._entries:
            del self._entries[key]
            self._invalidations += 1
            return True
        return False

    def clear(self):
        """Remove every entry"""
        self._invalidations += len(self._entries)
        self._entries.clear()

    def get_stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            invalidations=self._invalidations,
            size=len(self._entries)
        )

    def cleanup(self) -> int:
        """Evict every expired entry, returns how many were removed"""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            self.invalidate(key)

        if expired:
            logger.debug(f"Swept {len(expired)} expired entries from memory cache")
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
