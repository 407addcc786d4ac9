"""
In-memory TTL cache for upstream proxy responses.

Many browser clients looking at the same map area ask for the same
bounding box within seconds of each other. Responses are cached per box
for a short TTL (30 seconds) so the upstream feed sees one request per
box per TTL window, not one per client.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from skytrack.config import config

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    expires_at: float
    cached_at: float = field(default_factory=time.time)


class ResponseCache:
    """
    Thread-safe in-memory cache with per-entry expiry.

    Flask serves requests on multiple threads, so every access goes
    through one lock.
    """

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.proxy_cache.ttl_seconds
        self.max_entries = max_entries if max_entries is not None else config.proxy_cache.max_entries
        self._clock = clock

        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

        # Statistics
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is not None:
                if self._clock() < entry.expires_at:
                    self._hits += 1
                    return entry.value
                # Expired
                del self._cache[key]
            self._misses += 1
        return None

    def set(self, key: str, value: Any) -> None:
        now = self._clock()
        with self._lock:
            self._cache[key] = CacheEntry(value=value, expires_at=now + self.ttl_seconds, cached_at=now)
            if len(self._cache) > self.max_entries:
                self._evict_oldest()

    def _evict_oldest(self) -> None:
        """Remove oldest entries when over capacity."""
        entries = sorted(self._cache.items(), key=lambda x: x[1].cached_at)
        # Remove oldest 10%
        to_remove = max(1, len(entries) // 10)
        for key, _ in entries[:to_remove]:
            del self._cache[key]
        logger.debug(f'Evicted {to_remove} cached responses')

    def clear(self) -> None:
        """Clear entire cache."""
        with self._lock:
            self._cache.clear()

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                'entries': len(self._cache),
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': self._hits / total if total > 0 else 0,
            }
