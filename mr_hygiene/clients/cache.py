"""In-memory TTL cache with lazy eviction and hit/miss metrics.

Entries expire on read: there is no background sweeper and no size bound,
so a cache grows with the number of distinct keys written inside one TTL
window.  Key cardinality here is bounded by page x per-page x category, which
keeps that acceptable for a single dashboard process.
"""

import logging
import time
from collections.abc import Callable

from mr_hygiene.models.cache import CacheStats

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class CacheMetrics:
    """Tracks cache hit/miss statistics."""

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0


class CacheEntry:
    """A cached value plus the bookkeeping needed to expire it."""

    __slots__ = ("value", "created_at", "expires_at", "headers")

    def __init__(
        self,
        value: object,
        created_at: float,
        expires_at: float,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.value = value
        self.created_at = created_at
        self.expires_at = max(expires_at, created_at)
        self.headers = headers

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class TTLCache:
    """Key/value store where every entry carries its own expiry.

    Args:
        name: Name used in logs and stats.
        default_ttl_seconds: TTL applied when ``set`` is called without one.
        clock: Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        name: str,
        default_ttl_seconds: float = 60,
        clock: Clock = time.monotonic,
    ) -> None:
        self.name = name
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._store: dict[str, CacheEntry] = {}
        self.metrics = CacheMetrics()

    def now(self) -> float:
        return self._clock()

    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the live entry for *key*, evicting it if it has expired."""
        entry = self._store.get(key)
        if entry is None:
            self.metrics.misses += 1
            return None

        if entry.is_expired(self._clock()):
            del self._store[key]
            self.metrics.misses += 1
            logger.debug("Cache '%s' entry expired: %s", self.name, key)
            return None

        self.metrics.hits += 1
        return entry

    def get(self, key: str) -> object | None:
        """Retrieve a value if present and not expired.

        Args:
            key: Cache key.

        Returns:
            Cached value or None.
        """
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def set(
        self,
        key: str,
        value: object,
        ttl_seconds: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Store a value, replacing any existing entry for *key*."""
        now = self._clock()
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._store[key] = CacheEntry(value, now, now + ttl, headers)

    def remove(self, key: str) -> bool:
        """Remove a specific key. Returns True if the key existed."""
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all entries."""
        self._store.clear()

    def _sweep(self) -> None:
        now = self._clock()
        expired = [k for k, entry in self._store.items() if entry.is_expired(now)]
        for key in expired:
            del self._store[key]

    @property
    def size(self) -> int:
        """Number of live entries."""
        self._sweep()
        return len(self._store)

    def stats(self) -> CacheStats:
        """Return size, live keys, and hit/miss counts."""
        self._sweep()
        return CacheStats(
            name=self.name,
            size=len(self._store),
            keys=list(self._store),
            hits=self.metrics.hits,
            misses=self.metrics.misses,
        )
