"""In-memory TTL cache for provider responses.

This module provides a process-local caching layer that shields the
market data and text model providers from repeated requests.

Features:
- Per-entry TTLs with a configurable default
- Value semantics: entries are deep-copied on write and on read
- Hit/miss metrics with a guarded hit rate
- Periodic stats logging from a background asyncio task
"""

import asyncio
import copy
import hashlib
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar, cast

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CacheType(Enum):
    """Types of cached data with different TTLs."""

    STOCK = "stock"
    CHART = "chart"
    MARKET_MOVERS = "market_movers"
    SENTIMENT = "sentiment"
    NEWS = "news"


@dataclass
class CacheConfig:
    """Configuration for cache TTLs.

    Attributes:
        stock_ttl: TTL for combined stock payloads in seconds (default: 5 min).
        chart_ttl: TTL for intraday chart series in seconds (default: 1 min).
        market_movers_ttl: TTL for top movers in seconds (default: 5 min).
        sentiment_ttl: TTL for sentiment results in seconds (default: 1 hour).
        news_ttl: TTL for generated news in seconds (default: 5 min).
        default_ttl: Default TTL for unspecified types (default: 5 min).
    """

    stock_ttl: int = 300  # 5 minutes
    chart_ttl: int = 60  # 1 minute
    market_movers_ttl: int = 300  # 5 minutes
    sentiment_ttl: int = 3600  # 1 hour
    news_ttl: int = 300  # 5 minutes
    default_ttl: int = 300  # 5 minutes

    def get_ttl(self, cache_type: CacheType) -> int:
        """Get TTL for a cache type."""
        ttl_map = {
            CacheType.STOCK: self.stock_ttl,
            CacheType.CHART: self.chart_ttl,
            CacheType.MARKET_MOVERS: self.market_movers_ttl,
            CacheType.SENTIMENT: self.sentiment_ttl,
            CacheType.NEWS: self.news_ttl,
        }
        return ttl_map.get(cache_type, self.default_ttl)


# Default cache configuration
DEFAULT_CACHE_CONFIG = CacheConfig()


@dataclass
class CacheMetrics:
    """Cumulative counters for cache performance.

    Attributes:
        hits: Number of cache hits.
        misses: Number of cache misses (including expired entries).
        expirations: Number of entries evicted because their TTL elapsed.
    """

    hits: int = 0
    misses: int = 0
    expirations: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of cache lookups."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Cache hit rate as a fraction between 0 and 1."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def reset(self) -> None:
        """Reset all metrics."""
        self.hits = 0
        self.misses = 0
        self.expirations = 0


@dataclass
class CacheEntry:
    """A stored value with its creation time and TTL."""

    value: Any
    created_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        """Check whether the entry's TTL has elapsed."""
        return now - self.created_at >= self.ttl


class CacheKeyBuilder:
    """Builder for consistent cache key generation."""

    PREFIX = "stockpulse"

    @classmethod
    def stock(cls, symbol: str) -> str:
        """Build cache key for a combined stock payload.

        Args:
            symbol: Stock symbol (e.g., "AAPL").

        Returns:
            Cache key string.
        """
        return f"{cls.PREFIX}:stock:{symbol.upper()}"

    @classmethod
    def chart(cls, symbol: str, interval: str) -> str:
        """Build cache key for an intraday chart series."""
        return f"{cls.PREFIX}:chart:{symbol.upper()}:{interval}"

    @classmethod
    def market_movers(cls) -> str:
        """Build cache key for the market movers snapshot."""
        return f"{cls.PREFIX}:market_movers"

    @classmethod
    def sentiment(cls, text: str, symbol: str | None = None) -> str:
        """Build cache key for a sentiment result.

        Args:
            text: Analyzed text.
            symbol: Optional symbol context the text was analyzed against.

        Returns:
            Cache key string.
        """
        digest = cls._hash_text(text)
        if symbol:
            return f"{cls.PREFIX}:sentiment:{symbol.upper()}:{digest}"
        return f"{cls.PREFIX}:sentiment:{digest}"

    @classmethod
    def news(cls, category: str, count: int) -> str:
        """Build cache key for a batch of generated news."""
        return f"{cls.PREFIX}:news:{category}:{count}"

    @staticmethod
    def _hash_text(text: str) -> str:
        """Create a short stable hash of a text."""
        return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


class TTLCache:
    """In-memory key/value cache with per-entry expiry.

    Operations never raise: missing or expired keys read as None, and keys
    and values are accepted as opaque. All operations are synchronous and
    guarded by a lock so compound read-modify-write sequences stay atomic.

    Example:
        cache = TTLCache(default_ttl=300)
        cache.set(CacheKeyBuilder.stock("AAPL"), payload)
        payload = cache.get(CacheKeyBuilder.stock("AAPL"))

        print(cache.stats()["hit_rate"])
    """

    def __init__(
        self,
        default_ttl: float | None = None,
        config: CacheConfig | None = None,
        stats_interval: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl: TTL used when set() receives none. Defaults to the
                config's default_ttl.
            config: Per-type TTL configuration.
            stats_interval: Seconds between background stats log lines.
            clock: Monotonic time source, injectable for tests.
        """
        self.config = config or DEFAULT_CACHE_CONFIG
        self.default_ttl = float(default_ttl if default_ttl is not None else self.config.default_ttl)
        self.stats_interval = stats_interval
        self.metrics = CacheMetrics()
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._stats_task: asyncio.Task[None] | None = None

    def _lookup(self, key: str) -> CacheEntry | None:
        """Find a live entry, evicting it if expired. Caller holds the lock."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            self.metrics.expirations += 1
            return None
        return entry

    def get(self, key: str) -> Any | None:
        """Get a value from cache.

        Args:
            key: Cache key.

        Returns:
            A copy of the cached value, or None if missing or expired.
        """
        with self._lock:
            entry = self._lookup(key)
            if entry is None:
                self.metrics.misses += 1
                logger.debug("cache_miss", key=key)
                return None

            self.metrics.hits += 1
            logger.debug("cache_hit", key=key)
            return copy.deepcopy(entry.value)

    def set(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        cache_type: CacheType | None = None,
    ) -> bool:
        """Set a value in cache, replacing any existing entry.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: TTL in seconds. If not provided, uses cache_type or default.
            cache_type: Type of cache for TTL lookup.

        Returns:
            True once stored.
        """
        if ttl is None:
            ttl = self.config.get_ttl(cache_type) if cache_type else self.default_ttl

        with self._lock:
            self._entries[key] = CacheEntry(
                value=copy.deepcopy(value),
                created_at=self._clock(),
                ttl=float(ttl),
            )
        logger.debug("cache_set", key=key, ttl=ttl)
        return True

    def delete(self, key: str) -> int:
        """Delete a value from cache.

        Args:
            key: Cache key.

        Returns:
            Number of entries removed (0 or 1).
        """
        with self._lock:
            removed = 1 if self._entries.pop(key, None) is not None else 0
        logger.debug("cache_delete", key=key, deleted=removed)
        return removed

    def flush(self) -> None:
        """Remove every entry. Metrics are kept."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("cache_flushed", removed=count)

    def keys(self) -> list[str]:
        """List keys of live (unexpired) entries."""
        with self._lock:
            return [key for key in list(self._entries) if self._lookup(key) is not None]

    def get_or_set(
        self,
        key: str,
        compute_fn: Callable[[], T],
        ttl: float | None = None,
        cache_type: CacheType | None = None,
    ) -> T:
        """Get a value or compute, store and return it in one atomic step.

        Args:
            key: Cache key.
            compute_fn: Synchronous function producing the value on a miss.
            ttl: TTL in seconds.
            cache_type: Type of cache for TTL lookup.

        Returns:
            Cached or computed value.
        """
        with self._lock:
            cached = self.get(key)
            if cached is not None:
                return cast(T, cached)
            value = compute_fn()
            self.set(key, value, ttl=ttl, cache_type=cache_type)
            return value

    def stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with live key count, hits, misses and hit rate.
        """
        with self._lock:
            live_keys = len(self.keys())
        return {
            "keys": live_keys,
            "hits": self.metrics.hits,
            "misses": self.metrics.misses,
            "hit_rate": round(self.metrics.hit_rate, 4),
        }

    def log_stats(self) -> bool:
        """Log a stats snapshot if the cache holds any entries.

        Returns:
            True if a snapshot was logged.
        """
        snapshot = self.stats()
        if snapshot["keys"] == 0:
            return False
        logger.info(
            "cache_stats",
            keys=snapshot["keys"],
            hits=snapshot["hits"],
            misses=snapshot["misses"],
            hit_rate=f"{snapshot['hit_rate'] * 100:.1f}%",
        )
        return True

    async def _stats_loop(self) -> None:
        """Emit stats snapshots until cancelled."""
        while True:
            await asyncio.sleep(self.stats_interval)
            self.log_stats()

    def start_stats_logging(self) -> asyncio.Task[None]:
        """Start the background stats logger on the running event loop.

        Returns:
            The running task (existing one if already started).
        """
        if self._stats_task is None or self._stats_task.done():
            self._stats_task = asyncio.create_task(self._stats_loop())
        return self._stats_task

    async def stop_stats_logging(self) -> None:
        """Cancel the background stats logger if running."""
        task = self._stats_task
        self._stats_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def __len__(self) -> int:
        return len(self.keys())
