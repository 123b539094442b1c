"""In-memory caching layer for provider responses.

This module contains:
- TTLCache for process-local caching with per-entry expiry
- CacheKeyBuilder for consistent key generation
- TTL configurations for different data types
- Cache metrics tracking
"""

from stockpulse.cache.manager import (
    DEFAULT_CACHE_CONFIG,
    CacheConfig,
    CacheEntry,
    CacheKeyBuilder,
    CacheMetrics,
    CacheType,
    TTLCache,
)

__all__ = [
    # Core classes
    "CacheConfig",
    "CacheEntry",
    "CacheKeyBuilder",
    "CacheMetrics",
    "CacheType",
    "TTLCache",
    # Configuration
    "DEFAULT_CACHE_CONFIG",
]
