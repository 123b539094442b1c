"""Resilience patterns for unreliable upstream providers.

This module contains:
- Interval rate limiting for quota-limited outbound calls
- Per-client rate limiting for the public API
- Graceful degradation with an explicit fallback combinator
"""

from stockpulse.resilience.degradation import (
    ComponentHealth,
    ComponentStatus,
    ComponentType,
    DegradationLevel,
    DegradationManager,
    DegradedResponse,
    with_fallback,
)
from stockpulse.resilience.rate_limiter import (
    DEFAULT_RATE_LIMIT_CONFIG,
    ClientRateLimiter,
    IntervalRateLimiter,
    RateLimitConfig,
    RateLimitExceeded,
    RateLimitHeaders,
    TokenBucket,
)

__all__ = [
    # Degradation classes
    "ComponentHealth",
    "ComponentStatus",
    "ComponentType",
    "DegradationLevel",
    "DegradationManager",
    "DegradedResponse",
    # Degradation utilities
    "with_fallback",
    # Rate limiter classes
    "ClientRateLimiter",
    "IntervalRateLimiter",
    "RateLimitConfig",
    "RateLimitExceeded",
    "RateLimitHeaders",
    "TokenBucket",
    # Rate limiter configuration
    "DEFAULT_RATE_LIMIT_CONFIG",
]
