"""Rate limiting for outbound provider calls and inbound API traffic.

This module implements two limiters:
- IntervalRateLimiter: spaces outbound calls to a quota-limited provider
  by a fixed minimum interval, admitting callers in FIFO order
- ClientRateLimiter: token buckets per client for the public API

Features:
- Injectable clock and sleep for deterministic tests
- Rate limit header generation for HTTP responses
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RateLimitExceeded(Exception):
    """Raised when a client exceeds the inbound rate limit."""

    def __init__(
        self,
        client_id: str,
        limit: int,
        reset_time: float,
        retry_after: float,
    ) -> None:
        self.client_id = client_id
        self.limit = limit
        self.reset_time = reset_time
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for {client_id}. "
            f"Limit: {limit}, retry after {retry_after:.1f}s"
        )


class IntervalRateLimiter:
    """Enforces a minimum delay between consecutive outbound calls.

    Before each call the limiter computes the time since the previous
    admitted call and sleeps for the remainder of the interval. Waiters
    queue on a single lock, so admission is FIFO and applies to the whole
    instance rather than per symbol.

    Example:
        limiter = IntervalRateLimiter(interval=12.0)  # 5 req/min

        # Waits if the previous call started less than 12s ago
        data = await limiter.submit(lambda: client.get(url))
    """

    def __init__(
        self,
        interval: float = 12.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the limiter.

        Args:
            interval: Minimum seconds between the start of two calls.
            clock: Monotonic time source.
            sleep: Coroutine function used to wait.
        """
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None
        self._lock = asyncio.Lock()
        self._waiting = 0
        self._logger = logger.bind(component="interval_rate_limiter")

    @property
    def last_call(self) -> float | None:
        """Clock reading of the most recently admitted call."""
        return self._last_call

    @property
    def pending_requests(self) -> int:
        """Number of callers waiting for admission."""
        return self._waiting

    def time_until_ready(self) -> float:
        """Seconds until the next call would be admitted without waiting."""
        if self._last_call is None:
            return 0.0
        elapsed = self._clock() - self._last_call
        return max(0.0, self.interval - elapsed)

    async def acquire(self) -> float:
        """Wait for admission and record the call time.

        Returns:
            Seconds spent waiting for the interval to elapse.
        """
        self._waiting += 1
        try:
            async with self._lock:
                waited = self.time_until_ready()
                if waited > 0:
                    self._logger.info(
                        "rate_limit_wait",
                        wait_seconds=round(waited, 3),
                        pending=self._waiting - 1,
                    )
                    await self._sleep(waited)
                self._last_call = self._clock()
                return waited
        finally:
            self._waiting -= 1

    async def submit(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run a call once the limiter admits it.

        Args:
            fn: Zero-argument coroutine function performing the call.

        Returns:
            Result of the call.
        """
        await self.acquire()
        return await fn()

    def reset(self) -> None:
        """Forget the last call time (for testing)."""
        self._last_call = None


@dataclass
class RateLimitConfig:
    """Configuration for inbound rate limits.

    Attributes:
        max_requests: Requests allowed per client per window.
        window_seconds: Length of the window in seconds.
    """

    max_requests: int = 100
    window_seconds: int = 900  # 15 minutes


# Default configuration
DEFAULT_RATE_LIMIT_CONFIG = RateLimitConfig()


@dataclass
class TokenBucket:
    """Token bucket for rate limiting.

    Implements the token bucket algorithm where tokens are added
    at a constant rate and consumed by requests.

    Attributes:
        capacity: Maximum number of tokens in the bucket.
        refill_rate: Tokens added per second.
        tokens: Current number of tokens.
        last_refill: Timestamp of last refill.
    """

    capacity: int
    refill_rate: float
    clock: Callable[[], float] = time.monotonic
    tokens: float = field(init=False)
    last_refill: float = field(init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def __post_init__(self) -> None:
        """Initialize tokens to capacity."""
        self.tokens = float(self.capacity)
        self.last_refill = self.clock()

    def _refill(self) -> None:
        """Refill tokens based on elapsed time."""
        now = self.clock()
        elapsed = now - self.last_refill
        tokens_to_add = elapsed * self.refill_rate
        self.tokens = min(self.capacity, self.tokens + tokens_to_add)
        self.last_refill = now

    async def consume(self, tokens: int = 1) -> bool:
        """Try to consume tokens from the bucket.

        Args:
            tokens: Number of tokens to consume.

        Returns:
            True if tokens were consumed, False if insufficient tokens.
        """
        async with self._lock:
            self._refill()
            if self.tokens >= tokens:
                self.tokens -= tokens
                return True
            return False

    @property
    def remaining(self) -> int:
        """Whole tokens currently available."""
        return int(self.tokens)

    @property
    def time_until_refill(self) -> float:
        """Get seconds until at least one token is available."""
        if self.tokens >= 1:
            return 0.0
        tokens_needed = 1 - self.tokens
        return tokens_needed / self.refill_rate


@dataclass
class RateLimitHeaders:
    """Rate limit headers for HTTP responses.

    Attributes:
        limit: The rate limit ceiling.
        remaining: Number of requests remaining.
        reset: Unix timestamp when the limit resets.
        retry_after: Seconds until retry is allowed (when limited).
    """

    limit: int
    remaining: int
    reset: int
    retry_after: int | None = None

    def to_dict(self) -> dict[str, str]:
        """Convert to HTTP headers dict."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }
        if self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class ClientRateLimiter:
    """Per-client token bucket limiter for the public API.

    Example:
        limiter = ClientRateLimiter(RateLimitConfig(max_requests=100))

        try:
            headers = await limiter.check("203.0.113.7")
        except RateLimitExceeded as e:
            return JSONResponse(status_code=429, ...)
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize rate limiter.

        Args:
            config: Rate limit configuration. Uses defaults if not provided.
            clock: Monotonic time source shared by all buckets.
        """
        self.config = config or DEFAULT_RATE_LIMIT_CONFIG
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}

    def _get_bucket(self, client_id: str) -> TokenBucket:
        """Get or create the token bucket for a client."""
        if client_id not in self._buckets:
            self._buckets[client_id] = TokenBucket(
                capacity=self.config.max_requests,
                refill_rate=self.config.max_requests / self.config.window_seconds,
                clock=self._clock,
            )
        return self._buckets[client_id]

    async def check(self, client_id: str) -> RateLimitHeaders:
        """Check if a request is allowed and consume a token.

        Args:
            client_id: Identifier of the caller (e.g. client IP).

        Returns:
            Rate limit headers to include in the response.

        Raises:
            RateLimitExceeded: If the client has no tokens left.
        """
        bucket = self._get_bucket(client_id)
        reset = int(time.time() + self.config.window_seconds)

        if not await bucket.consume():
            logger.warning("rate_limit_exceeded", client_id=client_id)
            raise RateLimitExceeded(
                client_id=client_id,
                limit=self.config.max_requests,
                reset_time=reset,
                retry_after=bucket.time_until_refill,
            )

        return RateLimitHeaders(
            limit=self.config.max_requests,
            remaining=bucket.remaining,
            reset=reset,
        )

    def reset(self) -> None:
        """Reset all buckets (for testing)."""
        self._buckets.clear()
