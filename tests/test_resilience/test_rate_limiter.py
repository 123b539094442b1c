"""Tests for outbound and inbound rate limiting."""

import asyncio

import pytest

from stockpulse.resilience.rate_limiter import (
    ClientRateLimiter,
    IntervalRateLimiter,
    RateLimitConfig,
    RateLimitExceeded,
    RateLimitHeaders,
    TokenBucket,
)


class FakeClock:
    """Clock advanced by the fake sleep."""

    def __init__(self, start: float = 500.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> IntervalRateLimiter:
    """Create an interval limiter with a 12 second interval."""
    return IntervalRateLimiter(interval=12.0, clock=clock, sleep=clock.sleep)


class TestIntervalRateLimiter:
    """Tests for IntervalRateLimiter."""

    def test_negative_interval_rejected(self) -> None:
        """Test negative intervals are invalid."""
        with pytest.raises(ValueError):
            IntervalRateLimiter(interval=-1)

    @pytest.mark.asyncio
    async def test_first_call_not_delayed(self, limiter: IntervalRateLimiter, clock: FakeClock) -> None:
        """Test the first call is admitted immediately."""
        waited = await limiter.acquire()
        assert waited == 0.0
        assert clock.sleeps == []
        assert limiter.last_call == 500.0

    @pytest.mark.asyncio
    async def test_second_call_waits_remaining_interval(
        self, limiter: IntervalRateLimiter, clock: FakeClock
    ) -> None:
        """Test a call 4 seconds after the previous one waits 8 seconds."""
        await limiter.acquire()
        clock.now += 4.0

        waited = await limiter.acquire()

        assert waited == pytest.approx(8.0)
        assert clock.sleeps == [pytest.approx(8.0)]

    @pytest.mark.asyncio
    async def test_no_wait_after_interval_elapsed(
        self, limiter: IntervalRateLimiter, clock: FakeClock
    ) -> None:
        """Test no wait once the interval has passed."""
        await limiter.acquire()
        clock.now += 30.0
        assert limiter.time_until_ready() == 0.0
        assert await limiter.acquire() == 0.0

    @pytest.mark.asyncio
    async def test_concurrent_calls_are_spaced(
        self, limiter: IntervalRateLimiter, clock: FakeClock
    ) -> None:
        """Test concurrent calls start at least one interval apart."""
        starts: list[float] = []

        async def call() -> None:
            starts.append(clock())

        await asyncio.gather(*(limiter.submit(call) for _ in range(4)))

        assert len(starts) == 4
        for earlier, later in zip(starts, starts[1:]):
            assert later - earlier >= 12.0

    @pytest.mark.asyncio
    async def test_fifo_admission(self, limiter: IntervalRateLimiter) -> None:
        """Test callers are admitted in the order they arrived."""
        order: list[int] = []

        def make_call(i: int):
            async def call() -> int:
                order.append(i)
                return i

            return call

        results = await asyncio.gather(*(limiter.submit(make_call(i)) for i in range(5)))

        assert order == [0, 1, 2, 3, 4]
        assert results == [0, 1, 2, 3, 4]
        assert limiter.pending_requests == 0

    @pytest.mark.asyncio
    async def test_submit_propagates_errors(self, limiter: IntervalRateLimiter) -> None:
        """Test failures of the wrapped call reach the caller."""

        async def failing() -> None:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await limiter.submit(failing)
        assert limiter.last_call is not None

    @pytest.mark.asyncio
    async def test_reset(self, limiter: IntervalRateLimiter) -> None:
        """Test reset forgets the last call."""
        await limiter.acquire()
        limiter.reset()
        assert limiter.last_call is None
        assert limiter.time_until_ready() == 0.0

    @pytest.mark.asyncio
    async def test_zero_interval_never_waits(self, clock: FakeClock) -> None:
        """Test a zero interval disables spacing."""
        limiter = IntervalRateLimiter(interval=0, clock=clock, sleep=clock.sleep)
        for _ in range(3):
            await limiter.acquire()
        assert clock.sleeps == []


class TestTokenBucket:
    """Tests for TokenBucket."""

    @pytest.mark.asyncio
    async def test_consume_until_empty(self, clock: FakeClock) -> None:
        """Test tokens run out after capacity requests."""
        bucket = TokenBucket(capacity=2, refill_rate=1.0, clock=clock)
        assert await bucket.consume() is True
        assert await bucket.consume() is True
        assert await bucket.consume() is False
        assert bucket.remaining == 0

    @pytest.mark.asyncio
    async def test_refill(self, clock: FakeClock) -> None:
        """Test tokens are replenished over time."""
        bucket = TokenBucket(capacity=1, refill_rate=0.5, clock=clock)
        await bucket.consume()
        assert bucket.time_until_refill == pytest.approx(2.0)

        clock.now += 2.0
        assert await bucket.consume() is True

    @pytest.mark.asyncio
    async def test_refill_capped_at_capacity(self, clock: FakeClock) -> None:
        """Test tokens never exceed capacity."""
        bucket = TokenBucket(capacity=3, refill_rate=10.0, clock=clock)
        clock.now += 100
        await bucket.consume()
        assert bucket.remaining == 2


class TestRateLimitHeaders:
    """Tests for RateLimitHeaders."""

    def test_to_dict(self) -> None:
        """Test header conversion."""
        headers = RateLimitHeaders(limit=100, remaining=99, reset=1700000000)
        assert headers.to_dict() == {
            "X-RateLimit-Limit": "100",
            "X-RateLimit-Remaining": "99",
            "X-RateLimit-Reset": "1700000000",
        }

    def test_to_dict_with_retry_after(self) -> None:
        """Test Retry-After is included when set."""
        headers = RateLimitHeaders(limit=1, remaining=0, reset=0, retry_after=30)
        assert headers.to_dict()["Retry-After"] == "30"


class TestClientRateLimiter:
    """Tests for ClientRateLimiter."""

    @pytest.mark.asyncio
    async def test_allows_within_limit(self, clock: FakeClock) -> None:
        """Test requests within the limit are allowed."""
        limiter = ClientRateLimiter(RateLimitConfig(max_requests=3, window_seconds=60), clock=clock)
        headers = await limiter.check("10.0.0.1")
        assert headers.limit == 3
        assert headers.remaining == 2

    @pytest.mark.asyncio
    async def test_rejects_over_limit(self, clock: FakeClock) -> None:
        """Test the request after the limit raises."""
        limiter = ClientRateLimiter(RateLimitConfig(max_requests=2, window_seconds=60), clock=clock)
        await limiter.check("10.0.0.1")
        await limiter.check("10.0.0.1")

        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter.check("10.0.0.1")

        assert exc_info.value.limit == 2
        assert exc_info.value.retry_after == pytest.approx(30.0)

    @pytest.mark.asyncio
    async def test_clients_are_independent(self, clock: FakeClock) -> None:
        """Test each client has its own bucket."""
        limiter = ClientRateLimiter(RateLimitConfig(max_requests=1, window_seconds=60), clock=clock)
        await limiter.check("10.0.0.1")
        headers = await limiter.check("10.0.0.2")
        assert headers.remaining == 0

    @pytest.mark.asyncio
    async def test_reset(self, clock: FakeClock) -> None:
        """Test reset restores every bucket."""
        limiter = ClientRateLimiter(RateLimitConfig(max_requests=1, window_seconds=60), clock=clock)
        await limiter.check("10.0.0.1")
        limiter.reset()
        await limiter.check("10.0.0.1")
