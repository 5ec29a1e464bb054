"""Tests for the provider rate limiter."""

import asyncio
import time

import pytest
from subscription_catalog.ingestion.utils.rate_limiter import (
    RateLimiter,
    RateLimiterConfig,
)


class TestRateLimiterConfig:
    """Tests for RateLimiterConfig validation."""

    def test_defaults(self) -> None:
        config = RateLimiterConfig()

        assert config.requests_per_minute == 60
        assert config.burst_size == 5

    @pytest.mark.parametrize(
        "kwargs",
        [{"requests_per_minute": 0}, {"burst_size": 0}],
    )
    def test_rejects_non_positive_values(self, kwargs: dict[str, int]) -> None:
        with pytest.raises(ValueError):
            RateLimiterConfig(**kwargs)


class TestRateLimiter:
    """Tests for RateLimiter."""

    @pytest.mark.asyncio
    async def test_burst_is_immediate(self) -> None:
        """Requests within the burst do not wait."""
        limiter = RateLimiter(RateLimiterConfig(requests_per_minute=60, burst_size=5))

        start = time.perf_counter()
        waits = [await limiter.acquire() for _ in range(5)]
        elapsed = time.perf_counter() - start

        assert waits == [0.0] * 5
        assert elapsed < 0.5

    @pytest.mark.asyncio
    async def test_throttles_after_burst(self) -> None:
        # 600 per minute refills one token every 0.1s
        limiter = RateLimiter(RateLimiterConfig(requests_per_minute=600, burst_size=2))

        await limiter.acquire()
        await limiter.acquire()

        start = time.perf_counter()
        waited = await limiter.acquire()
        elapsed = time.perf_counter() - start

        assert waited > 0.05
        assert elapsed >= 0.05

    @pytest.mark.asyncio
    async def test_context_manager(self) -> None:
        limiter = RateLimiter(RateLimiterConfig(requests_per_minute=60, burst_size=1))

        async with limiter:
            assert limiter.available_tokens < 1

    @pytest.mark.asyncio
    async def test_token_refill(self) -> None:
        limiter = RateLimiter(RateLimiterConfig(requests_per_minute=600, burst_size=2))

        await limiter.acquire()
        await limiter.acquire()
        await asyncio.sleep(0.15)

        assert limiter.available_tokens >= 1

    @pytest.mark.asyncio
    async def test_refill_is_capped_at_burst(self) -> None:
        limiter = RateLimiter(RateLimiterConfig(requests_per_minute=6000, burst_size=3))

        await asyncio.sleep(0.05)

        assert limiter.available_tokens == 3.0

    @pytest.mark.asyncio
    async def test_limiters_are_independent(self) -> None:
        """A throttled provider does not hold up another provider's limiter."""
        slow = RateLimiter(RateLimiterConfig(requests_per_minute=1, burst_size=1), name="slow")
        fast = RateLimiter(RateLimiterConfig(requests_per_minute=60, burst_size=3), name="fast")
        await slow.acquire()

        blocked = asyncio.create_task(slow.acquire())
        start = time.perf_counter()
        await asyncio.gather(fast.acquire(), fast.acquire(), fast.acquire())
        elapsed = time.perf_counter() - start

        assert elapsed < 0.5
        assert not blocked.done()
        blocked.cancel()
        with pytest.raises(asyncio.CancelledError):
            await blocked
