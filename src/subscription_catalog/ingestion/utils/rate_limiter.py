"""
Rate limiter for provider requests.

Token bucket that spaces out calls to one provider. Waiting is an
asyncio sleep, so a throttled provider never blocks another
provider's sync running on the same loop.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from subscription_catalog.logger import get_logger


@dataclass
class RateLimiterConfig:
    """Configuration for rate limiter."""

    requests_per_minute: int = 60
    burst_size: int = 5

    def __post_init__(self) -> None:
        if self.requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")
        if self.burst_size < 1:
            raise ValueError("burst_size must be at least 1")


@dataclass
class RateLimiter:
    """
    Token bucket rate limiter.

    Allows bursts up to burst_size, then throttles to the sustained
    requests_per_minute rate.

    Example:
        >>> limiter = RateLimiter(RateLimiterConfig(requests_per_minute=30), name="ubisoftplus")
        >>> async with limiter:
        ...     await client.get(url)
    """

    config: RateLimiterConfig
    name: str = "default"
    _tokens: float = field(init=False)
    _last_update: float = field(init=False)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)
    _logger: Any = field(init=False)

    def __post_init__(self) -> None:
        self._tokens = float(self.config.burst_size)
        self._last_update = time.monotonic()
        self._logger = get_logger(__name__, component="rate_limiter", limiter=self.name)

    @property
    def _refill_rate(self) -> float:
        """Tokens added per second."""
        return self.config.requests_per_minute / 60.0

    def _refill_tokens(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_update
        self._tokens = min(
            float(self.config.burst_size),
            self._tokens + elapsed * self._refill_rate,
        )
        self._last_update = now

    async def acquire(self) -> float:
        """
        Take one token, sleeping until one is available.

        Returns:
            float: Seconds spent waiting
        """
        async with self._lock:
            self._refill_tokens()

            waited = 0.0
            if self._tokens < 1:
                waited = (1 - self._tokens) / self._refill_rate
                self._logger.debug(
                    "Rate limit reached, waiting",
                    wait_seconds=round(waited, 3),
                    tokens_available=round(self._tokens, 2),
                )
                await asyncio.sleep(waited)
                self._refill_tokens()

            self._tokens -= 1
            return waited

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass

    @property
    def available_tokens(self) -> float:
        """Current available tokens (for monitoring)."""
        self._refill_tokens()
        return self._tokens
