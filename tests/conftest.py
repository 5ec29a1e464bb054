"""Shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from subscription_catalog.catalog import SubscriptionDirectory
from subscription_catalog.config import IgdbConfig, RetryConfig, Settings
from subscription_catalog.ingestion.utils.rate_limiter import RateLimiter, RateLimiterConfig
from subscription_catalog.storage import InMemoryCatalogStore

NOW = datetime(2025, 3, 2, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = NOW) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> None:
        self._now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryCatalogStore:
    """Store with the four supported subscriptions seeded."""
    store = InMemoryCatalogStore()
    SubscriptionDirectory(store).seed()
    return store


@pytest.fixture
def settings() -> Settings:
    """Settings with instant retries and no IGDB credentials."""
    return Settings(
        igdb=IgdbConfig(client_id=None, client_secret=None),
        retry=RetryConfig(
            max_attempts=2,
            base_delay_seconds=0.0,
            max_delay_seconds=0.0,
        ),
    )


@pytest.fixture
def fast_limiter() -> RateLimiter:
    return RateLimiter(RateLimiterConfig(requests_per_minute=6000, burst_size=100), name="test")
