"""Tests for the IGDB token cache."""

from datetime import timedelta

from subscription_catalog.ingestion.enrichment import TokenCache

from tests.conftest import FixedClock


class TestTokenCache:
    """Tests for TokenCache."""

    def test_empty(self, clock: FixedClock) -> None:
        cache = TokenCache(clock)

        assert cache.get() is None
        assert cache.expires_at is None

    def test_store_applies_safety_margin(self, clock: FixedClock) -> None:
        cache = TokenCache(clock)

        cached = cache.store("abc", expires_in=7200, safety_margin=3600)

        assert cache.get() == "abc"
        assert cached.expires_at == clock.now() + timedelta(seconds=3600)

    def test_expiry(self, clock: FixedClock) -> None:
        """Test that the token disappears once its shortened lifetime passes."""
        cache = TokenCache(clock)
        cache.store("abc", expires_in=7200, safety_margin=3600)

        clock.advance(seconds=3599)
        assert cache.get() == "abc"
        clock.advance(seconds=1)
        assert cache.get() is None

    def test_margin_longer_than_lifetime(self, clock: FixedClock) -> None:
        cache = TokenCache(clock)
        cache.store("abc", expires_in=60, safety_margin=3600)

        assert cache.get() is None

    def test_clear(self, clock: FixedClock) -> None:
        cache = TokenCache(clock)
        cache.store("abc", expires_in=7200)

        cache.clear()

        assert cache.get() is None
