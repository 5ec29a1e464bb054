"""Tests for domain models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError
from subscription_catalog.domain.models import (
    CatalogEntry,
    EntryStatus,
    PlatformTag,
    ProviderGameRecord,
    Subscription,
    Tier,
)


def _tiers(*ranks: tuple[str, int]) -> list[Tier]:
    return [Tier(slug=slug, name=slug.title(), rank=rank) for slug, rank in ranks]


class TestSubscription:
    """Tests for Subscription tier ordering."""

    def test_tier_lookup(self) -> None:
        """Test tier and rank lookups by slug."""
        sub = Subscription(
            id="s1",
            slug="gamepass",
            name="Xbox Game Pass",
            color="#107C10",
            tiers=_tiers(("core", 1), ("standard", 2), ("ultimate", 3)),
        )

        assert sub.tier_rank("ultimate") == 3
        assert sub.tier_rank("missing") is None
        assert sub.has_tier("core")
        assert not sub.has_tier("pro")

    def test_ranks_must_increase(self) -> None:
        """Test that out-of-order ranks are rejected."""
        with pytest.raises(ValidationError, match="strictly increase"):
            Subscription(
                id="s1",
                slug="x",
                name="X",
                color="#000",
                tiers=_tiers(("a", 2), ("b", 1)),
            )

    def test_duplicate_tier_slugs(self) -> None:
        """Test that duplicate tier slugs are rejected."""
        with pytest.raises(ValidationError, match="Duplicate tier slugs"):
            Subscription(
                id="s1",
                slug="x",
                name="X",
                color="#000",
                tiers=_tiers(("a", 1), ("a", 2)),
            )

    def test_at_least_one_tier(self) -> None:
        with pytest.raises(ValidationError):
            Subscription(id="s1", slug="x", name="X", color="#000", tiers=[])


class TestCatalogEntry:
    """Tests for CatalogEntry."""

    def test_natural_key(self) -> None:
        """Test the (game, subscription, platform) key."""
        entry = CatalogEntry(
            id="e1",
            game_id="g1",
            subscription_id="s1",
            tier_slug="standard",
            platform=PlatformTag.PC,
        )

        assert entry.key == ("g1", "s1", "pc")
        assert entry.status is EntryStatus.AVAILABLE

    def test_naive_dates_are_utc(self) -> None:
        entry = CatalogEntry(
            id="e1",
            game_id="g1",
            subscription_id="s1",
            tier_slug="standard",
            platform=PlatformTag.PC,
            leaving_date=datetime(2025, 3, 5),
            available_date=datetime(2025, 3, 1, 9, tzinfo=timezone(timedelta(hours=2))),
        )

        assert entry.leaving_date == datetime(2025, 3, 5, tzinfo=timezone.utc)
        # Aware values keep their offset
        assert entry.available_date is not None
        assert entry.available_date.utcoffset() == timedelta(hours=2)

    def test_transitional_statuses(self) -> None:
        assert not EntryStatus.AVAILABLE.is_transitional
        assert EntryStatus.COMING_SOON.is_transitional
        assert EntryStatus.LEAVING_SOON.is_transitional


class TestProviderGameRecord:
    """Tests for normalized provider records."""

    def test_title_is_stripped(self) -> None:
        record = ProviderGameRecord(
            title="  Halo Infinite ",
            id_family="microsoft",
            platforms=frozenset({PlatformTag.PC}),
        )
        assert record.title == "Halo Infinite"

    def test_blank_title_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProviderGameRecord(
                title="   ",
                id_family="microsoft",
                platforms=frozenset({PlatformTag.PC}),
            )

    def test_platforms_required(self) -> None:
        """Test that a record must name at least one platform."""
        with pytest.raises(ValidationError):
            ProviderGameRecord(title="Halo", id_family="microsoft", platforms=frozenset())

    def test_records_are_immutable(self) -> None:
        record = ProviderGameRecord(
            title="Halo",
            id_family="microsoft",
            platforms=frozenset({PlatformTag.CONSOLE}),
        )
        with pytest.raises(ValidationError):
            record.title = "Other"  # type: ignore[misc]

    def test_naive_listing_dates_are_utc(self) -> None:
        record = ProviderGameRecord(
            title="Hades",
            id_family="microsoft",
            platforms=frozenset({PlatformTag.PC}),
            leaving_date=datetime(2025, 3, 5),
        )

        assert record.leaving_date is not None
        assert record.leaving_date.tzinfo is timezone.utc
