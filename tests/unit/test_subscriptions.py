"""Tests for the subscription directory."""

import pytest
from subscription_catalog.catalog import SubscriptionDirectory
from subscription_catalog.domain.models import Tier
from subscription_catalog.errors import SubscriptionNotFoundError, UnknownTierError
from subscription_catalog.storage import InMemoryCatalogStore


class TestSeeding:
    """Tests for seeding the supported subscriptions."""

    def test_seed_is_idempotent(self) -> None:
        store = InMemoryCatalogStore()
        directory = SubscriptionDirectory(store)

        first = directory.seed()
        second = directory.seed()

        assert (first.status, first.count) == ("seeded", 4)
        assert (second.status, second.count) == ("already_seeded", 0)
        assert {s.slug for s in directory.list_subscriptions()} == {
            "gamepass",
            "psplus",
            "eaplay",
            "ubisoftplus",
        }

    def test_seeded_tiers(self, store: InMemoryCatalogStore) -> None:
        gamepass = SubscriptionDirectory(store).require("gamepass")
        assert [(t.slug, t.rank) for t in gamepass.tiers] == [
            ("core", 1),
            ("standard", 2),
            ("ultimate", 3),
        ]

    def test_require_unknown(self, store: InMemoryCatalogStore) -> None:
        with pytest.raises(SubscriptionNotFoundError):
            SubscriptionDirectory(store).require("netflix")


class TestTiers:
    def test_update_tiers(self, store: InMemoryCatalogStore) -> None:
        directory = SubscriptionDirectory(store)

        updated = directory.update_tiers(
            "eaplay",
            [
                Tier(slug="standard", name="Standard", rank=1),
                {"slug": "pro", "name": "Pro", "rank": 5},
            ],
        )

        assert updated.tier_rank("pro") == 5

    def test_update_tiers_validates_order(self, store: InMemoryCatalogStore) -> None:
        directory = SubscriptionDirectory(store)

        with pytest.raises(ValueError):
            directory.update_tiers(
                "eaplay",
                [
                    {"slug": "pro", "name": "Pro", "rank": 2},
                    {"slug": "std", "name": "Std", "rank": 1},
                ],
            )
        assert directory.require("eaplay").tier_rank("pro") == 2


class TestUserSubscriptions:
    """Tests for held subscriptions."""

    def test_add_is_an_upsert(self, store: InMemoryCatalogStore) -> None:
        """Test that re-adding a subscription changes the tier in place."""
        directory = SubscriptionDirectory(store)

        first = directory.add_user_subscription("user-1", "gamepass", "core")
        second = directory.add_user_subscription("user-1", "gamepass", "ultimate")

        assert first.id == second.id
        held = directory.user_subscriptions("user-1")
        assert len(held) == 1
        assert held[0].tier.slug == "ultimate"
        assert held[0].to_dict()["tier_rank"] == 3

    def test_unknown_tier(self, store: InMemoryCatalogStore) -> None:
        with pytest.raises(UnknownTierError):
            SubscriptionDirectory(store).add_user_subscription("user-1", "gamepass", "pro")

    def test_unknown_subscription(self, store: InMemoryCatalogStore) -> None:
        with pytest.raises(SubscriptionNotFoundError):
            SubscriptionDirectory(store).add_user_subscription("user-1", "netflix", "basic")

    def test_remove(self, store: InMemoryCatalogStore) -> None:
        directory = SubscriptionDirectory(store)
        directory.add_user_subscription("user-1", "psplus", "extra")

        assert directory.remove_user_subscription("user-1", "psplus") is True
        assert directory.remove_user_subscription("user-1", "psplus") is False
        assert directory.remove_user_subscription("user-1", "netflix") is False
        assert directory.user_subscriptions("user-1") == []
