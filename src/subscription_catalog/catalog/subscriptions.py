"""
Subscription directory.

Seeds the supported subscriptions, resolves them by slug, and records
which subscriptions (and tiers) a user holds.
"""

from dataclasses import dataclass
from typing import Any

from subscription_catalog.domain.models import Subscription, Tier, UserSubscription
from subscription_catalog.domain.seeds import SUBSCRIPTION_SEEDS
from subscription_catalog.errors import (
    SubscriptionNotFoundError,
    UniquenessViolation,
    UnknownTierError,
)
from subscription_catalog.logger import get_logger
from subscription_catalog.storage.base import CatalogStore


@dataclass(frozen=True)
class SeedResult:
    """Outcome of seeding the subscription set."""

    status: str  # "seeded" or "already_seeded"
    count: int


@dataclass(frozen=True)
class HeldSubscription:
    """A user's subscription joined with its reference data."""

    held: UserSubscription
    subscription: Subscription
    tier: Tier

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.held.id,
            "user_id": self.held.user_id,
            "subscription": self.subscription.slug,
            "subscription_name": self.subscription.name,
            "tier": self.tier.slug,
            "tier_name": self.tier.name,
            "tier_rank": self.tier.rank,
        }


class SubscriptionDirectory:
    """
    Reference-data operations for subscriptions.

    Example:
        >>> directory = SubscriptionDirectory(store)
        >>> directory.seed()
        SeedResult(status='seeded', count=4)
        >>> directory.add_user_subscription("user-1", "gamepass", "ultimate")
    """

    def __init__(
        self,
        store: CatalogStore,
        *,
        seeds: list[dict[str, Any]] | None = None,
    ) -> None:
        self._store = store
        self._seeds = seeds if seeds is not None else SUBSCRIPTION_SEEDS
        self._logger = get_logger(__name__, component="subscriptions")

    def seed(self) -> SeedResult:
        """
        Insert every seed subscription that is not present yet.

        Safe to call repeatedly; existing subscriptions are left untouched.
        """
        inserted = 0
        for seed in self._seeds:
            if self._store.get_subscription_by_slug(seed["slug"]) is not None:
                continue
            subscription = Subscription.model_validate({"id": self._store.new_id(), **seed})
            try:
                self._store.insert_subscription(subscription)
            except UniquenessViolation:
                # Seeded concurrently
                continue
            inserted += 1

        status = "seeded" if inserted else "already_seeded"
        self._logger.info("Seeded subscriptions", status=status, count=inserted)
        return SeedResult(status=status, count=inserted)

    def get_by_slug(self, slug: str) -> Subscription | None:
        return self._store.get_subscription_by_slug(slug)

    def require(self, slug: str) -> Subscription:
        """
        Get a subscription by slug.

        Raises:
            SubscriptionNotFoundError: If no subscription has this slug
        """
        subscription = self._store.get_subscription_by_slug(slug)
        if subscription is None:
            raise SubscriptionNotFoundError(f"Subscription not found: {slug}")
        return subscription

    def list_subscriptions(self) -> list[Subscription]:
        return self._store.list_subscriptions()

    def update_tiers(self, slug: str, tiers: list[Tier | dict[str, Any]]) -> Subscription:
        """
        Replace a subscription's tier list.

        The new list is validated like any subscription (unique slugs,
        strictly increasing ranks).
        """
        subscription = self.require(slug)
        updated = self._store.patch_subscription(
            subscription.id,
            {"tiers": [t.model_dump() if isinstance(t, Tier) else t for t in tiers]},
        )
        self._logger.info(
            "Updated subscription tiers",
            subscription=slug,
            tiers=[t.slug for t in updated.tiers],
        )
        return updated

    def add_user_subscription(
        self, user_id: str, subscription_slug: str, tier_slug: str
    ) -> UserSubscription:
        """
        Record that a user holds a subscription at a tier.

        Updates the tier when the user already holds the subscription.

        Raises:
            SubscriptionNotFoundError: Unknown subscription slug
            UnknownTierError: Tier is not part of the subscription
        """
        subscription = self.require(subscription_slug)
        if not subscription.has_tier(tier_slug):
            raise UnknownTierError(subscription_slug, tier_slug)

        existing = self._store.find_user_subscription(user_id, subscription.id)
        if existing is not None:
            return self._store.patch_user_subscription(existing.id, {"tier_slug": tier_slug})

        held = UserSubscription(
            id=self._store.new_id(),
            user_id=user_id,
            subscription_id=subscription.id,
            tier_slug=tier_slug,
        )
        try:
            return self._store.insert_user_subscription(held)
        except UniquenessViolation:
            winner = self._store.find_user_subscription(user_id, subscription.id)
            if winner is None:
                raise
            return self._store.patch_user_subscription(winner.id, {"tier_slug": tier_slug})

    def remove_user_subscription(self, user_id: str, subscription_slug: str) -> bool:
        """Remove a held subscription. Returns False when the user did not hold it."""
        subscription = self._store.get_subscription_by_slug(subscription_slug)
        if subscription is None:
            return False
        held = self._store.find_user_subscription(user_id, subscription.id)
        if held is None:
            return False
        return self._store.delete_user_subscription(held.id)

    def user_subscriptions(self, user_id: str) -> list[HeldSubscription]:
        """
        List the subscriptions a user holds with their tier details.

        Rows whose subscription or tier no longer exists are skipped.
        """
        result: list[HeldSubscription] = []
        for held in self._store.user_subscriptions(user_id):
            subscription = self._store.get_subscription(held.subscription_id)
            if subscription is None:
                continue
            tier = subscription.tier(held.tier_slug)
            if tier is None:
                continue
            result.append(HeldSubscription(held=held, subscription=subscription, tier=tier))
        return result
