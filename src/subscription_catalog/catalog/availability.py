"""
Availability query engine.

Read-only questions over the catalog: is a game available, can this
user play it with what they hold, what is arriving or leaving soon.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from subscription_catalog.domain.models import (
    CatalogEntry,
    EntryStatus,
    Game,
    PlatformTag,
    Subscription,
    Tier,
    UserSubscription,
)
from subscription_catalog.storage.base import CatalogStore


@dataclass(frozen=True)
class EntryAvailability:
    """A catalog entry with its subscription, tier, and the user's access."""

    entry: CatalogEntry
    subscription: Subscription | None
    tier: Tier | None
    user_has_access: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.entry.model_dump(mode="json"),
            "subscription": self.subscription.slug if self.subscription else None,
            "tier": self.tier.model_dump() if self.tier else None,
            "user_has_access": self.user_has_access,
        }


@dataclass
class AvailabilityResult:
    """Availability of one game, optionally from one user's point of view."""

    available: bool = False
    in_user_subscriptions: bool = False
    entries: list[EntryAvailability] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "available": self.available,
            "in_user_subscriptions": self.in_user_subscriptions,
            "entries": [e.to_dict() for e in self.entries],
        }


@dataclass
class CatalogListing:
    """One (game, subscription) pair in a leaving/coming soon listing."""

    game: Game
    subscription: Subscription
    status: EntryStatus
    tier_slug: str
    platforms: list[PlatformTag]
    date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_id": self.game.id,
            "title": self.game.title,
            "cover_url": self.game.cover_url,
            "subscription": self.subscription.slug,
            "status": self.status.value,
            "tier": self.tier_slug,
            "platforms": [p.value for p in self.platforms],
            "date": self.date.isoformat() if self.date else None,
        }


@dataclass(frozen=True)
class SiteStats:
    games_tracked: int
    catalog_entries: int
    subscriptions: int
    user_subscriptions: int

    def to_dict(self) -> dict[str, int]:
        return {
            "games_tracked": self.games_tracked,
            "catalog_entries": self.catalog_entries,
            "subscriptions": self.subscriptions,
            "user_subscriptions": self.user_subscriptions,
        }


def has_access(subscription: Subscription, held_tier: str, required_tier: str) -> bool:
    """
    Rank comparison within one subscription's tier order.

    Unknown tiers on either side never grant access.
    """
    held_rank = subscription.tier_rank(held_tier)
    required_rank = subscription.tier_rank(required_tier)
    if held_rank is None or required_rank is None:
        return False
    return held_rank >= required_rank


class AvailabilityQueryEngine:
    """
    Read-side queries over games, entries, and user subscriptions.

    Absent data yields empty or zero results, never errors.

    Example:
        >>> engine = AvailabilityQueryEngine(store)
        >>> engine.check_availability(game_id, user_id="user-1").in_user_subscriptions
        True
    """

    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    def check_availability(self, game_id: str, user_id: str | None = None) -> AvailabilityResult:
        entries = self._store.entries_for_game(game_id)
        if not entries:
            return AvailabilityResult()

        held = self._held_by_subscription(user_id)
        subscriptions: dict[str, Subscription | None] = {}

        enriched: list[EntryAvailability] = []
        for entry in entries:
            if entry.subscription_id not in subscriptions:
                subscriptions[entry.subscription_id] = self._store.get_subscription(
                    entry.subscription_id
                )
            subscription = subscriptions[entry.subscription_id]

            user_has_access = False
            if subscription is not None and entry.subscription_id in held:
                user_has_access = has_access(
                    subscription, held[entry.subscription_id].tier_slug, entry.tier_slug
                )

            enriched.append(
                EntryAvailability(
                    entry=entry,
                    subscription=subscription,
                    tier=subscription.tier(entry.tier_slug) if subscription else None,
                    user_has_access=user_has_access,
                )
            )

        return AvailabilityResult(
            available=any(e.entry.status is EntryStatus.AVAILABLE for e in enriched),
            in_user_subscriptions=any(e.user_has_access for e in enriched),
            entries=enriched,
        )

    def count_available_games(self, user_id: str) -> int:
        """Distinct games with an available entry the user can play at their tiers."""
        held = self._held_by_subscription(user_id)
        if not held:
            return 0

        games: set[str] = set()
        for subscription_id, held_sub in held.items():
            subscription = self._store.get_subscription(subscription_id)
            if subscription is None:
                continue
            for entry in self._store.entries_for_subscription(
                subscription_id, EntryStatus.AVAILABLE
            ):
                if has_access(subscription, held_sub.tier_slug, entry.tier_slug):
                    games.add(entry.game_id)
        return len(games)

    def leaving_soon(self, user_id: str | None = None, limit: int = 10) -> list[CatalogListing]:
        """Games leaving soonest first, one row per (game, subscription)."""
        return self._listing(EntryStatus.LEAVING_SOON, "leaving_date", user_id, limit)

    def coming_soon(self, user_id: str | None = None, limit: int = 10) -> list[CatalogListing]:
        """Games arriving soonest first, one row per (game, subscription)."""
        return self._listing(EntryStatus.COMING_SOON, "available_date", user_id, limit)

    def _listing(
        self,
        status: EntryStatus,
        date_field: str,
        user_id: str | None,
        limit: int,
    ) -> list[CatalogListing]:
        entries = self._store.entries_by_status(status)

        if user_id is not None:
            held = self._held_by_subscription(user_id)
            entries = [e for e in entries if e.subscription_id in held]

        groups: dict[tuple[str, str], list[CatalogEntry]] = {}
        for entry in entries:
            groups.setdefault((entry.game_id, entry.subscription_id), []).append(entry)

        listings: list[CatalogListing] = []
        for (game_id, subscription_id), rows in groups.items():
            game = self._store.get_game(game_id)
            subscription = self._store.get_subscription(subscription_id)
            if game is None or subscription is None:
                continue

            dates = [getattr(r, date_field) for r in rows if getattr(r, date_field) is not None]
            # The lowest required tier across platforms
            tier_slug = min(
                (r.tier_slug for r in rows),
                key=lambda slug: subscription.tier_rank(slug) or 0,
            )
            listings.append(
                CatalogListing(
                    game=game,
                    subscription=subscription,
                    status=status,
                    tier_slug=tier_slug,
                    platforms=sorted({r.platform for r in rows}, key=lambda p: p.value),
                    date=min(dates) if dates else None,
                )
            )

        never = datetime.max.replace(tzinfo=timezone.utc)
        listings.sort(key=lambda item: (item.date is None, item.date or never, item.game.title))
        return listings[:limit]

    def search_games(self, query: str, limit: int = 20) -> list[Game]:
        if not query.strip():
            return []
        return self._store.search_games(query, limit=limit)

    def get_game(self, game_id: str) -> Game | None:
        return self._store.get_game(game_id)

    def recently_added(self, limit: int = 20) -> list[Game]:
        """Distinct games behind the most recently verified available entries."""
        entries = sorted(
            self._store.entries_by_status(EntryStatus.AVAILABLE),
            key=lambda e: e.last_verified_at,
            reverse=True,
        )

        seen: set[str] = set()
        games: list[Game] = []
        for entry in entries:
            if entry.game_id in seen:
                continue
            seen.add(entry.game_id)
            game = self._store.get_game(entry.game_id)
            if game is not None:
                games.append(game)
                if len(games) >= limit:
                    break
        return games

    def entries_for_subscription(
        self, subscription_slug: str, status: EntryStatus | None = None
    ) -> list[CatalogEntry]:
        subscription = self._store.get_subscription_by_slug(subscription_slug)
        if subscription is None:
            return []
        return self._store.entries_for_subscription(subscription.id, status)

    def site_stats(self) -> SiteStats:
        return SiteStats(
            games_tracked=len(self._store.list_games()),
            catalog_entries=len(self._store.list_entries()),
            subscriptions=len(self._store.list_subscriptions()),
            user_subscriptions=len(self._store.list_user_subscriptions()),
        )

    def _held_by_subscription(self, user_id: str | None) -> dict[str, UserSubscription]:
        if not user_id:
            return {}
        return {us.subscription_id: us for us in self._store.user_subscriptions(user_id)}
