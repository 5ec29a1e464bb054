"""
Catalog reconciler.

Keyed, idempotent upserts of catalog entries plus the administrative
overrides (removal, status marking, status reset).
"""

from datetime import datetime
from typing import Any

from subscription_catalog.context import Clock, SystemClock
from subscription_catalog.domain.models import (
    CatalogEntry,
    EntryStatus,
    PlatformTag,
    Subscription,
)
from subscription_catalog.domain.titles import title_matches
from subscription_catalog.errors import (
    GameNotFoundError,
    ReconciliationConflict,
    SubscriptionNotFoundError,
    UniquenessViolation,
    UnknownTierError,
)
from subscription_catalog.logger import get_logger
from subscription_catalog.storage.base import CatalogStore


class CatalogReconciler:
    """
    Maintains one catalog entry per (game, subscription, platform).

    A reconcile call replaces every mutable field of the entry, so
    calling it twice with the same arguments leaves the store as one
    call would (apart from the verification timestamp).

    Example:
        >>> reconciler = CatalogReconciler(store)
        >>> entry_id = reconciler.reconcile(game_id, sub_id, PlatformTag.PC, "standard")
    """

    def __init__(self, store: CatalogStore, *, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._logger = get_logger(__name__, component="reconciler")

    def reconcile(
        self,
        game_id: str,
        subscription_id: str,
        platform: PlatformTag | str,
        tier_slug: str,
        status: EntryStatus = EntryStatus.AVAILABLE,
        *,
        available_date: datetime | None = None,
        leaving_date: datetime | None = None,
        native_id: str | None = None,
    ) -> str:
        """
        Upsert the entry for (game, subscription, platform).

        Returns:
            str: Id of the inserted or updated entry

        Raises:
            GameNotFoundError: Unknown game
            SubscriptionNotFoundError: Unknown subscription
            UnknownTierError: Tier is not part of the subscription
            ReconciliationConflict: Key collision survived one retry
        """
        platform = PlatformTag(platform)
        status = EntryStatus(status)

        if self._store.get_game(game_id) is None:
            raise GameNotFoundError(f"Game not found: {game_id}")
        subscription = self._store.get_subscription(subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(f"Subscription not found: {subscription_id}")
        if not subscription.has_tier(tier_slug):
            raise UnknownTierError(subscription.slug, tier_slug)

        fields: dict[str, Any] = {
            "tier_slug": tier_slug,
            "status": status,
            "available_date": available_date,
            "leaving_date": leaving_date,
            "native_id": native_id,
            "last_verified_at": self._clock.now(),
        }

        existing = self._store.find_entry(game_id, subscription_id, platform)
        if existing is not None:
            self._store.patch_entry(existing.id, fields)
            self._logger.debug(
                "Updated entry",
                entry_id=existing.id,
                subscription=subscription.slug,
                platform=platform.value,
                status=status.value,
            )
            return existing.id

        entry = CatalogEntry(
            id=self._store.new_id(),
            game_id=game_id,
            subscription_id=subscription_id,
            platform=platform,
            **fields,
        )
        try:
            self._store.insert_entry(entry)
        except UniquenessViolation as first:
            # A concurrent writer inserted the same key; patch the winning row
            winner = self._store.find_entry(game_id, subscription_id, platform)
            if winner is None:
                raise ReconciliationConflict(
                    f"Entry key {entry.key} collided but no winning row was found"
                ) from first
            try:
                self._store.patch_entry(winner.id, fields)
            except UniquenessViolation as second:
                raise ReconciliationConflict(
                    f"Entry key {entry.key} still collides after retry"
                ) from second
            return winner.id

        self._logger.debug(
            "Inserted entry",
            entry_id=entry.id,
            subscription=subscription.slug,
            platform=platform.value,
            status=status.value,
        )
        return entry.id

    def remove_entry(self, entry_id: str) -> bool:
        """Administratively delete an entry. Returns False if it did not exist."""
        removed = self._store.delete_entry(entry_id)
        if removed:
            self._logger.info("Removed entry", entry_id=entry_id)
        return removed

    def mark_leaving_soon(
        self,
        title_query: str,
        *,
        leaving_date: datetime | None = None,
        subscription_slug: str | None = None,
    ) -> int:
        """Mark every entry whose game title contains title_query as leaving soon."""
        return self._override_status(
            title_query,
            EntryStatus.LEAVING_SOON,
            {"leaving_date": leaving_date},
            subscription_slug,
        )

    def mark_coming_soon(
        self,
        title_query: str,
        *,
        available_date: datetime | None = None,
        subscription_slug: str | None = None,
    ) -> int:
        """Mark every entry whose game title contains title_query as coming soon."""
        return self._override_status(
            title_query,
            EntryStatus.COMING_SOON,
            {"available_date": available_date},
            subscription_slug,
        )

    def reset_transitional_statuses(self, *, subscription_slug: str | None = None) -> int:
        """
        Return coming-soon and leaving-soon entries to available.

        Both dates are cleared. Returns the number of entries reset.
        """
        subscription = self._scope(subscription_slug)
        reset = 0
        for status in (EntryStatus.COMING_SOON, EntryStatus.LEAVING_SOON):
            for entry in self._store.entries_by_status(status):
                if subscription and entry.subscription_id != subscription.id:
                    continue
                self._store.patch_entry(
                    entry.id,
                    {
                        "status": EntryStatus.AVAILABLE,
                        "available_date": None,
                        "leaving_date": None,
                    },
                )
                reset += 1

        self._logger.info(
            "Reset transitional statuses", subscription=subscription_slug, count=reset
        )
        return reset

    def _override_status(
        self,
        title_query: str,
        status: EntryStatus,
        dates: dict[str, Any],
        subscription_slug: str | None,
    ) -> int:
        subscription = self._scope(subscription_slug)
        games = [g for g in self._store.list_games() if title_matches(g.title, title_query)]

        updated = 0
        for game in games:
            for entry in self._store.entries_for_game(game.id):
                if subscription and entry.subscription_id != subscription.id:
                    continue
                self._store.patch_entry(entry.id, {"status": status, **dates})
                updated += 1

        self._logger.info(
            "Applied status override",
            query=title_query,
            status=status.value,
            subscription=subscription_slug,
            games=len(games),
            entries=updated,
        )
        return updated

    def _scope(self, subscription_slug: str | None) -> Subscription | None:
        if subscription_slug is None:
            return None
        subscription = self._store.get_subscription_by_slug(subscription_slug)
        if subscription is None:
            raise SubscriptionNotFoundError(f"Subscription not found: {subscription_slug}")
        return subscription
