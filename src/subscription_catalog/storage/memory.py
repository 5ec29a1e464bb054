"""
In-memory catalog store.

Keeps records in dictionaries with the unique and secondary indexes
the catalog components rely on. Every public operation runs under a
single re-entrant lock, so single-record writes are atomic across
threads as well as across asyncio tasks.
"""

import threading
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from pydantic import BaseModel
from rapidfuzz import fuzz, process

from subscription_catalog.domain.models import (
    CatalogEntry,
    EntryKey,
    EntryStatus,
    Game,
    PlatformTag,
    Subscription,
    UserSubscription,
)
from subscription_catalog.domain.titles import normalize_title
from subscription_catalog.errors import (
    EntryNotFoundError,
    GameNotFoundError,
    NotFoundError,
    SubscriptionNotFoundError,
    UniquenessViolation,
)
from subscription_catalog.storage.base import CatalogStore

M = TypeVar("M", bound=BaseModel)

# Minimum WRatio score for a game to be returned by search_games
SEARCH_SCORE_CUTOFF = 60.0


def _copy(model: M) -> M:
    return model.model_copy(deep=True)


def _apply(model: M, changes: dict[str, Any]) -> M:
    """Return a validated copy of model with changes applied."""
    return type(model).model_validate({**model.model_dump(), **changes})


def _external_keys(game: Game) -> set[tuple[str, str]]:
    keys = {(family, native_id) for family, native_id in game.external_ids.items()}
    if game.preferred_ref is not None:
        keys.add((game.preferred_ref.source, game.preferred_ref.id))
    return keys


def _platform_value(platform: PlatformTag | str) -> str:
    return platform.value if isinstance(platform, PlatformTag) else str(platform)


class InMemoryCatalogStore(CatalogStore):
    """
    Dictionary-backed implementation of CatalogStore.

    Example:
        >>> store = InMemoryCatalogStore()
        >>> store.get_subscription_by_slug("gamepass") is None
        True
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

        self._games: dict[str, Game] = {}
        self._game_external: dict[tuple[str, str], str] = {}
        self._game_titles: dict[str, dict[str, None]] = {}

        self._subscriptions: dict[str, Subscription] = {}
        self._subscription_slugs: dict[str, str] = {}

        self._entries: dict[str, CatalogEntry] = {}
        self._entry_keys: dict[EntryKey, str] = {}
        self._entries_by_game: dict[str, dict[str, None]] = {}

        self._user_subs: dict[str, UserSubscription] = {}
        self._user_sub_keys: dict[tuple[str, str], str] = {}

    # Games

    def get_game(self, game_id: str) -> Game | None:
        with self._lock:
            game = self._games.get(game_id)
            return _copy(game) if game else None

    def find_game_by_external_id(self, family: str, native_id: str) -> Game | None:
        with self._lock:
            game_id = self._game_external.get((family, native_id))
            return self.get_game(game_id) if game_id else None

    def find_games_by_title(self, normalized_title: str) -> list[Game]:
        with self._lock:
            ids = self._game_titles.get(normalized_title, {})
            return [_copy(self._games[game_id]) for game_id in ids]

    def search_games(self, query: str, *, limit: int = 20) -> list[Game]:
        needle = normalize_title(query)
        if not needle:
            return []
        with self._lock:
            choices = {game_id: normalize_title(g.title) for game_id, g in self._games.items()}
            matches = process.extract(
                needle,
                choices,
                scorer=fuzz.WRatio,
                limit=limit,
                score_cutoff=SEARCH_SCORE_CUTOFF,
            )
            return [_copy(self._games[game_id]) for _, _, game_id in matches]

    def list_games(self) -> list[Game]:
        with self._lock:
            return [_copy(g) for g in self._games.values()]

    def insert_game(self, game: Game) -> Game:
        with self._lock:
            if game.id in self._games:
                raise UniquenessViolation(f"Game id already exists: {game.id}", key=(game.id,))
            self._check_external_keys(game)
            self._index_game(game)
            return _copy(game)

    def patch_game(self, game_id: str, changes: dict[str, Any]) -> Game:
        with self._lock:
            current = self._games.get(game_id)
            if current is None:
                raise GameNotFoundError(f"Game not found: {game_id}")
            updated = _apply(current, changes)
            self._check_external_keys(updated)
            self._unindex_game(current)
            self._index_game(updated)
            return _copy(updated)

    def delete_game(self, game_id: str) -> bool:
        with self._lock:
            current = self._games.get(game_id)
            if current is None:
                return False
            self._unindex_game(current)
            return True

    def _check_external_keys(self, game: Game) -> None:
        for key in _external_keys(game):
            owner = self._game_external.get(key)
            if owner is not None and owner != game.id:
                raise UniquenessViolation(
                    f"External id {key[0]}:{key[1]} already belongs to game {owner}",
                    key=key,
                )

    def _index_game(self, game: Game) -> None:
        self._games[game.id] = game
        for key in _external_keys(game):
            self._game_external[key] = game.id
        self._game_titles.setdefault(normalize_title(game.title), {})[game.id] = None

    def _unindex_game(self, game: Game) -> None:
        self._games.pop(game.id, None)
        for key in _external_keys(game):
            self._game_external.pop(key, None)
        title_key = normalize_title(game.title)
        ids = self._game_titles.get(title_key, {})
        ids.pop(game.id, None)
        if not ids:
            self._game_titles.pop(title_key, None)

    # Subscriptions

    def get_subscription(self, subscription_id: str) -> Subscription | None:
        with self._lock:
            sub = self._subscriptions.get(subscription_id)
            return _copy(sub) if sub else None

    def get_subscription_by_slug(self, slug: str) -> Subscription | None:
        with self._lock:
            sub_id = self._subscription_slugs.get(slug)
            return self.get_subscription(sub_id) if sub_id else None

    def list_subscriptions(self) -> list[Subscription]:
        with self._lock:
            return [_copy(s) for s in self._subscriptions.values()]

    def insert_subscription(self, subscription: Subscription) -> Subscription:
        with self._lock:
            if subscription.slug in self._subscription_slugs:
                raise UniquenessViolation(
                    f"Subscription slug already exists: {subscription.slug}",
                    key=(subscription.slug,),
                )
            self._subscriptions[subscription.id] = subscription
            self._subscription_slugs[subscription.slug] = subscription.id
            return _copy(subscription)

    def patch_subscription(self, subscription_id: str, changes: dict[str, Any]) -> Subscription:
        with self._lock:
            current = self._subscriptions.get(subscription_id)
            if current is None:
                raise SubscriptionNotFoundError(f"Subscription not found: {subscription_id}")
            updated = _apply(current, changes)
            owner = self._subscription_slugs.get(updated.slug)
            if owner is not None and owner != subscription_id:
                raise UniquenessViolation(
                    f"Subscription slug already exists: {updated.slug}", key=(updated.slug,)
                )
            self._subscription_slugs.pop(current.slug, None)
            self._subscriptions[subscription_id] = updated
            self._subscription_slugs[updated.slug] = subscription_id
            return _copy(updated)

    # Catalog entries

    def get_entry(self, entry_id: str) -> CatalogEntry | None:
        with self._lock:
            entry = self._entries.get(entry_id)
            return _copy(entry) if entry else None

    def find_entry(
        self, game_id: str, subscription_id: str, platform: PlatformTag | str
    ) -> CatalogEntry | None:
        with self._lock:
            entry_id = self._entry_keys.get((game_id, subscription_id, _platform_value(platform)))
            return self.get_entry(entry_id) if entry_id else None

    def entries_for_game(self, game_id: str) -> list[CatalogEntry]:
        with self._lock:
            ids = self._entries_by_game.get(game_id, {})
            return [_copy(self._entries[entry_id]) for entry_id in ids]

    def entries_for_subscription(
        self, subscription_id: str, status: EntryStatus | None = None
    ) -> list[CatalogEntry]:
        with self._lock:
            return self._select(
                e
                for e in self._entries.values()
                if e.subscription_id == subscription_id and (status is None or e.status == status)
            )

    def entries_by_status(self, status: EntryStatus) -> list[CatalogEntry]:
        with self._lock:
            return self._select(e for e in self._entries.values() if e.status == status)

    def list_entries(self) -> list[CatalogEntry]:
        with self._lock:
            return self._select(self._entries.values())

    def insert_entry(self, entry: CatalogEntry) -> CatalogEntry:
        with self._lock:
            if entry.id in self._entries:
                raise UniquenessViolation(f"Entry id already exists: {entry.id}", key=(entry.id,))
            if entry.key in self._entry_keys:
                raise UniquenessViolation(
                    f"Catalog entry already exists for key {entry.key}", key=entry.key
                )
            self._index_entry(entry)
            return _copy(entry)

    def patch_entry(self, entry_id: str, changes: dict[str, Any]) -> CatalogEntry:
        with self._lock:
            current = self._entries.get(entry_id)
            if current is None:
                raise EntryNotFoundError(f"Catalog entry not found: {entry_id}")
            return self._replace_entry(current, changes)

    def patch_entry_if(
        self,
        entry_id: str,
        changes: dict[str, Any],
        predicate: Callable[[CatalogEntry], bool],
    ) -> CatalogEntry | None:
        with self._lock:
            current = self._entries.get(entry_id)
            if current is None or not predicate(_copy(current)):
                return None
            return self._replace_entry(current, changes)

    def delete_entry(self, entry_id: str) -> bool:
        with self._lock:
            current = self._entries.get(entry_id)
            if current is None:
                return False
            self._unindex_entry(current)
            return True

    def _select(self, entries: Iterable[CatalogEntry]) -> list[CatalogEntry]:
        return [_copy(e) for e in entries]

    def _replace_entry(self, current: CatalogEntry, changes: dict[str, Any]) -> CatalogEntry:
        updated = _apply(current, changes)
        owner = self._entry_keys.get(updated.key)
        if owner is not None and owner != current.id:
            raise UniquenessViolation(
                f"Catalog entry already exists for key {updated.key}", key=updated.key
            )
        self._unindex_entry(current)
        self._index_entry(updated)
        return _copy(updated)

    def _index_entry(self, entry: CatalogEntry) -> None:
        self._entries[entry.id] = entry
        self._entry_keys[entry.key] = entry.id
        self._entries_by_game.setdefault(entry.game_id, {})[entry.id] = None

    def _unindex_entry(self, entry: CatalogEntry) -> None:
        self._entries.pop(entry.id, None)
        self._entry_keys.pop(entry.key, None)
        ids = self._entries_by_game.get(entry.game_id, {})
        ids.pop(entry.id, None)
        if not ids:
            self._entries_by_game.pop(entry.game_id, None)

    # User subscriptions

    def user_subscriptions(self, user_id: str) -> list[UserSubscription]:
        with self._lock:
            return [_copy(us) for us in self._user_subs.values() if us.user_id == user_id]

    def find_user_subscription(
        self, user_id: str, subscription_id: str
    ) -> UserSubscription | None:
        with self._lock:
            held_id = self._user_sub_keys.get((user_id, subscription_id))
            return _copy(self._user_subs[held_id]) if held_id else None

    def list_user_subscriptions(self) -> list[UserSubscription]:
        with self._lock:
            return [_copy(us) for us in self._user_subs.values()]

    def insert_user_subscription(self, held: UserSubscription) -> UserSubscription:
        with self._lock:
            key = (held.user_id, held.subscription_id)
            if key in self._user_sub_keys:
                raise UniquenessViolation(
                    f"User {held.user_id} already holds subscription {held.subscription_id}",
                    key=key,
                )
            self._user_subs[held.id] = held
            self._user_sub_keys[key] = held.id
            return _copy(held)

    def patch_user_subscription(self, held_id: str, changes: dict[str, Any]) -> UserSubscription:
        with self._lock:
            current = self._user_subs.get(held_id)
            if current is None:
                raise NotFoundError(f"User subscription not found: {held_id}")
            updated = _apply(current, changes)
            key = (updated.user_id, updated.subscription_id)
            owner = self._user_sub_keys.get(key)
            if owner is not None and owner != held_id:
                raise UniquenessViolation(f"Duplicate user subscription {key}", key=key)
            self._user_sub_keys.pop((current.user_id, current.subscription_id), None)
            self._user_subs[held_id] = updated
            self._user_sub_keys[key] = held_id
            return _copy(updated)

    def delete_user_subscription(self, held_id: str) -> bool:
        with self._lock:
            current = self._user_subs.pop(held_id, None)
            if current is None:
                return False
            self._user_sub_keys.pop((current.user_id, current.subscription_id), None)
            return True

    # Documents

    def to_document(self) -> dict[str, list[dict[str, Any]]]:
        """Export every record as JSON-compatible dictionaries."""
        with self._lock:
            return {
                "subscriptions": [s.model_dump(mode="json") for s in self._subscriptions.values()],
                "games": [g.model_dump(mode="json") for g in self._games.values()],
                "catalog_entries": [e.model_dump(mode="json") for e in self._entries.values()],
                "user_subscriptions": [
                    us.model_dump(mode="json") for us in self._user_subs.values()
                ],
            }

    @classmethod
    def from_document(cls, document: dict[str, list[dict[str, Any]]]) -> "InMemoryCatalogStore":
        """Rebuild a store (and its indexes) from an exported document."""
        store = cls()
        for raw in document.get("subscriptions", []):
            store.insert_subscription(Subscription.model_validate(raw))
        for raw in document.get("games", []):
            store.insert_game(Game.model_validate(raw))
        for raw in document.get("catalog_entries", []):
            store.insert_entry(CatalogEntry.model_validate(raw))
        for raw in document.get("user_subscriptions", []):
            store.insert_user_subscription(UserSubscription.model_validate(raw))
        return store
