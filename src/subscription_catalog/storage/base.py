"""
Catalog store contract.

The catalog components talk to a durable keyed-record store through
this interface: point lookups, secondary-index lookups, status scans,
and atomic single-record insert/patch/delete.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from subscription_catalog.domain.models import (
    CatalogEntry,
    EntryStatus,
    Game,
    PlatformTag,
    Subscription,
    UserSubscription,
)


class CatalogStore(ABC):
    """
    Abstract keyed-record store.

    Implementations must make every single-record write atomic and must
    raise UniquenessViolation when an insert or patch would break one of
    the unique indexes:

    - subscription slug
    - game external id per id family
    - catalog entry (game, subscription, platform)
    - user subscription (user, subscription)
    """

    def new_id(self) -> str:
        """Allocate a record identifier."""
        return uuid4().hex

    # Games

    @abstractmethod
    def get_game(self, game_id: str) -> Game | None: ...

    @abstractmethod
    def find_game_by_external_id(self, family: str, native_id: str) -> Game | None: ...

    @abstractmethod
    def find_games_by_title(self, normalized_title: str) -> list[Game]:
        """Exact lookup on the normalized-title index."""
        ...

    @abstractmethod
    def search_games(self, query: str, *, limit: int = 20) -> list[Game]:
        """Fuzzy title search, best candidates first."""
        ...

    @abstractmethod
    def list_games(self) -> list[Game]: ...

    @abstractmethod
    def insert_game(self, game: Game) -> Game: ...

    @abstractmethod
    def patch_game(self, game_id: str, changes: dict[str, Any]) -> Game: ...

    @abstractmethod
    def delete_game(self, game_id: str) -> bool: ...

    # Subscriptions

    @abstractmethod
    def get_subscription(self, subscription_id: str) -> Subscription | None: ...

    @abstractmethod
    def get_subscription_by_slug(self, slug: str) -> Subscription | None: ...

    @abstractmethod
    def list_subscriptions(self) -> list[Subscription]: ...

    @abstractmethod
    def insert_subscription(self, subscription: Subscription) -> Subscription: ...

    @abstractmethod
    def patch_subscription(
        self, subscription_id: str, changes: dict[str, Any]
    ) -> Subscription: ...

    # Catalog entries

    @abstractmethod
    def get_entry(self, entry_id: str) -> CatalogEntry | None: ...

    @abstractmethod
    def find_entry(
        self, game_id: str, subscription_id: str, platform: PlatformTag | str
    ) -> CatalogEntry | None:
        """Lookup by the (game, subscription, platform) natural key."""
        ...

    @abstractmethod
    def entries_for_game(self, game_id: str) -> list[CatalogEntry]: ...

    @abstractmethod
    def entries_for_subscription(
        self, subscription_id: str, status: EntryStatus | None = None
    ) -> list[CatalogEntry]: ...

    @abstractmethod
    def entries_by_status(self, status: EntryStatus) -> list[CatalogEntry]: ...

    @abstractmethod
    def list_entries(self) -> list[CatalogEntry]: ...

    @abstractmethod
    def insert_entry(self, entry: CatalogEntry) -> CatalogEntry: ...

    @abstractmethod
    def patch_entry(self, entry_id: str, changes: dict[str, Any]) -> CatalogEntry: ...

    @abstractmethod
    def patch_entry_if(
        self,
        entry_id: str,
        changes: dict[str, Any],
        predicate: Callable[[CatalogEntry], bool],
    ) -> CatalogEntry | None:
        """
        Patch an entry only if predicate holds for its current state.

        The predicate is evaluated atomically with the write. Returns the
        updated entry, or None when the entry is gone or the predicate failed.
        """
        ...

    @abstractmethod
    def delete_entry(self, entry_id: str) -> bool: ...

    # User subscriptions

    @abstractmethod
    def user_subscriptions(self, user_id: str) -> list[UserSubscription]: ...

    @abstractmethod
    def find_user_subscription(
        self, user_id: str, subscription_id: str
    ) -> UserSubscription | None: ...

    @abstractmethod
    def list_user_subscriptions(self) -> list[UserSubscription]: ...

    @abstractmethod
    def insert_user_subscription(self, held: UserSubscription) -> UserSubscription: ...

    @abstractmethod
    def patch_user_subscription(
        self, held_id: str, changes: dict[str, Any]
    ) -> UserSubscription: ...

    @abstractmethod
    def delete_user_subscription(self, held_id: str) -> bool: ...
