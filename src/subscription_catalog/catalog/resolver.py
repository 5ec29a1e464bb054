"""
Entity resolver.

Maps provider records onto canonical games. Providers share no common
game id, so resolution falls back from provider-native ids to
normalized titles and then to fuzzy title similarity before a new
game is created.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from subscription_catalog.context import Clock, SystemClock
from subscription_catalog.domain.models import (
    ExternalRef,
    Game,
    PlatformTag,
    ProviderGameRecord,
)
from subscription_catalog.domain.titles import normalize_title, title_similarity
from subscription_catalog.errors import GameNotFoundError, UniquenessViolation
from subscription_catalog.logger import get_logger
from subscription_catalog.storage.base import CatalogStore

# Fuzzy candidates pulled from the store's title search per lookup
FUZZY_CANDIDATES = 10


class ResolutionMethod(str, Enum):
    """How a record was matched to its canonical game."""

    EXTERNAL_ID = "external_id"
    EXACT_TITLE = "exact_title"
    FUZZY_TITLE = "fuzzy_title"
    CREATED = "created"


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one provider record."""

    game_id: str
    method: ResolutionMethod

    @property
    def created(self) -> bool:
        return self.method is ResolutionMethod.CREATED


@dataclass
class MergeResult:
    """Outcome of merging a duplicate game into a kept game."""

    kept_id: str
    removed_id: str
    entries_moved: int = 0
    entries_collapsed: int = 0
    external_ids: dict[str, str] = field(default_factory=dict)


class EntityResolver:
    """
    Resolves provider records to canonical games.

    Resolution order:
    1. Native id within the record's id family
    2. Exact normalized title
    3. Fuzzy title similarity above the threshold
    4. Create a new game

    On a match the first writer wins for descriptive fields; only empty
    fields are backfilled and new platform tags are added.

    Example:
        >>> resolver = EntityResolver(store)
        >>> game_id = resolver.resolve(record)
    """

    def __init__(
        self,
        store: CatalogStore,
        *,
        clock: Clock | None = None,
        similarity_threshold: float = 0.92,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._threshold = similarity_threshold
        self._logger = get_logger(__name__, component="resolver")

    def resolve(self, record: ProviderGameRecord) -> str:
        """Return the id of the canonical game for a record, creating it if needed."""
        return self.resolve_detailed(record).game_id

    def resolve_detailed(self, record: ProviderGameRecord) -> Resolution:
        """Resolve a record and report how the match was made."""
        game, method = self._match(record)

        if game is None:
            return self._create(record)

        self._backfill(game, record)
        self._logger.debug(
            "Resolved record",
            title=record.title,
            game_id=game.id,
            method=method.value,
        )
        return Resolution(game_id=game.id, method=method)

    def _match(self, record: ProviderGameRecord) -> tuple[Game | None, ResolutionMethod]:
        if record.native_id:
            game = self._store.find_game_by_external_id(record.id_family, record.native_id)
            if game is not None:
                return game, ResolutionMethod.EXTERNAL_ID

        normalized = normalize_title(record.title)
        exact = self._store.find_games_by_title(normalized)
        if exact:
            return exact[0], ResolutionMethod.EXACT_TITLE

        for candidate in self._store.search_games(record.title, limit=FUZZY_CANDIDATES):
            if title_similarity(candidate.title, record.title) >= self._threshold:
                return candidate, ResolutionMethod.FUZZY_TITLE

        return None, ResolutionMethod.CREATED

    def _create(self, record: ProviderGameRecord) -> Resolution:
        game = Game(
            id=self._store.new_id(),
            title=record.title,
            external_ids={record.id_family: record.native_id} if record.native_id else {},
            cover_url=record.cover_url,
            release_date=record.release_date,
            platforms=set(record.platforms),
            description=record.description,
            updated_at=self._clock.now(),
        )
        try:
            self._store.insert_game(game)
        except UniquenessViolation:
            # Another writer registered this native id first
            winner = self._store.find_game_by_external_id(record.id_family, record.native_id or "")
            if winner is None:
                raise
            self._backfill(winner, record)
            return Resolution(game_id=winner.id, method=ResolutionMethod.EXTERNAL_ID)

        self._logger.info(
            "Created game",
            game_id=game.id,
            title=game.title,
            id_family=record.id_family,
            native_id=record.native_id,
        )
        return Resolution(game_id=game.id, method=ResolutionMethod.CREATED)

    def _backfill(self, game: Game, record: ProviderGameRecord) -> None:
        changes = self._fill_empty(
            game,
            cover_url=record.cover_url,
            description=record.description,
            release_date=record.release_date,
        )

        if record.native_id and record.id_family not in game.external_ids:
            owner = self._store.find_game_by_external_id(record.id_family, record.native_id)
            if owner is None:
                changes["external_ids"] = {**game.external_ids, record.id_family: record.native_id}

        new_platforms = set(record.platforms) - game.platforms
        if new_platforms:
            changes["platforms"] = game.platforms | new_platforms

        if changes:
            changes["updated_at"] = self._clock.now()
            self._store.patch_game(game.id, changes)

    def _fill_empty(
        self,
        game: Game,
        *,
        cover_url: str | None,
        description: str | None,
        release_date: date | None,
    ) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if cover_url and not game.cover_url:
            changes["cover_url"] = cover_url
        if description and not game.description:
            changes["description"] = description
        if release_date and game.release_date is None:
            changes["release_date"] = release_date
        return changes

    def attach_preferred_ref(
        self,
        game_id: str,
        ref: ExternalRef,
        *,
        cover_url: str | None = None,
        description: str | None = None,
        release_date: date | None = None,
        platforms: set[PlatformTag] | None = None,
    ) -> Game:
        """
        Attach a metadata-service id to a game and backfill empty fields.

        An existing preferred id is never replaced, and the id is skipped
        when another game already owns it.

        Raises:
            GameNotFoundError: If the game does not exist
        """
        game = self._store.get_game(game_id)
        if game is None:
            raise GameNotFoundError(f"Game not found: {game_id}")

        changes = self._fill_empty(
            game, cover_url=cover_url, description=description, release_date=release_date
        )
        if game.preferred_ref is None:
            owner = self._store.find_game_by_external_id(ref.source, ref.id)
            if owner is None:
                changes["preferred_ref"] = ref
            else:
                self._logger.warning(
                    "Preferred id already attached to another game",
                    game_id=game_id,
                    owner_id=owner.id,
                    source=ref.source,
                    ref_id=ref.id,
                )
        if platforms and not platforms <= game.platforms:
            changes["platforms"] = game.platforms | platforms

        if not changes:
            return game
        changes["updated_at"] = self._clock.now()
        return self._store.patch_game(game_id, changes)

    def merge_games(self, keep_id: str, duplicate_id: str) -> MergeResult:
        """
        Merge a duplicate game into the game that is kept.

        The duplicate's catalog entries move to the kept game. When both
        games hold an entry for the same subscription and platform, the
        more recently verified entry wins and the other row is deleted.
        External ids and platforms are merged, empty fields backfilled,
        and the duplicate is deleted.

        Raises:
            ValueError: If both ids are the same
            GameNotFoundError: If either game does not exist
        """
        if keep_id == duplicate_id:
            raise ValueError("Cannot merge a game with itself")

        keep = self._store.get_game(keep_id)
        if keep is None:
            raise GameNotFoundError(f"Game not found: {keep_id}")
        duplicate = self._store.get_game(duplicate_id)
        if duplicate is None:
            raise GameNotFoundError(f"Game not found: {duplicate_id}")

        result = MergeResult(kept_id=keep_id, removed_id=duplicate_id)

        for entry in self._store.entries_for_game(duplicate_id):
            existing = self._store.find_entry(keep_id, entry.subscription_id, entry.platform)
            if existing is None:
                self._store.patch_entry(entry.id, {"game_id": keep_id})
                result.entries_moved += 1
                continue

            if entry.last_verified_at > existing.last_verified_at:
                self._store.patch_entry(
                    existing.id,
                    entry.model_dump(exclude={"id", "game_id", "subscription_id", "platform"}),
                )
            self._store.delete_entry(entry.id)
            result.entries_collapsed += 1

        # Drop the duplicate first so its external ids are free to move
        self._store.delete_game(duplicate_id)

        changes = self._fill_empty(
            keep,
            cover_url=duplicate.cover_url,
            description=duplicate.description,
            release_date=duplicate.release_date,
        )
        merged_ids = {**duplicate.external_ids, **keep.external_ids}
        if merged_ids != keep.external_ids:
            changes["external_ids"] = merged_ids
        if keep.preferred_ref is None and duplicate.preferred_ref is not None:
            changes["preferred_ref"] = duplicate.preferred_ref
        if not duplicate.platforms <= keep.platforms:
            changes["platforms"] = keep.platforms | duplicate.platforms

        changes["updated_at"] = self._clock.now()
        merged = self._store.patch_game(keep_id, changes)
        result.external_ids = dict(merged.external_ids)

        self._logger.info(
            "Merged games",
            kept_id=keep_id,
            removed_id=duplicate_id,
            entries_moved=result.entries_moved,
            entries_collapsed=result.entries_collapsed,
        )
        return result
