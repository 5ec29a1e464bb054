"""Tests for the in-memory catalog store."""

import pytest
from subscription_catalog.domain.models import (
    CatalogEntry,
    EntryStatus,
    ExternalRef,
    Game,
    PlatformTag,
    UserSubscription,
)
from subscription_catalog.errors import EntryNotFoundError, GameNotFoundError, UniquenessViolation
from subscription_catalog.storage import InMemoryCatalogStore


def _game(store: InMemoryCatalogStore, title: str, **kwargs: object) -> Game:
    return store.insert_game(Game(id=store.new_id(), title=title, **kwargs))


def _entry(
    store: InMemoryCatalogStore, game_id: str, sub_id: str, **kwargs: object
) -> CatalogEntry:
    fields: dict[str, object] = {"tier_slug": "standard", "platform": PlatformTag.PC, **kwargs}
    return store.insert_entry(
        CatalogEntry(id=store.new_id(), game_id=game_id, subscription_id=sub_id, **fields)
    )


class TestGames:
    """Tests for game records and their indexes."""

    def test_external_id_lookup(self) -> None:
        store = InMemoryCatalogStore()
        game = _game(store, "Halo Infinite", external_ids={"microsoft": "9PP5G1F0C2B6"})

        found = store.find_game_by_external_id("microsoft", "9PP5G1F0C2B6")

        assert found is not None
        assert found.id == game.id
        assert store.find_game_by_external_id("playstation", "9PP5G1F0C2B6") is None

    def test_preferred_ref_is_indexed(self) -> None:
        """Test that the metadata id is looked up like any external id."""
        store = InMemoryCatalogStore()
        game = _game(store, "Hades", preferred_ref=ExternalRef(source="igdb", id="113112"))

        found = store.find_game_by_external_id("igdb", "113112")
        assert found is not None and found.id == game.id

    def test_external_id_is_unique(self) -> None:
        store = InMemoryCatalogStore()
        _game(store, "Halo Infinite", external_ids={"microsoft": "X1"})

        with pytest.raises(UniquenessViolation):
            _game(store, "Halo", external_ids={"microsoft": "X1"})

    def test_patch_reindexes_title(self) -> None:
        """Test that renaming a game moves it in the title index."""
        store = InMemoryCatalogStore()
        game = _game(store, "Forza Horizon 5")

        store.patch_game(game.id, {"title": "Forza Horizon 5 Premium"})

        assert store.find_games_by_title("forza horizon 5") == []
        assert [g.id for g in store.find_games_by_title("forza horizon 5 premium")] == [game.id]

    def test_patch_missing_game(self) -> None:
        with pytest.raises(GameNotFoundError):
            InMemoryCatalogStore().patch_game("nope", {"title": "x"})

    def test_returned_records_are_copies(self) -> None:
        """Test that mutating a returned record does not touch the store."""
        store = InMemoryCatalogStore()
        game = _game(store, "Hades", platforms={PlatformTag.PC})

        copy = store.get_game(game.id)
        assert copy is not None
        copy.platforms.add(PlatformTag.SWITCH)

        stored = store.get_game(game.id)
        assert stored is not None
        assert stored.platforms == {PlatformTag.PC}

    def test_search(self) -> None:
        store = InMemoryCatalogStore()
        halo = _game(store, "Halo Infinite")
        _game(store, "Forza Horizon 5")

        results = store.search_games("halo")

        assert [g.id for g in results] == [halo.id]
        assert store.search_games("   ") == []

    def test_delete(self) -> None:
        store = InMemoryCatalogStore()
        game = _game(store, "Hades", external_ids={"playstation": "P1"})

        assert store.delete_game(game.id) is True
        assert store.delete_game(game.id) is False
        assert store.find_game_by_external_id("playstation", "P1") is None


class TestEntries:
    """Tests for catalog entries."""

    def test_natural_key_is_unique(self, store: InMemoryCatalogStore) -> None:
        sub = store.get_subscription_by_slug("gamepass")
        assert sub is not None
        game = _game(store, "Halo Infinite")
        _entry(store, game.id, sub.id)

        with pytest.raises(UniquenessViolation):
            _entry(store, game.id, sub.id, tier_slug="ultimate")

        # Same game on another platform is a separate entry
        _entry(store, game.id, sub.id, platform=PlatformTag.CONSOLE)
        assert len(store.entries_for_game(game.id)) == 2

    def test_find_entry(self, store: InMemoryCatalogStore) -> None:
        sub = store.get_subscription_by_slug("gamepass")
        assert sub is not None
        game = _game(store, "Halo Infinite")
        entry = _entry(store, game.id, sub.id)

        found = store.find_entry(game.id, sub.id, "pc")
        assert found is not None and found.id == entry.id
        assert store.find_entry(game.id, sub.id, PlatformTag.CONSOLE) is None

    def test_status_and_subscription_scans(self, store: InMemoryCatalogStore) -> None:
        gamepass = store.get_subscription_by_slug("gamepass")
        psplus = store.get_subscription_by_slug("psplus")
        assert gamepass is not None and psplus is not None
        game = _game(store, "Hades")
        _entry(store, game.id, gamepass.id, status=EntryStatus.LEAVING_SOON)
        _entry(store, game.id, psplus.id, tier_slug="extra", platform=PlatformTag.PS5)

        assert len(store.entries_by_status(EntryStatus.LEAVING_SOON)) == 1
        assert len(store.entries_for_subscription(psplus.id)) == 1
        assert store.entries_for_subscription(psplus.id, EntryStatus.LEAVING_SOON) == []

    def test_patch_entry_if(self, store: InMemoryCatalogStore) -> None:
        """Test that conditional patches re-check the stored row."""
        sub = store.get_subscription_by_slug("gamepass")
        assert sub is not None
        game = _game(store, "Hades")
        entry = _entry(store, game.id, sub.id)

        skipped = store.patch_entry_if(
            entry.id,
            {"status": EntryStatus.LEAVING_SOON},
            lambda e: e.status is EntryStatus.COMING_SOON,
        )
        applied = store.patch_entry_if(
            entry.id,
            {"status": EntryStatus.LEAVING_SOON},
            lambda e: e.status is EntryStatus.AVAILABLE,
        )

        assert skipped is None
        assert applied is not None and applied.status is EntryStatus.LEAVING_SOON
        assert store.patch_entry_if("missing", {}, lambda e: True) is None

    def test_patch_missing_entry(self) -> None:
        with pytest.raises(EntryNotFoundError):
            InMemoryCatalogStore().patch_entry("missing", {"status": EntryStatus.AVAILABLE})

    def test_invalid_patch_is_rejected(self, store: InMemoryCatalogStore) -> None:
        """Test that patches are validated against the model."""
        sub = store.get_subscription_by_slug("gamepass")
        assert sub is not None
        game = _game(store, "Hades")
        entry = _entry(store, game.id, sub.id)

        with pytest.raises(ValueError):
            store.patch_entry(entry.id, {"platform": "gameboy"})
        stored = store.get_entry(entry.id)
        assert stored is not None and stored.platform is PlatformTag.PC


class TestUserSubscriptions:
    """Tests for held subscriptions."""

    def test_one_row_per_user_and_subscription(self, store: InMemoryCatalogStore) -> None:
        sub = store.get_subscription_by_slug("gamepass")
        assert sub is not None
        store.insert_user_subscription(
            UserSubscription(id="h1", user_id="u1", subscription_id=sub.id, tier_slug="core")
        )

        with pytest.raises(UniquenessViolation):
            store.insert_user_subscription(
                UserSubscription(
                    id="h2", user_id="u1", subscription_id=sub.id, tier_slug="ultimate"
                )
            )

        found = store.find_user_subscription("u1", sub.id)
        assert found is not None and found.tier_slug == "core"


class TestDocuments:
    """Tests for document export and import."""

    def test_document_restores_indexes(self, store: InMemoryCatalogStore) -> None:
        sub = store.get_subscription_by_slug("gamepass")
        assert sub is not None
        game = _game(
            store,
            "Halo Infinite",
            external_ids={"microsoft": "X1"},
            platforms={PlatformTag.PC, PlatformTag.CONSOLE},
        )
        _entry(store, game.id, sub.id, status=EntryStatus.LEAVING_SOON)

        restored = InMemoryCatalogStore.from_document(store.to_document())

        found = restored.find_game_by_external_id("microsoft", "X1")
        assert found is not None
        assert found.platforms == {PlatformTag.PC, PlatformTag.CONSOLE}
        assert restored.find_entry(game.id, sub.id, PlatformTag.PC) is not None
        assert len(restored.entries_by_status(EntryStatus.LEAVING_SOON)) == 1
        assert restored.get_subscription_by_slug("psplus") is not None
