"""Tests for the sync driver with in-process providers."""

from collections.abc import AsyncIterator
from typing import Any

import pytest
from subscription_catalog.config import Settings
from subscription_catalog.context import SyncContext
from subscription_catalog.domain.models import EntryStatus, PlatformTag, ProviderGameRecord
from subscription_catalog.errors import APIError, ConfigurationError
from subscription_catalog.ingestion.orchestrator import SyncDriver, SyncProgress, SyncStatus
from subscription_catalog.ingestion.providers.base import (
    BaseProvider,
    CompanionBundle,
    FetchSource,
)
from subscription_catalog.storage import InMemoryCatalogStore

from tests.conftest import FixedClock


def _record(title: str, **kwargs: Any) -> ProviderGameRecord:
    fields: dict[str, Any] = {
        "id_family": "microsoft",
        "platforms": frozenset({PlatformTag.PC, PlatformTag.CONSOLE}),
        **kwargs,
    }
    return ProviderGameRecord(title=title, **fields)


class ListProvider(BaseProvider):
    """Yields a fixed list of records, then optionally fails."""

    source_name = "gamepass"
    id_family = "microsoft"
    subscription_slug = "gamepass"
    default_tier = "standard"

    def __init__(
        self,
        records: list[ProviderGameRecord],
        *,
        fail_with: Exception | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._records = records
        self._fail_with = fail_with

    async def fetch(self, *, limit: int | None = None) -> AsyncIterator[ProviderGameRecord]:
        for n, record in enumerate(self._records):
            if limit is not None and n >= limit:
                return
            yield record
        if self._fail_with is not None:
            raise self._fail_with


class BundleProvider(ListProvider):
    source_name = "eaplay"
    subscription_slug = "eaplay"
    default_tier = "standard"
    companion = CompanionBundle(subscription_slug="gamepass", tier_slug="ultimate")


class FallbackProvider(ListProvider):
    async def fetch(self, *, limit: int | None = None) -> AsyncIterator[ProviderGameRecord]:
        self._last_source = FetchSource.FALLBACK
        async for record in super().fetch(limit=limit):
            yield record


class UnknownProvider(ListProvider):
    source_name = "netflix"
    subscription_slug = "netflix"


class StubEnricher:
    def __init__(self, *, fail: bool = False) -> None:
        self.calls: list[tuple[str, str]] = []
        self._fail = fail

    async def enrich(self, game_id: str, title: str) -> bool:
        self.calls.append((game_id, title))
        if self._fail:
            raise APIError("igdb down", source="igdb")
        return True


@pytest.fixture
def ctx(store: InMemoryCatalogStore, clock: FixedClock, settings: Settings) -> SyncContext:
    return SyncContext(store=store, clock=clock, settings=settings)


def _sub_id(store: InMemoryCatalogStore, slug: str) -> str:
    sub = store.get_subscription_by_slug(slug)
    assert sub is not None
    return sub.id


class TestSyncDriver:
    """Tests for SyncDriver.run."""

    @pytest.mark.asyncio
    async def test_success(
        self, ctx: SyncContext, store: InMemoryCatalogStore, settings: Settings
    ) -> None:
        provider = ListProvider(
            [_record("Halo Infinite", native_id="X1"), _record("Hades", native_id="X2")],
            settings=settings,
        )

        result = await SyncDriver(ctx).run(provider)

        assert result.status is SyncStatus.SUCCESS
        assert (result.synced, result.errors, result.total) == (2, 0, 2)
        assert result.created_games == 2
        assert result.source is FetchSource.LIVE
        assert result.subscription_slug == "gamepass"
        # One entry per platform
        assert len(store.entries_for_subscription(_sub_id(store, "gamepass"))) == 4
        assert result.to_dict()["source"] == "live"

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(
        self, ctx: SyncContext, store: InMemoryCatalogStore, settings: Settings
    ) -> None:
        records = [_record("Halo Infinite", native_id="X1")]
        driver = SyncDriver(ctx)

        await driver.run(ListProvider(records, settings=settings))
        second = await driver.run(ListProvider(records, settings=settings))

        assert second.created_games == 0
        assert len(store.list_games()) == 1
        assert len(store.list_entries()) == 2

    @pytest.mark.asyncio
    async def test_record_status_and_tier_are_kept(
        self, ctx: SyncContext, store: InMemoryCatalogStore, settings: Settings
    ) -> None:
        provider = ListProvider(
            [_record("Hades", tier_slug="ultimate", status=EntryStatus.LEAVING_SOON)],
            settings=settings,
        )

        await SyncDriver(ctx).run(provider)

        entries = store.list_entries()
        assert {e.tier_slug for e in entries} == {"ultimate"}
        assert {e.status for e in entries} == {EntryStatus.LEAVING_SOON}

    @pytest.mark.asyncio
    async def test_companion_fan_out(
        self, ctx: SyncContext, store: InMemoryCatalogStore, settings: Settings
    ) -> None:
        """Test that dual-listed titles also land in the companion subscription."""
        provider = BundleProvider(
            [
                _record("Battlefield 2042", dual_listed=True),
                _record("Solo Title", dual_listed=False),
            ],
            settings=settings,
        )

        result = await SyncDriver(ctx).run(provider)

        assert result.synced == 2
        gamepass = store.entries_for_subscription(_sub_id(store, "gamepass"))
        eaplay = store.entries_for_subscription(_sub_id(store, "eaplay"))
        assert len(eaplay) == 4
        assert len(gamepass) == 2
        assert {e.tier_slug for e in gamepass} == {"ultimate"}

    @pytest.mark.asyncio
    async def test_item_failure_is_counted(
        self, ctx: SyncContext, store: InMemoryCatalogStore, settings: Settings
    ) -> None:
        provider = ListProvider(
            [_record("Hades"), _record("Broken", tier_slug="platinum"), _record("Halo")],
            settings=settings,
        )

        result = await SyncDriver(ctx).run(provider)

        assert result.status is SyncStatus.PARTIAL
        assert (result.synced, result.errors, result.total) == (2, 1, 3)
        assert result.error_details[0]["title"] == "Broken"

    @pytest.mark.asyncio
    async def test_fetch_failure_before_any_record(
        self, ctx: SyncContext, settings: Settings
    ) -> None:
        provider = ListProvider([], fail_with=APIError("boom", status_code=500), settings=settings)

        result = await SyncDriver(ctx).run(provider)

        assert result.status is SyncStatus.API_ERROR
        assert result.synced == 0
        assert result.errors == 1
        assert result.message == "boom"

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_synced_records(
        self, ctx: SyncContext, store: InMemoryCatalogStore, settings: Settings
    ) -> None:
        provider = ListProvider(
            [_record("Hades")],
            fail_with=APIError("boom", status_code=503),
            settings=settings,
        )

        result = await SyncDriver(ctx).run(provider)

        assert result.status is SyncStatus.PARTIAL
        assert result.synced == 1
        assert len(store.list_games()) == 1

    @pytest.mark.asyncio
    async def test_unexpected_feed_error_returns_summary(
        self, ctx: SyncContext, store: InMemoryCatalogStore, settings: Settings
    ) -> None:
        """Test that an error other than FetchError still ends in a summary."""
        provider = ListProvider(
            [_record("Hades")],
            fail_with=ValueError("bad product payload"),
            settings=settings,
        )

        result = await SyncDriver(ctx).run(provider)

        assert result.status is SyncStatus.PARTIAL
        assert (result.synced, result.errors, result.total) == (1, 1, 1)
        assert result.message == "ValueError: bad product payload"
        assert len(store.list_games()) == 1

    @pytest.mark.asyncio
    async def test_unexpected_feed_error_before_any_record(
        self, ctx: SyncContext, settings: Settings
    ) -> None:
        provider = ListProvider([], fail_with=KeyError("products"), settings=settings)

        result = await SyncDriver(ctx).run(provider)

        assert result.status is SyncStatus.API_ERROR
        assert result.errors == 1

    @pytest.mark.asyncio
    async def test_configuration_error(self, ctx: SyncContext, settings: Settings) -> None:
        provider = ListProvider([], fail_with=ConfigurationError("missing hash"), settings=settings)

        result = await SyncDriver(ctx).run(provider)

        assert result.status is SyncStatus.CONFIGURATION_ERROR
        assert result.source is None
        assert result.message == "missing hash"

    @pytest.mark.asyncio
    async def test_missing_subscription(self, ctx: SyncContext, settings: Settings) -> None:
        result = await SyncDriver(ctx).run(UnknownProvider([_record("Hades")], settings=settings))

        assert result.status is SyncStatus.ERROR
        assert result.errors == 1
        assert result.source is None
        assert result.message is not None and "netflix" in result.message

    @pytest.mark.asyncio
    async def test_seeds_empty_store(
        self, clock: FixedClock, settings: Settings
    ) -> None:
        store = InMemoryCatalogStore()
        ctx = SyncContext(store=store, clock=clock, settings=settings)

        result = await SyncDriver(ctx).run(ListProvider([_record("Hades")], settings=settings))

        assert result.status is SyncStatus.SUCCESS
        assert len(store.list_subscriptions()) == 4

    @pytest.mark.asyncio
    async def test_fallback_source(self, ctx: SyncContext, settings: Settings) -> None:
        result = await SyncDriver(ctx).run(FallbackProvider([_record("Hades")], settings=settings))

        assert result.source is FetchSource.FALLBACK

    @pytest.mark.asyncio
    async def test_limit(self, ctx: SyncContext, settings: Settings) -> None:
        provider = ListProvider([_record(f"Game {n}") for n in range(5)], settings=settings)

        result = await SyncDriver(ctx).run(provider, limit=3)

        assert result.total == 3

    @pytest.mark.asyncio
    async def test_progress_callback(self, ctx: SyncContext, settings: Settings) -> None:
        seen: list[int] = []

        def on_progress(progress: SyncProgress) -> None:
            seen.append(progress.synced)

        driver = SyncDriver(ctx, on_progress=on_progress)
        await driver.run(ListProvider([_record("Hades"), _record("Halo")], settings=settings))

        assert seen == [1, 2]


class TestEnrichment:
    """Tests for enrichment during sync."""

    @pytest.mark.asyncio
    async def test_new_games_are_enriched(self, ctx: SyncContext, settings: Settings) -> None:
        enricher = StubEnricher()
        driver = SyncDriver(ctx, enricher=enricher)  # type: ignore[arg-type]

        await driver.run(ListProvider([_record("Hades")], settings=settings))
        result = await driver.run(ListProvider([_record("Hades")], settings=settings))

        # Only the run that created the game enriches it
        assert len(enricher.calls) == 1
        assert enricher.calls[0][1] == "Hades"
        assert result.enriched == 0

    @pytest.mark.asyncio
    async def test_enrichment_failure_does_not_fail_sync(
        self, ctx: SyncContext, settings: Settings
    ) -> None:
        driver = SyncDriver(ctx, enricher=StubEnricher(fail=True))  # type: ignore[arg-type]

        result = await driver.run(ListProvider([_record("Hades")], settings=settings))

        assert result.status is SyncStatus.SUCCESS
        assert result.enriched == 0
