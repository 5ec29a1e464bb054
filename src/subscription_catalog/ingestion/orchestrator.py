"""
Sync driver that runs one provider through the catalog pipeline.

fetch -> resolve -> reconcile, sequentially and in fetch order.
Per-record failures are counted and skipped; a fetch failure stops
the run but keeps everything already reconciled.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from subscription_catalog.catalog.reconciler import CatalogReconciler
from subscription_catalog.catalog.resolver import EntityResolver
from subscription_catalog.catalog.subscriptions import SubscriptionDirectory
from subscription_catalog.context import SyncContext
from subscription_catalog.domain.models import ProviderGameRecord, Subscription
from subscription_catalog.errors import ConfigurationError, FetchError
from subscription_catalog.ingestion.enrichment import MetadataEnricher
from subscription_catalog.ingestion.providers.base import BaseProvider, FetchSource
from subscription_catalog.logger import get_logger, sync_run_context


class SyncStatus(str, Enum):
    """Outcome of a sync run."""

    SUCCESS = "success"
    PARTIAL = "partial"
    API_ERROR = "api_error"
    CONFIGURATION_ERROR = "configuration_error"
    ERROR = "error"


@dataclass
class SyncProgress:
    """Tracks progress of a sync run."""

    started_at: datetime
    total: int = 0
    synced: int = 0
    errors: int = 0
    created_games: int = 0
    enriched: int = 0
    current_title: str | None = None


@dataclass
class SyncResult:
    """Run-level summary of a provider sync."""

    status: SyncStatus
    synced: int
    errors: int
    total: int
    subscription_slug: str
    run_id: UUID
    started_at: datetime
    completed_at: datetime
    source: FetchSource | None = None
    message: str | None = None
    created_games: int = 0
    enriched: int = 0
    error_details: list[dict[str, Any]] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "synced": self.synced,
            "errors": self.errors,
            "total": self.total,
            "source": self.source.value if self.source else None,
            "subscription": self.subscription_slug,
            "run_id": str(self.run_id),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
            "message": self.message,
            "created_games": self.created_games,
            "enriched": self.enriched,
        }


class SyncDriver:
    """
    Runs provider feeds into the catalog.

    Example:
        >>> driver = SyncDriver(ctx)
        >>> async with GamePassProvider(client=ctx.http) as provider:
        ...     result = await driver.run(provider, limit=100)
        >>> result.status
        <SyncStatus.SUCCESS: 'success'>
    """

    def __init__(
        self,
        ctx: SyncContext,
        *,
        enricher: MetadataEnricher | None = None,
        resolver: EntityResolver | None = None,
        reconciler: CatalogReconciler | None = None,
        on_progress: Callable[[SyncProgress], None] | None = None,
    ) -> None:
        self._ctx = ctx
        self._directory = SubscriptionDirectory(ctx.store)
        self._resolver = resolver or EntityResolver(
            ctx.store,
            clock=ctx.clock,
            similarity_threshold=ctx.settings.sync.title_similarity_threshold,
        )
        self._reconciler = reconciler or CatalogReconciler(ctx.store, clock=ctx.clock)
        self._enricher = enricher
        self._on_progress = on_progress
        self._logger = get_logger(__name__, component="sync_driver")

    @property
    def resolver(self) -> EntityResolver:
        return self._resolver

    async def run(self, provider: BaseProvider, *, limit: int | None = None) -> SyncResult:
        """Sync one provider; always returns a summary, never raises for item failures."""
        run_id = uuid4()
        with sync_run_context(run_id=str(run_id), provider=provider.source_name):
            return await self._run(provider, run_id, limit)

    async def _run(self, provider: BaseProvider, run_id: UUID, limit: int | None) -> SyncResult:
        progress = SyncProgress(started_at=self._ctx.clock.now())
        if limit is None:
            limit = self._ctx.settings.sync.default_item_limit

        self._logger.info("Starting sync", limit=limit)

        subscription = self._subscription(provider.subscription_slug)
        if subscription is None:
            return self._finish(
                provider,
                run_id,
                progress,
                SyncStatus.ERROR,
                f"Failed to find or create {provider.subscription_slug} subscription",
            )

        companion = self._companion(provider)
        status: SyncStatus | None = None
        message: str | None = None
        error_details: list[dict[str, Any]] = []

        try:
            async for record in provider.fetch(limit=limit):
                progress.total += 1
                progress.current_title = record.title
                try:
                    created_game_id = self._apply(record, provider, subscription, companion)
                except Exception as e:
                    progress.errors += 1
                    error_details.append({"title": record.title, "error": str(e)})
                    self._logger.error(
                        "Failed to reconcile record", title=record.title, error=str(e)
                    )
                    continue

                progress.synced += 1
                if created_game_id is not None:
                    progress.created_games += 1
                    await self._enrich(created_game_id, record.title, progress)

                if progress.synced % 50 == 0:
                    self._logger.info(
                        "Sync progress", synced=progress.synced, errors=progress.errors
                    )
                if self._on_progress:
                    self._on_progress(progress)
        except ConfigurationError as e:
            status = SyncStatus.CONFIGURATION_ERROR
            message = str(e)
            progress.errors += 1
            self._logger.error("Provider is not configured", error=message)
        except FetchError as e:
            status = SyncStatus.API_ERROR if progress.synced == 0 else SyncStatus.PARTIAL
            message = str(e)
            progress.errors += 1
            self._logger.error(
                "Fetch failed",
                error=message,
                endpoint=e.endpoint,
                status_code=e.status_code,
                synced=progress.synced,
            )
        except Exception as e:
            # Malformed provider data surfacing mid-feed
            status = SyncStatus.API_ERROR if progress.synced == 0 else SyncStatus.PARTIAL
            message = f"{type(e).__name__}: {e}"
            progress.errors += 1
            self._logger.exception("Provider feed failed", synced=progress.synced)

        if status is None:
            status = SyncStatus.SUCCESS if progress.errors == 0 else SyncStatus.PARTIAL

        result = self._finish(provider, run_id, progress, status, message)
        result.error_details = error_details
        return result

    def _subscription(self, slug: str) -> Subscription | None:
        subscription = self._directory.get_by_slug(slug)
        if subscription is None:
            self._directory.seed()
            subscription = self._directory.get_by_slug(slug)
        return subscription

    def _companion(self, provider: BaseProvider) -> tuple[Subscription, str] | None:
        if provider.companion is None:
            return None
        subscription = self._directory.get_by_slug(provider.companion.subscription_slug)
        if subscription is None:
            self._logger.warning(
                "Companion subscription missing",
                provider=provider.source_name,
                companion=provider.companion.subscription_slug,
            )
            return None
        return subscription, provider.companion.tier_slug

    def _apply(
        self,
        record: ProviderGameRecord,
        provider: BaseProvider,
        subscription: Subscription,
        companion: tuple[Subscription, str] | None,
    ) -> str | None:
        """Resolve and reconcile one record; returns the game id when a game was created."""
        resolution = self._resolver.resolve_detailed(record)
        tier_slug = record.tier_slug or provider.default_tier
        platforms = sorted(record.platforms, key=lambda p: p.value)

        targets = [(subscription, tier_slug)]
        if record.dual_listed and companion is not None:
            targets.append(companion)

        for target, target_tier in targets:
            for platform in platforms:
                self._reconciler.reconcile(
                    resolution.game_id,
                    target.id,
                    platform,
                    target_tier,
                    record.status,
                    available_date=record.available_date,
                    leaving_date=record.leaving_date,
                    native_id=record.native_id,
                )

        return resolution.game_id if resolution.created else None

    async def _enrich(self, game_id: str, title: str, progress: SyncProgress) -> None:
        if self._enricher is None:
            return
        try:
            if await self._enricher.enrich(game_id, title):
                progress.enriched += 1
        except Exception as e:
            self._logger.warning("Enrichment failed", game_id=game_id, title=title, error=str(e))

    def _finish(
        self,
        provider: BaseProvider,
        run_id: UUID,
        progress: SyncProgress,
        status: SyncStatus,
        message: str | None,
    ) -> SyncResult:
        result = SyncResult(
            status=status,
            synced=progress.synced,
            errors=progress.errors if status is not SyncStatus.ERROR else 1,
            total=progress.total,
            subscription_slug=provider.subscription_slug,
            run_id=run_id,
            started_at=progress.started_at,
            completed_at=self._ctx.clock.now(),
            source=(
                None
                if status in (SyncStatus.ERROR, SyncStatus.CONFIGURATION_ERROR)
                else provider.last_source
            ),
            message=message,
            created_games=progress.created_games,
            enriched=progress.enriched,
        )
        self._logger.info(
            "Sync complete",
            status=status.value,
            synced=result.synced,
            errors=result.errors,
            total=result.total,
            source=result.source.value if result.source else None,
        )
        return result
