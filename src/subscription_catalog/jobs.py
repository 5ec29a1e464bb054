"""
Scheduled job entrypoints.

One coroutine per job, each taking an explicit SyncContext. The JOBS
table records the cadence every job is meant to run at (UTC) so an
external scheduler can drive run_job.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Any

from subscription_catalog.catalog.expiry import ExpiryScanner, ExpiryScanResult
from subscription_catalog.catalog.resolver import EntityResolver
from subscription_catalog.context import SyncContext
from subscription_catalog.ingestion.enrichment import build_enricher
from subscription_catalog.ingestion.orchestrator import SyncDriver, SyncResult
from subscription_catalog.ingestion.providers import (
    BaseProvider,
    EaPlayProvider,
    GamePassProvider,
    PlayStationPlusProvider,
    UbisoftPlusProvider,
)
from subscription_catalog.logger import get_logger

logger = get_logger(__name__, component="jobs")

SUNDAY = 6


async def _sync(ctx: SyncContext, provider: BaseProvider, limit: int | None) -> SyncResult:
    resolver = EntityResolver(
        ctx.store,
        clock=ctx.clock,
        similarity_threshold=ctx.settings.sync.title_similarity_threshold,
    )
    enricher = build_enricher(resolver, settings=ctx.settings, clock=ctx.clock, client=ctx.http)
    driver = SyncDriver(ctx, enricher=enricher, resolver=resolver)
    try:
        async with provider:
            return await driver.run(provider, limit=limit)
    finally:
        if enricher is not None:
            await enricher.close()


async def sync_gamepass(ctx: SyncContext, *, limit: int | None = None) -> SyncResult:
    """Sync the Xbox Game Pass catalog."""
    provider = GamePassProvider(client=ctx.http, settings=ctx.settings)
    return await _sync(ctx, provider, limit)


async def sync_eaplay(ctx: SyncContext, *, limit: int | None = None) -> SyncResult:
    """Sync EA Play, fanning dual-listed titles out to Game Pass Ultimate."""
    provider = EaPlayProvider(client=ctx.http, settings=ctx.settings)
    return await _sync(ctx, provider, limit)


async def sync_psplus(
    ctx: SyncContext,
    *,
    limit: int | None = None,
    include_classics: bool = False,
) -> SyncResult:
    """Sync the PlayStation Plus game catalog (and optionally Classics)."""
    provider = PlayStationPlusProvider(
        client=ctx.http,
        settings=ctx.settings,
        include_classics=include_classics,
    )
    return await _sync(ctx, provider, limit)


async def sync_ubisoftplus(
    ctx: SyncContext,
    *,
    limit: int | None = None,
    use_fallback: bool = False,
) -> SyncResult:
    """Sync the Ubisoft+ catalog, using the known-titles list when the store search fails."""
    provider = UbisoftPlusProvider(
        client=ctx.http,
        settings=ctx.settings,
        use_fallback=use_fallback,
    )
    return await _sync(ctx, provider, limit)


async def check_leaving_soon(ctx: SyncContext) -> ExpiryScanResult:
    """Flag entries whose leaving date falls inside the warning window."""
    scanner = ExpiryScanner(
        ctx.store,
        clock=ctx.clock,
        warning_window=timedelta(days=ctx.settings.sync.warning_window_days),
    )
    return scanner.scan()


@dataclass(frozen=True)
class JobSchedule:
    """
    Cadence of a scheduled job in UTC.

    weekday follows datetime.weekday() (Monday is 0); None means daily.
    """

    name: str
    description: str
    handler: Callable[..., Awaitable[Any]]
    at: time
    weekday: int | None = None

    @property
    def cadence(self) -> str:
        return "daily" if self.weekday is None else "weekly"

    def next_run(self, after: datetime) -> datetime:
        """First scheduled time strictly after the given UTC instant."""
        candidate = after.replace(
            hour=self.at.hour,
            minute=self.at.minute,
            second=0,
            microsecond=0,
        )
        if self.weekday is not None:
            candidate += timedelta(days=(self.weekday - candidate.weekday()) % 7)
        if candidate <= after:
            candidate += timedelta(days=1 if self.weekday is None else 7)
        return candidate


JOBS: dict[str, JobSchedule] = {
    job.name: job
    for job in (
        JobSchedule("sync_gamepass", "Sync Game Pass catalog", sync_gamepass, time(6, 0), SUNDAY),
        JobSchedule("sync_eaplay", "Sync EA Play catalog", sync_eaplay, time(6, 30), SUNDAY),
        JobSchedule("sync_psplus", "Sync PS Plus catalog", sync_psplus, time(7, 0), SUNDAY),
        JobSchedule(
            "sync_ubisoftplus",
            "Sync Ubisoft+ catalog",
            sync_ubisoftplus,
            time(7, 30),
            SUNDAY,
        ),
        JobSchedule("check_leaving_soon", "Check leaving soon", check_leaving_soon, time(8, 0)),
    )
}


async def run_job(name: str, ctx: SyncContext, **kwargs: Any) -> Any:
    """
    Run a registered job by name.

    Raises:
        KeyError: If no job is registered under that name
    """
    try:
        job = JOBS[name]
    except KeyError:
        raise KeyError(f"Unknown job: {name}") from None

    logger.info("Running job", job=name, cadence=job.cadence)
    result = await job.handler(ctx, **kwargs)
    logger.info("Job finished", job=name)
    return result
