"""
Ubisoft+ provider.

The store search API is unreliable, so the provider falls back to a
maintained list of known Ubisoft+ titles when the live catalog is
empty or unreachable. The feed reports which path produced it.
"""

from collections.abc import AsyncIterator
from datetime import date
from typing import Any, NamedTuple

from subscription_catalog.domain.models import PlatformTag, ProviderGameRecord
from subscription_catalog.errors import FetchError
from subscription_catalog.ingestion.contracts.ubisoft import UbisoftProduct, UbisoftSearchResponse
from subscription_catalog.ingestion.providers.base import BaseProvider, FetchSource

DEFAULT_PLATFORMS = frozenset({PlatformTag.PC, PlatformTag.CONSOLE})

_PLATFORM_KEYWORDS: list[tuple[tuple[str, ...], PlatformTag]] = [
    (("pc", "windows"), PlatformTag.PC),
    (("xbox", "playstation", "ps4", "ps5"), PlatformTag.CONSOLE),
    (("luna", "stadia", "cloud"), PlatformTag.CLOUD),
]


class KnownTitle(NamedTuple):
    title: str
    tier: str
    platforms: tuple[str, ...] = ("pc", "console")


KNOWN_UBISOFT_GAMES: list[KnownTitle] = [
    KnownTitle("Assassin's Creed Mirage", "premium"),
    KnownTitle("Assassin's Creed Valhalla", "classics"),
    KnownTitle("Assassin's Creed Odyssey", "classics"),
    KnownTitle("Assassin's Creed Origins", "classics"),
    KnownTitle("Far Cry 6", "classics"),
    KnownTitle("Far Cry 5", "classics"),
    KnownTitle("Far Cry New Dawn", "classics"),
    KnownTitle("Watch Dogs: Legion", "classics"),
    KnownTitle("Watch Dogs 2", "classics"),
    KnownTitle("Rainbow Six Siege", "classics"),
    KnownTitle("The Division 2", "classics"),
    KnownTitle("Ghost Recon Breakpoint", "classics"),
    KnownTitle("Immortals Fenyx Rising", "classics"),
    KnownTitle("Riders Republic", "classics"),
    KnownTitle("Skull and Bones", "premium"),
    KnownTitle("Avatar: Frontiers of Pandora", "premium"),
    KnownTitle("Prince of Persia: The Lost Crown", "premium"),
    KnownTitle("Star Wars Outlaws", "premium"),
    KnownTitle("Anno 1800", "classics", ("pc",)),
    KnownTitle("The Crew Motorfest", "premium"),
    KnownTitle("For Honor", "classics"),
    KnownTitle("Scott Pilgrim vs. The World", "classics"),
    KnownTitle("Child of Light", "classics"),
    KnownTitle("Valiant Hearts: The Great War", "classics"),
    KnownTitle("Rayman Legends", "classics"),
    KnownTitle("Steep", "classics"),
    KnownTitle("Trackmania", "classics", ("pc",)),
    KnownTitle("Trials Rising", "classics"),
    KnownTitle("South Park: The Fractured but Whole", "classics"),
    KnownTitle("South Park: The Stick of Truth", "classics"),
]


def normalize_ubisoft_platforms(
    platforms: list[str] | tuple[str, ...] | None,
) -> frozenset[PlatformTag]:
    """Map store platform names onto canonical tags; nothing recognized means pc and console."""
    tags: set[PlatformTag] = set()
    for name in platforms or []:
        lower = name.lower()
        if lower == "console":
            tags.add(PlatformTag.CONSOLE)
            continue
        for keywords, tag in _PLATFORM_KEYWORDS:
            if any(k in lower for k in keywords):
                tags.add(tag)
    return frozenset(tags) or DEFAULT_PLATFORMS


def tier_for(subscription_type: str | None) -> str:
    return "premium" if (subscription_type or "").lower() == "premium" else "classics"


def extract_ubisoft_game_data(product: UbisoftProduct) -> ProviderGameRecord | None:
    """Normalize a search product; None when it has no usable name."""
    if not product.name.strip():
        return None

    release_date = None
    if product.release_date:
        try:
            release_date = date.fromisoformat(product.release_date.split("T")[0])
        except ValueError:
            release_date = None

    return ProviderGameRecord(
        title=product.name,
        description=product.short_description,
        cover_url=product.image_url,
        release_date=release_date,
        native_id=product.id,
        id_family="ubisoft",
        platforms=normalize_ubisoft_platforms(product.platforms),
        tier_slug=tier_for(product.subscription_type),
    )


def fallback_records() -> list[ProviderGameRecord]:
    """Records for the maintained list of known Ubisoft+ titles."""
    return [
        ProviderGameRecord(
            title=known.title,
            id_family="ubisoft",
            platforms=normalize_ubisoft_platforms(known.platforms),
            tier_slug=known.tier,
        )
        for known in KNOWN_UBISOFT_GAMES
    ]


class UbisoftPlusProvider(BaseProvider):
    """
    Ubisoft+ catalog with a static fallback.

    The fallback is used when use_fallback is set, when the live search
    returns no products, or when it fails before yielding anything.
    A failure after live records were yielded is raised as usual.

    Example:
        >>> async with UbisoftPlusProvider() as provider:
        ...     feed = await provider.feed()
        ...     feed.source
        <FetchSource.LIVE: 'live'>
    """

    source_name = "ubisoftplus"
    id_family = "ubisoft"
    subscription_slug = "ubisoftplus"
    default_tier = "classics"

    def __init__(self, *, use_fallback: bool = False, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._config = self._settings.ubisoft
        self._use_fallback = use_fallback

    def _requests_per_minute(self) -> int:
        return self._settings.ubisoft.requests_per_minute

    def _timeout_seconds(self) -> float:
        return float(self._settings.ubisoft.timeout_seconds)

    async def fetch_page(self, page: int) -> list[UbisoftProduct]:
        """Fetch one search page (1-based)."""
        url = self._config.search_url
        payload = await self._get_json(
            url,
            params={
                "subscription": "ubisoftplus",
                "pageSize": self._config.page_size,
                "page": page,
            },
        )
        return self._parse(UbisoftSearchResponse, payload, endpoint=url).products

    async def _live(self) -> AsyncIterator[ProviderGameRecord]:
        seen: set[str] = set()
        page = 1
        while True:
            products = await self.fetch_page(page)
            fresh = [p for p in products if (p.id or p.name) not in seen]
            # Stop when the API ignores paging and repeats itself
            if not fresh:
                break
            for product in fresh:
                seen.add(product.id or product.name)
                record = extract_ubisoft_game_data(product)
                if record is None:
                    continue
                yield record
            if len(products) < self._config.page_size:
                break
            page += 1

    async def _fallback(self, limit: int | None) -> AsyncIterator[ProviderGameRecord]:
        self._last_source = FetchSource.FALLBACK
        records = fallback_records()
        for record in records[:limit] if limit is not None else records:
            yield record

    async def fetch(self, *, limit: int | None = None) -> AsyncIterator[ProviderGameRecord]:
        self._last_source = FetchSource.LIVE
        if limit is not None and limit <= 0:
            return

        if self._use_fallback:
            self._logger.info("Using fallback catalog", reason="requested")
            async for record in self._fallback(limit):
                yield record
            return

        yielded = 0
        try:
            async for record in self._live():
                yield record
                yielded += 1
                if limit is not None and yielded >= limit:
                    return
        except FetchError as e:
            if yielded:
                raise
            self._logger.warning("Live catalog unavailable, using fallback", error=str(e))
        else:
            if yielded:
                self._logger.info("Catalog fetch complete", records=yielded)
                return
            self._logger.warning("Live catalog returned no products, using fallback")

        async for record in self._fallback(limit):
            yield record
