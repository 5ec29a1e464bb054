"""
Microsoft catalog providers: Xbox Game Pass and EA Play.

Both read Game Pass "sigl" collections for product ids and then look
the products up in the Microsoft Store display catalog.
"""

from collections.abc import AsyncIterator
from datetime import date
from typing import Any

from subscription_catalog.domain.models import EntryStatus, PlatformTag, ProviderGameRecord
from subscription_catalog.ingestion.contracts.xbox import (
    DisplayCatalogResponse,
    MsProduct,
    SiglList,
)
from subscription_catalog.ingestion.providers.base import BaseProvider, CompanionBundle, FetchSource

# Cover image preference, best first
COVER_PURPOSES = ("BoxArt", "Poster", "SuperHeroArt")

# SKU package platform dependencies
PLATFORM_DEPENDENCIES = {
    "Windows.Xbox": PlatformTag.CONSOLE,
    "Windows.Desktop": PlatformTag.PC,
}

DEFAULT_PLATFORMS = frozenset({PlatformTag.PC, PlatformTag.CONSOLE})


def parse_release_date(value: str | None) -> date | None:
    """Date part of a Microsoft timestamp; placeholder year-1 dates are ignored."""
    if not value:
        return None
    try:
        parsed = date.fromisoformat(value.split("T")[0])
    except ValueError:
        return None
    return parsed if parsed.year > 1 else None


def extract_platforms(product: MsProduct) -> frozenset[PlatformTag]:
    """
    Platforms a product is offered on.

    Category strings mentioning Xbox mean console, PC/Windows mean pc;
    SKU platform dependencies are checked as well. Products with no
    platform signal default to both.
    """
    platforms: set[PlatformTag] = set()

    categories: list[str] = []
    if product.properties is not None:
        if product.properties.category:
            categories.append(product.properties.category)
        categories.extend(product.properties.categories or [])

    for category in categories:
        lower = category.lower()
        if "xbox" in lower:
            platforms.add(PlatformTag.CONSOLE)
        if "pc" in lower or "windows" in lower:
            platforms.add(PlatformTag.PC)

    for dependency in product.platform_dependencies:
        if dependency in PLATFORM_DEPENDENCIES:
            platforms.add(PLATFORM_DEPENDENCIES[dependency])

    return frozenset(platforms) or DEFAULT_PLATFORMS


def extract_game_data(
    product: MsProduct,
    *,
    tier_slug: str | None = None,
    status: EntryStatus = EntryStatus.AVAILABLE,
    dual_listed: bool = False,
) -> ProviderGameRecord | None:
    """
    Normalize a display catalog product.

    Returns None when the product has no localized title.
    """
    if not product.localized_properties:
        return None
    localized = product.localized_properties[0]
    if not localized.product_title or not localized.product_title.strip():
        return None

    cover_url = None
    for purpose in COVER_PURPOSES:
        image = next((i for i in localized.images if i.image_purpose == purpose), None)
        if image is not None:
            cover_url = image.absolute_uri
            break

    release_date = None
    if product.market_properties:
        release_date = parse_release_date(product.market_properties[0].original_release_date)

    return ProviderGameRecord(
        title=localized.product_title,
        description=localized.short_description or localized.product_description or None,
        cover_url=cover_url,
        release_date=release_date,
        native_id=product.product_id,
        id_family="microsoft",
        platforms=extract_platforms(product),
        tier_slug=tier_slug,
        status=status,
        dual_listed=dual_listed,
    )


class GamePassProvider(BaseProvider):
    """
    Xbox Game Pass catalog.

    Reads the console and PC collections and, when include_upcoming is
    set, the coming-soon and leaving-soon collections, which set the
    status of the records they contain.

    Example:
        >>> async with GamePassProvider() as provider:
        ...     async for record in provider.fetch(limit=10):
        ...         print(record.title)
    """

    source_name = "gamepass"
    id_family = "microsoft"
    subscription_slug = "gamepass"
    default_tier = "standard"

    dual_listed = False

    def __init__(self, *, include_upcoming: bool = True, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._config = self._settings.xbox
        self._include_upcoming = include_upcoming

    def _requests_per_minute(self) -> int:
        return self._settings.xbox.requests_per_minute

    def _timeout_seconds(self) -> float:
        return float(self._settings.xbox.timeout_seconds)

    def _collections(self) -> list[tuple[str, EntryStatus]]:
        """Collections to read, in fetch order, with the status they imply."""
        collections = [
            (self._config.console_collection, EntryStatus.AVAILABLE),
            (self._config.pc_collection, EntryStatus.AVAILABLE),
        ]
        if self._include_upcoming:
            if self._config.coming_soon_collection:
                collections.append((self._config.coming_soon_collection, EntryStatus.COMING_SOON))
            if self._config.leaving_soon_collection:
                collections.append(
                    (self._config.leaving_soon_collection, EntryStatus.LEAVING_SOON)
                )
        return collections

    async def fetch_collection(self, collection_id: str) -> list[str]:
        """Product ids listed in one sigl collection."""
        url = self._config.sigls_url
        payload = await self._get_json(
            url,
            params={
                "id": collection_id,
                "language": self._config.language,
                "market": self._config.market,
            },
        )
        product_ids = self._parse(SiglList, payload, endpoint=url).product_ids
        self._logger.info(
            "Fetched collection",
            collection_id=collection_id,
            products=len(product_ids),
        )
        return product_ids

    async def fetch_product_details(self, product_ids: list[str]) -> list[MsProduct]:
        """Look up products in batches; an empty id list makes no requests."""
        products: list[MsProduct] = []
        batch_size = self._config.details_batch_size
        for start in range(0, len(product_ids), batch_size):
            products.extend(await self._fetch_batch(product_ids[start : start + batch_size]))
        return products

    async def _fetch_batch(self, product_ids: list[str]) -> list[MsProduct]:
        url = self._config.display_catalog_url
        payload = await self._get_json(
            url,
            params={
                "bigIds": ",".join(product_ids),
                "market": self._config.market,
                "languages": self._config.language,
            },
        )
        return self._parse(DisplayCatalogResponse, payload, endpoint=url).products

    async def _product_statuses(self) -> dict[str, EntryStatus]:
        """
        De-duplicated product ids in first-seen order.

        A product listed in a leaving-soon or coming-soon collection takes
        that status even when it also appears in a regular collection.
        """
        statuses: dict[str, EntryStatus] = {}
        for collection_id, status in self._collections():
            for product_id in await self.fetch_collection(collection_id):
                current = statuses.get(product_id)
                if current is None or _status_precedence(status) > _status_precedence(current):
                    statuses[product_id] = status
        return statuses

    async def fetch(self, *, limit: int | None = None) -> AsyncIterator[ProviderGameRecord]:
        self._last_source = FetchSource.LIVE
        if limit is not None and limit <= 0:
            return

        statuses = await self._product_statuses()
        product_ids = list(statuses)
        batch_size = self._config.details_batch_size

        yielded = 0
        skipped = 0
        for start in range(0, len(product_ids), batch_size):
            for product in await self._fetch_batch(product_ids[start : start + batch_size]):
                record = extract_game_data(
                    product,
                    tier_slug=self.default_tier,
                    status=statuses.get(product.product_id, EntryStatus.AVAILABLE),
                    dual_listed=self.dual_listed,
                )
                if record is None:
                    skipped += 1
                    continue
                yield record
                yielded += 1
                if limit is not None and yielded >= limit:
                    return

        self._logger.info(
            "Catalog fetch complete",
            products=len(product_ids),
            records=yielded,
            skipped=skipped,
        )


class EaPlayProvider(GamePassProvider):
    """
    EA Play catalog.

    Same Microsoft plumbing on the EA Play collection. Every title is
    also offered through Game Pass Ultimate.
    """

    source_name = "eaplay"
    subscription_slug = "eaplay"
    default_tier = "standard"
    companion = CompanionBundle(subscription_slug="gamepass", tier_slug="ultimate")

    dual_listed = True

    def _collections(self) -> list[tuple[str, EntryStatus]]:
        return [(self._config.ea_play_collection, EntryStatus.AVAILABLE)]


def _status_precedence(status: EntryStatus) -> int:
    return {
        EntryStatus.AVAILABLE: 0,
        EntryStatus.COMING_SOON: 1,
        EntryStatus.LEAVING_SOON: 2,
    }[status]
