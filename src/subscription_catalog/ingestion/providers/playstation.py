"""
PlayStation Plus provider.

Pages the PlayStation Store GraphQL categoryGridRetrieve persisted
query for the Game Catalog (Extra) and, optionally, the Classics
(Premium) categories.
"""

import json
from collections.abc import AsyncIterator
from datetime import date
from typing import Any

from subscription_catalog.domain.models import PlatformTag, ProviderGameRecord
from subscription_catalog.errors import APIError, ConfigurationError
from subscription_catalog.ingestion.contracts.playstation import (
    PsCategoryGrid,
    PsCategoryResponse,
    PsProduct,
)
from subscription_catalog.ingestion.providers.base import BaseProvider, FetchSource

OPERATION_NAME = "categoryGridRetrieve"

COVER_ROLES = ("MASTER", "GAMEHUB_COVER_ART", "BACKGROUND")
DESCRIPTION_TYPES = ("SHORT_DESCRIPTION", "LONG_DESCRIPTION")


def extract_ps_platforms(platforms: list[str]) -> frozenset[PlatformTag]:
    """PS5 and PS4 are kept apart; anything else is a generic console."""
    upper = [p.upper() for p in platforms]
    tags: set[PlatformTag] = set()
    if any("PS5" in p for p in upper):
        tags.add(PlatformTag.PS5)
    if any("PS4" in p for p in upper):
        tags.add(PlatformTag.PS4)
    return frozenset(tags) or frozenset({PlatformTag.CONSOLE})


def extract_ps_game_data(product: PsProduct, *, tier_slug: str) -> ProviderGameRecord | None:
    """Normalize a category grid product; products without a name are skipped."""
    if not product.name or not product.name.strip():
        return None

    release_date = None
    if product.release_date:
        try:
            release_date = date.fromisoformat(product.release_date.split("T")[0])
        except ValueError:
            release_date = None

    return ProviderGameRecord(
        title=product.name,
        description=product.description(*DESCRIPTION_TYPES),
        cover_url=product.image(*COVER_ROLES),
        release_date=release_date,
        native_id=product.id,
        id_family="playstation",
        platforms=extract_ps_platforms(product.platforms),
        tier_slug=tier_slug,
    )


class PlayStationPlusProvider(BaseProvider):
    """
    PlayStation Plus catalog.

    Game Catalog products map to tier extra, Classics to premium.

    Example:
        >>> async with PlayStationPlusProvider(include_classics=True) as provider:
        ...     feed = await provider.feed(limit=50)
    """

    source_name = "psplus"
    id_family = "playstation"
    subscription_slug = "psplus"
    default_tier = "extra"

    def __init__(self, *, include_classics: bool = False, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._config = self._settings.playstation
        self._include_classics = include_classics

    def _requests_per_minute(self) -> int:
        return self._settings.playstation.requests_per_minute

    def _timeout_seconds(self) -> float:
        return float(self._settings.playstation.timeout_seconds)

    def _default_headers(self) -> dict[str, str]:
        locale = f"{self._settings.playstation.language}-{self._settings.playstation.country}"
        return {
            **super()._default_headers(),
            "Accept-Language": locale,
            "X-PSN-Store-Locale-Override": locale,
            "x-apollo-operation-name": OPERATION_NAME,
        }

    def _categories(self) -> list[tuple[str, str]]:
        categories = [(self._config.game_catalog_category, "extra")]
        if self._include_classics:
            categories.append((self._config.classics_category, "premium"))
        return categories

    def _check_configuration(self) -> None:
        if not self._config.persisted_query_hash:
            raise ConfigurationError(
                "PSN_PERSISTED_QUERY_HASH is required for the PlayStation Store catalog"
            )
        for category_id, tier in self._categories():
            if not category_id:
                raise ConfigurationError(
                    f"No PlayStation Store category configured for tier {tier}"
                )

    async def fetch_page(self, category_id: str, offset: int, size: int) -> PsCategoryGrid:
        """Fetch one page of a category grid."""
        self._check_configuration()

        variables = {
            "id": category_id,
            "pageArgs": {"offset": offset, "size": size},
            "sortBy": {"name": "productReleaseDate", "isAscending": False},
            "filterBy": [],
            "facetOptions": [],
        }
        extensions = {
            "persistedQuery": {
                "version": 1,
                "sha256Hash": self._config.persisted_query_hash,
            },
        }

        url = self._config.graphql_url
        payload = await self._get_json(
            url,
            params={
                "operationName": OPERATION_NAME,
                "variables": json.dumps(variables, separators=(",", ":")),
                "extensions": json.dumps(extensions, separators=(",", ":")),
            },
        )
        response = self._parse(PsCategoryResponse, payload, endpoint=url)

        if response.errors and not response.grid.products:
            message = str(response.errors[0].get("message", "unknown error"))
            raise APIError(
                f"GraphQL error: {message}",
                source=self.source_name,
                endpoint=url,
            )
        return response.grid

    async def fetch(self, *, limit: int | None = None) -> AsyncIterator[ProviderGameRecord]:
        self._last_source = FetchSource.LIVE
        self._check_configuration()
        if limit is not None and limit <= 0:
            return

        page_size = self._config.page_size
        yielded = 0

        for category_id, tier in self._categories():
            offset = 0
            while True:
                grid = await self.fetch_page(category_id, offset, page_size)
                self._logger.debug(
                    "Fetched page",
                    category_id=category_id,
                    offset=offset,
                    products=len(grid.products),
                    total_count=grid.page_info.total_count,
                )

                for product in grid.products:
                    record = extract_ps_game_data(product, tier_slug=tier)
                    if record is None:
                        continue
                    yield record
                    yielded += 1
                    if limit is not None and yielded >= limit:
                        return

                offset += page_size
                if not grid.products or offset >= grid.page_info.total_count:
                    break

            self._logger.info("Category fetch complete", category_id=category_id, tier=tier)
