"""
Provider adapters for the supported subscription catalogs.
"""

from subscription_catalog.ingestion.providers.base import (
    BaseHttpClient,
    BaseProvider,
    CompanionBundle,
    FetchSource,
    ProviderFeed,
)
from subscription_catalog.ingestion.providers.playstation import PlayStationPlusProvider
from subscription_catalog.ingestion.providers.ubisoft import (
    KNOWN_UBISOFT_GAMES,
    UbisoftPlusProvider,
)
from subscription_catalog.ingestion.providers.xbox import EaPlayProvider, GamePassProvider

PROVIDERS: dict[str, type[BaseProvider]] = {
    GamePassProvider.source_name: GamePassProvider,
    EaPlayProvider.source_name: EaPlayProvider,
    PlayStationPlusProvider.source_name: PlayStationPlusProvider,
    UbisoftPlusProvider.source_name: UbisoftPlusProvider,
}

__all__ = [
    "KNOWN_UBISOFT_GAMES",
    "PROVIDERS",
    "BaseHttpClient",
    "BaseProvider",
    "CompanionBundle",
    "EaPlayProvider",
    "FetchSource",
    "GamePassProvider",
    "PlayStationPlusProvider",
    "ProviderFeed",
    "UbisoftPlusProvider",
]
