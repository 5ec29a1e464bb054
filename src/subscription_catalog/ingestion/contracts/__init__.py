"""
Data contracts for provider API responses.

Pydantic models describing the raw JSON each provider returns, so
schema surprises surface as validation errors at the boundary.
"""

from subscription_catalog.ingestion.contracts.igdb import (
    IgdbCover,
    IgdbGame,
    IgdbGameList,
    IgdbPlatform,
    TwitchToken,
)
from subscription_catalog.ingestion.contracts.playstation import (
    PsCategoryGrid,
    PsCategoryResponse,
    PsProduct,
)
from subscription_catalog.ingestion.contracts.ubisoft import (
    UbisoftProduct,
    UbisoftSearchResponse,
)
from subscription_catalog.ingestion.contracts.xbox import (
    DisplayCatalogResponse,
    MsImage,
    MsLocalizedProperties,
    MsProduct,
    SiglItem,
    SiglList,
)

__all__ = [
    "DisplayCatalogResponse",
    "IgdbCover",
    "IgdbGame",
    "IgdbGameList",
    "IgdbPlatform",
    "MsImage",
    "MsLocalizedProperties",
    "MsProduct",
    "PsCategoryGrid",
    "PsCategoryResponse",
    "PsProduct",
    "SiglItem",
    "SiglList",
    "TwitchToken",
    "UbisoftProduct",
    "UbisoftSearchResponse",
]
