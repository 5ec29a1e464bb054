"""
Domain models shared across the catalog pipeline.
"""

from subscription_catalog.domain.models import (
    CatalogEntry,
    EntryKey,
    EntryStatus,
    ExternalRef,
    Game,
    PlatformTag,
    ProviderGameRecord,
    Subscription,
    Tier,
    UserSubscription,
    utcnow,
)
from subscription_catalog.domain.seeds import SUBSCRIPTION_SEEDS

__all__ = [
    "SUBSCRIPTION_SEEDS",
    "CatalogEntry",
    "EntryKey",
    "EntryStatus",
    "ExternalRef",
    "Game",
    "PlatformTag",
    "ProviderGameRecord",
    "Subscription",
    "Tier",
    "UserSubscription",
    "utcnow",
]
