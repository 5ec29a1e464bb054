"""
Catalog components: resolution, reconciliation, expiry, and queries.
"""

from subscription_catalog.catalog.availability import (
    AvailabilityQueryEngine,
    AvailabilityResult,
    CatalogListing,
    EntryAvailability,
    SiteStats,
)
from subscription_catalog.catalog.expiry import ExpiryScanner, ExpiryScanResult
from subscription_catalog.catalog.reconciler import CatalogReconciler
from subscription_catalog.catalog.resolver import (
    EntityResolver,
    MergeResult,
    Resolution,
    ResolutionMethod,
)
from subscription_catalog.catalog.subscriptions import (
    HeldSubscription,
    SeedResult,
    SubscriptionDirectory,
)

__all__ = [
    "AvailabilityQueryEngine",
    "AvailabilityResult",
    "CatalogListing",
    "CatalogReconciler",
    "EntityResolver",
    "EntryAvailability",
    "ExpiryScanResult",
    "ExpiryScanner",
    "HeldSubscription",
    "MergeResult",
    "Resolution",
    "ResolutionMethod",
    "SeedResult",
    "SiteStats",
    "SubscriptionDirectory",
]
