"""
Catalog store contract and implementations.
"""

from subscription_catalog.storage.base import CatalogStore
from subscription_catalog.storage.memory import InMemoryCatalogStore
from subscription_catalog.storage.snapshot import CatalogSnapshot, SnapshotError

__all__ = [
    "CatalogSnapshot",
    "CatalogStore",
    "InMemoryCatalogStore",
    "SnapshotError",
]
