"""
Ingestion: provider adapters, metadata enrichment, and the sync driver.
"""

from subscription_catalog.ingestion.orchestrator import (
    SyncDriver,
    SyncProgress,
    SyncResult,
    SyncStatus,
)

__all__ = ["SyncDriver", "SyncProgress", "SyncResult", "SyncStatus"]
