"""
Expiry scanner.

Promotes entries whose leaving date has entered the warning window
to leaving_soon.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from subscription_catalog.context import Clock, SystemClock
from subscription_catalog.domain.models import CatalogEntry, EntryStatus
from subscription_catalog.logger import get_logger
from subscription_catalog.storage.base import CatalogStore


@dataclass
class ExpiryScanResult:
    """Outcome of one scan."""

    scanned: int = 0
    updated: int = 0
    entry_ids: list[str] = field(default_factory=list)


def is_expiring(entry: CatalogEntry, cutoff: datetime) -> bool:
    """True when the entry should be flagged as leaving soon at this cutoff."""
    return (
        entry.leaving_date is not None
        and entry.leaving_date < cutoff
        and entry.status is not EntryStatus.LEAVING_SOON
    )


class ExpiryScanner:
    """
    Periodic sweep over entries with a leaving date.

    Each update is a conditional patch: the expiry predicate is checked
    again against the stored row at write time, so an entry reconciled
    between the scan's read and its write keeps the newer state.

    Example:
        >>> scanner = ExpiryScanner(store, warning_window=timedelta(days=14))
        >>> result = scanner.scan()
    """

    def __init__(
        self,
        store: CatalogStore,
        *,
        clock: Clock | None = None,
        warning_window: timedelta = timedelta(days=14),
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._window = warning_window
        self._logger = get_logger(__name__, component="expiry_scanner")

    def scan(self) -> ExpiryScanResult:
        cutoff = self._clock.now() + self._window
        result = ExpiryScanResult()

        for status in (EntryStatus.AVAILABLE, EntryStatus.COMING_SOON):
            for entry in self._store.entries_by_status(status):
                if entry.leaving_date is None:
                    continue
                result.scanned += 1
                if not is_expiring(entry, cutoff):
                    continue

                updated = self._store.patch_entry_if(
                    entry.id,
                    {"status": EntryStatus.LEAVING_SOON},
                    lambda current: is_expiring(current, cutoff),
                )
                if updated is not None:
                    result.updated += 1
                    result.entry_ids.append(entry.id)

        self._logger.info(
            "Expiry scan complete",
            cutoff=cutoff.isoformat(),
            scanned=result.scanned,
            updated=result.updated,
        )
        return result
