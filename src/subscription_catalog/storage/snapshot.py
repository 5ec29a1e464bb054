"""
JSON snapshot persistence for the in-memory store.

Lets CLI invocations share catalog state: the whole store is written
as one JSON document and rebuilt (indexes included) on load.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from subscription_catalog.config import get_settings
from subscription_catalog.errors import CatalogError
from subscription_catalog.logger import get_logger
from subscription_catalog.storage.memory import InMemoryCatalogStore

SNAPSHOT_VERSION = 1


class SnapshotError(CatalogError):
    """Raised when a snapshot file cannot be read back."""

    pass


class CatalogSnapshot:
    """
    Reads and writes store snapshots.

    Example:
        >>> snapshot = CatalogSnapshot(Path("data/catalog.json"))
        >>> store = snapshot.load()
        >>> snapshot.save(store)
    """

    def __init__(self, path: Path | None = None) -> None:
        """
        Initialize snapshot handler.

        Args:
            path: Snapshot file (defaults to STORE_SNAPSHOT_PATH)
        """
        self._path = path or get_settings().store.snapshot_path
        self._logger = get_logger(__name__, component="snapshot")

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> InMemoryCatalogStore:
        """
        Load the store from disk.

        A missing file yields an empty store.

        Raises:
            SnapshotError: If the file is not a valid snapshot
        """
        if not self._path.exists():
            self._logger.info("No snapshot found, starting empty", path=str(self._path))
            return InMemoryCatalogStore()

        try:
            with self._path.open("r", encoding="utf-8") as f:
                payload: dict[str, Any] = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SnapshotError(f"Could not read snapshot {self._path}: {e}") from e

        version = payload.get("version")
        if version != SNAPSHOT_VERSION:
            raise SnapshotError(f"Unsupported snapshot version: {version}")

        store = InMemoryCatalogStore.from_document(payload.get("data", {}))

        self._logger.info(
            "Loaded snapshot",
            path=str(self._path),
            saved_at=payload.get("saved_at"),
            games=len(store.list_games()),
            entries=len(store.list_entries()),
        )
        return store

    def save(self, store: InMemoryCatalogStore) -> Path:
        """
        Write the store to disk.

        The document is written to a temporary sibling and moved into
        place so an interrupted save never truncates the previous snapshot.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)

        document = store.to_document()
        payload = {
            "version": SNAPSHOT_VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "statistics": {name: len(records) for name, records in document.items()},
            "data": document,
        }

        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, default=str)
        tmp_path.replace(self._path)

        self._logger.info(
            "Wrote snapshot",
            path=str(self._path),
            **payload["statistics"],
        )
        return self._path
