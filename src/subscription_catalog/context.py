"""
Explicit context threaded through job steps.

Each job step receives only the capabilities it needs (store handle,
HTTP client, clock, settings) by parameter.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

import httpx

from subscription_catalog.config import Settings, get_settings
from subscription_catalog.storage.base import CatalogStore


class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass
class SyncContext:
    """
    Capabilities available to a sync or scan job.

    The HTTP client is optional: providers create and own a client
    when none is shared through the context.
    """

    store: CatalogStore
    clock: Clock = field(default_factory=SystemClock)
    http: httpx.AsyncClient | None = None
    settings: Settings = field(default_factory=get_settings)
