"""
Error taxonomy for the catalog pipeline.

Fetch errors are recoverable and stop a single provider run,
configuration errors are fatal for a single provider run, and
store/lookup errors surface from the catalog components.
"""

from datetime import datetime, timezone


class CatalogError(Exception):
    """Base exception for all catalog errors."""


class FetchError(CatalogError):
    """Raised when a provider fetch fails (network, non-2xx, schema surprise)."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        endpoint: str | None = None,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.endpoint = endpoint
        self.status_code = status_code
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)


class RateLimitError(FetchError):
    """Raised when a provider throttles us."""

    pass


class APIError(FetchError):
    """Raised when a provider returns an error response."""

    pass


class SchemaError(FetchError):
    """Raised when a provider response doesn't match the expected shape."""

    pass


class ConfigurationError(CatalogError):
    """Raised when a provider is missing required credentials or identifiers."""

    pass


class UniquenessViolation(CatalogError):
    """Raised by a store when an insert collides with an existing key."""

    def __init__(self, message: str, *, key: tuple[str, ...] | None = None) -> None:
        super().__init__(message)
        self.key = key


class ReconciliationConflict(CatalogError):
    """Raised when a keyed upsert keeps colliding after a retry."""

    pass


class NotFoundError(CatalogError, LookupError):
    """Base for missing records."""

    pass


class GameNotFoundError(NotFoundError):
    pass


class SubscriptionNotFoundError(NotFoundError):
    pass


class EntryNotFoundError(NotFoundError):
    pass


class UnknownTierError(CatalogError, ValueError):
    """Raised when a tier slug is not part of a subscription's tier list."""

    def __init__(self, subscription_slug: str, tier_slug: str) -> None:
        super().__init__(
            f"Tier '{tier_slug}' is not defined for subscription '{subscription_slug}'"
        )
        self.subscription_slug = subscription_slug
        self.tier_slug = tier_slug
