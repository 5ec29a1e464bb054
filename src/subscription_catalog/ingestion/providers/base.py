"""
Base provider with retry logic, rate limiting, and error handling.

Every provider adapter fetches a subscription catalog over HTTP and
normalizes it into ProviderGameRecord values. Adapters never touch the
catalog store.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from subscription_catalog.config import RetryConfig, Settings, get_settings
from subscription_catalog.domain.models import ProviderGameRecord
from subscription_catalog.errors import APIError, FetchError, RateLimitError, SchemaError
from subscription_catalog.ingestion.utils.rate_limiter import RateLimiter, RateLimiterConfig
from subscription_catalog.logger import get_logger

M = TypeVar("M", bound=BaseModel)


class FetchSource(str, Enum):
    """Which path produced a provider's records."""

    LIVE = "live"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class CompanionBundle:
    """A second subscription (and tier) that also carries a provider's titles."""

    subscription_slug: str
    tier_slug: str


@dataclass
class ProviderFeed:
    """Records from one fetch, tagged with the path that produced them."""

    source: FetchSource
    records: list[ProviderGameRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


class BaseHttpClient:
    """
    HTTP plumbing shared by provider adapters and metadata clients.

    Provides:
    - HTTP client management (owned, or borrowed from the caller)
    - Retry with exponential backoff (tenacity)
    - Token-bucket spacing between requests
    - Mapping of HTTP failures onto the FetchError family
    """

    source_name: ClassVar[str]

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        retry_config: RetryConfig | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            client: Shared HTTP client; one is created (and closed on
                exit) when None
            settings: Application settings (defaults to get_settings())
            retry_config: Custom retry configuration
            rate_limiter: Custom rate limiter
        """
        self._settings = settings or get_settings()
        self._retry_config = retry_config or self._settings.retry
        self._rate_limiter = rate_limiter or RateLimiter(
            RateLimiterConfig(requests_per_minute=self._requests_per_minute()),
            name=self.source_name,
        )
        self._logger = get_logger(
            self.__class__.__name__,
            component="provider",
            source=self.source_name,
        )
        self._client = client
        self._owns_client = client is None

    def _requests_per_minute(self) -> int:
        return 60

    def _timeout_seconds(self) -> float:
        return 30.0

    def _default_headers(self) -> dict[str, str]:
        return {
            "User-Agent": self._settings.sync.user_agent,
            "Accept": "application/json",
        }

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_seconds()),
                follow_redirects=True,
                headers=self._default_headers(),
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BaseHttpClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _create_retry_decorator(self) -> Any:
        """Create retry decorator with current configuration."""
        return retry(
            retry=retry_if_exception_type((httpx.TransportError, RateLimitError, APIError)),
            stop=stop_after_attempt(self._retry_config.max_attempts),
            wait=wait_exponential(
                multiplier=self._retry_config.base_delay_seconds,
                max=self._retry_config.max_delay_seconds,
                exp_base=self._retry_config.exponential_base,
            ),
            before_sleep=self._log_retry_attempt,
            reraise=True,
        )

    def _log_retry_attempt(self, retry_state: Any) -> None:
        self._logger.warning(
            "Retrying request",
            attempt=retry_state.attempt_number,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0,
            exception=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    async def _make_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Make an HTTP request with rate limiting and retries.

        Raises:
            RateLimitError: Still throttled after retries
            APIError: Error response after retries
            FetchError: Transport failure after retries
        """
        retry_decorator = self._create_retry_decorator()

        @retry_decorator
        async def _request() -> httpx.Response:
            await self._rate_limiter.acquire()
            self._logger.debug("Making request", method=method, url=url)

            response = await self.client.request(method, url, **kwargs)

            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After", "60")
                raise RateLimitError(
                    f"Rate limit exceeded. Retry after {retry_after}s",
                    source=self.source_name,
                    endpoint=url,
                    status_code=429,
                )

            if response.status_code >= 400:
                raise APIError(
                    f"API error: {response.status_code}",
                    source=self.source_name,
                    endpoint=url,
                    status_code=response.status_code,
                )

            return response

        try:
            return await _request()  # type: ignore[no-any-return]
        except FetchError:
            self._logger.error(
                "Request failed after retries",
                url=url,
                attempts=self._retry_config.max_attempts,
            )
            raise
        except httpx.HTTPError as e:
            self._logger.error("Request failed", url=url, error=str(e))
            raise FetchError(
                f"Request failed: {e}",
                source=self.source_name,
                endpoint=url,
                original_error=e,
            ) from e

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        """GET a URL and decode its JSON body."""
        return await self._request_json("GET", url, **kwargs)

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self._make_request(method, url, **kwargs)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SchemaError(
                "Response is not valid JSON",
                source=self.source_name,
                endpoint=url,
                status_code=response.status_code,
                original_error=e,
            ) from e

    def _parse(self, model: type[M], payload: Any, *, endpoint: str) -> M:
        """
        Validate a decoded payload against a response contract.

        Raises:
            SchemaError: If the payload doesn't match the contract
        """
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            self._logger.error(
                "Response validation failed",
                endpoint=endpoint,
                contract=model.__name__,
                errors=e.error_count(),
            )
            raise SchemaError(
                f"Unexpected {model.__name__} payload",
                source=self.source_name,
                endpoint=endpoint,
                original_error=e,
            ) from e


class BaseProvider(BaseHttpClient, ABC):
    """
    Abstract base class for provider adapters.

    Subclasses set the class facts below and implement fetch().
    """

    id_family: ClassVar[str]
    subscription_slug: ClassVar[str]
    default_tier: ClassVar[str]
    companion: ClassVar[CompanionBundle | None] = None

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._last_source = FetchSource.LIVE

    @property
    def last_source(self) -> FetchSource:
        """Path taken by the most recent fetch."""
        return self._last_source

    @abstractmethod
    def fetch(self, *, limit: int | None = None) -> AsyncIterator[ProviderGameRecord]:
        """
        Lazily yield normalized records.

        Stops at catalog exhaustion or after limit records. A failure
        mid-iteration raises FetchError; records already yielded stand.
        """
        ...

    async def feed(self, *, limit: int | None = None) -> ProviderFeed:
        """Collect a full fetch into a tagged feed."""
        records = [record async for record in self.fetch(limit=limit)]
        return ProviderFeed(source=self._last_source, records=records)
