"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation,
type coercion, and sensible defaults.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class XboxCatalogConfig(BaseSettings):
    """Microsoft catalog configuration (Game Pass and EA Play)."""

    model_config = SettingsConfigDict(env_prefix="XBOX_")

    sigls_url: str = Field(
        default="https://catalog.gamepass.com/sigls/v2",
        description="Game Pass collection (sigl) listing endpoint",
    )
    display_catalog_url: str = Field(
        default="https://displaycatalog.mp.microsoft.com/v7.0/products",
        description="Microsoft Store product details endpoint",
    )
    market: str = Field(default="US", description="Store market code")
    language: str = Field(default="en-us", description="Store language code")
    console_collection: str = Field(
        default="f6f1f99f-9b49-4ccd-b3bf-4d9767a77f5e",
        description="Sigl id of the console games collection",
    )
    pc_collection: str = Field(
        default="fdd9e2a7-0fee-49f6-ad69-4354098401ff",
        description="Sigl id of the PC games collection",
    )
    ea_play_collection: str = Field(
        default="b8900d09-a491-44cc-916e-32b5acae621b",
        description="Sigl id of the EA Play collection",
    )
    coming_soon_collection: str | None = Field(
        default="095bda36-f5cd-43f2-9ee1-0a72f371fb96",
        description="Sigl id of the 'coming to Game Pass' collection",
    )
    leaving_soon_collection: str | None = Field(
        default="393f05bf-e596-4ef6-9487-6d4fa0eab987",
        description="Sigl id of the 'leaving soon' collection",
    )
    details_batch_size: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Product ids per display catalog request",
    )
    requests_per_minute: int = Field(
        default=60,
        ge=1,
        le=600,
        description="Rate limit for catalog requests per minute",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=5,
        le=120,
        description="HTTP request timeout in seconds",
    )


class PlayStationConfig(BaseSettings):
    """PlayStation Store catalog configuration."""

    model_config = SettingsConfigDict(env_prefix="PSN_")

    graphql_url: str = Field(
        default="https://web.np.playstation.com/api/graphql/v1/op",
        description="PlayStation Store GraphQL endpoint",
    )
    game_catalog_category: str = Field(
        default="3a7006fe-e26f-49fe-87e5-4473d7ed0fb2",
        description="Category id of the Extra/Premium game catalog",
    )
    classics_category: str = Field(
        default="13d915bc-8a8e-4723-8474-c6f922b6de83",
        description="Category id of the Premium classics catalog",
    )
    persisted_query_hash: str = Field(
        default="257713466fc3264850aa473409a29088e3a4115e6e69e9fb3e061c8dd5b9f5c6",
        description="sha256 hash of the categoryGridRetrieve persisted query",
    )
    country: str = Field(default="US", description="Store country code")
    language: str = Field(default="en", description="Store language code")
    page_size: int = Field(default=100, ge=1, le=500, description="Products per page")
    requests_per_minute: int = Field(default=60, ge=1, le=600)
    timeout_seconds: int = Field(default=30, ge=5, le=120)


class UbisoftConfig(BaseSettings):
    """Ubisoft+ catalog configuration."""

    model_config = SettingsConfigDict(env_prefix="UBISOFT_")

    search_url: str = Field(
        default="https://store.ubisoft.com/api/catalog/search",
        description="Ubisoft Store catalog search endpoint",
    )
    page_size: int = Field(default=100, ge=1, le=500, description="Products per page")
    requests_per_minute: int = Field(default=30, ge=1, le=600)
    timeout_seconds: int = Field(default=30, ge=5, le=120)


class IgdbConfig(BaseSettings):
    """IGDB metadata configuration (Twitch client credentials)."""

    model_config = SettingsConfigDict(env_prefix="TWITCH_")

    client_id: str | None = Field(
        default=None,
        description="Twitch application client id",
    )
    client_secret: SecretStr | None = Field(
        default=None,
        description="Twitch application client secret",
    )
    token_url: str = Field(default="https://id.twitch.tv/oauth2/token")
    api_url: str = Field(default="https://api.igdb.com/v4")
    token_safety_margin_seconds: int = Field(
        default=3600,
        ge=0,
        description="Seconds subtracted from the token lifetime before refresh",
    )
    requests_per_minute: int = Field(default=240, ge=1, le=600)
    timeout_seconds: int = Field(default=30, ge=5, le=120)

    @property
    def has_credentials(self) -> bool:
        """Check whether both client credentials are present."""
        return bool(self.client_id) and self.client_secret is not None


class SyncConfig(BaseSettings):
    """Reconciliation and expiry behavior."""

    model_config = SettingsConfigDict(env_prefix="SYNC_")

    warning_window_days: int = Field(
        default=14,
        ge=1,
        le=120,
        description="Lookahead for flagging entries as leaving soon",
    )
    title_similarity_threshold: float = Field(
        default=0.92,
        ge=0.5,
        le=1.0,
        description="Minimum normalized title similarity for a fuzzy match",
    )
    default_item_limit: int | None = Field(
        default=None,
        ge=1,
        description="Item cap applied to sync runs when none is given",
    )
    user_agent: str = Field(default="SubscriptionCatalog/1.0")


class StoreConfig(BaseSettings):
    """Catalog store persistence."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    snapshot_path: Path = Field(
        default=Path("data/catalog.json"),
        description="JSON snapshot used by CLI runs",
    )


class RetryConfig(BaseSettings):
    """Retry behavior configuration."""

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of retry attempts",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Base delay between retries (exponential backoff)",
    )
    max_delay_seconds: float = Field(
        default=60.0,
        ge=0.0,
        le=300.0,
        description="Maximum delay between retries",
    )
    exponential_base: float = Field(
        default=2.0,
        ge=1.5,
        le=4.0,
        description="Base for exponential backoff calculation",
    )


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format",
    )
    include_timestamp: bool = Field(
        default=True,
        description="Include timestamp in log entries",
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: str) -> str:
        """Accept lower-case level names."""
        return v.upper() if isinstance(v, str) else v


class Settings(BaseSettings):
    """
    Main application settings.

    Aggregates all configuration sections and provides
    a single entry point for configuration access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    # Sub-configurations
    xbox: XboxCatalogConfig = Field(default_factory=XboxCatalogConfig)
    playstation: PlayStationConfig = Field(default_factory=PlayStationConfig)
    ubisoft: UbisoftConfig = Field(default_factory=UbisoftConfig)
    igdb: IgdbConfig = Field(default_factory=IgdbConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once
    and reused across the application.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
