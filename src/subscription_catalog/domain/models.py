"""
Domain models for the subscription catalog.

These Pydantic models define the canonical shapes shared by the
adapters, the catalog components, and the store.
"""

from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PlatformTag(str, Enum):
    """Canonical platform vocabulary."""

    PC = "pc"
    CONSOLE = "console"
    XBOX = "xbox"
    PS4 = "ps4"
    PS5 = "ps5"
    SWITCH = "switch"
    CLOUD = "cloud"


class EntryStatus(str, Enum):
    """Availability status of a catalog entry."""

    AVAILABLE = "available"
    COMING_SOON = "coming_soon"
    LEAVING_SOON = "leaving_soon"

    @property
    def is_transitional(self) -> bool:
        return self is not EntryStatus.AVAILABLE


class ExternalRef(BaseModel):
    """A reference to a record in an external system."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., min_length=1, description="External system, e.g. igdb")
    id: str = Field(..., min_length=1, description="Identifier within that system")


class Game(BaseModel):
    """
    Canonical game.

    Exactly one Game represents a real-world title. Games are created
    only by the entity resolver.
    """

    id: str
    title: str = Field(..., min_length=1)
    preferred_ref: ExternalRef | None = Field(
        default=None, description="Preferred external id (metadata service)"
    )
    external_ids: dict[str, str] = Field(
        default_factory=dict,
        description="Secondary ids keyed by provider id family",
    )
    cover_url: str | None = None
    release_date: date | None = None
    platforms: set[PlatformTag] = Field(default_factory=set)
    description: str | None = None
    updated_at: datetime = Field(default_factory=utcnow)


class Tier(BaseModel):
    """An access level within a subscription."""

    slug: str = Field(..., min_length=1)
    name: str
    rank: int = Field(..., ge=0, description="Higher rank includes lower ranks' access")


class Subscription(BaseModel):
    """A tracked subscription service with an ordered tier list."""

    id: str
    slug: str = Field(..., min_length=1)
    name: str
    color: str = Field(..., description="Brand color for UI")
    logo_url: str | None = None
    tiers: list[Tier] = Field(..., min_length=1)

    @field_validator("tiers")
    @classmethod
    def validate_tier_order(cls, tiers: list[Tier]) -> list[Tier]:
        """Tier ranks must strictly increase and slugs must be unique."""
        slugs = [t.slug for t in tiers]
        if len(set(slugs)) != len(slugs):
            raise ValueError(f"Duplicate tier slugs: {slugs}")
        for lower, higher in zip(tiers, tiers[1:]):
            if higher.rank <= lower.rank:
                raise ValueError(
                    f"Tier ranks must strictly increase: {lower.slug}={lower.rank}, "
                    f"{higher.slug}={higher.rank}"
                )
        return tiers

    def tier(self, slug: str) -> Tier | None:
        return next((t for t in self.tiers if t.slug == slug), None)

    def tier_rank(self, slug: str) -> int | None:
        tier = self.tier(slug)
        return tier.rank if tier else None

    def has_tier(self, slug: str) -> bool:
        return self.tier(slug) is not None


EntryKey = tuple[str, str, str]


class CatalogEntry(BaseModel):
    """The fact that a game is offered by a subscription on a platform."""

    id: str
    game_id: str
    subscription_id: str
    tier_slug: str = Field(..., description="Minimum tier required")
    platform: PlatformTag
    status: EntryStatus = EntryStatus.AVAILABLE
    available_date: datetime | None = None
    leaving_date: datetime | None = None
    native_id: str | None = Field(default=None, description="Provider-native id")
    last_verified_at: datetime = Field(default_factory=utcnow)

    @field_validator("available_date", "leaving_date", "last_verified_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)

    @property
    def key(self) -> EntryKey:
        """Natural key: (game, subscription, platform)."""
        return (self.game_id, self.subscription_id, self.platform.value)


class UserSubscription(BaseModel):
    """A subscription held by a user at a specific tier."""

    id: str
    user_id: str = Field(..., min_length=1)
    subscription_id: str
    tier_slug: str


class ProviderGameRecord(BaseModel):
    """
    A provider listing normalized into the common shape.

    Produced by provider adapters and consumed by the sync driver.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    description: str | None = None
    cover_url: str | None = None
    release_date: date | None = None
    native_id: str | None = None
    id_family: str = Field(..., description="Namespace of native_id, e.g. microsoft")
    platforms: frozenset[PlatformTag] = Field(..., min_length=1)

    # Listing facts reported by the provider
    tier_slug: str | None = None
    status: EntryStatus = EntryStatus.AVAILABLE
    available_date: datetime | None = None
    leaving_date: datetime | None = None
    dual_listed: bool = Field(
        default=False, description="Also offered through the companion subscription"
    )

    @field_validator("available_date", "leaving_date")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v
