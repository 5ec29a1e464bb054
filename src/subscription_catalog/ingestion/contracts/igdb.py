"""
Data contracts for Twitch authentication and IGDB game lookups.
"""

from datetime import date, datetime, timezone

from pydantic import BaseModel, Field, RootModel


class TwitchToken(BaseModel):
    """Client-credentials token response."""

    access_token: str = Field(..., min_length=1)
    expires_in: int = Field(..., ge=0, description="Lifetime in seconds")
    token_type: str = "bearer"


class IgdbCover(BaseModel):
    url: str


class IgdbPlatform(BaseModel):
    name: str


class IgdbGame(BaseModel):
    """
    Game document from the IGDB /games endpoint.

    Requested fields: name, slug, cover.url, first_release_date,
    platforms.name, summary.
    """

    id: int
    slug: str | None = None
    name: str
    cover: IgdbCover | None = None
    first_release_date: int | None = Field(default=None, description="Unix timestamp")
    platforms: list[IgdbPlatform] = Field(default_factory=list)
    summary: str | None = None

    @property
    def cover_url(self) -> str | None:
        """Large cover URL (IGDB returns thumbnails by default)."""
        if self.cover is None:
            return None
        url = self.cover.url.replace("t_thumb", "t_cover_big")
        return f"https:{url}" if url.startswith("//") else url

    @property
    def release_date(self) -> date | None:
        if self.first_release_date is None:
            return None
        return datetime.fromtimestamp(self.first_release_date, tz=timezone.utc).date()


class IgdbGameList(RootModel[list[IgdbGame]]):
    """The /games endpoint returns a bare JSON array."""
