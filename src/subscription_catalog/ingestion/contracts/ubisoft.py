"""
Data contracts for the Ubisoft Store catalog search API.
"""

from pydantic import BaseModel, ConfigDict, Field


class UbisoftProduct(BaseModel):
    """A Ubisoft+ catalog product."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    name: str = Field(..., min_length=1)
    short_description: str | None = Field(default=None, alias="shortDescription")
    image_url: str | None = Field(default=None, alias="imageUrl")
    release_date: str | None = Field(default=None, alias="releaseDate")
    platforms: list[str] | None = None
    subscription_type: str | None = Field(
        default=None, alias="subscriptionType", description="classics or premium"
    )


class UbisoftSearchResponse(BaseModel):
    """Wrapper for a search page."""

    products: list[UbisoftProduct] = Field(default_factory=list)
