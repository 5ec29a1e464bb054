"""
Data contracts for PlayStation Store GraphQL responses.

Operation: categoryGridRetrieve (persisted query).
"""

from pydantic import BaseModel, ConfigDict, Field


class PsDescription(BaseModel):
    type: str
    value: str


class PsImage(BaseModel):
    role: str
    url: str


class PsMedia(BaseModel):
    images: list[PsImage] = Field(default_factory=list)


class PsProduct(BaseModel):
    """A product tile in a store category grid."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str | None = None
    descriptions: list[PsDescription] = Field(default_factory=list)
    media: PsMedia | None = None
    release_date: str | None = Field(default=None, alias="releaseDate")
    platforms: list[str] = Field(default_factory=list)
    store_display_classification: str | None = Field(
        default=None, alias="storeDisplayClassification"
    )

    def image(self, *roles: str) -> str | None:
        """URL of the first image matching the roles, in preference order."""
        images = self.media.images if self.media else []
        for role in roles:
            for image in images:
                if image.role == role:
                    return image.url
        return None

    def description(self, *types: str) -> str | None:
        """First non-empty description matching the types, in preference order."""
        for kind in types:
            for item in self.descriptions:
                if item.type == kind and item.value:
                    return item.value
        return None


class PsPageInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_count: int = Field(default=0, ge=0, alias="totalCount")
    offset: int = Field(default=0, ge=0)
    size: int = Field(default=0, ge=0)
    is_last: bool | None = Field(default=None, alias="isLast")


class PsCategoryGrid(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    products: list[PsProduct] = Field(default_factory=list)
    page_info: PsPageInfo = Field(default_factory=PsPageInfo, alias="pageInfo")


class PsCategoryData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category_grid_retrieve: PsCategoryGrid | None = Field(
        default=None, alias="categoryGridRetrieve"
    )


class PsCategoryResponse(BaseModel):
    """Top-level GraphQL response."""

    data: PsCategoryData | None = None
    errors: list[dict[str, object]] | None = None

    @property
    def grid(self) -> PsCategoryGrid:
        if self.data is None or self.data.category_grid_retrieve is None:
            return PsCategoryGrid()
        return self.data.category_grid_retrieve
