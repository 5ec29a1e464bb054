"""
Data contracts for Microsoft catalog responses.

Covers the Game Pass "sigl" collection lists and the display catalog
product documents shared by Game Pass and EA Play.
"""

from pydantic import BaseModel, ConfigDict, Field, RootModel


class _MicrosoftModel(BaseModel):
    """Microsoft documents use PascalCase keys; fields are snake_case aliases."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SiglItem(BaseModel):
    """
    One element of a sigl collection list.

    The first element is collection metadata (siglId, title); every
    following element carries a product id.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = Field(default=None, description="Store product id (BigId)")


class MsImage(_MicrosoftModel):
    image_purpose: str | None = Field(default=None, alias="ImagePurpose")
    uri: str = Field(..., alias="Uri")

    @property
    def absolute_uri(self) -> str:
        """Protocol-relative URIs resolved to https."""
        return f"https:{self.uri}" if self.uri.startswith("//") else self.uri


class MsLocalizedProperties(_MicrosoftModel):
    product_title: str | None = Field(default=None, alias="ProductTitle")
    short_description: str | None = Field(default=None, alias="ShortDescription")
    product_description: str | None = Field(default=None, alias="ProductDescription")
    images: list[MsImage] = Field(default_factory=list, alias="Images")


class MsMarketProperties(_MicrosoftModel):
    original_release_date: str | None = Field(default=None, alias="OriginalReleaseDate")


class MsProductProperties(_MicrosoftModel):
    category: str | None = Field(default=None, alias="Category")
    categories: list[str] | None = Field(default=None, alias="Categories")


class MsPlatformDependency(_MicrosoftModel):
    platform_name: str | None = Field(default=None, alias="PlatformName")


class MsPackage(_MicrosoftModel):
    platform_dependencies: list[MsPlatformDependency] = Field(
        default_factory=list, alias="PlatformDependencies"
    )


class MsSkuProperties(_MicrosoftModel):
    packages: list[MsPackage] = Field(default_factory=list, alias="Packages")


class MsSku(_MicrosoftModel):
    properties: MsSkuProperties | None = Field(default=None, alias="Properties")


class MsSkuAvailability(_MicrosoftModel):
    sku: MsSku | None = Field(default=None, alias="Sku")


class MsProduct(_MicrosoftModel):
    """
    Product document from the display catalog.

    Endpoint: displaycatalog.mp.microsoft.com/v7.0/products?bigIds=...
    """

    product_id: str = Field(..., alias="ProductId")
    localized_properties: list[MsLocalizedProperties] = Field(
        default_factory=list, alias="LocalizedProperties"
    )
    market_properties: list[MsMarketProperties] = Field(
        default_factory=list, alias="MarketProperties"
    )
    properties: MsProductProperties | None = Field(default=None, alias="Properties")
    display_sku_availabilities: list[MsSkuAvailability] = Field(
        default_factory=list, alias="DisplaySkuAvailabilities"
    )

    @property
    def platform_dependencies(self) -> list[str]:
        """Platform names declared by the product's SKU packages."""
        names: list[str] = []
        for availability in self.display_sku_availabilities:
            if availability.sku is None or availability.sku.properties is None:
                continue
            for package in availability.sku.properties.packages:
                names.extend(
                    dep.platform_name for dep in package.platform_dependencies if dep.platform_name
                )
        return names


class DisplayCatalogResponse(_MicrosoftModel):
    """Wrapper for a display catalog batch lookup."""

    products: list[MsProduct] = Field(default_factory=list, alias="Products")


class SiglList(RootModel[list[SiglItem]]):
    """A sigl collection response (a bare JSON array)."""

    @property
    def product_ids(self) -> list[str]:
        return [item.id for item in self.root if item.id]
