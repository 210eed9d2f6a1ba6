"""Pydantic models for catalog item snapshots."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gearforge.types import CatalogItemStatus, GearCategory


class CatalogItemSnapshot(BaseModel):
    """Immutable copy of a catalog entry taken at selection time.

    Attributes:
        id: Catalog item identifier.
        gear_category: Slot the item was catalogued for.
        brand: Manufacturer name.
        model: Model name.
        variant: Optional variant (size, KV, revision).
        status: Catalog moderation status at snapshot time.
        image_url: Optional reference to the item's image asset.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(description="Catalog item identifier")
    gear_category: GearCategory
    brand: str = ""
    model: str = ""
    variant: str | None = None
    status: CatalogItemStatus = CatalogItemStatus.PENDING
    image_url: str | None = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate the identifier is not blank."""
        v = v.strip()
        if not v:
            raise ValueError("catalog item id must not be empty")
        return v

    def display_name(self) -> str:
        """Return 'brand model variant' with blanks skipped."""
        return " ".join(
            p.strip() for p in (self.brand, self.model, self.variant or "") if p.strip()
        )

    def is_published(self) -> bool:
        """Check if the catalog entry was published (active) at snapshot time."""
        return self.status is CatalogItemStatus.ACTIVE


__all__ = ["CatalogItemSnapshot"]
