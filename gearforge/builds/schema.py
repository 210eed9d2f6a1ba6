"""Pydantic models for builds.

These models are the wire and in-memory representation of temporary
builds, their parts, update patches and validation output. ORM rows are
converted to these models at the service boundary.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gearforge.catalog.schema import CatalogItemSnapshot
from gearforge.types import POWER_STACK, BuildStatus, GearCategory


class BuildPart(BaseModel):
    """One slot assignment within a build.

    Attributes:
        gear_category: Slot being filled.
        catalog_item_id: Selected catalog item identifier.
        catalog_item: Snapshot of the catalog entry at selection time.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    gear_category: GearCategory
    catalog_item_id: str = ""
    catalog_item: CatalogItemSnapshot | None = None

    @field_validator("catalog_item_id")
    @classmethod
    def strip_catalog_item_id(cls, v: str) -> str:
        """Strip surrounding whitespace from the catalog item id."""
        return v.strip()

    @model_validator(mode="after")
    def check_snapshot_matches_slot(self) -> "BuildPart":
        """A snapshot must describe the item and slot it is attached to."""
        item = self.catalog_item
        if item is None:
            return self
        if item.id != self.catalog_item_id:
            raise ValueError(
                f"catalog_item.id {item.id!r} does not match "
                f"catalog_item_id {self.catalog_item_id!r}"
            )
        if item.gear_category is not self.gear_category:
            raise ValueError(
                f"catalog item {item.id!r} is a {item.gear_category.value}, "
                f"not a {self.gear_category.value}"
            )
        return self

    def display_name(self) -> str:
        """Return the catalog display name, or 'Not selected'."""
        if self.catalog_item is None:
            return "Not selected"
        return self.catalog_item.display_name()


class TemporaryBuild(BaseModel):
    """A token-addressed build that is either TEMP or SHARED.

    ``expires_at`` is set if and only if the build is TEMP. The access
    token is deliberately not part of this model; it is returned only by
    the operations that issue it.
    """

    model_config = ConfigDict(extra="forbid")

    id: str
    status: BuildStatus
    title: str
    description: str = ""
    parts: list[BuildPart] = Field(default_factory=list)
    verified: bool = False
    created_at: datetime
    updated_at: datetime
    expires_at: datetime | None = None

    @model_validator(mode="after")
    def check_expiry_matches_status(self) -> "TemporaryBuild":
        """Validate expires_at is present iff status is TEMP."""
        if self.status is BuildStatus.TEMP and self.expires_at is None:
            raise ValueError("TEMP builds must have expires_at")
        if self.status is BuildStatus.SHARED and self.expires_at is not None:
            raise ValueError("SHARED builds must not have expires_at")
        return self


class CreateTempBuildParams(BaseModel):
    """Request payload for creating a temporary build."""

    model_config = ConfigDict(extra="forbid")

    title: str = ""
    description: str = ""
    parts: list[BuildPart] = Field(default_factory=list)


class BuildPatch(BaseModel):
    """Partial update of a temporary build.

    Fields left as None are not changed. ``parts`` replaces the whole
    parts list when given.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    parts: list[BuildPart] | None = None


class TempBuildCreated(BaseModel):
    """Result of creating a temporary build."""

    build: TemporaryBuild
    token: str
    url: str


class PromotionResult(BaseModel):
    """Result of promoting a TEMP build to SHARED.

    Attributes:
        token: Newly issued public token.
        url: Share URL for the new token.
        build: The durable SHARED record.
    """

    token: str
    url: str
    build: TemporaryBuild


class ValidationFailure(BaseModel):
    """A single build completeness failure.

    Attributes:
        category: Gear category or 'power-stack'.
        code: Stable failure code (missing_required, not_published).
        message: Human-readable message.
    """

    model_config = ConfigDict(frozen=True)

    category: GearCategory | str
    code: str
    message: str

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: GearCategory | str) -> GearCategory | str:
        """Validate the category is a gear category or the power stack tag."""
        if v == POWER_STACK:
            return POWER_STACK
        return GearCategory(v)


class BuildValidationResult(BaseModel):
    """Validation outcome for a build."""

    valid: bool
    errors: list[ValidationFailure] = Field(default_factory=list)


__all__ = [
    "BuildPart",
    "BuildPatch",
    "BuildValidationResult",
    "CreateTempBuildParams",
    "PromotionResult",
    "TempBuildCreated",
    "TemporaryBuild",
    "ValidationFailure",
]
