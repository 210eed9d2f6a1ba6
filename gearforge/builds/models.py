"""Temporary build ORM models.

This module defines the TempBuild and TempBuildPart models for storing
token-addressed builds and their slot assignments.
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gearforge.db import Base
from gearforge.types import BuildStatus


class TempBuild(Base):
    """ORM model for temporary and shared builds.

    A TEMP build is addressed by a private token and expires at
    ``expires_at``. Promotion creates a separate SHARED row with its own
    token and marks the TEMP row as superseded, after which its token no
    longer resolves.

    Attributes:
        id: Internal record key (never used as the access token).
        token: Opaque access token (unique).
        status: TEMP or SHARED.
        title: Build title.
        description: Build description.
        verified: Whether every part references a published catalog item.
        created_at: Creation timestamp (UTC).
        updated_at: Last modification timestamp (UTC).
        expires_at: Expiry timestamp; set iff status is TEMP.
        superseded_by_id: SHARED record this TEMP record was promoted into.
        superseded_at: Timestamp of promotion.
    """

    __tablename__ = "temp_builds"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=BuildStatus.TEMP.value, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Promotion bookkeeping
    superseded_by_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("temp_builds.id"), nullable=True
    )
    superseded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    parts: Mapped[list["TempBuildPart"]] = relationship(
        "TempBuildPart",
        back_populates="build",
        cascade="all, delete-orphan",
        order_by="TempBuildPart.id",
    )

    __table_args__ = (Index("ix_temp_builds_status_expires", "status", "expires_at"),)

    def __repr__(self) -> str:
        """Return string representation of TempBuild."""
        return (
            f"<TempBuild(id='{self.id}', status='{self.status}', "
            f"token='{self.token[:6]}...', parts={len(self.parts)})>"
        )

    def is_superseded(self) -> bool:
        """Check if this record was consumed by a promotion."""
        return self.superseded_by_id is not None

    def is_temp(self) -> bool:
        """Check if this record is still TEMP."""
        return self.status == BuildStatus.TEMP.value


class TempBuildPart(Base):
    """ORM model for a slot assignment within a temporary build.

    Attributes:
        id: Primary key.
        build_id: Foreign key to TempBuild.
        gear_category: Slot filled by this part.
        catalog_item_id: Selected catalog item.
        catalog_item: JSON snapshot of the catalog item at selection time.
    """

    __tablename__ = "temp_build_parts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    build_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("temp_builds.id"), nullable=False, index=True
    )
    gear_category: Mapped[str] = mapped_column(String(20), nullable=False)
    catalog_item_id: Mapped[str] = mapped_column(String(255), nullable=False)
    catalog_item: Mapped[dict[str, object] | None] = mapped_column(JSON, nullable=True)

    build: Mapped["TempBuild"] = relationship("TempBuild", back_populates="parts")

    __table_args__ = (
        UniqueConstraint("build_id", "gear_category", name="uq_temp_build_part_slot"),
    )

    def __repr__(self) -> str:
        """Return string representation of TempBuildPart."""
        return (
            f"<TempBuildPart(build_id='{self.build_id}', "
            f"gear_category='{self.gear_category}', "
            f"catalog_item_id='{self.catalog_item_id}')>"
        )


__all__ = ["TempBuild", "TempBuildPart"]
