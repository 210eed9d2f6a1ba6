"""Shared type definitions for gearforge.

This module contains enums and lookup tables shared across
subpackages to avoid circular imports.
"""

from enum import Enum


class GearCategory(str, Enum):
    """Slot a catalog part can fill within a build."""

    FRAME = "frame"
    MOTOR = "motor"
    RECEIVER = "receiver"
    VTX = "vtx"
    AIO = "aio"
    FC = "fc"
    ESC = "esc"
    CAMERA = "camera"
    PROP = "prop"
    ANTENNA = "antenna"
    OTHER = "other"


class SlotGroup(str, Enum):
    """Validation group a gear category belongs to."""

    REQUIRED = "required"
    POWER = "power"
    OPTIONAL = "optional"


class BuildStatus(str, Enum):
    """Visibility/durability state of a temporary build."""

    TEMP = "TEMP"
    SHARED = "SHARED"


class CatalogItemStatus(str, Enum):
    """Moderation status of a catalog entry."""

    ACTIVE = "active"
    PENDING = "pending"
    FLAGGED = "flagged"
    REJECTED = "rejected"


# Category tag used for the cross-field power stack rule
POWER_STACK = "power-stack"

SLOT_GROUPS: dict[GearCategory, SlotGroup] = {
    GearCategory.FRAME: SlotGroup.REQUIRED,
    GearCategory.MOTOR: SlotGroup.REQUIRED,
    GearCategory.RECEIVER: SlotGroup.REQUIRED,
    GearCategory.VTX: SlotGroup.REQUIRED,
    GearCategory.AIO: SlotGroup.POWER,
    GearCategory.FC: SlotGroup.POWER,
    GearCategory.ESC: SlotGroup.POWER,
    GearCategory.CAMERA: SlotGroup.OPTIONAL,
    GearCategory.PROP: SlotGroup.OPTIONAL,
    GearCategory.ANTENNA: SlotGroup.OPTIONAL,
    GearCategory.OTHER: SlotGroup.OPTIONAL,
}

# Every category must be classified; adding an enum member without a group
# fails at import time.
_unclassified = set(GearCategory) - set(SLOT_GROUPS)
if _unclassified:
    raise RuntimeError(f"Gear categories without a slot group: {_unclassified}")

CATEGORY_LABELS: dict[GearCategory, str] = {
    GearCategory.FRAME: "Frame",
    GearCategory.MOTOR: "Motors",
    GearCategory.RECEIVER: "Receiver",
    GearCategory.VTX: "VTX",
    GearCategory.AIO: "AIO",
    GearCategory.FC: "Flight Controller",
    GearCategory.ESC: "ESC",
    GearCategory.CAMERA: "Camera",
    GearCategory.PROP: "Props",
    GearCategory.ANTENNA: "Antenna",
    GearCategory.OTHER: "Other",
}


def slot_group(category: GearCategory) -> SlotGroup:
    """Return the validation group for a gear category."""
    return SLOT_GROUPS[GearCategory(category)]


def categories_in(group: SlotGroup) -> list[GearCategory]:
    """Return the categories of a slot group in declaration order."""
    return [c for c in GearCategory if SLOT_GROUPS[c] is group]


__all__ = [
    "CATEGORY_LABELS",
    "POWER_STACK",
    "SLOT_GROUPS",
    "BuildStatus",
    "CatalogItemStatus",
    "GearCategory",
    "SlotGroup",
    "categories_in",
    "slot_group",
]
