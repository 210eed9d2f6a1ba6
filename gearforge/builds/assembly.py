"""Part assembly model.

A PartAssembly holds the selected part for each gear category of the
build being edited. It is purely in-memory: it neither persists nor
validates. Mutations are applied in the order they are issued and the
last write for a category wins.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from gearforge.builds.schema import BuildPart
from gearforge.catalog.schema import CatalogItemSnapshot
from gearforge.types import GearCategory


class PartAssembly:
    """Mutable set of BuildParts keyed by gear category."""

    def __init__(self, parts: Iterable[BuildPart] | None = None) -> None:
        self._parts: dict[GearCategory, BuildPart] = {}
        for part in parts or ():
            self._parts[part.gear_category] = part

    @classmethod
    def from_parts(cls, parts: Iterable[BuildPart]) -> PartAssembly:
        """Build an assembly from persisted parts (later parts win)."""
        return cls(parts)

    def set(self, category: GearCategory, catalog_item: CatalogItemSnapshot) -> BuildPart:
        """Select a catalog item for a category, replacing any prior selection.

        Args:
            category: Slot to fill.
            catalog_item: Snapshot of the chosen catalog entry.

        Returns:
            The new BuildPart.

        Raises:
            ValueError: If the item is catalogued for a different category.
        """
        category = GearCategory(category)
        if catalog_item.gear_category is not category:
            raise ValueError(
                f"{catalog_item.id!r} is a {catalog_item.gear_category.value} "
                f"and cannot fill the {category.value} slot"
            )
        part = BuildPart(
            gear_category=category,
            catalog_item_id=catalog_item.id,
            catalog_item=catalog_item,
        )
        # pop first so iteration order follows most-recent write
        self._parts.pop(category, None)
        self._parts[category] = part
        return part

    def clear(self, category: GearCategory) -> None:
        """Remove the selection for a category; no-op if absent."""
        self._parts.pop(GearCategory(category), None)

    def get(self, category: GearCategory) -> BuildPart | None:
        """Return the BuildPart for a category, if any."""
        return self._parts.get(GearCategory(category))

    def has_selection(self, category: GearCategory) -> bool:
        """Check whether a category has a non-empty catalog item id."""
        part = self.get(category)
        return part is not None and bool(part.catalog_item_id)

    def selections(self) -> Mapping[GearCategory, BuildPart]:
        """Read-only view of the current selections."""
        return MappingProxyType(self._parts)

    def snapshot(self) -> PartAssembly:
        """Return an independent copy of this assembly."""
        return PartAssembly(self._parts.values())

    def to_parts(self) -> list[BuildPart]:
        """Export selections as a list ordered by category declaration."""
        return [self._parts[c] for c in GearCategory if c in self._parts]

    def payload_key(self) -> str:
        """Stable key of the selected (category, item id) pairs.

        Two assemblies with the same key would persist identically.
        """
        pairs = [
            [part.gear_category.value, part.catalog_item_id]
            for part in self.to_parts()
            if part.catalog_item_id
        ]
        return json.dumps(pairs, separators=(",", ":"))

    def __len__(self) -> int:
        return len(self._parts)

    def __contains__(self, category: object) -> bool:
        return category in self._parts

    def __repr__(self) -> str:
        """Return string representation of PartAssembly."""
        selected = ", ".join(
            f"{p.gear_category.value}={p.catalog_item_id}" for p in self.to_parts()
        )
        return f"<PartAssembly({selected})>"


__all__ = ["PartAssembly"]
