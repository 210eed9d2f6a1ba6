"""Catalog snapshot types.

Builds embed a denormalized copy of the catalog entry selected for each
slot so that a build's contents do not change when the catalog does.
"""

from gearforge.catalog.schema import CatalogItemSnapshot

__all__ = ["CatalogItemSnapshot"]
