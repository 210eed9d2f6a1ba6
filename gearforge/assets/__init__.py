"""Credentialed asset retrieval.

Assets (build and part images) are fetched with an Authorization header
and handed to their owner as revocable in-memory handles.
"""

from gearforge.assets.cache import AssetCache, AssetSlot, Interest
from gearforge.assets.handle import AssetHandle, ObjectStore

__all__ = ["AssetCache", "AssetHandle", "AssetSlot", "Interest", "ObjectStore"]
