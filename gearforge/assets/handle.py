"""Revocable in-memory asset handles.

Fetched binary payloads are materialized in an ObjectStore under an
opaque ``blob:`` reference, and exposed to their owner through an
AssetHandle. Revoking the handle drops the payload from the store.
Revocation is idempotent.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredObject:
    """Payload held by an ObjectStore."""

    payload: bytes
    content_type: str


class ObjectStore:
    """Registry of locally materialized binary objects."""

    def __init__(self) -> None:
        self._objects: dict[str, StoredObject] = {}

    def create(self, payload: bytes, content_type: str) -> AssetHandle:
        """Materialize a payload and return the handle that owns it.

        Args:
            payload: Binary content.
            content_type: MIME type of the content.

        Returns:
            A live AssetHandle.
        """
        object_ref = f"blob:{uuid.uuid4()}"
        self._objects[object_ref] = StoredObject(payload, content_type)
        return AssetHandle(self, object_ref, content_type, len(payload))

    def resolve(self, object_ref: str) -> StoredObject | None:
        """Return the object for a reference, or None once revoked."""
        return self._objects.get(object_ref)

    def release(self, object_ref: str) -> bool:
        """Drop an object. Returns False if it was already gone."""
        return self._objects.pop(object_ref, None) is not None

    def live_refs(self) -> list[str]:
        """References that have not been revoked."""
        return list(self._objects)

    def __len__(self) -> int:
        return len(self._objects)


class AssetHandle:
    """Exclusively owned reference to a materialized asset.

    Attributes:
        object_ref: Opaque reference consumed by rendering.
        content_type: MIME type of the payload.
        size: Payload size in bytes.
    """

    def __init__(
        self, store: ObjectStore, object_ref: str, content_type: str, size: int
    ) -> None:
        self._store = store
        self.object_ref = object_ref
        self.content_type = content_type
        self.size = size
        self._revoked = False

    @property
    def revoked(self) -> bool:
        """Whether revoke() has been called."""
        return self._revoked

    def read(self) -> bytes:
        """Return the payload.

        Raises:
            RuntimeError: If the handle was revoked.
        """
        stored = None if self._revoked else self._store.resolve(self.object_ref)
        if stored is None:
            raise RuntimeError(f"Asset handle {self.object_ref} was revoked")
        return stored.payload

    def revoke(self) -> None:
        """Release the payload. Calling this more than once is a no-op."""
        if self._revoked:
            return
        self._revoked = True
        self._store.release(self.object_ref)
        logger.debug("Revoked %s", self.object_ref)

    def __enter__(self) -> AssetHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.revoke()

    def __repr__(self) -> str:
        """Return string representation of AssetHandle."""
        state = "revoked" if self._revoked else "live"
        return (
            f"<AssetHandle(ref='{self.object_ref}', type='{self.content_type}', "
            f"size={self.size}, {state})>"
        )


__all__ = ["AssetHandle", "ObjectStore", "StoredObject"]
