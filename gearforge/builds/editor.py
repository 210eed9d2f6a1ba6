"""Editing session for a temporary build.

A TempBuildEditor owns the PartAssembly of the build being edited and
keeps validation failures current after every mutation. Network calls
go through a TempBuildClient; their responses are applied only if the
session's interest has not moved on in the meantime (the token was
switched or promoted, or a newer save was issued). Stale responses are
dropped instead of clobbering newer state.
"""

from __future__ import annotations

import json
import logging

from gearforge.builds.assembly import PartAssembly
from gearforge.builds.client import TempBuildClient
from gearforge.builds.errors import BuildNotFoundError, InvalidStateError
from gearforge.builds.schema import (
    BuildPatch,
    PromotionResult,
    TemporaryBuild,
    ValidationFailure,
)
from gearforge.builds.validation import evaluate, failures_by_category
from gearforge.catalog.schema import CatalogItemSnapshot
from gearforge.types import BuildStatus, GearCategory

logger = logging.getLogger(__name__)


class TempBuildEditor:
    """One editing session bound to a temporary build token."""

    def __init__(self, client: TempBuildClient, token: str) -> None:
        self._client = client
        self.token = token
        self.build: TemporaryBuild | None = None
        self.assembly = PartAssembly()
        self.title = ""
        self.description = ""
        self.failures: list[ValidationFailure] = evaluate(self.assembly)
        self._saved_key: str | None = None
        self._save_seq = 0

    @property
    def is_shared(self) -> bool:
        """Whether the loaded build is SHARED (read-only)."""
        return self.build is not None and self.build.status is BuildStatus.SHARED

    @property
    def is_dirty(self) -> bool:
        """Whether local edits differ from the last saved state."""
        return self._payload_key() != self._saved_key

    def _payload_key(self) -> str:
        return json.dumps(
            [self.title, self.description, self.assembly.payload_key()],
            separators=(",", ":"),
        )

    def _revalidate(self) -> None:
        self.failures = evaluate(self.assembly)

    def failure_for(self, category: GearCategory | str) -> ValidationFailure | None:
        """Return the failure to render next to a slot, if any."""
        key = category.value if isinstance(category, GearCategory) else category
        return failures_by_category(self.failures).get(key)

    def _apply_build(self, build: TemporaryBuild) -> None:
        self.build = build
        self.title = build.title
        self.description = build.description
        self.assembly = PartAssembly.from_parts(build.parts)
        self._saved_key = self._payload_key()
        self._revalidate()

    def switch(self, token: str) -> None:
        """Bind the session to another token, discarding pending responses."""
        if token == self.token:
            return
        self.token = token
        self.build = None
        self.assembly = PartAssembly()
        self.title = ""
        self.description = ""
        self._saved_key = None
        self._save_seq += 1
        self._revalidate()

    async def load(self) -> TemporaryBuild | None:
        """Load the build for the current token.

        Returns:
            The loaded build, or None if the token changed while loading.

        Raises:
            BuildNotFoundError: If the current token does not resolve.
        """
        requested = self.token
        try:
            build = await self._client.load(requested)
        except BuildNotFoundError:
            if requested != self.token:
                logger.debug("Discarding stale load failure")
                return None
            raise
        if requested != self.token:
            logger.debug("Discarding stale load response")
            return None
        self._apply_build(build)
        return build

    def select(self, category: GearCategory, item: CatalogItemSnapshot) -> None:
        """Select a catalog item for a category and revalidate."""
        self.assembly.set(category, item)
        self._revalidate()

    def clear(self, category: GearCategory) -> None:
        """Clear a category and revalidate."""
        self.assembly.clear(category)
        self._revalidate()

    async def save(self) -> TemporaryBuild | None:
        """Persist local edits if they changed since the last save.

        Returns:
            The server's updated build, or None if nothing was saved or
            the response arrived after the session moved on.

        Raises:
            InvalidStateError: If no build is loaded or it is SHARED.
        """
        if self.build is None:
            raise InvalidStateError("No build loaded")
        if self.is_shared:
            raise InvalidStateError(
                "Shared builds cannot be edited", status=BuildStatus.SHARED.value
            )

        key = self._payload_key()
        if key == self._saved_key:
            return None

        self._save_seq += 1
        seq = self._save_seq
        requested = self.token
        updated = await self._client.update(
            requested,
            BuildPatch(
                title=self.title,
                description=self.description,
                parts=self.assembly.to_parts(),
            ),
        )
        if requested != self.token or seq != self._save_seq or self.build is None:
            logger.debug("Discarding stale save response")
            return None

        self._saved_key = key
        self.build = self.build.model_copy(
            update={
                "updated_at": updated.updated_at,
                "expires_at": updated.expires_at,
                "verified": updated.verified,
            }
        )
        return updated

    async def share(self) -> PromotionResult:
        """Promote the build and rebind the session to the new public token.

        Unsaved edits are saved first so that the shared build includes them.

        Raises:
            InvalidStateError: If no build is loaded or it is already SHARED.
        """
        if self.build is None:
            raise InvalidStateError("No build loaded")
        if self.is_shared:
            raise InvalidStateError(
                "Build is already shared", status=BuildStatus.SHARED.value
            )

        requested = self.token
        if self.is_dirty:
            await self.save()
            if requested != self.token:
                raise InvalidStateError("Session switched tokens while saving")
        result = await self._client.promote(requested)
        if requested == self.token:
            self.token = result.token
            self._save_seq += 1
            self._apply_build(result.build)
        else:
            logger.debug("Promotion finished after the session switched tokens")
        return result


__all__ = ["TempBuildEditor"]
