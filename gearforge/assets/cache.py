"""Credentialed asset cache.

This module handles:
- Authenticated retrieval of image assets (Authorization header, never
  a credential in the URL)
- Materializing payloads as revocable AssetHandles
- Revoking handles whose owner lost interest before the fetch resolved
- Slot-scoped ownership with release on every exit path

Failures degrade to None (not found): a missing image is never fatal to
viewing a build. There is no retry and no de-duplication; every call
returns a new handle owned by its caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from gearforge.assets.handle import AssetHandle, ObjectStore
from gearforge.config import get_settings

if TYPE_CHECKING:
    from gearforge.config import Settings

logger = logging.getLogger(__name__)

# Path of the asset endpoint relative to the API base URL
ASSET_PATH_TEMPLATE = "/api/images/{asset_id}"

DEFAULT_CONTENT_TYPE = "application/octet-stream"

TokenProvider = Callable[[], str | None]


class Interest:
    """Cancellation token for one pending fetch.

    The owner drops interest when it is torn down or no longer wants the
    result. A fetch that resolves afterwards releases its payload.
    """

    def __init__(self) -> None:
        self._dropped = False

    @property
    def is_dropped(self) -> bool:
        """Whether the owner has lost interest."""
        return self._dropped

    def drop(self) -> None:
        """Mark the result as unwanted. Idempotent."""
        self._dropped = True


class AssetCache:
    """Resolves asset identifiers to locally owned, revocable handles."""

    def __init__(
        self,
        base_url: str | None = None,
        token_provider: TokenProvider | None = None,
        client: httpx.AsyncClient | None = None,
        store: ObjectStore | None = None,
        settings: Settings | None = None,
        path_template: str = ASSET_PATH_TEMPLATE,
    ) -> None:
        if settings is None:
            settings = get_settings()
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        configured_token = settings.access_token
        self._token_provider = token_provider or (lambda: configured_token)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.asset_timeout)
        self.store = store or ObjectStore()
        self._path_template = path_template

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this cache created it."""
        if self._owns_client:
            await self._client.aclose()

    def asset_url(self, asset_id: str) -> str:
        """Public address of an asset; carries no credentials."""
        return self._base_url + self._path_template.format(
            asset_id=quote(asset_id, safe="")
        )

    def _auth_headers(self) -> dict[str, str]:
        token = self._token_provider()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def fetch_asset(
        self,
        asset_id: str,
        has_asset: bool,
        interest: Interest | None = None,
    ) -> AssetHandle | None:
        """Fetch an asset and materialize it as a handle.

        Args:
            asset_id: Opaque asset identifier.
            has_asset: Whether the owning record claims to have an asset;
                False short-circuits without network access.
            interest: Owner's cancellation token.

        Returns:
            A live AssetHandle owned by the caller, or None if the asset is
            missing, the fetch failed, or interest was dropped.
        """
        if not has_asset or not asset_id:
            return None
        if interest is not None and interest.is_dropped:
            return None

        url = self.asset_url(asset_id)
        try:
            response = await self._client.get(url, headers=self._auth_headers())
        except httpx.HTTPError as e:
            logger.warning("Fetching asset %s failed: %s", asset_id, e)
            return None

        if response.is_error:
            logger.warning(
                "Asset %s unavailable (HTTP %d)", asset_id, response.status_code
            )
            return None
        if not response.content:
            return None

        content_type = response.headers.get("content-type", DEFAULT_CONTENT_TYPE)
        handle = self.store.create(response.content, content_type)

        if interest is not None and interest.is_dropped:
            logger.debug("Owner of asset %s went away; revoking", asset_id)
            handle.revoke()
            return None
        return handle


class AssetSlot:
    """Owner of at most one asset handle, such as one rendered image.

    Showing a new asset drops interest in any pending fetch and revokes
    the previous handle. Closing the slot does the same and is also run
    on exit from ``async with``.
    """

    def __init__(self, cache: AssetCache) -> None:
        self._cache = cache
        self._handle: AssetHandle | None = None
        self._interest: Interest | None = None
        self._closed = False

    @property
    def handle(self) -> AssetHandle | None:
        """The currently displayed handle, if any."""
        return self._handle

    @property
    def closed(self) -> bool:
        """Whether the slot has been torn down."""
        return self._closed

    def _release(self) -> None:
        if self._interest is not None:
            self._interest.drop()
            self._interest = None
        if self._handle is not None:
            self._handle.revoke()
            self._handle = None

    async def show(self, asset_id: str, has_asset: bool) -> AssetHandle | None:
        """Replace the slot's asset.

        Returns:
            The new handle, or None if not found or superseded meanwhile.

        Raises:
            RuntimeError: If the slot is closed.
        """
        if self._closed:
            raise RuntimeError("Asset slot is closed")

        self._release()
        interest = Interest()
        self._interest = interest

        try:
            handle = await self._cache.fetch_asset(
                asset_id, has_asset, interest=interest
            )
        finally:
            if self._interest is interest:
                self._interest = None
        if handle is not None:
            self._handle = handle
        return handle

    def close(self) -> None:
        """Tear down the slot, releasing any pending or held asset."""
        self._closed = True
        self._release()

    async def __aenter__(self) -> AssetSlot:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["ASSET_PATH_TEMPLATE", "AssetCache", "AssetSlot", "Interest"]
