"""Async HTTP client for the temporary build API.

Every method suspends on network I/O. Responses are decoded into the
same pydantic models the service layer produces, and HTTP failures are
mapped onto the lifecycle error taxonomy:

- 404 -> BuildNotFoundError
- 409 -> InvalidStateError
- anything else (including connection errors) -> TransportError
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from gearforge.builds.errors import BuildNotFoundError, InvalidStateError, TransportError
from gearforge.builds.schema import (
    BuildPatch,
    CreateTempBuildParams,
    PromotionResult,
    TempBuildCreated,
    TemporaryBuild,
)
from gearforge.config import get_settings

if TYPE_CHECKING:
    from gearforge.config import Settings

logger = logging.getLogger(__name__)

TEMP_BUILDS_PATH = "/api/builds/temp"


def _error_message(response: httpx.Response) -> str:
    """Extract a message from an error body, falling back to the status."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail", body)
        if isinstance(detail, dict) and detail.get("message"):
            return str(detail["message"])
        if isinstance(detail, str):
            return detail
    return f"HTTP {response.status_code}"


class TempBuildClient:
    """Client for creating, loading, editing and sharing temporary builds."""

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        if settings is None:
            settings = get_settings()
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)

    async def __aenter__(self) -> TempBuildClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    def _url(self, token: str | None = None, suffix: str = "") -> str:
        url = f"{self._base_url}{TEMP_BUILDS_PATH}"
        if token is not None:
            url += f"/{token}"
        return url + suffix

    async def _request(
        self,
        method: str,
        url: str,
        token: str = "",
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.request(method, url, json=json_body)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, TEMP_BUILDS_PATH, e)
            raise TransportError(f"Request failed: {e}") from e

        if response.status_code == 404:
            raise BuildNotFoundError(token)
        if response.status_code == 409:
            raise InvalidStateError(_error_message(response))
        if response.is_error:
            raise TransportError(
                _error_message(response), status_code=response.status_code
            )
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                "Response was not valid JSON", status_code=response.status_code
            ) from e

    @staticmethod
    def _decode(model: Any, payload: Any) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise TransportError(f"Unexpected response payload: {e}") from e

    async def create(
        self, params: CreateTempBuildParams | None = None
    ) -> TempBuildCreated:
        """Create a temporary build.

        Args:
            params: Initial title, description and parts.

        Returns:
            TempBuildCreated with the private token.
        """
        body = (params or CreateTempBuildParams()).model_dump(mode="json")
        payload = await self._request("POST", self._url(), json_body=body)
        created: TempBuildCreated = self._decode(TempBuildCreated, payload)
        return created

    async def load(self, token: str) -> TemporaryBuild:
        """Load a build by token.

        Raises:
            BuildNotFoundError: Unknown, expired or superseded token.
            TransportError: Network or server failure.
        """
        payload = await self._request("GET", self._url(token), token=token)
        build: TemporaryBuild = self._decode(TemporaryBuild, payload)
        return build

    async def update(self, token: str, patch: BuildPatch) -> TemporaryBuild:
        """Apply a patch to a TEMP build.

        Raises:
            BuildNotFoundError: Unknown, expired or superseded token.
            InvalidStateError: The build is already SHARED.
            TransportError: Network or server failure.
        """
        body = patch.model_dump(mode="json", exclude_none=True)
        payload = await self._request("PUT", self._url(token), token=token, json_body=body)
        build: TemporaryBuild = self._decode(TemporaryBuild, payload)
        return build

    async def promote(self, token: str) -> PromotionResult:
        """Promote a TEMP build to SHARED.

        Raises:
            BuildNotFoundError: Unknown, expired or already consumed token.
            InvalidStateError: The build is already SHARED.
            TransportError: Network or server failure.
        """
        payload = await self._request(
            "POST", self._url(token, "/share"), token=token
        )
        result: PromotionResult = self._decode(PromotionResult, payload)
        return result


__all__ = ["TEMP_BUILDS_PATH", "TempBuildClient"]
