"""Temporary build endpoints.

- POST /api/builds/temp - Create a temporary build
- GET /api/builds/temp/{token} - Load a build by token
- PUT /api/builds/temp/{token} - Edit a TEMP build
- POST /api/builds/temp/{token}/share - Promote a TEMP build to SHARED
"""

from typing import Any, NoReturn

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from sqlalchemy.orm import Session

from gearforge.builds.errors import BuildNotFoundError, InvalidStateError
from gearforge.builds.schema import (
    BuildPatch,
    CreateTempBuildParams,
    PromotionResult,
    TempBuildCreated,
    TemporaryBuild,
)
from gearforge.builds.service import (
    create_temp_build,
    load_by_token,
    promote_temp_build,
    update_temp_build,
)
from gearforge.config import get_settings
from web.deps import get_db

router = APIRouter()


def _not_found(e: BuildNotFoundError) -> NoReturn:
    # Expired and superseded tokens share the generic code on the wire
    raise HTTPException(
        status_code=http_status.HTTP_404_NOT_FOUND,
        detail={
            "code": "build_not_found",
            "message": str(e),
        },
    ) from None


def _invalid_state(e: InvalidStateError) -> NoReturn:
    detail: dict[str, Any] = {"code": e.code, "message": str(e)}
    if e.status:
        detail["status"] = e.status
    raise HTTPException(
        status_code=http_status.HTTP_409_CONFLICT,
        detail=detail,
    ) from None


@router.post("", status_code=http_status.HTTP_201_CREATED)
def create_temp_build_endpoint(
    params: CreateTempBuildParams | None = None,
    db: Session = Depends(get_db),
) -> TempBuildCreated:
    """Create a temporary build.

    Args:
        params: Initial title, description and parts.
        db: Database session.

    Returns:
        Created build with its private token and share URL.
    """
    return create_temp_build(
        db, params or CreateTempBuildParams(), settings=get_settings()
    )


@router.get("/{token}")
def get_temp_build_endpoint(
    token: str,
    db: Session = Depends(get_db),
) -> TemporaryBuild:
    """Load a temporary or shared build by token.

    Raises:
        HTTPException: 404 if the token is unknown, expired or superseded.
    """
    try:
        return load_by_token(db, token)
    except BuildNotFoundError as e:
        _not_found(e)


@router.put("/{token}")
def update_temp_build_endpoint(
    token: str,
    patch: BuildPatch,
    db: Session = Depends(get_db),
) -> TemporaryBuild:
    """Edit a TEMP build.

    Raises:
        HTTPException: 404 if the token does not resolve, 409 if SHARED.
    """
    try:
        return update_temp_build(db, token, patch)
    except BuildNotFoundError as e:
        _not_found(e)
    except InvalidStateError as e:
        _invalid_state(e)


@router.post("/{token}/share")
def share_temp_build_endpoint(
    token: str,
    db: Session = Depends(get_db),
) -> PromotionResult:
    """Promote a TEMP build to a durable SHARED build.

    Raises:
        HTTPException: 404 if the token does not resolve or was already
            consumed, 409 if the token belongs to a SHARED build.
    """
    try:
        return promote_temp_build(db, token, settings=get_settings())
    except BuildNotFoundError as e:
        _not_found(e)
    except InvalidStateError as e:
        _invalid_state(e)
