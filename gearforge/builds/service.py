"""Temporary build lifecycle service.

This module owns the TEMP -> SHARED state machine:
- create_temp_build(): issue a new TEMP build and its private token
- load_by_token(): resolve a token (expiry is enforced at read time)
- update_temp_build(): edit title/description/parts while TEMP
- promote_temp_build(): one-way promotion to a durable SHARED record
  with a freshly issued token; the TEMP token stops resolving

Tokens are capabilities and are distinct from record ids. All writes go
through guarded UPDATE statements so that concurrent update/promote
calls against one token are totally ordered by the database transaction.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from gearforge.builds.assembly import PartAssembly
from gearforge.builds.errors import BuildNotFoundError, InvalidStateError
from gearforge.builds.models import TempBuild, TempBuildPart
from gearforge.builds.schema import (
    BuildPart,
    BuildPatch,
    CreateTempBuildParams,
    PromotionResult,
    TempBuildCreated,
    TemporaryBuild,
)
from gearforge.builds.validation import is_build_verified
from gearforge.catalog.schema import CatalogItemSnapshot
from gearforge.config import get_settings
from gearforge.types import BuildStatus

if TYPE_CHECKING:
    from gearforge.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_TEMP_TITLE = "Temporary Build"

# Entropy of issued tokens, in bytes
TOKEN_BYTES = 24


def generate_token() -> str:
    """Return a new URL-safe access token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def share_url(token: str, base_url: str = "") -> str:
    """Build the share URL for a token.

    Args:
        token: Access token.
        base_url: Optional origin; relative URL if empty.

    Returns:
        Share URL.
    """
    return f"{base_url.rstrip('/')}/builds/temp/{token}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _token_hint(token: str) -> str:
    return f"{token[:6]}..." if len(token) > 6 else "***"


def normalize_parts(parts: Iterable[BuildPart]) -> list[BuildPart]:
    """Drop blank selections and keep the last part per category.

    Args:
        parts: Parts in caller order.

    Returns:
        Parts ordered by category declaration.
    """
    assembly = PartAssembly.from_parts(parts)
    return [p for p in assembly.to_parts() if p.catalog_item_id]


def _part_rows(parts: Iterable[BuildPart]) -> list[TempBuildPart]:
    return [
        TempBuildPart(
            gear_category=part.gear_category.value,
            catalog_item_id=part.catalog_item_id,
            catalog_item=part.catalog_item.model_dump(mode="json")
            if part.catalog_item is not None
            else None,
        )
        for part in parts
    ]


def _row_to_part(row: TempBuildPart) -> BuildPart:
    snapshot = (
        CatalogItemSnapshot.model_validate(row.catalog_item)
        if row.catalog_item
        else None
    )
    return BuildPart(
        gear_category=row.gear_category,
        catalog_item_id=row.catalog_item_id,
        catalog_item=snapshot,
    )


def build_to_schema(record: TempBuild) -> TemporaryBuild:
    """Convert a TempBuild row to a TemporaryBuild model.

    Args:
        record: ORM row.

    Returns:
        TemporaryBuild without the access token.
    """
    return TemporaryBuild(
        id=record.id,
        status=BuildStatus(record.status),
        title=record.title,
        description=record.description or "",
        parts=normalize_parts(_row_to_part(row) for row in record.parts),
        verified=record.verified,
        created_at=_as_utc(record.created_at),
        updated_at=_as_utc(record.updated_at),
        expires_at=_as_utc(record.expires_at) if record.expires_at else None,
    )


def _is_expired(record: TempBuild, now: datetime) -> bool:
    if record.status != BuildStatus.TEMP.value:
        return False
    if record.expires_at is None:
        return False
    return _as_utc(record.expires_at) <= now


def _get_live_record(session: Session, token: str, now: datetime) -> TempBuild:
    """Resolve a token to a live record.

    Raises:
        BuildNotFoundError: If the token is unknown, superseded or expired.
    """
    token = token.strip()
    if not token:
        raise BuildNotFoundError(token)

    record = session.execute(
        select(TempBuild).where(TempBuild.token == token)
    ).scalar_one_or_none()

    if record is None:
        raise BuildNotFoundError(token)
    if record.is_superseded():
        logger.debug("Token %s was superseded by a promotion", _token_hint(token))
        raise BuildNotFoundError(token, code="build_superseded")
    if _is_expired(record, now):
        logger.debug("Token %s expired at %s", _token_hint(token), record.expires_at)
        raise BuildNotFoundError(token, code="build_expired")
    return record


def _live_temp_guard(record_id: str) -> list[object]:
    return [
        TempBuild.id == record_id,
        TempBuild.status == BuildStatus.TEMP.value,
        TempBuild.superseded_by_id.is_(None),
    ]


def create_temp_build(
    session: Session,
    params: CreateTempBuildParams | None = None,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> TempBuildCreated:
    """Create a new TEMP build and issue its private token.

    Args:
        session: Database session.
        params: Initial title, description and parts.
        settings: Application settings (TTL, public base URL).
        now: Current time; defaults to UTC now.

    Returns:
        TempBuildCreated with the build, token and share URL.
    """
    if settings is None:
        settings = get_settings()
    if params is None:
        params = CreateTempBuildParams()
    now = _as_utc(now) if now else _utcnow()

    parts = normalize_parts(params.parts)
    token = generate_token()
    record = TempBuild(
        id=uuid.uuid4().hex,
        token=token,
        status=BuildStatus.TEMP.value,
        title=params.title.strip() or DEFAULT_TEMP_TITLE,
        description=params.description.strip(),
        verified=is_build_verified(parts),
        created_at=now,
        updated_at=now,
        expires_at=now + timedelta(hours=settings.temp_build_ttl_hours),
        parts=_part_rows(parts),
    )
    session.add(record)
    session.flush()

    logger.info(
        "Created temp build %s with %d parts (expires %s)",
        record.id,
        len(parts),
        record.expires_at.isoformat() if record.expires_at else None,
    )
    return TempBuildCreated(
        build=build_to_schema(record),
        token=token,
        url=share_url(token, settings.public_base_url),
    )


def load_by_token(
    session: Session,
    token: str,
    now: datetime | None = None,
) -> TemporaryBuild:
    """Resolve a token to its current build, TEMP or SHARED.

    Args:
        session: Database session.
        token: Access token.
        now: Current time; defaults to UTC now.

    Returns:
        TemporaryBuild.

    Raises:
        BuildNotFoundError: If the token is unknown, superseded or expired.
    """
    now = _as_utc(now) if now else _utcnow()
    return build_to_schema(_get_live_record(session, token, now))


def update_temp_build(
    session: Session,
    token: str,
    patch: BuildPatch,
    now: datetime | None = None,
) -> TemporaryBuild:
    """Edit a TEMP build in place.

    Args:
        session: Database session.
        token: Private token of a TEMP build.
        patch: Fields to change; None leaves a field untouched.
        now: Current time; defaults to UTC now.

    Returns:
        Updated TemporaryBuild.

    Raises:
        BuildNotFoundError: If the token does not resolve.
        InvalidStateError: If the build is already SHARED.
    """
    now = _as_utc(now) if now else _utcnow()
    record = _get_live_record(session, token, now)
    if not record.is_temp():
        raise InvalidStateError(
            "Shared builds cannot be edited", status=record.status
        )

    values: dict[str, object] = {"updated_at": now}
    if patch.title is not None:
        values["title"] = patch.title.strip() or DEFAULT_TEMP_TITLE
    if patch.description is not None:
        values["description"] = patch.description.strip()

    result = session.execute(
        update(TempBuild).where(*_live_temp_guard(record.id)).values(**values)
    )
    if result.rowcount != 1:
        # Lost the race against a promotion of the same token
        raise BuildNotFoundError(token, code="build_superseded")

    if patch.parts is not None:
        parts = normalize_parts(patch.parts)
        record.parts.clear()
        session.flush()
        record.parts.extend(_part_rows(parts))
        record.verified = is_build_verified(parts)

    session.flush()
    session.refresh(record)
    logger.info("Updated temp build %s", record.id)
    return build_to_schema(record)


def promote_temp_build(
    session: Session,
    token: str,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> PromotionResult:
    """Promote a TEMP build to a durable SHARED build.

    A new SHARED record is created with a fresh token; the TEMP record is
    marked superseded so its token no longer resolves. Promotion is
    single-use: retrying with the consumed token fails.

    Args:
        session: Database session.
        token: Private token of a TEMP build.
        settings: Application settings (public base URL).
        now: Current time; defaults to UTC now.

    Returns:
        PromotionResult with the new token, share URL and SHARED build.

    Raises:
        BuildNotFoundError: If the token is unknown, expired or already consumed.
        InvalidStateError: If the token belongs to a SHARED build.
    """
    if settings is None:
        settings = get_settings()
    now = _as_utc(now) if now else _utcnow()

    record = _get_live_record(session, token, now)
    if not record.is_temp():
        raise InvalidStateError("Build is already shared", status=record.status)

    parts = normalize_parts(_row_to_part(row) for row in record.parts)
    new_token = generate_token()
    shared = TempBuild(
        id=uuid.uuid4().hex,
        token=new_token,
        status=BuildStatus.SHARED.value,
        title=record.title,
        description=record.description,
        verified=is_build_verified(parts),
        created_at=now,
        updated_at=now,
        expires_at=None,
        parts=_part_rows(parts),
    )
    session.add(shared)
    session.flush()

    result = session.execute(
        update(TempBuild)
        .where(*_live_temp_guard(record.id))
        .values(superseded_by_id=shared.id, superseded_at=now, updated_at=now)
    )
    if result.rowcount != 1:
        # Another promotion consumed the token first
        session.delete(shared)
        session.flush()
        raise BuildNotFoundError(token, code="build_superseded")

    logger.info(
        "Promoted temp build %s to shared build %s (token %s)",
        record.id,
        shared.id,
        _token_hint(new_token),
    )
    return PromotionResult(
        token=new_token,
        url=share_url(new_token, settings.public_base_url),
        build=build_to_schema(shared),
    )


def delete_expired_temp_builds(session: Session, now: datetime | None = None) -> int:
    """Delete TEMP builds past their expiry.

    Expiry is already enforced at read time; this only reclaims storage.
    Superseded TEMP records are kept while the SHARED record exists.

    Args:
        session: Database session.
        now: Cutoff time; defaults to UTC now.

    Returns:
        Number of builds deleted.
    """
    now = _as_utc(now) if now else _utcnow()
    expired_ids = list(
        session.execute(
            select(TempBuild.id).where(
                TempBuild.status == BuildStatus.TEMP.value,
                TempBuild.superseded_by_id.is_(None),
                TempBuild.expires_at.is_not(None),
                TempBuild.expires_at <= now,
            )
        ).scalars()
    )
    if not expired_ids:
        return 0

    session.execute(
        delete(TempBuildPart).where(TempBuildPart.build_id.in_(expired_ids))
    )
    session.execute(delete(TempBuild).where(TempBuild.id.in_(expired_ids)))
    session.flush()
    logger.info("Deleted %d expired temp builds", len(expired_ids))
    return len(expired_ids)


__all__ = [
    "DEFAULT_TEMP_TITLE",
    "build_to_schema",
    "create_temp_build",
    "delete_expired_temp_builds",
    "generate_token",
    "load_by_token",
    "normalize_parts",
    "promote_temp_build",
    "share_url",
    "update_temp_build",
]
