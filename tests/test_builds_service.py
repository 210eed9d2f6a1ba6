"""Tests for builds/service.py module.

Exercises the TEMP -> SHARED lifecycle against an SQLite database.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, func, inspect, select, update
from sqlalchemy.orm import sessionmaker

from gearforge.builds.errors import BuildNotFoundError, InvalidStateError
from gearforge.builds.models import TempBuild, TempBuildPart
from gearforge.builds.schema import BuildPart, BuildPatch, CreateTempBuildParams
from gearforge.builds.service import (
    DEFAULT_TEMP_TITLE,
    create_temp_build,
    delete_expired_temp_builds,
    load_by_token,
    normalize_parts,
    promote_temp_build,
    share_url,
    update_temp_build,
)
from gearforge.catalog.schema import CatalogItemSnapshot
from gearforge.config import Settings
from gearforge.db import create_all_tables, drop_all_tables
from gearforge.types import BuildStatus, CatalogItemStatus, GearCategory

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    create_all_tables(engine)
    yield engine
    drop_all_tables(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Create a session factory for testing."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    """Create a session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings() -> Settings:
    """Settings with a public origin and the default TTL."""
    return Settings(
        db_url="sqlite://",
        public_base_url="https://gear.example/",
        temp_build_ttl_hours=24,
    )


def make_part(
    category: GearCategory,
    item_id: str,
    status: CatalogItemStatus = CatalogItemStatus.ACTIVE,
) -> BuildPart:
    """Create a BuildPart with a catalog snapshot."""
    return BuildPart(
        gear_category=category,
        catalog_item_id=item_id,
        catalog_item=CatalogItemSnapshot(
            id=item_id,
            gear_category=category,
            brand="Acme",
            model=item_id,
            status=status,
        ),
    )


class TestBuildTables:
    """Test creating and dropping the build tables."""

    def test_create_then_drop(self) -> None:
        """Both tables appear on create and are gone after drop."""
        engine = create_engine("sqlite:///:memory:", echo=False)
        create_all_tables(engine)
        assert {"temp_builds", "temp_build_parts"} <= set(
            inspect(engine).get_table_names()
        )

        drop_all_tables(engine)

        assert inspect(engine).get_table_names() == []
        engine.dispose()


class TestShareUrl:
    """Test share_url function."""

    def test_relative(self) -> None:
        """Without an origin the URL is relative."""
        assert share_url("tok") == "/builds/temp/tok"

    def test_with_origin(self) -> None:
        """A trailing slash on the origin is not doubled."""
        assert share_url("tok", "https://gear.example/") == (
            "https://gear.example/builds/temp/tok"
        )


class TestNormalizeParts:
    """Test normalize_parts function."""

    def test_drops_blank_and_keeps_last(self) -> None:
        """Blank ids are dropped and the last part per category wins."""
        parts = normalize_parts(
            [
                make_part(GearCategory.VTX, "v-1"),
                BuildPart(gear_category=GearCategory.CAMERA, catalog_item_id=""),
                make_part(GearCategory.FRAME, "f-1"),
                make_part(GearCategory.VTX, "v-2"),
            ]
        )
        assert [(p.gear_category, p.catalog_item_id) for p in parts] == [
            (GearCategory.FRAME, "f-1"),
            (GearCategory.VTX, "v-2"),
        ]


class TestCreateTempBuild:
    """Test create_temp_build function."""

    def test_defaults(self, session, settings) -> None:
        """A new build is TEMP, titled by default and expires after the TTL."""
        created = create_temp_build(session, settings=settings, now=NOW)

        build = created.build
        assert build.status is BuildStatus.TEMP
        assert build.title == DEFAULT_TEMP_TITLE
        assert build.parts == []
        assert build.verified is False
        assert build.created_at == NOW
        assert build.expires_at == NOW + timedelta(hours=24)

    def test_token_and_url(self, session, settings) -> None:
        """The token is opaque, distinct from the id, and appears in the URL."""
        created = create_temp_build(session, settings=settings, now=NOW)

        assert created.token
        assert created.token != created.build.id
        assert created.url == f"https://gear.example/builds/temp/{created.token}"

    def test_tokens_are_unique(self, session, settings) -> None:
        """Each build gets its own token."""
        tokens = {
            create_temp_build(session, settings=settings, now=NOW).token
            for _ in range(5)
        }
        assert len(tokens) == 5

    def test_with_parts(self, session, settings) -> None:
        """Parts are stored with their snapshots and verification is derived."""
        params = CreateTempBuildParams(
            title="  5 inch freestyle ",
            parts=[
                make_part(GearCategory.FRAME, "f-1"),
                make_part(GearCategory.AIO, "aio-1"),
            ],
        )
        created = create_temp_build(session, params, settings=settings, now=NOW)

        assert created.build.title == "5 inch freestyle"
        assert created.build.verified is True
        assert [p.catalog_item_id for p in created.build.parts] == ["f-1", "aio-1"]
        assert created.build.parts[0].catalog_item.brand == "Acme"  # type: ignore[union-attr]

    def test_custom_ttl(self, session) -> None:
        """The TTL comes from settings."""
        created = create_temp_build(
            session,
            settings=Settings(db_url="sqlite://", temp_build_ttl_hours=2),
            now=NOW,
        )
        assert created.build.expires_at == NOW + timedelta(hours=2)


class TestLoadByToken:
    """Test load_by_token function."""

    def test_roundtrip(self, session, settings) -> None:
        """A created build loads back by its token."""
        created = create_temp_build(
            session,
            CreateTempBuildParams(parts=[make_part(GearCategory.MOTOR, "m-1")]),
            settings=settings,
            now=NOW,
        )
        session.commit()

        loaded = load_by_token(session, created.token, now=NOW)
        assert loaded.id == created.build.id
        assert loaded.parts[0].catalog_item_id == "m-1"

    def test_unknown_token(self, session) -> None:
        """An unknown token raises BuildNotFoundError."""
        with pytest.raises(BuildNotFoundError) as exc_info:
            load_by_token(session, "nope", now=NOW)
        assert exc_info.value.code == "build_not_found"

    def test_blank_token(self, session) -> None:
        """A blank token never resolves."""
        with pytest.raises(BuildNotFoundError):
            load_by_token(session, "   ", now=NOW)

    def test_expired(self, session, settings) -> None:
        """A TEMP build stops resolving at its expiry time."""
        created = create_temp_build(session, settings=settings, now=NOW)

        load_by_token(session, created.token, now=NOW + timedelta(hours=23))
        with pytest.raises(BuildNotFoundError) as exc_info:
            load_by_token(session, created.token, now=NOW + timedelta(hours=24))
        assert exc_info.value.code == "build_expired"

    def test_loads_from_fresh_session(self, session_factory, settings) -> None:
        """Timestamps survive a round trip through the database as UTC."""
        with session_factory() as s:
            created = create_temp_build(s, settings=settings, now=NOW)
            s.commit()

        with session_factory() as s:
            loaded = load_by_token(s, created.token, now=NOW)

        assert loaded.expires_at == NOW + timedelta(hours=24)
        assert loaded.created_at.tzinfo is not None


class TestUpdateTempBuild:
    """Test update_temp_build function."""

    def test_update_title_only(self, session, settings) -> None:
        """Fields left as None are unchanged."""
        created = create_temp_build(
            session,
            CreateTempBuildParams(
                title="Old",
                description="desc",
                parts=[make_part(GearCategory.FRAME, "f-1")],
            ),
            settings=settings,
            now=NOW,
        )

        later = NOW + timedelta(minutes=5)
        updated = update_temp_build(
            session, created.token, BuildPatch(title="New"), now=later
        )

        assert updated.title == "New"
        assert updated.description == "desc"
        assert [p.catalog_item_id for p in updated.parts] == ["f-1"]
        assert updated.updated_at == later
        assert updated.expires_at == created.build.expires_at

    def test_blank_title_falls_back(self, session, settings) -> None:
        """An empty title becomes the default title."""
        created = create_temp_build(session, settings=settings, now=NOW)
        updated = update_temp_build(
            session, created.token, BuildPatch(title=" "), now=NOW
        )
        assert updated.title == DEFAULT_TEMP_TITLE

    def test_replace_parts(self, session, settings) -> None:
        """parts replaces the whole parts list."""
        created = create_temp_build(
            session,
            CreateTempBuildParams(
                parts=[
                    make_part(GearCategory.FRAME, "f-1"),
                    make_part(GearCategory.FC, "fc-1"),
                ]
            ),
            settings=settings,
            now=NOW,
        )

        updated = update_temp_build(
            session,
            created.token,
            BuildPatch(
                parts=[
                    make_part(GearCategory.FRAME, "f-2"),
                    make_part(GearCategory.ESC, "esc-1", CatalogItemStatus.PENDING),
                ]
            ),
            now=NOW,
        )

        assert [(p.gear_category, p.catalog_item_id) for p in updated.parts] == [
            (GearCategory.FRAME, "f-2"),
            (GearCategory.ESC, "esc-1"),
        ]
        assert updated.verified is False
        count = session.execute(select(func.count()).select_from(TempBuildPart)).scalar()
        assert count == 2

    def test_unknown_token(self, session) -> None:
        """Updating an unknown token raises BuildNotFoundError."""
        with pytest.raises(BuildNotFoundError):
            update_temp_build(session, "missing", BuildPatch(title="x"), now=NOW)

    def test_expired(self, session, settings) -> None:
        """Expired builds cannot be edited."""
        created = create_temp_build(session, settings=settings, now=NOW)
        with pytest.raises(BuildNotFoundError):
            update_temp_build(
                session,
                created.token,
                BuildPatch(title="x"),
                now=NOW + timedelta(days=2),
            )

    def test_shared_build_rejected(self, session, settings) -> None:
        """SHARED builds are read-only."""
        created = create_temp_build(session, settings=settings, now=NOW)
        promoted = promote_temp_build(session, created.token, settings=settings, now=NOW)

        with pytest.raises(InvalidStateError) as exc_info:
            update_temp_build(session, promoted.token, BuildPatch(title="x"), now=NOW)
        assert exc_info.value.status == BuildStatus.SHARED.value


class TestPromoteTempBuild:
    """Test promote_temp_build function."""

    def test_promote(self, session, settings) -> None:
        """Promotion issues a new token and a non-expiring SHARED build."""
        created = create_temp_build(
            session,
            CreateTempBuildParams(
                title="Race quad",
                parts=[make_part(GearCategory.FRAME, "f-1")],
            ),
            settings=settings,
            now=NOW,
        )

        later = NOW + timedelta(hours=1)
        result = promote_temp_build(session, created.token, settings=settings, now=later)

        assert result.token != created.token
        assert result.url == f"https://gear.example/builds/temp/{result.token}"
        assert result.build.status is BuildStatus.SHARED
        assert result.build.expires_at is None
        assert result.build.created_at == later
        assert result.build.title == "Race quad"
        assert result.build.id != created.build.id
        assert [p.catalog_item_id for p in result.build.parts] == ["f-1"]

    def test_old_token_stops_resolving(self, session, settings) -> None:
        """After promotion the TEMP token no longer loads."""
        created = create_temp_build(session, settings=settings, now=NOW)
        result = promote_temp_build(session, created.token, settings=settings, now=NOW)

        with pytest.raises(BuildNotFoundError) as exc_info:
            load_by_token(session, created.token, now=NOW)
        assert exc_info.value.code == "build_superseded"

        assert load_by_token(session, result.token, now=NOW).status is BuildStatus.SHARED

    def test_shared_never_expires(self, session, settings) -> None:
        """SHARED builds resolve long after the TEMP TTL."""
        created = create_temp_build(session, settings=settings, now=NOW)
        result = promote_temp_build(session, created.token, settings=settings, now=NOW)

        loaded = load_by_token(session, result.token, now=NOW + timedelta(days=365))
        assert loaded.expires_at is None

    def test_single_use(self, session, settings) -> None:
        """Promoting the same TEMP token twice fails the second time."""
        created = create_temp_build(session, settings=settings, now=NOW)
        promote_temp_build(session, created.token, settings=settings, now=NOW)

        with pytest.raises(BuildNotFoundError):
            promote_temp_build(session, created.token, settings=settings, now=NOW)

        shared = session.execute(
            select(func.count())
            .select_from(TempBuild)
            .where(TempBuild.status == BuildStatus.SHARED.value)
        ).scalar()
        assert shared == 1

    def test_promote_shared_token(self, session, settings) -> None:
        """The SHARED token cannot be promoted again."""
        created = create_temp_build(session, settings=settings, now=NOW)
        result = promote_temp_build(session, created.token, settings=settings, now=NOW)

        with pytest.raises(InvalidStateError):
            promote_temp_build(session, result.token, settings=settings, now=NOW)

    def test_promote_expired(self, session, settings) -> None:
        """An expired TEMP build cannot be promoted."""
        created = create_temp_build(session, settings=settings, now=NOW)
        with pytest.raises(BuildNotFoundError):
            promote_temp_build(
                session,
                created.token,
                settings=settings,
                now=NOW + timedelta(hours=25),
            )

    def test_promote_known_token(self, session, settings) -> None:
        """Promoting token abc123 yields a different token; abc123 then 404s."""
        created = create_temp_build(session, settings=settings, now=NOW)
        session.execute(
            update(TempBuild)
            .where(TempBuild.id == created.build.id)
            .values(token="abc123")
        )
        session.commit()

        result = promote_temp_build(session, "abc123", settings=settings, now=NOW)

        assert result.token != "abc123"
        assert result.build.status is BuildStatus.SHARED
        assert result.build.expires_at is None
        with pytest.raises(BuildNotFoundError):
            load_by_token(session, "abc123", now=NOW)

    def test_verified_recomputed(self, session, settings) -> None:
        """The SHARED build derives verified from its parts."""
        created = create_temp_build(
            session,
            CreateTempBuildParams(parts=[make_part(GearCategory.FRAME, "f-1")]),
            settings=settings,
            now=NOW,
        )
        result = promote_temp_build(session, created.token, settings=settings, now=NOW)
        assert result.build.verified is True


class TestConcurrentWrites:
    """Test that update and promote on one token are totally ordered."""

    @pytest.fixture
    def file_factory(self, tmp_path):
        """Session factory on a file database shared by two sessions."""
        engine = create_engine(f"sqlite:///{tmp_path / 'builds.db'}")
        create_all_tables(engine)
        yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        engine.dispose()

    def test_update_loses_to_promotion(self, file_factory, settings) -> None:
        """An update that observed TEMP state fails once the token was promoted."""
        with file_factory() as s:
            created = create_temp_build(s, settings=settings, now=NOW)
            s.commit()

        stale = file_factory()
        try:
            # Load the record into the stale session's identity map
            load_by_token(stale, created.token, now=NOW)

            with file_factory() as s:
                promote_temp_build(s, created.token, settings=settings, now=NOW)
                s.commit()

            with pytest.raises(BuildNotFoundError) as exc_info:
                update_temp_build(stale, created.token, BuildPatch(title="x"), now=NOW)
            assert exc_info.value.code == "build_superseded"
            stale.rollback()
        finally:
            stale.close()

    def test_second_promotion_loses(self, file_factory, settings) -> None:
        """Two promotions of one token yield exactly one SHARED build."""
        with file_factory() as s:
            created = create_temp_build(s, settings=settings, now=NOW)
            s.commit()

        stale = file_factory()
        try:
            load_by_token(stale, created.token, now=NOW)

            with file_factory() as s:
                promote_temp_build(s, created.token, settings=settings, now=NOW)
                s.commit()

            with pytest.raises(BuildNotFoundError):
                promote_temp_build(stale, created.token, settings=settings, now=NOW)
            stale.rollback()
        finally:
            stale.close()

        with file_factory() as s:
            shared = s.execute(
                select(func.count())
                .select_from(TempBuild)
                .where(TempBuild.status == BuildStatus.SHARED.value)
            ).scalar()
        assert shared == 1


class TestDeleteExpiredTempBuilds:
    """Test delete_expired_temp_builds function."""

    def test_deletes_only_expired_temp(self, session, settings) -> None:
        """Live TEMP and SHARED builds survive cleanup."""
        old = create_temp_build(
            session,
            CreateTempBuildParams(parts=[make_part(GearCategory.FRAME, "f-1")]),
            settings=settings,
            now=NOW - timedelta(days=3),
        )
        fresh = create_temp_build(session, settings=settings, now=NOW)
        to_share = create_temp_build(session, settings=settings, now=NOW - timedelta(days=3))
        shared = promote_temp_build(
            session, to_share.token, settings=settings, now=NOW - timedelta(days=3)
        )
        session.commit()

        deleted = delete_expired_temp_builds(session, now=NOW)
        session.commit()

        assert deleted == 1
        gone = session.execute(
            select(TempBuild).where(TempBuild.id == old.build.id)
        ).scalar_one_or_none()
        assert gone is None
        load_by_token(session, fresh.token, now=NOW)
        load_by_token(session, shared.token, now=NOW)
        remaining_parts = session.execute(
            select(func.count())
            .select_from(TempBuildPart)
            .where(TempBuildPart.build_id == old.build.id)
        ).scalar()
        assert remaining_parts == 0

    def test_nothing_to_delete(self, session, settings) -> None:
        """Cleanup with no expired builds returns 0."""
        create_temp_build(session, settings=settings, now=NOW)
        assert delete_expired_temp_builds(session, now=NOW) == 0
