"""Database engine and session management for gearforge.

Temporary and shared builds live in a relational store reached through
SQLAlchemy. SQLite is the default; the parent directory of a file-backed
SQLite database is created on first use.
"""

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from gearforge.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for build storage models."""


def _prepare_sqlite_path(db_url: str) -> None:
    url = make_url(db_url)
    if url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def get_engine(db_url: str | None = None) -> Engine:
    """Create an engine for the configured database.

    Args:
        db_url: Database URL; defaults to ``Settings.db_url``.

    Returns:
        SQLAlchemy Engine.
    """
    if db_url is None:
        db_url = get_settings().db_url

    connect_args: dict[str, Any] = {}
    if db_url.startswith("sqlite"):
        _prepare_sqlite_path(db_url)
        # Sessions may be handed across threads by the web server
        connect_args["check_same_thread"] = False

    return create_engine(db_url, connect_args=connect_args)


def get_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``.

    Loaded objects stay usable after commit so that callers can render
    them once the session is closed.
    """
    return sessionmaker(
        bind=engine if engine is not None else get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


@contextmanager
def get_session(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """Run a block of work in one transaction.

    Commits when the block exits normally and rolls back when it raises.

    Yields:
        SQLAlchemy Session.
    """
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine: Engine | None = None) -> None:
    """Create the build tables if they do not exist."""
    # Importing the models registers them on Base.metadata
    from gearforge.builds import models  # noqa: F401

    Base.metadata.create_all(bind=engine if engine is not None else get_engine())


def drop_all_tables(engine: Engine | None = None) -> None:
    """Drop the build tables. Intended for tests."""
    from gearforge.builds import models  # noqa: F401

    Base.metadata.drop_all(bind=engine if engine is not None else get_engine())


__all__ = [
    "Base",
    "create_all_tables",
    "drop_all_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
]
