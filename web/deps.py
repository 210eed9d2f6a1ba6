"""Database session dependency for FastAPI.

Each request gets its own session. The request is one transaction: it
commits when the handler returns and rolls back when it raises
(including HTTPException), so a failed promotion leaves no partial
SHARED record behind.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from fastapi import Depends, Request
from sqlalchemy.orm import Session, sessionmaker


def get_session_factory(request: Request) -> sessionmaker[Session]:
    """Get session factory from app state."""
    factory: Any = request.app.state.session_factory
    return factory  # type: ignore[no-any-return]


def get_db(
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> Generator[Session, None, None]:
    """Provide a request-scoped database session.

    Yields:
        Database session.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
