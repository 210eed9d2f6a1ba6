"""Liveness endpoints.

``/health`` also probes the build store so that a deployment with an
unreachable database reports ``degraded`` instead of ``ok``.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gearforge import __version__
from web.deps import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health(db: Session = Depends(get_db)) -> dict[str, str]:
    """Report liveness and build store reachability."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Build store unreachable: %s", e)
        return {"status": "degraded", "version": __version__}
    return {"status": "ok", "version": __version__}


@router.get("/")
def root() -> dict[str, str]:
    """Name and version of the API."""
    return {"name": "gearforge Build API", "version": __version__, "docs": "/docs"}
