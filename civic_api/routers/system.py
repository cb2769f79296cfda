"""System-level routes for diagnostics."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/api")
def api_info(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"service": settings.app_name, "version": settings.api_version}


@router.get("/health")
def healthcheck(db: Session = Depends(get_session)) -> dict[str, str]:
    """Report whether the database answers a trivial query."""

    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check database probe failed")
        return {"status": "degraded", "database": "unreachable"}
    return {"status": "healthy", "database": "ok"}


__all__ = ["router"]
