# ellarises/api/system.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ellarises import __version__
from ellarises.config import settings
from ellarises.db import get_db

router = APIRouter(tags=["ops"])


def _db_driver_from_url(url: Optional[str]) -> Optional[str]:
    if not url or "://" not in url:
        return None
    scheme = url.split("://", 1)[0]  # e.g., "postgresql+psycopg2"
    if "+" in scheme:
        return scheme.split("+", 1)[1]  # "psycopg2"
    return scheme


@router.get("/health")
def health(db: Session = Depends(get_db)):
    """Liveness check with a lightweight DB probe and local time."""
    tz = settings.timezone
    try:
        now_local = datetime.now(ZoneInfo(tz)).isoformat()
    except (ZoneInfoNotFoundError, ValueError):
        # no tz database on this host
        now_local = datetime.now(timezone.utc).isoformat()

    probe = {"status": "ok", "driver": _db_driver_from_url(settings.database_url)}
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        probe["status"] = f"error: {type(e).__name__}"

    return {
        "status": "ok",
        "time": {"tz": tz, "now": now_local},
        "db": probe,
    }


@router.get("/version")
def version():
    """Minimal runtime info."""
    return {
        "app": "Ella Rises Admin",
        "version": __version__,
        "env": settings.env,
        "db_driver": _db_driver_from_url(settings.database_url),
        "tz": settings.timezone,
    }
