"""Liveness and readiness checks."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from agency.db.dependencies import get_db_session

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/db")
def database_health(db: Session = Depends(get_db_session)) -> dict[str, str]:
    """Readiness check: the configured database answers a trivial query."""

    db.execute(text("SELECT 1"))
    return {"status": "ok", "database": "reachable"}
