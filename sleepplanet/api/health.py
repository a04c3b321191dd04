"""Liveness and readiness endpoints"""
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sleepplanet import __version__
from sleepplanet.database import get_db
from sleepplanet.models.role import SUPER_ADMIN, Role

SERVICE_NAME = "sleepplanet-admin"

router = APIRouter(prefix="/health", tags=["health"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
def health_check() -> Dict[str, Any]:
    """Process is up. Touches no dependencies."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": __version__,
        "timestamp": _timestamp(),
    }


@router.get("/ready")
def readiness_check(db: Session = Depends(get_db)) -> Any:
    """
    Ready to serve: the database answers ``SELECT 1``.

    Also reports whether the ``super_admin`` role is present; without it no
    administrator can be managed, but login still works, so it does not
    affect the status code.
    """
    checks: Dict[str, Any] = {"database": False, "database_latency_ms": None, "super_admin_role": None}

    try:
        started = time.perf_counter()
        db.execute(text("SELECT 1"))
        checks["database_latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
        checks["database"] = True
        checks["super_admin_role"] = db.execute(
            select(Role.id).where(Role.name == SUPER_ADMIN)
        ).scalar_one_or_none() is not None
    except SQLAlchemyError as exc:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unavailable",
                "checks": checks,
                "message": f"database check failed: {exc.__class__.__name__}",
            },
        )

    return {"status": "ready", "checks": checks, "timestamp": _timestamp()}


@router.get("/live")
def liveness_check(request: Request) -> Dict[str, Any]:
    return {
        "status": "alive",
        "uptime_seconds": round(time.time() - request.app.state.started_at, 2),
        "timestamp": _timestamp(),
    }
