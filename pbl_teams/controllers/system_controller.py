# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints — health, readiness, metrics.
Pure HTTP layer — no business logic.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import JSONResponse, Response

from pbl_teams.core.config import settings
from pbl_teams.core.dependencies import Container, get_container

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check(c: Container = Depends(get_container)):
    """Liveness probe."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sheets_configured": c.sync_engine.configured,
    }


@router.get("/health/ready")
def readiness_check(c: Container = Depends(get_container)):
    """Readiness probe: the database must answer."""
    try:
        with c.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "service": settings.SERVICE_NAME, "error": str(exc)},
        )
    return {"status": "ready", "service": settings.SERVICE_NAME}


@router.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
