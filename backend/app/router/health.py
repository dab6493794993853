# backend/app/router/health.py
from __future__ import annotations
import logging
import time

from fastapi import APIRouter, Depends, HTTPException

from app.container import AppContainer, get_container
from app.db.session import DatabasePool, ping_db
from app.models.schemas import HealthResponse

router = APIRouter()
logger = logging.getLogger(__name__)

startup_time = time.time()


@router.get("/health")
async def health_check():
    """Basic health check - service is running"""
    return {"status": "ok", "uptime_seconds": round(time.time() - startup_time, 1)}


@router.get("/health/ready", response_model=HealthResponse)
def readiness_check(c: AppContainer = Depends(get_container)):
    """Readiness check - the document store answers."""
    backend = c.settings.store_backend
    try:
        c.store.list_scopes()
    except Exception as e:
        logger.warning(f"⚠️ Document store not ready: {e}")
        raise HTTPException(status_code=503, detail=f"Document store unavailable: {e}")
    return HealthResponse(status="ready", store_backend=backend)


@router.get("/db-ping")
def db_ping():
    """Simple DB connectivity test."""
    ok, message = ping_db()
    return {"ok": ok, "message": message}


@router.get("/debug/pool-status")
def pool_status():
    """Show connection pool diagnostics."""
    return {
        "initialized": DatabasePool.pool is not None,
        "pool_class": str(type(DatabasePool.pool)) if DatabasePool.pool else None,
    }
