"""
Health endpoints: liveness and readiness.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from backend.core.database import get_database_url, get_engine

logger = logging.getLogger("goalkeeper")

root_router = APIRouter(tags=["health"])


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz():
    """Readiness: in-memory mode is always ready; SQL mode needs the documents table."""
    if not get_database_url():
        return {"status": "ok", "store": "memory"}

    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")

        if not inspect(engine).has_table("documents"):
            logger.warning("[readyz] missing tables: documents")
            return JSONResponse(status_code=503, content={"status": "error", "detail": "missing tables: documents"})

        return {"status": "ok", "store": "sql"}
    except Exception as e:
        logger.error(f"[readyz] readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})
