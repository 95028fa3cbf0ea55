"""
Health endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text

import core.config as config
from core.db import MemoryDB
from app.deps import get_store


router = APIRouter()


def _check_db_health(store: MemoryDB) -> dict:
    try:
        with store.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            fts_ready = conn.execute(
                text("SELECT count(*) FROM sqlite_master WHERE name = 'memories_fts'")
            ).scalar()
    except Exception as exc:
        return {"ok": False, "error": str(exc)}
    return {"ok": bool(fts_ready), "fts_index": bool(fts_ready)}


@router.get("/health")
async def health(store: MemoryDB = Depends(get_store)):
    """Health check endpoint."""
    db_health = _check_db_health(store)
    if not db_health.get("ok"):
        raise HTTPException(status_code=503, detail={"database": db_health})

    return {
        "status": "healthy",
        "service": config.SERVICE_NAME,
        "version": config.SERVICE_VERSION,
        "database": db_health,
    }
