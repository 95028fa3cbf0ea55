"""
Dependency helpers for the FastAPI app.
"""

from __future__ import annotations

from fastapi.requests import HTTPConnection

from core.db import MemoryDB


def get_store(connection: HTTPConnection) -> MemoryDB:
    store = getattr(connection.app.state, "store", None)
    if store is None:
        raise RuntimeError("Database not initialized - store is None")
    return store
