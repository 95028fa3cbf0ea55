"""
FastAPI app serving the JSON-RPC endpoint over HTTP, WebSocket and SSE.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

import core.config as config
from core.db import MemoryDB, init_db
from core.services.memory_storage import cleanup_expired
from app.routes.health import router as health_router
from app.routes.root import router as root_router
from app.routes.rpc import router as rpc_router
from app.routes.ws import router as ws_router


async def _cleanup_loop(store: MemoryDB) -> None:
    while True:
        await asyncio.sleep(config.CLEANUP_INTERVAL_SECONDS)
        try:
            await asyncio.to_thread(cleanup_expired, store)
        except Exception as exc:
            config.logger.warning(f"Cleanup task error: {exc}")


def create_app(store: Optional[MemoryDB] = None, db_path: Optional[str] = None) -> FastAPI:
    """Build the app around ``store``, or open one from ``db_path`` on startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_store = app.state.store is None
        if owns_store:
            app.state.store = init_db(db_path)
        cleanup_task = None
        if config.CLEANUP_INTERVAL_SECONDS > 0:
            cleanup_task = asyncio.create_task(_cleanup_loop(app.state.store))
        try:
            yield
        finally:
            if cleanup_task:
                cleanup_task.cancel()
                try:
                    await cleanup_task
                except asyncio.CancelledError:
                    pass
            if owns_store:
                app.state.store.dispose()
                app.state.store = None

    app = FastAPI(title="MCP Memory Manager", redirect_slashes=False, lifespan=lifespan)
    app.state.store = store

    app.include_router(health_router)
    app.include_router(root_router)
    app.include_router(ws_router)
    # Catch-all POST; must come last.
    app.include_router(rpc_router)
    return app
