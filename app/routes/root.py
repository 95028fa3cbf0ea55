"""
Root endpoint with service metadata.
"""

from __future__ import annotations

from fastapi import APIRouter

import core.config as config


router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": config.SERVICE_NAME,
        "version": config.SERVICE_VERSION,
        "protocol_version": config.PROTOCOL_VERSION,
        "endpoints": {
            "rpc": "POST /<any path>",
            "websocket": "/ws",
            "sse": "/sse",
            "health": "/health",
        },
    }
