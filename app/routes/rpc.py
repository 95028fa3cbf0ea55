"""
HTTP JSON-RPC endpoint and the SSE keep-alive channel.

Every POST answers HTTP 200 with a JSON-RPC envelope; errors are never
mapped to HTTP status codes.
"""

from __future__ import annotations

import asyncio
import zlib
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

import core.config as config
from core.db import MemoryDB
from core.errors import INTERNAL_ERROR, RpcError
from core.mcp.dispatcher import dispatch_frame, error_envelope
from core.mcp.framing import decode_http_body
from app.deps import get_store

logger = config.logger

KEEPALIVE_COMMENT = ": keep-alive\n\n"

router = APIRouter()


async def sse_keepalive(request: Request, interval: float = config.SSE_KEEPALIVE_SECONDS) -> AsyncIterator[str]:
    """Yield a comment line every ``interval`` seconds until the client leaves."""
    while not await request.is_disconnected():
        yield KEEPALIVE_COMMENT
        await asyncio.sleep(interval)


@router.get("/sse")
async def sse(request: Request):
    return StreamingResponse(
        sse_keepalive(request),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.post("/{path:path}")
async def rpc(path: str, request: Request, store: MemoryDB = Depends(get_store)):
    raw = await request.body()
    try:
        body = decode_http_body(raw, request.headers.get("content-encoding"))
    except RpcError as exc:
        envelope = error_envelope(None, exc.code, str(exc))
    except (OSError, EOFError, zlib.error) as exc:
        logger.info("http_body_decode_error", extra={"path": path, "detail": str(exc)})
        envelope = error_envelope(None, INTERNAL_ERROR, f"Invalid body encoding: {exc}")
    else:
        envelope = await asyncio.to_thread(dispatch_frame, body, store)
    return JSONResponse(envelope)
