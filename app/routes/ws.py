"""
WebSocket JSON-RPC endpoint: one text or binary message per request.
"""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

import core.config as config
from core.db import MemoryDB
from core.errors import FramingError
from core.mcp.dispatcher import dispatch_frame
from core.mcp.framing import MessageBuffer
from app.deps import get_store

logger = config.logger

router = APIRouter()


@router.websocket("/ws")
async def websocket_rpc(websocket: WebSocket, store: MemoryDB = Depends(get_store)):
    await websocket.accept()
    buffer = MessageBuffer(config.WS_MAX_MESSAGE_BYTES)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            chunk = message.get("text")
            if chunk is None:
                chunk = message.get("bytes") or b""
            try:
                buffer.append(chunk)
            except FramingError as exc:
                logger.warning("ws_message_rejected", extra={"detail": str(exc)})
                await websocket.close(code=status.WS_1009_MESSAGE_TOO_BIG)
                return
            envelope = await asyncio.to_thread(dispatch_frame, buffer.take(), store)
            await websocket.send_text(json.dumps(envelope, ensure_ascii=False))
    except WebSocketDisconnect:
        logger.info("ws_disconnected")
