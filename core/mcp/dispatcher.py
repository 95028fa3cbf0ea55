"""
JSON-RPC 2.0 dispatcher shared by every transport.

``dispatch`` never raises: handler failures become error envelopes so a
transport loop only ever sees a response to write.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import core.config as config
from core.db import MemoryDB
from core.errors import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    RecordNotFound,
    RpcError,
    ValidationIssue,
)
from core.mcp.arguments import ArgumentBag
from core.mcp.framing import parse_document
from core.mcp.resources import list_resources, read_resource
from core.mcp.tool_schemas import TOOL_SCHEMAS
from core.mcp.tools import call_tool

logger = config.logger

JSONRPC_VERSION = "2.0"

MethodHandler = Callable[[MemoryDB, Any], Any]


def normalize_id(message: dict) -> Any:
    """Echo string, number and null ids as-is; anything else as its JSON text."""
    request_id = message.get("id")
    if request_id is None or isinstance(request_id, str):
        return request_id
    if isinstance(request_id, (int, float)) and not isinstance(request_id, bool):
        return request_id
    return json.dumps(request_id)


def success_envelope(request_id: Any, result: Any) -> dict:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_envelope(request_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": {"code": code, "message": message}}


# =============================================================================
# Method handlers
# =============================================================================

def handle_initialize(store: MemoryDB, params: Any) -> dict:
    return {
        "protocolVersion": config.PROTOCOL_VERSION,
        "serverInfo": {"name": config.SERVICE_NAME, "version": config.SERVICE_VERSION},
        "capabilities": {"tools": {}, "resources": {}},
    }


def handle_tools_list(store: MemoryDB, params: Any) -> dict:
    return {"tools": TOOL_SCHEMAS}


def handle_tools_call(store: MemoryDB, params: Any) -> dict:
    args = ArgumentBag(params)
    return call_tool(store, args.get_string("name"), args.raw("arguments"))


METHOD_HANDLERS: dict[str, MethodHandler] = {
    "initialize": handle_initialize,
    "tools/list": handle_tools_list,
    "tools/call": handle_tools_call,
    "resources/list": list_resources,
    "resources/read": read_resource,
}


def dispatch(message: Any, store: MemoryDB) -> dict:
    """Route one parsed request and wrap the outcome in a response envelope."""
    if not isinstance(message, dict):
        return error_envelope(None, INVALID_REQUEST, "Invalid Request")
    request_id = normalize_id(message)
    method = message.get("method")
    if not isinstance(method, str) or not method:
        return error_envelope(request_id, INVALID_REQUEST, "Invalid Request: missing method")

    handler = METHOD_HANDLERS.get(method)
    if handler is None:
        return error_envelope(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    try:
        result = handler(store, message.get("params"))
    except RpcError as exc:
        logger.info("rpc_error", extra={"method": method, "code": exc.code, "detail": str(exc)})
        return error_envelope(request_id, exc.code, str(exc))
    except (ValidationIssue, RecordNotFound) as exc:
        logger.info("rpc_error", extra={"method": method, "code": INTERNAL_ERROR, "detail": str(exc)})
        return error_envelope(request_id, INTERNAL_ERROR, str(exc))
    except Exception as exc:
        logger.exception("rpc_dispatch_error", extra={"method": method})
        return error_envelope(request_id, INTERNAL_ERROR, str(exc))
    return success_envelope(request_id, result)


def dispatch_frame(data: bytes | str, store: MemoryDB) -> dict:
    """Parse one whole JSON document and dispatch it.

    A document that does not parse is answered with an internal error and a
    null id, since no id can be recovered from it.
    """
    try:
        message = parse_document(data)
    except (ValueError, RecursionError) as exc:
        logger.info("rpc_parse_error", extra={"detail": str(exc)})
        return error_envelope(None, INTERNAL_ERROR, f"Parse error: {exc}")
    return dispatch(message, store)
