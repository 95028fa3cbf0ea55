from core.mcp.dispatcher import dispatch, dispatch_frame, error_envelope, success_envelope
from core.mcp.stream import MemoryTCPServer, run_stdio, run_tcp, serve_stream
from core.mcp.tools import TOOL_HANDLERS, call_tool

__all__ = [
    "dispatch",
    "dispatch_frame",
    "error_envelope",
    "success_envelope",
    "MemoryTCPServer",
    "run_stdio",
    "run_tcp",
    "serve_stream",
    "TOOL_HANDLERS",
    "call_tool",
]
