"""
Content-Length framed transports: stdio and raw TCP.

A connection is served strictly one request at a time: read a frame,
dispatch it, write the response, repeat until the peer goes away.
"""

from __future__ import annotations

import socketserver
import sys
from typing import BinaryIO, Optional

import core.config as config
from core.db import MemoryDB
from core.errors import FramingError
from core.mcp.dispatcher import dispatch_frame
from core.mcp.framing import read_frame, write_frame

logger = config.logger


def serve_stream(reader: BinaryIO, writer: BinaryIO, store: MemoryDB) -> int:
    """Serve framed requests until EOF or a framing failure; returns the count handled."""
    handled = 0
    while True:
        try:
            body = read_frame(reader)
        except FramingError as exc:
            logger.warning("frame_rejected", extra={"detail": str(exc)})
            return handled
        if body is None:
            return handled
        write_frame(writer, dispatch_frame(body, store))
        handled += 1


def run_stdio(store: MemoryDB) -> None:
    logger.info("stdio_transport_started")
    handled = serve_stream(sys.stdin.buffer, sys.stdout.buffer, store)
    logger.info("stdio_transport_closed", extra={"handled": handled})


def parse_tcp_endpoint(value: Optional[str]) -> tuple[str, int]:
    """Accept ``PORT`` or ``HOST:PORT``; ``localhost`` maps to 127.0.0.1."""
    endpoint = (value or config.TCP_ENDPOINT).strip()
    host, sep, port_text = endpoint.rpartition(":")
    if not sep:
        host, port_text = "127.0.0.1", endpoint
    if not port_text.isdigit() or not 0 <= int(port_text) <= 65535:
        raise ValueError(f"Invalid TCP endpoint: {value}")
    host = host.strip("[]") or "127.0.0.1"
    if host.lower() == "localhost":
        host = "127.0.0.1"
    return host, int(port_text)


class MemoryRequestHandler(socketserver.StreamRequestHandler):
    def handle(self) -> None:
        peer = "%s:%s" % self.client_address[:2]
        logger.info("tcp_connection_opened", extra={"peer": peer})
        handled = serve_stream(self.rfile, self.wfile, self.server.store)
        logger.info("tcp_connection_closed", extra={"peer": peer, "handled": handled})


class MemoryTCPServer(socketserver.ThreadingTCPServer):
    """One daemon thread per accepted connection."""

    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, address: tuple[str, int], store: MemoryDB):
        self.store = store
        super().__init__(address, MemoryRequestHandler)

    def handle_error(self, request, client_address) -> None:
        # A failing connection must not take down the listener.
        logger.exception("tcp_connection_error", extra={"peer": str(client_address)})


def run_tcp(store: MemoryDB, endpoint: Optional[str] = None) -> None:
    host, port = parse_tcp_endpoint(endpoint)
    with MemoryTCPServer((host, port), store) as server:
        logger.info("tcp_transport_listening", extra={"host": host, "port": port})
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("tcp_transport_stopping")
