"""
Frame codec for the JSON-RPC transports.

Stream transports (stdio, TCP) use ``Content-Length`` framing; WebSocket
and HTTP carry one JSON document per transport message.
"""

from __future__ import annotations

import gzip
import json
import zlib
from typing import Any, BinaryIO, Optional

import core.config as config
from core.errors import FramingError, InvalidRequest

logger = config.logger

HEADER_TERMINATOR = b"\r\n\r\n"
CONTENT_LENGTH = "content-length"


# =============================================================================
# Stream framing
# =============================================================================

def _read_headers(stream: BinaryIO, max_bytes: int) -> Optional[bytes]:
    """Read up to and including the blank line; None on EOF before it."""
    header = bytearray()
    while not header.endswith(HEADER_TERMINATOR):
        byte = stream.read(1)
        if not byte:
            if header:
                logger.info("frame_abandoned", extra={"reason": "eof_in_headers"})
            return None
        header += byte
        if len(header) > max_bytes:
            raise FramingError(f"Header block exceeds {max_bytes} bytes")
    return bytes(header)


def parse_content_length(header: bytes) -> Optional[int]:
    """Return the declared body length, or None when missing or malformed."""
    length = None
    for line in header.decode("ascii", errors="replace").split("\r\n"):
        name, sep, value = line.partition(":")
        if not sep or name.strip().lower() != CONTENT_LENGTH:
            continue
        value = value.strip()
        if not value.isdigit():
            return None
        length = int(value)
    return length


def _read_exact(stream: BinaryIO, length: int) -> Optional[bytes]:
    body = bytearray()
    while len(body) < length:
        chunk = stream.read(length - len(body))
        if not chunk:
            return None
        body += chunk
    return bytes(body)


def read_frame(stream: BinaryIO, max_header_bytes: int = config.MAX_HEADER_BYTES) -> Optional[bytes]:
    """Read one framed body from ``stream``.

    Returns None when the stream ends or the frame is unusable (no length,
    bad length, short body); callers treat that as a clean close. Raises
    FramingError when the header block grows past ``max_header_bytes``.
    """
    header = _read_headers(stream, max_header_bytes)
    if header is None:
        return None
    length = parse_content_length(header)
    if length is None:
        logger.info("frame_abandoned", extra={"reason": "bad_content_length"})
        return None
    body = _read_exact(stream, length)
    if body is None:
        logger.info("frame_abandoned", extra={"reason": "short_body", "expected": length})
    return body


def encode_frame(payload: Any) -> bytes:
    body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\nContent-Type: application/json\r\n\r\n"
    return header.encode("ascii") + body


def write_frame(stream: BinaryIO, payload: Any) -> None:
    stream.write(encode_frame(payload))
    stream.flush()


# =============================================================================
# Whole-message framing
# =============================================================================

def parse_document(data: bytes | str) -> Any:
    """Decode one JSON document. Raises ValueError on bad UTF-8 or JSON."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return json.loads(data)


def _inflate(body: bytes) -> bytes:
    try:
        return zlib.decompress(body)
    except zlib.error:
        # Some clients send raw deflate without the zlib wrapper.
        return zlib.decompress(body, -zlib.MAX_WBITS)


def decode_http_body(body: bytes, content_encoding: Optional[str] = None) -> bytes:
    """Undo ``Content-Encoding`` (applied in listed order) and reject empty bodies."""
    if content_encoding:
        codings = [c.strip().lower() for c in content_encoding.split(",") if c.strip()]
        for coding in reversed(codings):
            if coding in ("gzip", "x-gzip"):
                body = gzip.decompress(body)
            elif coding == "deflate":
                body = _inflate(body)
            elif coding != "identity":
                raise InvalidRequest(f"Unsupported Content-Encoding: {coding}")
    if not body or not body.strip():
        raise InvalidRequest("Empty request body")
    return body


class MessageBuffer:
    """Byte buffer for one WebSocket message, capped at ``capacity``.

    The ASGI server hands over messages with fragments already reassembled,
    so the WebSocket route appends one message and takes it straight away;
    in practice the buffer acts as a per-message size limit.
    """

    def __init__(self, capacity: int = config.WS_MAX_MESSAGE_BYTES):
        self.capacity = capacity
        self._chunks: list[bytes] = []
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def append(self, chunk: bytes | str) -> None:
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        if self._size + len(chunk) > self.capacity:
            self.clear()
            raise FramingError(f"Message exceeds {self.capacity} bytes")
        self._chunks.append(chunk)
        self._size += len(chunk)

    def take(self) -> bytes:
        data = b"".join(self._chunks)
        self.clear()
        return data

    def clear(self) -> None:
        self._chunks = []
        self._size = 0
