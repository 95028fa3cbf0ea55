import gzip
import io
import json
import zlib

import pytest

from core.errors import FramingError, InvalidRequest
from core.mcp.framing import (
    MessageBuffer,
    decode_http_body,
    encode_frame,
    parse_content_length,
    read_frame,
    write_frame,
)


def _frame(body: bytes, header: str = "Content-Length") -> bytes:
    return f"{header}: {len(body)}\r\n\r\n".encode("ascii") + body


def test_read_frame_reads_exact_body():
    stream = io.BytesIO(_frame(b'{"a":1}') + _frame(b'{"b":2}'))

    assert read_frame(stream) == b'{"a":1}'
    assert read_frame(stream) == b'{"b":2}'
    assert read_frame(stream) is None


def test_content_length_is_case_insensitive():
    stream = io.BytesIO(_frame(b"{}", header="content-LENGTH"))
    assert read_frame(stream) == b"{}"


def test_extra_headers_are_ignored():
    body = "{\"text\":\"hé\"}".encode("utf-8")
    raw = f"Content-Type: application/json\r\nContent-Length: {len(body)}\r\n\r\n".encode() + body
    assert read_frame(io.BytesIO(raw)) == body


def test_parse_content_length():
    assert parse_content_length(b"Content-Length: 12\r\n\r\n") == 12
    assert parse_content_length(b"Content-Length: 1\r\nContent-Length: 3\r\n\r\n") == 3
    assert parse_content_length(b"Content-Type: x\r\n\r\n") is None
    assert parse_content_length(b"Content-Length: abc\r\n\r\n") is None
    assert parse_content_length(b"Content-Length: -4\r\n\r\n") is None


@pytest.mark.parametrize(
    "raw",
    [
        b"",
        b"Content-Length: 5\r\n",
        b"Content-Type: application/json\r\n\r\n{}",
        b"Content-Length: nope\r\n\r\n{}",
        b"Content-Length: 10\r\n\r\n{}",
    ],
)
def test_unusable_frames_read_as_closed(raw):
    assert read_frame(io.BytesIO(raw)) is None


def test_oversized_header_block_is_a_framing_error():
    stream = io.BytesIO(b"X-Padding: " + b"a" * 100 + b"\r\n\r\n")
    with pytest.raises(FramingError):
        read_frame(stream, max_header_bytes=32)


def test_encode_frame_uses_byte_length():
    frame = encode_frame({"text": "hé"})
    header, body = frame.split(b"\r\n\r\n", 1)

    assert header == f"Content-Length: {len(body)}\r\nContent-Type: application/json".encode()
    assert json.loads(body) == {"text": "hé"}
    assert len(body) == len("{\"text\": \"hé\"}".encode("utf-8"))


def test_write_frame_round_trips_through_read_frame():
    out = io.BytesIO()
    write_frame(out, {"jsonrpc": "2.0", "id": 1, "result": {}})
    out.seek(0)
    assert json.loads(read_frame(out)) == {"jsonrpc": "2.0", "id": 1, "result": {}}


def test_decode_http_body_handles_encodings():
    payload = b'{"jsonrpc":"2.0","method":"initialize","id":1}'
    raw_deflate = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    raw = raw_deflate.compress(payload) + raw_deflate.flush()

    assert decode_http_body(payload) == payload
    assert decode_http_body(gzip.compress(payload), "gzip") == payload
    assert decode_http_body(zlib.compress(payload), "deflate") == payload
    assert decode_http_body(raw, "Deflate") == payload
    assert decode_http_body(payload, "identity") == payload


def test_decode_http_body_rejects_empty_and_unknown():
    with pytest.raises(InvalidRequest):
        decode_http_body(b"")
    with pytest.raises(InvalidRequest):
        decode_http_body(b"   ")
    with pytest.raises(InvalidRequest):
        decode_http_body(gzip.compress(b""), "gzip")
    with pytest.raises(InvalidRequest):
        decode_http_body(b"{}", "br")


def test_message_buffer_accumulates_fragments():
    buffer = MessageBuffer(capacity=8)
    buffer.append(b"{\"a\"")
    buffer.append(":1}")

    assert len(buffer) == 7
    assert buffer.take() == b'{"a":1}'
    assert len(buffer) == 0


def test_message_buffer_rejects_overflow():
    buffer = MessageBuffer(capacity=4)
    buffer.append(b"abcd")
    with pytest.raises(FramingError):
        buffer.append(b"e")
    assert len(buffer) == 0
