import io
import json
import socket
import threading

import pytest

from core.mcp.framing import encode_frame, read_frame
from core.mcp.stream import MemoryTCPServer, parse_tcp_endpoint, serve_stream


def _responses(raw: bytes) -> list[dict]:
    out = io.BytesIO(raw)
    responses = []
    while True:
        body = read_frame(out)
        if body is None:
            return responses
        responses.append(json.loads(body))


def test_serve_stream_answers_each_frame_in_order(store):
    reader = io.BytesIO(
        encode_frame({"jsonrpc": "2.0", "id": 1, "method": "initialize"})
        + encode_frame({"jsonrpc": "2.0", "id": "two", "method": "nope"})
    )
    writer = io.BytesIO()

    assert serve_stream(reader, writer, store) == 2

    responses = _responses(writer.getvalue())
    assert [response["id"] for response in responses] == [1, "two"]
    assert "result" in responses[0]
    assert responses[1]["error"]["code"] == -32601


def test_serve_stream_reports_bad_json_and_continues(store):
    body = b"{broken"
    reader = io.BytesIO(
        f"Content-Length: {len(body)}\r\n\r\n".encode() + body
        + encode_frame({"jsonrpc": "2.0", "id": 2, "method": "initialize"})
    )
    writer = io.BytesIO()

    assert serve_stream(reader, writer, store) == 2

    responses = _responses(writer.getvalue())
    assert responses[0]["id"] is None
    assert responses[0]["error"]["code"] == -32603
    assert responses[1]["id"] == 2


def test_serve_stream_answers_deeply_nested_json_and_continues(store):
    body = b"[" * 100000
    reader = io.BytesIO(
        f"Content-Length: {len(body)}\r\n\r\n".encode() + body
        + encode_frame({"jsonrpc": "2.0", "id": 3, "method": "initialize"})
    )
    writer = io.BytesIO()

    assert serve_stream(reader, writer, store) == 2

    responses = _responses(writer.getvalue())
    assert responses[0]["id"] is None
    assert responses[0]["error"]["code"] == -32603
    assert responses[1]["id"] == 3
    assert "result" in responses[1]


def test_serve_stream_stops_silently_on_bad_frame(store):
    reader = io.BytesIO(
        encode_frame({"jsonrpc": "2.0", "id": 1, "method": "initialize"})
        + b"Content-Length: 500\r\n\r\n{\"truncated\""
    )
    writer = io.BytesIO()

    assert serve_stream(reader, writer, store) == 1
    assert len(_responses(writer.getvalue())) == 1


def test_serve_stream_stops_on_oversized_headers(store):
    reader = io.BytesIO(b"X" * 20000)
    writer = io.BytesIO()

    assert serve_stream(reader, writer, store) == 0
    assert writer.getvalue() == b""


@pytest.mark.parametrize(
    "value,expected",
    [
        ("9000", ("127.0.0.1", 9000)),
        ("localhost:9001", ("127.0.0.1", 9001)),
        ("0.0.0.0:9002", ("0.0.0.0", 9002)),
        (None, ("127.0.0.1", 8765)),
    ],
)
def test_parse_tcp_endpoint(value, expected):
    assert parse_tcp_endpoint(value) == expected


@pytest.mark.parametrize("value", ["host:port", "abc", "1.2.3.4:99999"])
def test_parse_tcp_endpoint_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_tcp_endpoint(value)


def test_tcp_server_handles_concurrent_connections(store):
    server = MemoryTCPServer(("127.0.0.1", 0), store)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address
    try:
        first = socket.create_connection((host, port), timeout=5)
        second = socket.create_connection((host, port), timeout=5)
        with first, second:
            first_in = first.makefile("rb")
            second_in = second.makefile("rb")

            second.sendall(encode_frame({"jsonrpc": "2.0", "id": "b", "method": "initialize"}))
            first.sendall(
                encode_frame(
                    {
                        "jsonrpc": "2.0",
                        "id": 1,
                        "method": "tools/call",
                        "params": {"name": "memory.create", "arguments": {"content": "over tcp"}},
                    }
                )
            )

            second_response = json.loads(read_frame(second_in))
            first_response = json.loads(read_frame(first_in))

            assert second_response["id"] == "b"
            assert first_response["id"] == 1
            assert len(first_response["result"]["content"]["id"]) == 32

            first.sendall(b"Content-Length: oops\r\n\r\n")
            assert read_frame(first_in) is None

            second.sendall(encode_frame({"jsonrpc": "2.0", "id": 3, "method": "tools/list"}))
            assert json.loads(read_frame(second_in))["id"] == 3
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)
