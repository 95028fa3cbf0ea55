import asyncio
import gzip
import json
import zlib

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.main import create_app
from app.routes.rpc import KEEPALIVE_COMMENT, sse_keepalive


@pytest.fixture
def client(store):
    with TestClient(create_app(store)) as test_client:
        yield test_client


def _request(method, request_id=1, params=None):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def test_post_on_any_path_dispatches(client):
    for path in ("/", "/mcp", "/rpc/nested"):
        response = client.post(path, json=_request("initialize", request_id=path))
        assert response.status_code == 200
        assert response.json()["id"] == path
        assert response.json()["result"]["serverInfo"]["name"] == "mcp-memory-manager"


def test_errors_still_return_http_200(client):
    response = client.post("/mcp", json=_request("bogus", request_id=11))

    assert response.status_code == 200
    assert response.json()["error"]["code"] == -32601
    assert response.json()["id"] == 11


def test_compressed_bodies(client):
    payload = json.dumps(_request("tools/list", request_id="gz")).encode()

    gz = client.post("/mcp", content=gzip.compress(payload), headers={"Content-Encoding": "gzip"})
    deflated = client.post("/mcp", content=zlib.compress(payload), headers={"Content-Encoding": "deflate"})

    assert gz.json()["id"] == "gz"
    assert len(gz.json()["result"]["tools"]) > 0
    assert deflated.json()["id"] == "gz"


def test_empty_body_is_invalid_request(client):
    response = client.post("/mcp", content=b"")

    assert response.status_code == 200
    assert response.json() == {"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "Empty request body"}}


def test_invalid_json_body(client):
    response = client.post("/mcp", content=b"{nope", headers={"Content-Type": "application/json"})

    assert response.status_code == 200
    assert response.json()["id"] is None
    assert response.json()["error"]["code"] == -32603


def test_corrupt_gzip_body(client):
    response = client.post("/mcp", content=b"not gzip", headers={"Content-Encoding": "gzip"})

    assert response.status_code == 200
    assert response.json()["id"] is None
    assert response.json()["error"]["code"] == -32603


def test_root_and_health(client):
    root = client.get("/")
    health = client.get("/health")

    assert root.json()["service"] == "mcp-memory-manager"
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["database"]["fts_index"] is True


def test_websocket_round_trip(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text(json.dumps(_request("initialize", request_id=1)))
        first = websocket.receive_json()
        websocket.send_bytes(
            json.dumps(
                _request("tools/call", request_id="c", params={"name": "memory.create", "arguments": {"content": "ws"}})
            ).encode()
        )
        second = websocket.receive_json()
        websocket.send_text("{bad json")
        third = websocket.receive_json()

    assert first["id"] == 1
    assert second["id"] == "c"
    assert len(second["result"]["content"]["id"]) == 32
    assert third["id"] is None
    assert third["error"]["code"] == -32603


def test_websocket_oversized_message_closes_connection(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("x" * 70000)
        with pytest.raises(WebSocketDisconnect) as excinfo:
            websocket.receive_json()

    assert excinfo.value.code == 1009


class _FakeRequest:
    def __init__(self, polls_before_disconnect: int):
        self.polls = polls_before_disconnect

    async def is_disconnected(self) -> bool:
        self.polls -= 1
        return self.polls < 0


def test_sse_keepalive_emits_comments_until_disconnect():
    async def collect():
        return [chunk async for chunk in sse_keepalive(_FakeRequest(2), interval=0)]

    chunks = asyncio.run(collect())

    assert chunks == [KEEPALIVE_COMMENT, KEEPALIVE_COMMENT]
    assert KEEPALIVE_COMMENT == ": keep-alive\n\n"


def test_app_opens_its_own_store(tmp_path):
    app = create_app(db_path=str(tmp_path / "owned.db"))

    with TestClient(app) as owned_client:
        response = owned_client.post("/", json=_request("initialize"))
        assert response.json()["result"]["protocolVersion"] == "2024-11-05"

    assert app.state.store is None
