from concurrent.futures import ThreadPoolExecutor

from core.mcp.dispatcher import dispatch
from core.services.memory_query import FilterSpec, list_memories


def _create(store, text: str) -> dict:
    return dispatch(
        {
            "jsonrpc": "2.0",
            "id": text,
            "method": "tools/call",
            "params": {"name": "memory.create", "arguments": {"content": text, "ns": "concurrency"}},
        },
        store,
    )


def test_memory_create_concurrency(store):
    texts = [f"Concurrent observation {idx}" for idx in range(8)]
    with ThreadPoolExecutor(max_workers=4) as executor:
        results = list(executor.map(lambda text: _create(store, text), texts))

    assert all("result" in result for result in results)
    assert [result["id"] for result in results] == texts

    page = list_memories(store, FilterSpec(namespace="concurrency"), limit=50)
    assert sorted(item["content"] for item in page.items) == sorted(texts)
