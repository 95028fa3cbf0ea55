"""
Records exposed as ``mem://<namespace>/<id>`` resources.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import core.config as config
from core.db import MemoryDB
from core.errors import InvalidParams, ResourceNotFound
from core.mcp.arguments import ArgumentBag
from core.mcp.tools import filters_from_arguments
from core.services.memory_query import get_memory, list_memories

URI_SCHEME = "mem://"
NAME_PREVIEW_CHARS = 30


def resource_uri(namespace: str, record_id: str) -> str:
    return f"{URI_SCHEME}{namespace}/{record_id}"


def parse_resource_uri(uri: Optional[str]) -> tuple[str, str]:
    """Split ``mem://<ns>/<id>``; the namespace ends at the first slash."""
    if not uri or not uri.startswith(URI_SCHEME):
        raise InvalidParams("Unsupported URI")
    rest = uri[len(URI_SCHEME):]
    idx = rest.find("/")
    if idx <= 0:
        raise InvalidParams("Invalid URI")
    return rest[:idx], rest[idx + 1:]


def _display_name(item: dict) -> str:
    if item["title"]:
        return item["title"]
    content = item["content"] or ""
    if len(content) <= NAME_PREVIEW_CHARS:
        return content
    return content[:NAME_PREVIEW_CHARS] + "…"


def list_resources(store: MemoryDB, params: Any = None) -> dict:
    args = ArgumentBag(params)
    page = list_memories(
        store,
        filters_from_arguments(args),
        limit=config.RESOURCES_LIMIT,
        cursor=args.get_string("cursor"),
    )
    resources = [
        {
            "uri": resource_uri(item["namespace"], item["id"]),
            "name": _display_name(item),
            "description": item["type"],
            "mimeType": "text/plain",
        }
        for item in page.items
    ]
    return {"resources": resources, "nextCursor": page.next_cursor}


def read_resource(store: MemoryDB, params: Any = None) -> dict:
    args = ArgumentBag(params)
    uri = args.get_string("uri")
    namespace, record_id = parse_resource_uri(uri)
    item = get_memory(store, record_id)
    # The namespace is part of the resource identity, not just a filter.
    if item is None or item["namespace"] != namespace:
        raise ResourceNotFound("Not found")
    if args.get_string("format") == "json":
        return {"contents": [{"uri": uri, "mimeType": "application/json", "text": json.dumps(item)}]}
    return {"contents": [{"uri": uri, "mimeType": "text/plain", "text": item["content"]}]}
