"""
Tool catalog returned by ``tools/list``.
"""

from __future__ import annotations

from typing import Any

STRING = {"type": "string"}
NULLABLE_STRING = {"type": "string", "nullable": True}
STRING_LIST = {"type": "array", "items": {"type": "string"}}
NULLABLE_STRING_LIST = {"type": "array", "items": {"type": "string"}, "nullable": True}
NULLABLE_BOOL = {"type": "boolean", "nullable": True}
NULLABLE_OBJECT = {"type": "object", "additionalProperties": True, "nullable": True}


def _tool(name: str, description: str, properties: dict[str, Any], required: tuple[str, ...] = ()) -> dict:
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = list(required)
    return {"name": name, "description": description, "inputSchema": schema}


def _id_only(name: str, description: str) -> dict:
    return _tool(name, description, {"id": STRING}, ("id",))


TOOL_SCHEMAS: list[dict] = [
    _tool(
        "memory.create",
        "Create a memory item",
        {
            "content": {"type": "string", "description": "Primary content of the memory."},
            "type": {"type": "string", "description": "Type/category of memory.", "default": "note"},
            "title": {"type": "string", "description": "Optional title.", "nullable": True},
            "agentId": {"type": "string", "description": "Originating agent id.", "default": ""},
            "ns": {"type": "string", "description": "Namespace bucket.", "default": "default"},
            "metadata": {
                "type": "object",
                "description": "Arbitrary key/value metadata.",
                "additionalProperties": True,
                "nullable": True,
            },
            "tags": {"type": "array", "description": "List of tags.", "items": STRING, "nullable": True},
            "refs": {
                "type": "array",
                "description": "List of references (ids/urls).",
                "items": STRING,
                "nullable": True,
            },
            "importance": {"type": "number", "description": "Importance score 0-1.", "default": 0.3},
            "pin": {"type": "boolean", "description": "Pinned flag.", "default": False},
            "expiresAt": {"type": "string", "description": "ISO-8601 expiry timestamp.", "nullable": True},
        },
        ("content",),
    ),
    _id_only("memory.get", "Get a memory item by id"),
    _tool(
        "memory.update",
        "Update fields of a memory (partial)",
        {
            "id": STRING,
            "content": NULLABLE_STRING,
            "title": NULLABLE_STRING,
            "metadata": NULLABLE_OBJECT,
            "tags": NULLABLE_STRING_LIST,
            "refs": NULLABLE_STRING_LIST,
            "importance": {"type": "number", "nullable": True},
            "pin": NULLABLE_BOOL,
            "archived": NULLABLE_BOOL,
            "expiresAt": NULLABLE_STRING,
        },
        ("id",),
    ),
    _tool(
        "memory.delete",
        "Delete a memory (soft by default)",
        {"id": STRING, "hard": {"type": "boolean", "default": False}},
        ("id",),
    ),
    _id_only("memory.archive", "Archive a memory"),
    _id_only("memory.unarchive", "Unarchive a memory"),
    _id_only("memory.pin", "Pin a memory"),
    _id_only("memory.unpin", "Unpin a memory"),
    _tool(
        "memory.list",
        "List recent memories",
        {
            "agentId": NULLABLE_STRING,
            "ns": NULLABLE_STRING,
            "types": NULLABLE_STRING_LIST,
            "tags": NULLABLE_STRING_LIST,
            "pinned": NULLABLE_BOOL,
            "archived": NULLABLE_BOOL,
            "before": NULLABLE_STRING,
            "after": NULLABLE_STRING,
            "limit": {"type": "integer", "default": 50},
            "cursor": NULLABLE_STRING,
        },
    ),
    _tool(
        "memory.search",
        "Search memories via FTS5",
        {"query": STRING, "ns": NULLABLE_STRING, "limit": {"type": "integer", "default": 20}},
        ("query",),
    ),
    _tool("memory.cleanup", "Delete expired memories", {"ns": NULLABLE_STRING}),
    _tool("memory.tags.add", "Add tags to a memory", {"id": STRING, "tags": STRING_LIST}, ("id", "tags")),
    _tool("memory.tags.remove", "Remove tags from a memory", {"id": STRING, "tags": STRING_LIST}, ("id", "tags")),
    _tool("memory.refs.add", "Add refs to a memory", {"id": STRING, "refs": STRING_LIST}, ("id", "refs")),
    _tool("memory.refs.remove", "Remove refs from a memory", {"id": STRING, "refs": STRING_LIST}, ("id", "refs")),
    _tool(
        "memory.link",
        "Link two memories",
        {"from_id": STRING, "to_id": STRING, "relation": NULLABLE_STRING},
        ("from_id", "to_id"),
    ),
    _tool("memory.summarize", "Summarize a memory", {"id": STRING, "style": NULLABLE_STRING}, ("id",)),
    _tool(
        "memory.summarize_thread",
        "Summarize a set of memories",
        {"source_ids": STRING_LIST, "style": NULLABLE_STRING},
        ("source_ids",),
    ),
    _tool(
        "memory.merge",
        "Merge memories",
        {"source_ids": STRING_LIST, "target_title": NULLABLE_STRING, "ns": NULLABLE_STRING},
        ("source_ids",),
    ),
    _tool("task.create", "Create a task", {"title": STRING, "ns": {"type": "string", "default": "default"}}, ("title",)),
    _tool(
        "task.update_status",
        "Update task status",
        {"id": STRING, "status": STRING, "note": NULLABLE_STRING},
        ("id", "status"),
    ),
    _tool("task.add_note", "Attach a note to a task", {"id": STRING, "note": STRING}, ("id", "note")),
    _tool("task.list", "List tasks", {"limit": {"type": "integer", "default": 50}}),
    _tool("export.dump", "Export NDJSON", {"ns": NULLABLE_STRING}),
    _tool("export.import", "Import NDJSON", {"ndjson": STRING}, ("ndjson",)),
]
