"""
Task workflow on top of the record store.

A task is a record of type ``task``; its status lives in
``metadata["status"]`` and notes are ``note`` records referencing it.
"""

from __future__ import annotations

from typing import Optional

import core.config as config
from core.db import MemoryDB
from core.services.memory_query import FilterSpec, get_memory, list_memories
from core.services.memory_storage import create_memory, update_memory

TASK_TYPE = "task"
DEFAULT_STATUS = "todo"


def create_task(store: MemoryDB, title: str, namespace: Optional[str] = None) -> str:
    return create_memory(store, content=title, type=TASK_TYPE, title=title, namespace=namespace)


def list_tasks(store: MemoryDB, limit: int = config.TASK_LIST_LIMIT_DEFAULT) -> list[dict]:
    page = list_memories(store, FilterSpec(types=[TASK_TYPE], include_archived=True), limit=limit)
    return [
        {
            "id": item["id"],
            "title": item["title"] if item["title"] is not None else item["content"],
            "status": (item["metadata"] or {}).get("status", DEFAULT_STATUS),
        }
        for item in page.items
    ]


def update_task_status(store: MemoryDB, task_id: str, status: str, note: Optional[str] = None) -> bool:
    """Set the task status; returns False for unknown or non-task ids."""
    item = get_memory(store, task_id)
    if item is None or item["type"] != TASK_TYPE:
        return False
    metadata = dict(item["metadata"] or {})
    metadata["status"] = status
    update_memory(store, task_id, metadata=metadata)
    if note and note.strip():
        create_memory(store, content=note, refs=[task_id], namespace=item["namespace"])
    config.logger.info("task_status_updated", extra={"task_id": task_id, "status": status})
    return True


def add_task_note(store: MemoryDB, task_id: str, note: str) -> str:
    item = get_memory(store, task_id)
    namespace = item["namespace"] if item is not None else config.DEFAULT_NAMESPACE
    return create_memory(store, content=note, refs=[task_id], namespace=namespace)
