"""
Tool invocation layer: ``tools/call`` name -> handler.

Each handler reads its arguments through an ArgumentBag, calls exactly one
engine operation and returns a plain JSON-able result; ``call_tool`` wraps
it as ``{"content": result}``.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Optional

import core.config as config
from core.db import MemoryDB
from core.errors import RpcError, ValidationIssue
from core.mcp.arguments import ArgumentBag
from core.services import memory_export, memory_query, memory_storage, task_service
from core.services.memory_query import FilterSpec

logger = config.logger

ToolHandler = Callable[[MemoryDB, ArgumentBag], Any]

TOOL_HANDLERS: dict[str, ToolHandler] = {}


def _log_validation_issue(tool_name: str, exc: ValidationIssue) -> None:
    payload = {
        "tool": tool_name,
        "field": exc.field,
        "error_type": exc.error_type,
        "detail": str(exc),
    }
    logger.info("tool_validation_error", extra=payload)


def tool(name: str) -> Callable[[ToolHandler], ToolHandler]:
    """Register a handler under ``name``; validation failures are logged and re-raised."""

    def decorator(fn: ToolHandler) -> ToolHandler:
        @wraps(fn)
        def wrapper(store: MemoryDB, args: ArgumentBag):
            try:
                return fn(store, args)
            except ValidationIssue as exc:
                _log_validation_issue(name, exc)
                raise

        TOOL_HANDLERS[name] = wrapper
        return wrapper

    return decorator


def filters_from_arguments(args: ArgumentBag) -> FilterSpec:
    """List filters shared by ``memory.list`` and ``resources/list``."""
    return FilterSpec(
        namespace=args.get_string("ns"),
        agent_id=args.get_string("agentId"),
        types=args.get_string_list("types"),
        tags=args.get_string_list("tags"),
        pinned=args.get_bool("pinned"),
        archived=args.get_bool("archived"),
        before=args.get_datetime("before"),
        after=args.get_datetime("after"),
    )


def _int_or_default(value: Optional[int], default: int) -> int:
    return default if value is None else value


# =============================================================================
# Memory CRUD
# =============================================================================

@tool("memory.create")
def memory_create(store: MemoryDB, args: ArgumentBag) -> dict:
    memory_id = memory_storage.create_memory(
        store,
        content=args.require_string("content"),
        type=args.get_string("type") or config.DEFAULT_TYPE,
        title=args.get_string("title"),
        agent_id=args.get_string("agentId") or "",
        namespace=args.get_string("ns"),
        metadata=args.get_dict("metadata"),
        tags=args.get_string_list("tags"),
        refs=args.get_string_list("refs"),
        importance=args.get_float("importance"),
        pin=bool(args.get_bool("pin")),
        expires_at=args.get_datetime("expiresAt"),
    )
    return {"id": memory_id}


@tool("memory.get")
def memory_get(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"item": memory_query.get_memory(store, args.require_string("id"))}


@tool("memory.update")
def memory_update(store: MemoryDB, args: ArgumentBag) -> dict:
    ok = memory_storage.update_memory(
        store,
        args.require_string("id"),
        content=args.get_string("content"),
        title=args.get_string("title"),
        metadata=args.get_dict("metadata"),
        tags=args.get_string_list("tags"),
        refs=args.get_string_list("refs"),
        importance=args.get_float("importance"),
        pin=args.get_bool("pin"),
        archived=args.get_bool("archived"),
        expires_at=args.get_datetime("expiresAt"),
    )
    return {"ok": ok}


@tool("memory.delete")
def memory_delete(store: MemoryDB, args: ArgumentBag) -> dict:
    removed = memory_storage.delete_memory(store, args.require_string("id"), hard=bool(args.get_bool("hard")))
    return {"removed": removed}


@tool("memory.archive")
def memory_archive(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"ok": memory_storage.update_memory(store, args.require_string("id"), archived=True)}


@tool("memory.unarchive")
def memory_unarchive(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"ok": memory_storage.update_memory(store, args.require_string("id"), archived=False)}


@tool("memory.pin")
def memory_pin(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"ok": memory_storage.update_memory(store, args.require_string("id"), pin=True)}


@tool("memory.unpin")
def memory_unpin(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"ok": memory_storage.update_memory(store, args.require_string("id"), pin=False)}


# =============================================================================
# Queries
# =============================================================================

@tool("memory.list")
def memory_list(store: MemoryDB, args: ArgumentBag) -> dict:
    page = memory_query.list_memories(
        store,
        filters_from_arguments(args),
        limit=_int_or_default(args.get_int("limit"), config.LIST_LIMIT_DEFAULT),
        cursor=args.get_string("cursor"),
    )
    return {"items": page.items, "nextCursor": page.next_cursor}


@tool("memory.search")
def memory_search(store: MemoryDB, args: ArgumentBag) -> dict:
    hits = memory_query.search_memories(
        store,
        args.require_string("query"),
        namespace=args.get_string("ns"),
        limit=_int_or_default(args.get_int("limit"), config.SEARCH_LIMIT_DEFAULT),
    )
    return {"items": hits}


@tool("memory.cleanup")
def memory_cleanup(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"removed": memory_storage.cleanup_expired(store, args.get_string("ns"))}


# =============================================================================
# Tags, refs, links
# =============================================================================

@tool("memory.tags.add")
def memory_tags_add(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"ok": memory_storage.add_tags(store, args.require_string("id"), args.require_string_list("tags"))}


@tool("memory.tags.remove")
def memory_tags_remove(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"ok": memory_storage.remove_tags(store, args.require_string("id"), args.require_string_list("tags"))}


@tool("memory.refs.add")
def memory_refs_add(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"ok": memory_storage.add_refs(store, args.require_string("id"), args.require_string_list("refs"))}


@tool("memory.refs.remove")
def memory_refs_remove(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"ok": memory_storage.remove_refs(store, args.require_string("id"), args.require_string_list("refs"))}


@tool("memory.link")
def memory_link(store: MemoryDB, args: ArgumentBag) -> dict:
    ok = memory_storage.link_memories(
        store,
        args.require_string("from_id"),
        args.require_string("to_id"),
        relation=args.get_string("relation"),
    )
    return {"ok": ok}


# =============================================================================
# Derived records
# =============================================================================

@tool("memory.summarize")
def memory_summarize(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"id": memory_storage.summarize_memory(store, args.require_string("id"), args.get_string("style"))}


@tool("memory.summarize_thread")
def memory_summarize_thread(store: MemoryDB, args: ArgumentBag) -> dict:
    summary_id = memory_storage.summarize_thread(
        store,
        args.get_string_list("source_ids") or [],
        style=args.get_string("style"),
    )
    return {"id": summary_id}


@tool("memory.merge")
def memory_merge(store: MemoryDB, args: ArgumentBag) -> dict:
    merged_id = memory_storage.merge_memories(
        store,
        args.get_string_list("source_ids") or [],
        target_title=args.get_string("target_title"),
        namespace=args.get_string("ns"),
    )
    return {"id": merged_id}


# =============================================================================
# Tasks
# =============================================================================

@tool("task.create")
def task_create(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"id": task_service.create_task(store, args.require_string("title"), args.get_string("ns"))}


@tool("task.list")
def task_list(store: MemoryDB, args: ArgumentBag) -> dict:
    limit = _int_or_default(args.get_int("limit"), config.TASK_LIST_LIMIT_DEFAULT)
    return {"items": task_service.list_tasks(store, limit)}


@tool("task.update_status")
def task_update_status(store: MemoryDB, args: ArgumentBag) -> dict:
    ok = task_service.update_task_status(
        store,
        args.require_string("id"),
        args.require_string("status"),
        note=args.get_string("note"),
    )
    return {"ok": ok}


@tool("task.add_note")
def task_add_note(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"id": task_service.add_task_note(store, args.require_string("id"), args.require_string("note"))}


# =============================================================================
# Export / import
# =============================================================================

@tool("export.dump")
def export_dump(store: MemoryDB, args: ArgumentBag) -> dict:
    ndjson, count = memory_export.dump_ndjson(store, args.get_string("ns"))
    return {"ndjson": ndjson, "count": count}


@tool("export.import")
def export_import(store: MemoryDB, args: ArgumentBag) -> dict:
    return {"upserted": memory_export.import_ndjson(store, args.require_string("ndjson"))}


def call_tool(store: MemoryDB, name: Optional[str], arguments: Any) -> dict:
    handler = TOOL_HANDLERS.get(name or "")
    if handler is None:
        raise RpcError(f"Unknown tool: {name}")
    return {"content": handler(store, ArgumentBag(arguments))}
