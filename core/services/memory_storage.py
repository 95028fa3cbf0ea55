"""
Record mutations: create, partial update, delete, set edits and derived records.

Every function opens its own short-lived session. Multi-step operations
(tag/ref edits, link, summarize, merge) read in one session and write in
another, so concurrent edits of the same record can lose updates.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import delete

import core.config as config
from core.db import MemoryDB
from core.errors import RecordNotFound, ValidationIssue
from core.models import Memory, new_record_id, to_storage_datetime, utc_now
from core.services.memory_query import get_memory
from core.validators import (
    validate_importance,
    validate_metadata,
    validate_required_text,
    validate_string_list,
)

logger = config.logger

SUMMARY_TYPE = "summary"
ELLIPSIS = "…"
THREAD_SEPARATOR = " • "
MERGE_SEPARATOR = "\n\n---\n\n"


def _unique(values: Iterable[str]) -> list[str]:
    """Set semantics with first-seen order kept."""
    return list(dict.fromkeys(values))


def _truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + ELLIPSIS


def _styled(snippet: str, style: Optional[str]) -> str:
    if style and style.strip():
        return f"[{style}] {snippet}"
    return snippet


def create_memory(
    store: MemoryDB,
    content: str,
    type: str = config.DEFAULT_TYPE,
    title: Optional[str] = None,
    agent_id: str = "",
    namespace: Optional[str] = None,
    metadata: Optional[dict] = None,
    tags: Optional[Sequence[str]] = None,
    refs: Optional[Sequence[str]] = None,
    importance: Optional[float] = None,
    pin: bool = False,
    expires_at: Optional[datetime] = None,
) -> str:
    """Insert a new record and return its id."""
    validate_required_text(content, "content")
    validate_metadata(metadata)
    validate_string_list(tags, "tags")
    validate_string_list(refs, "refs")
    validate_importance(importance)

    now = utc_now()
    memory = Memory(
        id=new_record_id(),
        agent_id=agent_id or "",
        namespace=namespace or config.DEFAULT_NAMESPACE,
        type=type or config.DEFAULT_TYPE,
        title=title,
        content=content,
        metadata_=metadata,
        tags=_unique(tags or []),
        refs=_unique(refs or []),
        importance=config.DEFAULT_IMPORTANCE if importance is None else importance,
        pin=bool(pin),
        archived=False,
        created_at=now,
        updated_at=now,
        expires_at=to_storage_datetime(expires_at),
    )
    with store.session() as db:
        db.add(memory)
        db.commit()
    logger.info("memory_created", extra={"memory_id": memory.id, "namespace": memory.namespace, "type": memory.type})
    return memory.id


def update_memory(
    store: MemoryDB,
    memory_id: str,
    content: Optional[str] = None,
    title: Optional[str] = None,
    metadata: Optional[dict] = None,
    tags: Optional[Sequence[str]] = None,
    refs: Optional[Sequence[str]] = None,
    importance: Optional[float] = None,
    pin: Optional[bool] = None,
    archived: Optional[bool] = None,
    expires_at: Optional[datetime] = None,
) -> bool:
    """Apply the supplied (non-None) fields.

    Returns False without writing when the record is unknown or when none
    of the supplied values differs from what is stored.
    """
    validate_metadata(metadata)
    validate_string_list(tags, "tags")
    validate_string_list(refs, "refs")
    validate_importance(importance)

    supplied: dict[str, Any] = {
        "content": content,
        "title": title,
        "metadata_": metadata,
        "tags": _unique(tags) if tags is not None else None,
        "refs": _unique(refs) if refs is not None else None,
        "importance": importance,
        "pin": pin,
        "archived": archived,
        "expires_at": to_storage_datetime(expires_at),
    }

    with store.session() as db:
        memory = db.get(Memory, memory_id)
        if memory is None:
            return False
        changed = False
        for attr, value in supplied.items():
            if value is None or getattr(memory, attr) == value:
                continue
            setattr(memory, attr, value)
            changed = True
        if not changed:
            return False
        # Never move updated_at backwards, even if the clock does.
        memory.updated_at = max(utc_now(), memory.updated_at)
        db.commit()
    return True


def delete_memory(store: MemoryDB, memory_id: str, hard: bool = False) -> int:
    """Soft delete archives the record; hard delete removes the row."""
    if not hard:
        return 1 if update_memory(store, memory_id, archived=True) else 0
    with store.session() as db:
        removed = db.execute(delete(Memory).where(Memory.id == memory_id)).rowcount
        db.commit()
    if removed:
        logger.info("memory_deleted", extra={"memory_id": memory_id})
    return removed


def cleanup_expired(store: MemoryDB, namespace: Optional[str] = None) -> int:
    """Hard-delete every record whose expiry is in the past."""
    stmt = delete(Memory).where(Memory.expires_at.is_not(None), Memory.expires_at < utc_now())
    if namespace is not None:
        stmt = stmt.where(Memory.namespace == namespace)
    with store.session() as db:
        removed = db.execute(stmt).rowcount
        db.commit()
    logger.info("memory_cleanup", extra={"namespace": namespace, "removed": removed})
    return removed


# =============================================================================
# Set edits
# =============================================================================

def _edit_set(store: MemoryDB, memory_id: str, field: str, add=(), remove=()) -> bool:
    item = get_memory(store, memory_id)
    if item is None:
        return False
    removed = set(remove)
    values = [value for value in _unique([*item[field], *add]) if value not in removed]
    return update_memory(store, memory_id, **{field: values})


def add_tags(store: MemoryDB, memory_id: str, tags: Sequence[str]) -> bool:
    return _edit_set(store, memory_id, "tags", add=tags)


def remove_tags(store: MemoryDB, memory_id: str, tags: Sequence[str]) -> bool:
    return _edit_set(store, memory_id, "tags", remove=tags)


def add_refs(store: MemoryDB, memory_id: str, refs: Sequence[str]) -> bool:
    return _edit_set(store, memory_id, "refs", add=refs)


def remove_refs(store: MemoryDB, memory_id: str, refs: Sequence[str]) -> bool:
    return _edit_set(store, memory_id, "refs", remove=refs)


def link_memories(store: MemoryDB, from_id: str, to_id: str, relation: Optional[str] = None) -> bool:
    """Reference ``to_id`` from ``from_id``, labelling the edge when asked."""
    item = get_memory(store, from_id)
    if item is None:
        return False
    refs = _unique([*item["refs"], to_id])
    metadata = None
    if relation and relation.strip():
        metadata = dict(item["metadata"] or {})
        relations = dict(metadata.get("relations") or {})
        relations[to_id] = relation
        metadata["relations"] = relations
    return update_memory(store, from_id, refs=refs, metadata=metadata)


# =============================================================================
# Derived records
# =============================================================================

def summarize_memory(store: MemoryDB, memory_id: str, style: Optional[str] = None) -> str:
    item = get_memory(store, memory_id)
    if item is None:
        raise RecordNotFound("Not found")
    snippet = _styled(_truncate(item["content"] or "", config.SUMMARY_MAX_CHARS), style)
    if item["title"] is None:
        title = f"Summary of {memory_id[:8]}"
    else:
        title = f"Summary: {item['title']}"
    return create_memory(
        store,
        content=snippet,
        type=SUMMARY_TYPE,
        title=title,
        namespace=item["namespace"],
        refs=[memory_id],
    )


def summarize_thread(store: MemoryDB, source_ids: Sequence[str], style: Optional[str] = None) -> str:
    ids = list(source_ids)
    if not ids:
        raise ValidationIssue("source_ids required", field="source_ids", error_type="required")
    items = [get_memory(store, source_id) for source_id in ids]
    text = THREAD_SEPARATOR.join(item["content"] for item in items if item is not None)
    snippet = _styled(_truncate(text, config.THREAD_SUMMARY_MAX_CHARS), style)
    namespace = items[0]["namespace"] if items[0] is not None else config.DEFAULT_NAMESPACE
    return create_memory(
        store,
        content=snippet,
        type=SUMMARY_TYPE,
        title=f"Thread summary ({len(ids)})",
        namespace=namespace,
        refs=ids,
    )


def merge_memories(
    store: MemoryDB,
    source_ids: Sequence[str],
    target_title: Optional[str] = None,
    namespace: Optional[str] = None,
) -> str:
    """Concatenate the sources into a new note referencing all of them."""
    ids = list(source_ids)
    if not ids:
        raise ValidationIssue("source_ids required", field="source_ids", error_type="required")
    items = [item for item in (get_memory(store, source_id) for source_id in ids) if item is not None]
    if not items:
        raise RecordNotFound("No valid sources")
    return create_memory(
        store,
        content=MERGE_SEPARATOR.join(item["content"] for item in items),
        type=config.DEFAULT_TYPE,
        title=target_title if target_title is not None else f"Merge of {len(items)} items",
        namespace=namespace if namespace is not None else items[0]["namespace"],
        refs=ids,
    )


# =============================================================================
# Upsert
# =============================================================================

def upsert_memory(store: MemoryDB, memory: Memory) -> None:
    """Insert ``memory`` or replace every field of the stored row with its id."""
    with store.session() as db:
        db.merge(memory)
        db.commit()
