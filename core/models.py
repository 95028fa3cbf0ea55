"""
Memory Manager Database Models
SQLite + FTS5 schema
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    Column, String, Text, Float, Boolean, DateTime, Index, JSON,
)
from sqlalchemy.orm import declarative_base

import core.config as config

Base = declarative_base()


def new_record_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the form stored in SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an aware or naive datetime to naive UTC."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into naive UTC. Raises ValueError."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return to_storage_datetime(datetime.fromisoformat(text))


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc).isoformat(timespec="microseconds")


# =============================================================================
# Memories
# =============================================================================

class Memory(Base):
    __tablename__ = "memories"

    id = Column(String(32), primary_key=True, default=new_record_id)
    agent_id = Column(String(200), nullable=False, default="")
    namespace = Column(String(200), nullable=False, default=config.DEFAULT_NAMESPACE)
    type = Column(String(50), nullable=False, default=config.DEFAULT_TYPE)
    title = Column(Text)
    content = Column(Text, nullable=False)
    metadata_ = Column("metadata", JSON(none_as_null=True))
    tags = Column(JSON, nullable=False, default=list)
    refs = Column(JSON, nullable=False, default=list)
    importance = Column(Float, nullable=False, default=config.DEFAULT_IMPORTANCE)
    pin = Column(Boolean, nullable=False, default=False)
    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now)
    expires_at = Column(DateTime)

    __table_args__ = (
        Index("ix_memories_updated_id", "updated_at", "id"),
        Index("ix_memories_namespace", "namespace"),
        Index("ix_memories_type", "type"),
        Index("ix_memories_expires_at", "expires_at"),
    )


# Full-text index over title/content/tags, kept in sync by triggers so that
# every write path (ORM insert, update, upsert, bulk delete) is covered.
FTS_DDL = (
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS memories_fts
    USING fts5(mem_id UNINDEXED, title, content, tags)
    """,
    """
    CREATE TRIGGER IF NOT EXISTS memories_fts_ai AFTER INSERT ON memories BEGIN
        INSERT INTO memories_fts (mem_id, title, content, tags)
        VALUES (new.id, coalesce(new.title, ''), new.content, new.tags);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS memories_fts_ad AFTER DELETE ON memories BEGIN
        DELETE FROM memories_fts WHERE mem_id = old.id;
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS memories_fts_au AFTER UPDATE ON memories BEGIN
        DELETE FROM memories_fts WHERE mem_id = old.id;
        INSERT INTO memories_fts (mem_id, title, content, tags)
        VALUES (new.id, coalesce(new.title, ''), new.content, new.tags);
    END
    """,
)


def record_to_dict(memory: Memory) -> dict[str, Any]:
    """Wire/NDJSON representation of a record."""
    return {
        "id": memory.id,
        "agentId": memory.agent_id,
        "namespace": memory.namespace,
        "type": memory.type,
        "title": memory.title,
        "content": memory.content,
        "metadata": memory.metadata_,
        "tags": list(memory.tags or []),
        "refs": list(memory.refs or []),
        "importance": memory.importance,
        "pin": bool(memory.pin),
        "archived": bool(memory.archived),
        "createdAt": isoformat_utc(memory.created_at),
        "updatedAt": isoformat_utc(memory.updated_at),
        "expiresAt": isoformat_utc(memory.expires_at),
    }
