"""
Query, pagination and full-text search over the record store.

Filters are composed from small predicate objects, each compiling to one
SQLAlchemy clause with bound parameters; the clauses are AND-ed in order.
Results are always ordered ``updated_at DESC, id DESC`` and paginated by
keyset: the cursor carries ``(updated_at, id)`` of the last row of a page.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import and_, bindparam, column, or_, select, table, text
from sqlalchemy.sql import ColumnElement

import core.config as config
from core.db import MemoryDB
from core.models import Memory, isoformat_utc, parse_timestamp, record_to_dict, to_storage_datetime
from core.validators import validate_limit

logger = config.logger

CURSOR_SEPARATOR = "|"

# Lightweight handle on the FTS5 virtual table; the ORM never creates it.
memories_fts = table("memories_fts", column("mem_id"))


# =============================================================================
# Predicates
# =============================================================================

class Predicate:
    """One AND-ed condition of a record query."""

    def clause(self) -> ColumnElement:
        raise NotImplementedError


@dataclass(frozen=True)
class FieldEquals(Predicate):
    field: str
    value: Any

    def clause(self) -> ColumnElement:
        return getattr(Memory, self.field) == self.value


@dataclass(frozen=True)
class FieldIn(Predicate):
    field: str
    values: tuple[str, ...]

    def clause(self) -> ColumnElement:
        return getattr(Memory, self.field).in_(self.values)


@dataclass(frozen=True)
class HasAnyTag(Predicate):
    """Matches a record carrying at least one of the given tags."""

    tags: tuple[str, ...]

    def clause(self) -> ColumnElement:
        return text(
            "EXISTS (SELECT 1 FROM json_each(memories.tags) AS tag "
            "WHERE tag.value IN :tag_values)"
        ).bindparams(bindparam("tag_values", value=list(self.tags), expanding=True))


@dataclass(frozen=True)
class UpdatedBefore(Predicate):
    moment: datetime

    def clause(self) -> ColumnElement:
        return Memory.updated_at < to_storage_datetime(self.moment)


@dataclass(frozen=True)
class UpdatedAfter(Predicate):
    moment: datetime

    def clause(self) -> ColumnElement:
        return Memory.updated_at > to_storage_datetime(self.moment)


@dataclass(frozen=True)
class AfterCursor(Predicate):
    """Rows strictly after ``(updated_at, id)`` in the listing order."""

    updated_at: datetime
    record_id: str

    def clause(self) -> ColumnElement:
        return or_(
            Memory.updated_at < self.updated_at,
            and_(Memory.updated_at == self.updated_at, Memory.id < self.record_id),
        )


@dataclass(frozen=True)
class FilterSpec:
    namespace: Optional[str] = None
    agent_id: Optional[str] = None
    types: Optional[Sequence[str]] = None
    tags: Optional[Sequence[str]] = None
    pinned: Optional[bool] = None
    archived: Optional[bool] = None
    before: Optional[datetime] = None
    after: Optional[datetime] = None
    include_archived: bool = False

    def predicates(self) -> list[Predicate]:
        predicates: list[Predicate] = []
        if self.agent_id is not None:
            predicates.append(FieldEquals("agent_id", self.agent_id))
        if self.namespace is not None:
            predicates.append(FieldEquals("namespace", self.namespace))
        if self.types:
            predicates.append(FieldIn("type", tuple(self.types)))
        if self.tags:
            predicates.append(HasAnyTag(tuple(self.tags)))
        if self.pinned is not None:
            predicates.append(FieldEquals("pin", self.pinned))
        # Archived records are hidden unless explicitly asked for.
        if not self.include_archived:
            predicates.append(FieldEquals("archived", bool(self.archived)))
        if self.before is not None:
            predicates.append(UpdatedBefore(self.before))
        if self.after is not None:
            predicates.append(UpdatedAfter(self.after))
        return predicates


@dataclass
class Page:
    items: list[dict]
    next_cursor: Optional[str]


# =============================================================================
# Cursor
# =============================================================================

def encode_cursor(updated_at: datetime, record_id: str) -> str:
    raw = f"{isoformat_utc(updated_at)}{CURSOR_SEPARATOR}{record_id}"
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: Optional[str]) -> Optional[AfterCursor]:
    """Decode a cursor; anything that does not parse means "no cursor"."""
    if not cursor:
        return None
    try:
        raw = base64.b64decode(cursor.encode("ascii"), validate=True).decode("utf-8")
        parts = raw.split(CURSOR_SEPARATOR, 1)
        if len(parts) != 2:
            return None
        return AfterCursor(parse_timestamp(parts[0]), parts[1])
    except ValueError:
        logger.info("cursor_ignored", extra={"cursor": cursor})
        return None


# =============================================================================
# Queries
# =============================================================================

def get_memory(store: MemoryDB, memory_id: str) -> Optional[dict]:
    with store.session() as db:
        memory = db.get(Memory, memory_id)
        return record_to_dict(memory) if memory is not None else None


def list_memories(
    store: MemoryDB,
    filters: Optional[FilterSpec] = None,
    limit: int = config.LIST_LIMIT_DEFAULT,
    cursor: Optional[str] = None,
) -> Page:
    """One keyset page of records matching ``filters``.

    A full page always yields a cursor, so when the total is an exact
    multiple of ``limit`` the caller sees one extra, empty page.
    """
    validate_limit(limit)
    predicates = (filters or FilterSpec()).predicates()
    after = decode_cursor(cursor)
    if after is not None:
        predicates.append(after)

    stmt = (
        select(Memory)
        .where(*[predicate.clause() for predicate in predicates])
        .order_by(Memory.updated_at.desc(), Memory.id.desc())
        .limit(limit)
    )
    with store.session() as db:
        rows = db.execute(stmt).scalars().all()
        items = [record_to_dict(row) for row in rows]
        next_cursor = None
        if len(rows) == limit:
            last = rows[-1]
            next_cursor = encode_cursor(last.updated_at, last.id)
    return Page(items=items, next_cursor=next_cursor)


def search_memories(
    store: MemoryDB,
    query: str,
    namespace: Optional[str] = None,
    limit: int = config.SEARCH_LIMIT_DEFAULT,
) -> list[dict]:
    """Full-text search; hits come back most recent first with score 0.0."""
    validate_limit(limit)
    stmt = (
        select(Memory)
        .join(memories_fts, memories_fts.c.mem_id == Memory.id)
        .where(text("memories_fts MATCH :query").bindparams(query=query))
    )
    if namespace is not None:
        stmt = stmt.where(Memory.namespace == namespace)
    stmt = stmt.order_by(Memory.updated_at.desc(), Memory.id.desc()).limit(limit)

    with store.session() as db:
        rows = db.execute(stmt).scalars().all()
        return [{"item": record_to_dict(row), "score": 0.0} for row in rows]


def export_memories(store: MemoryDB, namespace: Optional[str] = None) -> list[dict]:
    """Every record, archived included, oldest first."""
    stmt = select(Memory)
    if namespace is not None:
        stmt = stmt.where(Memory.namespace == namespace)
    stmt = stmt.order_by(Memory.created_at.asc(), Memory.id.asc())
    with store.session() as db:
        return [record_to_dict(row) for row in db.execute(stmt).scalars().all()]
