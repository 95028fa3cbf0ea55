"""
NDJSON export and import of records.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

import core.config as config
from core.db import MemoryDB
from core.models import Memory, parse_timestamp, utc_now
from core.services.memory_query import export_memories
from core.services.memory_storage import upsert_memory

logger = config.logger

_LINE_SPLIT = re.compile(r"[\r\n]+")


def dump_ndjson(store: MemoryDB, namespace: Optional[str] = None) -> tuple[str, int]:
    """Serialize every record (archived included), one JSON object per line."""
    items = export_memories(store, namespace)
    ndjson = "".join(json.dumps(item, ensure_ascii=False) + "\n" for item in items)
    return ndjson, len(items)


def _optional_timestamp(value: Any):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("timestamp must be a string")
    return parse_timestamp(value)


def _string_list(value: Any, field: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{field} must be a list of strings")
    return list(dict.fromkeys(value))


def _optional_string(value: Any, field: str) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{field} must be a string")
    return value


def _flag(value: Any, field: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{field} must be a boolean")
    return value


def record_from_dict(data: Any) -> Memory:
    """Build a detached row from the wire form. Raises ValueError when unusable."""
    if not isinstance(data, dict):
        raise ValueError("record must be an object")
    record_id = data.get("id")
    content = data.get("content")
    if not isinstance(record_id, str) or not record_id:
        raise ValueError("record id must be a non-empty string")
    if not isinstance(content, str):
        raise ValueError("record content must be a string")
    metadata = data.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise ValueError("metadata must be an object")

    now = utc_now()
    importance = data.get("importance")
    return Memory(
        id=record_id,
        agent_id=_optional_string(data.get("agentId"), "agentId") or "",
        namespace=_optional_string(data.get("namespace"), "namespace") or config.DEFAULT_NAMESPACE,
        type=_optional_string(data.get("type"), "type") or config.DEFAULT_TYPE,
        title=_optional_string(data.get("title"), "title"),
        content=content,
        metadata_=metadata,
        tags=_string_list(data.get("tags"), "tags"),
        refs=_string_list(data.get("refs"), "refs"),
        importance=config.DEFAULT_IMPORTANCE if importance is None else float(importance),
        pin=_flag(data.get("pin"), "pin"),
        archived=_flag(data.get("archived"), "archived"),
        created_at=_optional_timestamp(data.get("createdAt")) or now,
        updated_at=_optional_timestamp(data.get("updatedAt")) or now,
        expires_at=_optional_timestamp(data.get("expiresAt")),
    )


def import_ndjson(store: MemoryDB, ndjson: str) -> int:
    """Upsert each parseable line; unusable lines are skipped and logged."""
    upserted = 0
    for line_no, line in enumerate(_LINE_SPLIT.split(ndjson or ""), start=1):
        if not line.strip():
            continue
        try:
            memory = record_from_dict(json.loads(line))
            upsert_memory(store, memory)
        except (ValueError, TypeError, RecursionError, SQLAlchemyError) as exc:
            logger.info("import_line_skipped", extra={"line": line_no, "error": str(exc)})
            continue
        upserted += 1
    logger.info("import_completed", extra={"upserted": upserted})
    return upserted
