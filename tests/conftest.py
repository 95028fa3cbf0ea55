import os

os.environ.setdefault("MEMORY_SQLITE_WAL", "true")
os.environ.setdefault("MEMORY_CLEANUP_INTERVAL_SECONDS", "0")

import pytest

from core.db import init_db
from core.models import record_to_dict
from core.services.memory_export import record_from_dict
from core.services.memory_storage import upsert_memory


@pytest.fixture
def store(tmp_path):
    memory_db = init_db(str(tmp_path / "memory.db"))
    yield memory_db
    memory_db.dispose()


@pytest.fixture
def other_store(tmp_path):
    memory_db = init_db(str(tmp_path / "other.db"))
    yield memory_db
    memory_db.dispose()


def put_record(store, record_id: str, updated_at: str, **fields) -> dict:
    """Insert a record with fixed timestamps so ordering is deterministic."""
    data = {
        "id": record_id,
        "content": fields.pop("content", f"content {record_id}"),
        "createdAt": fields.pop("createdAt", updated_at),
        "updatedAt": updated_at,
    }
    data.update(fields)
    memory = record_from_dict(data)
    upsert_memory(store, memory)
    return record_to_dict(memory)
