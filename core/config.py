"""
Shared configuration for the memory manager core.
"""

from __future__ import annotations

import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("memorymanager")

SERVICE_NAME = "mcp-memory-manager"
SERVICE_VERSION = "0.1.0"
PROTOCOL_VERSION = "2024-11-05"


def _get_bool(env_name: str, default: bool) -> bool:
    value = os.environ.get(env_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(env_name: str, default: int) -> int:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(env_name: str, default: float) -> float:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


# Database settings
SQLITE_PATH = os.environ.get("MEMORY_DB_PATH", "memory.db")
DATABASE_URL = os.environ.get("DATABASE_URL")
SQLITE_WAL = _get_bool("MEMORY_SQLITE_WAL", True)

# Record defaults
DEFAULT_NAMESPACE = os.environ.get("MEMORY_DEFAULT_NAMESPACE", "default")
DEFAULT_TYPE = "note"
DEFAULT_IMPORTANCE = _get_float("MEMORY_DEFAULT_IMPORTANCE", 0.3)

# Query limits
LIST_LIMIT_DEFAULT = _get_int("MEMORY_LIST_LIMIT_DEFAULT", 50)
SEARCH_LIMIT_DEFAULT = _get_int("MEMORY_SEARCH_LIMIT_DEFAULT", 20)
MAX_RESULT_LIMIT = _get_int("MEMORY_MAX_RESULT_LIMIT", 500)
RESOURCES_LIMIT = _get_int("MEMORY_RESOURCES_LIMIT", 50)
TASK_LIST_LIMIT_DEFAULT = _get_int("MEMORY_TASK_LIST_LIMIT_DEFAULT", 50)

# Background expiry sweep for the HTTP app (0 disables)
CLEANUP_INTERVAL_SECONDS = _get_int("MEMORY_CLEANUP_INTERVAL_SECONDS", 0)

# Derived records
SUMMARY_MAX_CHARS = _get_int("MEMORY_SUMMARY_MAX_CHARS", 280)
THREAD_SUMMARY_MAX_CHARS = _get_int("MEMORY_THREAD_SUMMARY_MAX_CHARS", 500)

# Input limits
MAX_METADATA_BYTES = _get_int("MEMORY_MAX_METADATA_BYTES", 20000)

# Transport settings
MAX_HEADER_BYTES = _get_int("MCP_MAX_HEADER_BYTES", 8192)
WS_MAX_MESSAGE_BYTES = _get_int("MCP_WS_MAX_MESSAGE_BYTES", 64 * 1024)
SSE_KEEPALIVE_SECONDS = _get_float("MCP_SSE_KEEPALIVE_SECONDS", 15.0)
TCP_ENDPOINT = os.environ.get("MCP_TCP_ENDPOINT", "127.0.0.1:8765")
HTTP_ENDPOINT = os.environ.get("MCP_HTTP_ENDPOINT", "http://127.0.0.1:8080")


def resolve_database_url(db_path: str | None = None) -> str:
    """Return the SQLAlchemy URL for an explicit path, or the configured one."""
    if db_path:
        return f"sqlite:///{db_path}"
    if DATABASE_URL:
        return DATABASE_URL
    return f"sqlite:///{SQLITE_PATH}"


def validate_and_prepare_config() -> None:
    """Validate configuration at startup."""
    errors = []
    if DATABASE_URL and not DATABASE_URL.lower().startswith("sqlite"):
        errors.append("DATABASE_URL must be a sqlite URL")
    if not DATABASE_URL and not SQLITE_PATH:
        errors.append("MEMORY_DB_PATH must not be empty")
    if MAX_RESULT_LIMIT <= 0:
        errors.append("MEMORY_MAX_RESULT_LIMIT must be positive")
    if not 0.0 <= DEFAULT_IMPORTANCE <= 1.0:
        errors.append("MEMORY_DEFAULT_IMPORTANCE must be between 0.0 and 1.0")
    if WS_MAX_MESSAGE_BYTES <= 0:
        errors.append("MCP_WS_MAX_MESSAGE_BYTES must be positive")
    if MAX_HEADER_BYTES <= 0:
        errors.append("MCP_MAX_HEADER_BYTES must be positive")
    if CLEANUP_INTERVAL_SECONDS < 0:
        errors.append("MEMORY_CLEANUP_INTERVAL_SECONDS must not be negative")
    if SSE_KEEPALIVE_SECONDS <= 0:
        errors.append("MCP_SSE_KEEPALIVE_SECONDS must be positive")

    if errors:
        raise RuntimeError("Configuration invalid: " + "; ".join(errors))
