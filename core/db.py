"""
Database initialization helpers.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker

import core.config as config
from core.models import Base, FTS_DDL


def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        if config.SQLITE_WAL:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


class MemoryDB:
    """Handle on one record store.

    Every store operation opens its own short-lived session through
    ``session()`` and releases it when done; nothing holds a session across
    a whole tool call.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
        )
        event.listen(self.engine, "connect", _set_sqlite_pragmas)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def init_schema(self) -> None:
        Base.metadata.create_all(self.engine)
        with self.engine.begin() as conn:
            for statement in FTS_DDL:
                conn.execute(text(statement))

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()


def init_db(db_path: Optional[str] = None) -> MemoryDB:
    """Open (creating if needed) the record store and its full-text index."""
    config.validate_and_prepare_config()

    database_url = config.resolve_database_url(db_path)
    config.logger.info("Connecting to database...")
    store = MemoryDB(database_url)
    store.init_schema()
    config.logger.info("Database initialized", extra={"database_url": database_url})
    return store
