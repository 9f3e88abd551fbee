"""
SQLite schema definitions (DDL).

Tables:
    items: todo items, one row per item, owned by a single user
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from todoapp.config.settings import StorageSettings
from todoapp.storage.connection import get_connection

logger = logging.getLogger(__name__)

# Current schema version. Bump when adding migrations.
SCHEMA_VERSION = 1

_ITEMS_DDL = """
CREATE TABLE IF NOT EXISTS items (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    text            TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    completed_at    TEXT
);
"""

_ITEMS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_items_user ON items(user_id, created_at);",
]


def initialize_database(
    db_path: Optional[Path] = None,
    storage: Optional[StorageSettings] = None,
) -> None:
    """
    Create all tables and indexes if they don't exist.

    Safe to call multiple times; all statements use IF NOT EXISTS.
    """
    conn = get_connection(db_path, storage)

    with conn:
        conn.execute(_ITEMS_DDL)
        for idx_sql in _ITEMS_INDEXES:
            conn.execute(idx_sql)
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")

    logger.info("Database schema initialized (version %d)", SCHEMA_VERSION)


def get_schema_version(db_path: Optional[Path] = None) -> int:
    """Return the current schema version of the database."""
    conn = get_connection(db_path)
    row = conn.execute("PRAGMA user_version").fetchone()
    return row[0] if row else 0
