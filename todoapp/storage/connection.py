"""
SQLite connection factory.

Provides thread-safe connections with WAL mode enabled.
All database access in the project goes through get_connection().

- check_same_thread=False: request handlers run on a thread pool, so a
  connection is shared across threads (SQLite's internal locking plus
  the busy timeout serialise writers).
- Rows are returned as sqlite3.Row (dict-like access).
- Foreign keys are enforced (OFF by default in SQLite).
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional

from todoapp.config.settings import StorageSettings, get_settings

logger = logging.getLogger(__name__)

# Guards creation and removal of cached connections
_lock = threading.Lock()

# One connection per database path
_connections: dict[str, sqlite3.Connection] = {}


def _resolve(db_path: Optional[Path]) -> Path:
    return Path(db_path) if db_path is not None else get_settings().db_path


def get_connection(
    db_path: Optional[Path] = None,
    storage: Optional[StorageSettings] = None,
) -> sqlite3.Connection:
    """
    Get the shared SQLite connection for a database file.

    Args:
        db_path: Path to the SQLite database file. If None, uses
                 the default path from settings.
        storage: Pragmas to apply when the connection is first opened.
                 Defaults to StorageSettings().

    Returns:
        A configured sqlite3.Connection.
    """
    path = _resolve(db_path)
    db_key = str(path)

    with _lock:
        conn = _connections.get(db_key)
        if conn is not None:
            return conn

        path.parent.mkdir(parents=True, exist_ok=True)
        storage = storage or StorageSettings()

        logger.info("Opening SQLite database: %s", path)
        conn = sqlite3.connect(db_key, check_same_thread=False, timeout=10.0)
        conn.execute(f"PRAGMA journal_mode={storage.journal_mode}")
        conn.execute(f"PRAGMA busy_timeout={storage.busy_timeout_ms}")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.row_factory = sqlite3.Row

        _connections[db_key] = conn
        return conn


def close_connection(db_path: Optional[Path] = None) -> None:
    """Close the connection for a given db_path (or the default). Used by tests."""
    db_key = str(_resolve(db_path))
    with _lock:
        conn = _connections.pop(db_key, None)
    if conn is not None:
        conn.close()
        logger.info("Database connection closed: %s", db_key)


def close_all_connections() -> None:
    """Close all open connections. Used during shutdown."""
    with _lock:
        conns = list(_connections.items())
        _connections.clear()
    for key, conn in conns:
        conn.close()
        logger.info("Database connection closed: %s", key)
