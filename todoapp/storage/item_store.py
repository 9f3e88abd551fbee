"""
CRUD operations for the items table.

Every query is scoped to the owning user: an item that belongs to
someone else behaves exactly like an item that does not exist.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from todoapp.storage.connection import get_connection
from todoapp.storage.models import TodoItem

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TodoItemStore:
    """CRUD interface for the items table."""

    def __init__(self, db_path: Optional[Path] = None, clock: Clock = _utc_now) -> None:
        self._db_path = db_path
        self._clock = clock

    @property
    def _conn(self):
        return get_connection(self._db_path)

    def _row_to_item(self, row) -> TodoItem:
        completed_at = row["completed_at"]
        return TodoItem(
            id=row["id"],
            user_id=row["user_id"],
            text=row["text"],
            created_at=datetime.fromisoformat(row["created_at"]),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
        )

    # ----- Write operations -----

    def add_item(self, user_id: str, text: str) -> TodoItem:
        """Insert a new, uncompleted item and return it."""
        item = TodoItem(
            id=str(uuid.uuid4()),
            user_id=user_id,
            text=text,
            created_at=self._clock(),
        )
        with self._conn:
            self._conn.execute(
                "INSERT INTO items (id, user_id, text, created_at) VALUES (?, ?, ?, ?)",
                (item.id, item.user_id, item.text, item.created_at.isoformat()),
            )
        logger.info("Added item %s for user %s", item.id, user_id)
        return item

    def complete_item(self, user_id: str, item_id: str) -> Optional[bool]:
        """
        Mark an item as completed.

        Returns:
            True if the item was completed by this call, False if it was
            already completed, None if the user has no such item.
        """
        now = self._clock().isoformat()
        with self._conn:
            row = self._conn.execute(
                "SELECT completed_at FROM items WHERE id = ? AND user_id = ?",
                (item_id, user_id),
            ).fetchone()
            if row is None:
                return None
            if row["completed_at"] is not None:
                return False
            self._conn.execute(
                "UPDATE items SET completed_at = ? WHERE id = ? AND user_id = ?",
                (now, item_id, user_id),
            )
        logger.info("Completed item %s for user %s", item_id, user_id)
        return True

    def delete_item(self, user_id: str, item_id: str) -> bool:
        """Delete an item. Returns False if the user has no such item."""
        with self._conn:
            cursor = self._conn.execute(
                "DELETE FROM items WHERE id = ? AND user_id = ?",
                (item_id, user_id),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted item %s for user %s", item_id, user_id)
        return deleted

    # ----- Read operations -----

    def get_item(self, user_id: str, item_id: str) -> Optional[TodoItem]:
        """Fetch a single item owned by the user."""
        row = self._conn.execute(
            "SELECT * FROM items WHERE id = ? AND user_id = ?",
            (item_id, user_id),
        ).fetchone()
        return self._row_to_item(row) if row else None

    def get_items(self, user_id: str) -> list[TodoItem]:
        """All of a user's items, oldest first."""
        rows = self._conn.execute(
            "SELECT * FROM items WHERE user_id = ? ORDER BY created_at, rowid",
            (user_id,),
        ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def count(self) -> int:
        """Total number of items across all users."""
        row = self._conn.execute("SELECT COUNT(*) AS cnt FROM items").fetchone()
        return row["cnt"]
