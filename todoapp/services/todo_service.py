"""Todo business logic on top of the item store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from todoapp.services.models import TodoItemModel, TodoListViewModel
from todoapp.storage.item_store import TodoItemStore
from todoapp.storage.models import TodoItem


def format_timestamp(value: datetime) -> str:
    """Universal sortable format, e.g. ``2024-05-01 09:30:00Z``."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%d %H:%M:%SZ")


class TodoService:
    """Per-user todo operations. Every method takes the caller's user id."""

    def __init__(self, store: TodoItemStore) -> None:
        self._store = store

    def add_item(self, user_id: str, text: str) -> str:
        """Create an item and return its id."""
        return self._store.add_item(user_id, text).id

    def complete_item(self, user_id: str, item_id: UUID) -> Optional[bool]:
        """True if completed now, False if already completed, None if not found."""
        return self._store.complete_item(user_id, str(item_id))

    def delete_item(self, user_id: str, item_id: UUID) -> bool:
        return self._store.delete_item(user_id, str(item_id))

    def get(self, user_id: str, item_id: UUID) -> Optional[TodoItemModel]:
        item = self._store.get_item(user_id, str(item_id))
        return _map_item(item) if item is not None else None

    def get_list(self, user_id: str) -> TodoListViewModel:
        result = TodoListViewModel()
        if user_id:
            result.items = [_map_item(item) for item in self._store.get_items(user_id)]
        return result


def _map_item(item: TodoItem) -> TodoItemModel:
    return TodoItemModel(
        id=item.id,
        text=item.text,
        is_completed=item.is_completed,
        last_updated=format_timestamp(item.completed_at or item.created_at),
    )
