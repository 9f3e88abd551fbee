"""Tests for the todo service and its view models."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from todoapp.services.todo_service import TodoService, format_timestamp
from todoapp.storage.item_store import TodoItemStore


@pytest.fixture
def service(item_store: TodoItemStore) -> TodoService:
    return TodoService(item_store)


class TestFormatTimestamp:
    def test_utc(self):
        value = datetime(2024, 5, 1, 9, 30, 5, 123456, tzinfo=timezone.utc)
        assert format_timestamp(value) == "2024-05-01 09:30:05Z"

    def test_converts_offsets_to_utc(self):
        value = datetime(2024, 5, 1, 11, 30, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(value) == "2024-05-01 09:30:00Z"


class TestTodoService:
    def test_add_returns_id(self, service: TodoService):
        item_id = service.add_item("alice", "Buy milk")
        UUID(item_id)

    def test_list_maps_items(self, service: TodoService):
        item_id = service.add_item("alice", "Buy milk")
        view = service.get_list("alice")

        assert len(view.items) == 1
        item = view.items[0]
        assert item.id == item_id
        assert item.text == "Buy milk"
        assert item.is_completed is False
        assert item.last_updated == "2024-05-01 09:30:00Z"

    def test_last_updated_tracks_completion(self, service: TodoService):
        item_id = service.add_item("alice", "Buy milk")
        assert service.complete_item("alice", UUID(item_id)) is True

        model = service.get("alice", UUID(item_id))
        assert model.is_completed is True
        assert model.last_updated == "2024-05-01 09:31:00Z"

    def test_serializes_with_camel_case_aliases(self, service: TodoService):
        service.add_item("alice", "Buy milk")
        payload = service.get_list("alice").model_dump(by_alias=True)
        assert set(payload["items"][0]) == {"id", "text", "isCompleted", "lastUpdated"}

    def test_empty_user_gets_empty_list(self, service: TodoService):
        service.add_item("alice", "Buy milk")
        assert service.get_list("").items == []

    def test_missing_items(self, service: TodoService):
        missing = uuid4()
        assert service.get("alice", missing) is None
        assert service.complete_item("alice", missing) is None
        assert service.delete_item("alice", missing) is False

    def test_delete(self, service: TodoService):
        item_id = UUID(service.add_item("alice", "Buy milk"))
        assert service.delete_item("bob", item_id) is False
        assert service.delete_item("alice", item_id) is True
        assert service.get_list("alice").items == []
