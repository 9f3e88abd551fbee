from todoapp.storage.models import TodoItem
from todoapp.storage.connection import get_connection, close_connection
from todoapp.storage.schema import initialize_database
from todoapp.storage.item_store import TodoItemStore

__all__ = [
    "TodoItem",
    "get_connection",
    "close_connection",
    "initialize_database",
    "TodoItemStore",
]
