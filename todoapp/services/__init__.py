from todoapp.services.models import TodoItemModel, TodoListViewModel
from todoapp.services.todo_service import TodoService

__all__ = [
    "TodoItemModel",
    "TodoListViewModel",
    "TodoService",
]
