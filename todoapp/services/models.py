"""View models returned by the todo service."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TodoItemModel(BaseModel):
    """A todo item as shown to its owner."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str
    is_completed: bool = Field(alias="isCompleted")

    # Completion time if completed, otherwise creation time ("YYYY-MM-DD HH:MM:SSZ")
    last_updated: str = Field(alias="lastUpdated")


class TodoListViewModel(BaseModel):
    """All of a user's todo items."""

    items: list[TodoItemModel] = Field(default_factory=list)
