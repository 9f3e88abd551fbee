"""
Data models for the storage layer.

Plain dataclasses, no ORM. Every field maps 1:1 to a column of the
``items`` table.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class TodoItem:
    """A single todo item belonging to one user."""

    # UUID string. Primary key.
    id: str

    # Identifier of the owning user (the token subject)
    user_id: str

    text: str

    # UTC timestamps
    created_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None
