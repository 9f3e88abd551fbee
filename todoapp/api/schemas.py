"""Pydantic response/request models for the API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProblemDetails(BaseModel):
    """Error envelope returned as application/problem+json."""

    type: Optional[str] = None
    title: str
    status: int
    detail: Optional[str] = None


class CreateTodoItemModel(BaseModel):
    """Request body for creating an item."""

    text: Optional[str] = None


class CreatedTodoItemModel(BaseModel):
    """Response after creating an item."""

    id: str


class StatsResponse(BaseModel):
    """System statistics."""

    item_count: int
    rate_limit_partitions: int


class CreateUser(BaseModel):
    """Body for the create-user sample."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    name: Optional[str] = None
    date_of_birth: Optional[datetime] = Field(None, alias="dateOfBirth")
