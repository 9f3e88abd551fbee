"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Callable

from fastapi import Request

from todoapp.api.problems import ProblemError
from todoapp.auth.backend import TodoUser
from todoapp.services.todo_service import TodoService


def get_todo_service(request: Request) -> TodoService:
    return request.app.state.todo_service


def current_user(request: Request) -> TodoUser:
    """The authenticated caller; anonymous requests get a 401 problem."""
    user = request.scope.get("user")
    if not isinstance(user, TodoUser):
        raise ProblemError(
            401, "Authentication is required.", headers={"WWW-Authenticate": "Bearer"}
        )
    return user


def require_scope(scope: str) -> Callable[[Request], TodoUser]:
    """Dependency factory: the caller must be authenticated and hold ``scope``."""

    def dependency(request: Request) -> TodoUser:
        user = current_user(request)
        if scope not in user.scopes:
            raise ProblemError(403, f"The '{scope}' scope is required.")
        return user

    return dependency
