"""
Todo item API routes.

Every route requires an authenticated caller and only ever sees that
caller's items. Rate limiting happens in the admission gate before these
handlers run; the 429 response is documented here so it shows up in the
OpenAPI description.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from fastapi.responses import RedirectResponse

from todoapp.api.deps import current_user, get_todo_service
from todoapp.api.problems import ProblemError, problem_responses
from todoapp.api.schemas import CreatedTodoItemModel, CreateTodoItemModel
from todoapp.auth.backend import TodoUser
from todoapp.services.models import TodoItemModel, TodoListViewModel
from todoapp.services.todo_service import TodoService

router = APIRouter(
    prefix="/api/items",
    tags=["items"],
    dependencies=[Depends(current_user)],
    responses=problem_responses(401, 429),
)


@router.get(
    "",
    response_model=TodoListViewModel,
    summary="Get all Todo items",
    description="Gets all of the current user's todo items.",
)
def list_items(
    user: TodoUser = Depends(current_user),
    service: TodoService = Depends(get_todo_service),
) -> TodoListViewModel:
    return service.get_list(user.identity)


@router.get(
    "/{item_id}",
    response_model=TodoItemModel,
    responses=problem_responses(404),
    summary="Get a specific Todo item",
    description="Gets the todo item with the specified ID.",
)
def get_item(
    item_id: UUID,
    user: TodoUser = Depends(current_user),
    service: TodoService = Depends(get_todo_service),
) -> TodoItemModel:
    model = service.get(user.identity, item_id)
    if model is None:
        raise ProblemError(404, "Item not found.")
    return model


@router.post(
    "",
    status_code=201,
    response_model=CreatedTodoItemModel,
    responses=problem_responses(400),
    summary="Create a new Todo item",
    description="Creates a new todo item for the current user and returns its ID.",
)
def create_item(
    body: CreateTodoItemModel,
    response: Response,
    user: TodoUser = Depends(current_user),
    service: TodoService = Depends(get_todo_service),
) -> CreatedTodoItemModel:
    if not body.text or not body.text.strip():
        raise ProblemError(400, "No item text specified.")

    item_id = service.add_item(user.identity, body.text)
    response.headers["Location"] = f"/api/items/{item_id}"
    return CreatedTodoItemModel(id=item_id)


@router.post(
    "/{item_id}/complete",
    status_code=204,
    responses=problem_responses(400, 404),
    summary="Mark a Todo item as completed",
    description="Marks the todo item with the specified ID as complete.",
)
def complete_item(
    item_id: UUID,
    user: TodoUser = Depends(current_user),
    service: TodoService = Depends(get_todo_service),
) -> Response:
    was_completed = service.complete_item(user.identity, item_id)
    if was_completed is None:
        raise ProblemError(404, "Item not found.")
    if not was_completed:
        raise ProblemError(400, "Item already completed.")
    return Response(status_code=204)


@router.delete(
    "/{item_id}",
    status_code=204,
    responses=problem_responses(404),
    summary="Delete a Todo item",
    description="Deletes the todo item with the specified ID.",
)
def delete_item(
    item_id: UUID,
    user: TodoUser = Depends(current_user),
    service: TodoService = Depends(get_todo_service),
) -> Response:
    if not service.delete_item(user.identity, item_id):
        raise ProblemError(404, "Item not found.")
    return Response(status_code=204)


docs_router = APIRouter()


@docs_router.get("/api", include_in_schema=False)
def api_docs() -> RedirectResponse:
    """Redirect to the OpenAPI UI."""
    return RedirectResponse("/docs")
