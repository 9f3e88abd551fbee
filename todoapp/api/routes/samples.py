"""
Sample endpoints showing request binding, dependencies and auth.

These routes are independent of the Todo API and allow anonymous
callers unless stated otherwise.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass
from typing import Iterator, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from todoapp.api import maths
from todoapp.api.deps import current_user, require_scope
from todoapp.api.schemas import CreateUser
from todoapp.auth.backend import TodoUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/samples", tags=["samples"])


@dataclass(frozen=True)
class Geolocation:
    latitude: float
    longitude: float


def parse_location(location: Optional[str] = Query(None, description="latitude,longitude")) -> Optional[Geolocation]:
    """Bind a ``lat,lon`` query value; anything malformed binds to None."""
    if not location:
        return None
    components = location.split(",")
    if len(components) != 2:
        return None
    try:
        return Geolocation(float(components[0]), float(components[1]))
    except ValueError:
        return None


def log_around_handler() -> Iterator[None]:
    logger.info("Before handler")
    yield
    logger.info("After handler")


class HandlerLoggingFilter:
    """Class-based equivalent of log_around_handler with an injectable logger."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.log = log or logger

    def __call__(self) -> Iterator[None]:
        self.log.info("Before handler")
        yield
        self.log.info("After handler")


# ----- Query and header binding -----


@router.get("/search-people")
def search_people(name: list[str] = Query(default=[])) -> list[str]:
    """Binds every ``name`` query value."""
    logger.info("Searched names: %s", ", ".join(name))
    return name


@router.get("/random-number", response_class=PlainTextResponse)
def random_number(user_agent: Optional[list[str]] = Header(default=None)) -> str:
    logger.info("Client: %s", ", ".join(user_agent or []))
    return str(random.randint(0, 2**31 - 1))


@router.get("/try-parse-parameter", response_class=PlainTextResponse)
def try_parse_parameter(name: Optional[str] = None) -> str:
    return f"Hello {name}"


@router.get("/search-location", response_model=list[str])
def search_location(location: Optional[Geolocation] = Depends(parse_location)):
    if location is None:
        return JSONResponse({"message": "No geolocation specified."}, status_code=400)
    return ["London", "Amsterdam"]


# ----- Body binding -----


@router.post("/create-user", status_code=201)
def create_user(user: Optional[CreateUser] = Body(default=None)) -> Response:
    if user is None:
        return Response(status_code=400)
    user_id = str(uuid.uuid4())
    logger.info("Created user %s", user_id)
    return Response(status_code=201, headers={"Location": f"/api/users/{user_id}"})


# ----- Handler filters -----


@router.get("/filter-lambda", dependencies=[Depends(log_around_handler)])
def filter_lambda() -> None:
    logger.info("During handler")


@router.get("/filter-class", dependencies=[Depends(HandlerLoggingFilter())])
def filter_class() -> None:
    logger.info("During handler")


# ----- Maths -----


@router.get("/add")
def add(x: int, y: int) -> JSONResponse:
    return maths.add(x, y)


@router.get("/multiply")
def multiply(x: int, y: int) -> JSONResponse:
    return maths.multiply(x, y)


# ----- Authorization -----


@router.get("/secret", response_class=PlainTextResponse)
def secret(user: TodoUser = Depends(current_user)) -> str:
    return f"Hello {user.display_name}. This is a secret!"


@router.get("/secret/admin", response_class=PlainTextResponse)
def secret_admin(user: TodoUser = Depends(require_scope("admin"))) -> str:
    return f"Hello {user.display_name}. You are an admin!"
