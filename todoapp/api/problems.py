"""Problem details (``application/problem+json``) responses."""

from __future__ import annotations

from http import HTTPStatus
from typing import Mapping, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from todoapp.api.schemas import ProblemDetails

PROBLEM_JSON = "application/problem+json"


class ProblemError(Exception):
    """Raised from routes and dependencies to return a problem response."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.headers = dict(headers or {})


def problem_response(
    status_code: int,
    detail: str,
    title: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """Build a problem details response; the title defaults to the status phrase."""
    body = ProblemDetails(
        title=title or HTTPStatus(status_code).phrase,
        detail=detail,
        status=status_code,
    )
    return JSONResponse(
        content=body.model_dump(exclude_none=True),
        status_code=status_code,
        headers=dict(headers or {}),
        media_type=PROBLEM_JSON,
    )


async def problem_error_handler(request: Request, exc: ProblemError) -> JSONResponse:
    return problem_response(exc.status_code, exc.detail, headers=exc.headers)


def problem_responses(*status_codes: int) -> dict:
    """OpenAPI ``responses=`` entries for the given problem status codes."""
    return {
        code: {
            "model": ProblemDetails,
            "description": HTTPStatus(code).phrase,
            "content": {PROBLEM_JSON: {}},
        }
        for code in status_codes
    }
