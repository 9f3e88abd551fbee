"""Trivial handlers that are unit-testable without a running app."""

from __future__ import annotations

from fastapi.responses import JSONResponse


def add(x: int, y: int) -> JSONResponse:
    return JSONResponse(x + y)


def multiply(x: int, y: int) -> JSONResponse:
    return JSONResponse(x * y)
