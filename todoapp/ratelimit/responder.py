"""Turns a denied lease into a 429 problem response."""

from __future__ import annotations

import math

from fastapi.responses import JSONResponse

from todoapp.api.problems import problem_response
from todoapp.ratelimit.lease import Lease

# Used when the lease carries no retry hint
DEFAULT_RETRY_AFTER = 1


def retry_after_seconds(lease: Lease) -> int:
    """Whole seconds for the Retry-After header, never less than one."""
    if lease.retry_after is None:
        return DEFAULT_RETRY_AFTER
    return max(DEFAULT_RETRY_AFTER, math.ceil(lease.retry_after))


def rate_limited_response(lease: Lease) -> JSONResponse:
    return problem_response(
        429,
        "Too many requests.",
        title="Too Many Requests",
        headers={"Retry-After": str(retry_after_seconds(lease))},
    )
