"""Health and stats routes."""

from __future__ import annotations

from fastapi import APIRouter, Request

from todoapp.api.schemas import StatsResponse

router = APIRouter(tags=["system"])


@router.get("/health")
def health() -> dict:
    """Simple liveness check."""
    return {"status": "ok"}


@router.get("/stats", response_model=StatsResponse)
def stats(request: Request) -> StatsResponse:
    """Return high-level system statistics."""
    return StatsResponse(
        item_count=request.app.state.item_store.count(),
        rate_limit_partitions=request.app.state.rate_limiters.partition_count,
    )
