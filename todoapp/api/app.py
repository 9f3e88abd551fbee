"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.authentication import AuthenticationMiddleware

from todoapp.api.problems import ProblemError, problem_error_handler
from todoapp.api.routes.health import router as health_router
from todoapp.api.routes.items import docs_router
from todoapp.api.routes.items import router as items_router
from todoapp.api.routes.samples import router as samples_router
from todoapp.auth.backend import BearerTokenBackend, on_auth_error
from todoapp.config.settings import Settings, get_settings
from todoapp.ratelimit.middleware import AdmissionGateMiddleware
from todoapp.ratelimit.registry import RateLimiterRegistry
from todoapp.services.todo_service import TodoService
from todoapp.storage.item_store import TodoItemStore
from todoapp.storage.schema import initialize_database


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build and return a fully wired FastAPI application.

    Initializes the database, creates the item store and service, and
    builds the rate limiter registry before mounting routes. Invalid
    rate limit configuration fails here, before anything is served.
    """
    settings = settings or get_settings()
    initialize_database(settings.db_path, settings.storage)

    registry = RateLimiterRegistry(
        settings.rate_limits,
        replenish_interval=settings.replenish_interval,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        registry.close()

    app = FastAPI(
        title="Todo API",
        version="v1",
        description="Per-user todo lists with rate-limited access",
        lifespan=lifespan,
    )

    # Shared state, accessible via request.app.state in routes
    app.state.settings = settings
    app.state.item_store = TodoItemStore(settings.db_path)
    app.state.todo_service = TodoService(app.state.item_store)
    app.state.rate_limiters = registry

    app.add_exception_handler(ProblemError, problem_error_handler)

    # The last middleware added runs first: authenticate, then admit
    app.add_middleware(
        AdmissionGateMiddleware,
        registry=registry,
        queue_timeout=settings.rate_limit_queue_timeout,
    )
    app.add_middleware(
        AuthenticationMiddleware,
        backend=BearerTokenBackend(settings.auth),
        on_error=on_auth_error,
    )

    # Mount routes
    app.include_router(health_router)
    app.include_router(docs_router)
    app.include_router(items_router)
    app.include_router(samples_router)

    return app
