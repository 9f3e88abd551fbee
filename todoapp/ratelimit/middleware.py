"""
Admission gate.

ASGI middleware that runs before routing for every HTTP request. It
resolves the caller's partition, takes one token from that partition's
limiter, and either lets the request through untouched or answers it
with a 429 itself.

While a request waits in a limiter queue the gate keeps listening on
the connection. A client disconnect abandons the wait and nothing is
sent. Body messages that arrive during the wait are buffered and
replayed to the application.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from todoapp.ratelimit.lease import Lease
from todoapp.ratelimit.partition import (
    build_partition_key,
    is_authenticated,
    resolve_identity,
)
from todoapp.ratelimit.registry import Limiter, RateLimiterRegistry
from todoapp.ratelimit.responder import rate_limited_response

logger = logging.getLogger(__name__)


class AdmissionGateMiddleware:
    """
    Per-user token bucket rate limiting for all HTTP requests.

    Must be installed inside the authentication middleware so that
    ``scope["user"]`` is populated when the gate runs.
    """

    def __init__(
        self,
        app: ASGIApp,
        registry: RateLimiterRegistry,
        queue_timeout: Optional[float] = None,
    ) -> None:
        self.app = app
        self.registry = registry
        self.queue_timeout = queue_timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        principal = scope.get("user")
        key = build_partition_key(
            scope["method"], resolve_identity(principal), is_authenticated(principal)
        )
        limiter = self.registry.get_or_create(key)

        lease = limiter.try_acquire(1)
        if not lease.granted and limiter.queue_limit > 0:
            lease, receive = await self._wait_for_token(limiter, receive)
            if lease is None:
                logger.debug("Client disconnected while queued for %s", key)
                return

        if not lease.granted:
            logger.debug("Rate limit exceeded for %s (retry after %s)", key, lease.retry_after)
            response = rate_limited_response(lease)
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)

    async def _wait_for_token(
        self,
        limiter: Limiter,
        receive: Receive,
    ) -> tuple[Optional[Lease], Receive]:
        """
        Queue on the limiter while watching for a disconnect.

        Returns ``(None, receive)`` if the client went away, otherwise the
        lease and a receive callable that replays any buffered messages.
        """
        buffered: list[Message] = []
        acquire = asyncio.ensure_future(limiter.acquire(1, timeout=self.queue_timeout))
        listen: Optional[asyncio.Future] = None

        try:
            while True:
                listen = asyncio.ensure_future(receive())
                done, _ = await asyncio.wait(
                    {acquire, listen}, return_when=asyncio.FIRST_COMPLETED
                )

                if listen in done:
                    message = listen.result()
                    listen = None
                    if message["type"] == "http.disconnect":
                        acquire.cancel()
                        with contextlib.suppress(asyncio.CancelledError):
                            await acquire
                        return None, receive
                    buffered.append(message)

                if acquire in done:
                    break
        finally:
            if listen is not None:
                listen.cancel()
                try:
                    buffered.append(await listen)
                except asyncio.CancelledError:
                    pass
            if not acquire.done():
                acquire.cancel()

        async def replay() -> Message:
            if buffered:
                return buffered.pop(0)
            return await receive()

        return acquire.result(), replay
