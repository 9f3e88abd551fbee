"""Tests for per-user rate limiting at the admission gate."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from todoapp.api.app import create_app
from todoapp.auth.backend import TodoUser
from todoapp.config.settings import ConfigurationError, Settings
from todoapp.ratelimit.middleware import AdmissionGateMiddleware
from todoapp.ratelimit.partition import PartitionKey
from todoapp.ratelimit.registry import RateLimiterRegistry
from todoapp.storage.connection import close_connection
from tests.conftest import bearer, make_policy, make_settings


@pytest.fixture
def make_client(tmp_path: Path):
    """Factory for a TestClient whose app uses the given rate limits."""
    opened = []

    def factory(**kwargs) -> TestClient:
        settings = make_settings(tmp_path, **kwargs)
        client = TestClient(create_app(settings))
        client.__enter__()
        opened.append((client, settings))
        return client

    yield factory
    for client, settings in opened:
        client.__exit__(None, None, None)
        close_connection(settings.db_path)


def post_item(client: TestClient, headers, text: str = "Buy milk"):
    return client.post("/api/items", json={"text": text}, headers=headers)


# ---------------------------------------------------------------------------
# Through the application
# ---------------------------------------------------------------------------


class TestAnonymousTraffic:
    def test_is_never_throttled(self, make_client):
        client = make_client(
            read=make_policy(token_limit=1, replenishment_period=3600),
            write=make_policy(token_limit=1, replenishment_period=3600),
        )
        for _ in range(20):
            assert client.get("/health").status_code == 200
        for _ in range(5):
            assert post_item(client, {}).status_code == 401


class TestAuthenticatedSubjects:
    @pytest.mark.parametrize("subject", ["anonymous", ""])
    def test_any_valid_token_is_throttled(self, make_client, subject):
        client = make_client(write=make_policy(token_limit=1, replenishment_period=60))
        headers = bearer(subject)

        statuses = [post_item(client, headers).status_code for _ in range(5)]
        assert statuses == [201, 429, 429, 429, 429]

    def test_subject_named_anonymous_does_not_share_with_unauthenticated(self, make_client):
        client = make_client(write=make_policy(token_limit=1, replenishment_period=60))

        assert post_item(client, bearer("anonymous")).status_code == 201
        assert post_item(client, bearer("anonymous")).status_code == 429
        # Unauthenticated callers still bypass the limiter and reach the auth check
        assert post_item(client, {}).status_code == 401


class TestPartitionIsolation:
    def test_exhausted_writes_leave_reads_alone(self, make_client):
        client = make_client(write=make_policy(token_limit=2, replenishment_period=3600))
        alice = bearer("alice")

        assert post_item(client, alice).status_code == 201
        assert post_item(client, alice).status_code == 201
        assert post_item(client, alice).status_code == 429

        assert client.get("/api/items", headers=alice).status_code == 200

    def test_one_user_cannot_exhaust_another(self, make_client):
        client = make_client(write=make_policy(token_limit=1, replenishment_period=3600))
        alice, bob = bearer("alice"), bearer("bob")

        assert post_item(client, alice).status_code == 201
        assert post_item(client, alice).status_code == 429
        assert post_item(client, bob).status_code == 201

    def test_rejected_requests_do_not_reach_the_handler(self, make_client):
        client = make_client(write=make_policy(token_limit=1, replenishment_period=3600))
        alice = bearer("alice")

        post_item(client, alice, "first")
        post_item(client, alice, "second")

        items = client.get("/api/items", headers=alice).json()["items"]
        assert [item["text"] for item in items] == ["first"]


class TestRejection:
    def test_problem_response_with_retry_after(self, make_client):
        client = make_client(
            write=make_policy(token_limit=1, tokens_per_period=1, replenishment_period=30.0)
        )
        alice = bearer("alice")
        post_item(client, alice)

        resp = post_item(client, alice)
        assert resp.status_code == 429
        assert resp.headers["content-type"] == "application/problem+json"
        assert 1 <= int(resp.headers["retry-after"]) <= 30
        assert resp.json() == {
            "title": "Too Many Requests",
            "status": 429,
            "detail": "Too many requests.",
        }

    def test_bucket_refills_after_period(self, make_client):
        client = make_client(
            write=make_policy(
                token_limit=1,
                tokens_per_period=1,
                replenishment_period=1.0,
                auto_replenishment=True,
                queue_limit=0,
            )
        )
        alice = bearer("alice")

        assert post_item(client, alice).status_code == 201
        denied = post_item(client, alice)
        assert denied.status_code == 429
        assert int(denied.headers["retry-after"]) >= 1

        time.sleep(1.3)
        assert post_item(client, alice).status_code == 201

    def test_invalid_token_is_rejected_before_rate_limiting(self, make_client):
        client = make_client()
        resp = client.get("/api/items", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401


class TestQueueing:
    def test_queued_request_is_served_after_refill(self, make_client):
        client = make_client(
            read=make_policy(
                token_limit=1,
                tokens_per_period=1,
                replenishment_period=0.3,
                queue_limit=1,
            ),
            replenish_interval=0.02,
        )
        alice = bearer("alice")

        assert client.get("/api/items", headers=alice).status_code == 200
        started = time.monotonic()
        assert client.get("/api/items", headers=alice).status_code == 200
        assert time.monotonic() - started < 5

    def test_queue_timeout_rejects(self, make_client):
        client = make_client(
            read=make_policy(
                token_limit=1,
                tokens_per_period=1,
                replenishment_period=3600,
                queue_limit=1,
            ),
            rate_limit_queue_timeout=0.1,
        )
        alice = bearer("alice")

        assert client.get("/api/items", headers=alice).status_code == 200
        assert client.get("/api/items", headers=alice).status_code == 429


class TestStartup:
    def test_missing_rate_limit_section_fails(self, tmp_path: Path):
        settings = Settings(project_root=tmp_path, rate_limits={"Read": make_policy()})
        settings.ensure_dirs()
        try:
            with pytest.raises(ConfigurationError, match="Write"):
                create_app(settings)
        finally:
            close_connection(settings.db_path)


# ---------------------------------------------------------------------------
# Raw ASGI
# ---------------------------------------------------------------------------


class RecordingApp:
    """Inner ASGI app that records each call and the body it received."""

    def __init__(self) -> None:
        self.bodies: list[bytes] = []

    async def __call__(self, scope, receive, send) -> None:
        message = await receive()
        self.bodies.append(message.get("body", b""))
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"ok"})


def http_scope(method: str = "POST", user=None) -> dict:
    return {
        "type": "http",
        "method": method,
        "path": "/api/items",
        "headers": [],
        "user": user if user is not None else TodoUser("alice"),
    }


async def empty_body() -> dict:
    return {"type": "http.request", "body": b"", "more_body": False}


@pytest.fixture
def registry(clock):
    registry = RateLimiterRegistry(
        {
            "Read": make_policy(),
            "Write": make_policy(token_limit=1, replenishment_period=10.0, queue_limit=1),
        },
        clock=clock,
        autostart_replenisher=False,
    )
    yield registry
    registry.close()


class TestGateMiddleware:
    def test_rejects_without_calling_app(self, clock):
        registry = RateLimiterRegistry(
            {"Read": make_policy(), "Write": make_policy(token_limit=1)},
            clock=clock,
            autostart_replenisher=False,
        )
        inner = RecordingApp()
        gate = AdmissionGateMiddleware(inner, registry)
        sent = []

        async def send(message):
            sent.append(message)

        async def scenario():
            await gate(http_scope(), empty_body, send)
            sent.clear()
            await gate(http_scope(), empty_body, send)

        asyncio.run(scenario())
        assert len(inner.bodies) == 1
        assert sent[0]["status"] == 429
        assert (b"retry-after", b"10") in sent[0]["headers"]

    def test_non_http_scopes_pass_through(self, registry):
        calls = []

        async def inner(scope, receive, send):
            calls.append(scope["type"])

        gate = AdmissionGateMiddleware(inner, registry)
        asyncio.run(gate({"type": "lifespan"}, empty_body, None))
        assert calls == ["lifespan"]

    def test_disconnect_while_queued_abandons_the_wait(self, clock, registry):
        inner = RecordingApp()
        gate = AdmissionGateMiddleware(inner, registry)
        sent = []

        async def send(message):
            sent.append(message)

        async def disconnect():
            return {"type": "http.disconnect"}

        async def scenario():
            await gate(http_scope(), empty_body, send)
            sent.clear()
            await gate(http_scope(), disconnect, send)

        asyncio.run(scenario())

        assert len(inner.bodies) == 1
        assert sent == []

        limiter = registry.get_or_create(PartitionKey("Write", "alice"))
        assert limiter.queued_count == 0
        clock.advance(10.0)
        limiter.replenish()
        assert limiter.available_tokens == 1

    def test_body_received_while_queued_is_replayed(self, clock, registry):
        inner = RecordingApp()
        gate = AdmissionGateMiddleware(inner, registry)

        async def send(message):
            pass

        async def scenario():
            await gate(http_scope(), empty_body, send)

            release = asyncio.Event()
            pending = [{"type": "http.request", "body": b'{"text": "queued"}', "more_body": False}]

            async def receive():
                if pending:
                    return pending.pop(0)
                await release.wait()
                return {"type": "http.disconnect"}

            async def refill():
                await asyncio.sleep(0.05)
                clock.advance(10.0)
                registry.replenish_all()

            await asyncio.gather(gate(http_scope(), receive, send), refill())

        asyncio.run(scenario())
        assert inner.bodies == [b"", b'{"text": "queued"}']
