"""Tests for the 429 rejection response."""

import json

import pytest

from todoapp.ratelimit.lease import Lease
from todoapp.ratelimit.responder import rate_limited_response, retry_after_seconds


class TestRetryAfterSeconds:
    @pytest.mark.parametrize(
        "retry_after, expected",
        [
            (None, 1),
            (0.0, 1),
            (0.2, 1),
            (1.0, 1),
            (1.2, 2),
            (59.01, 60),
            (-3.0, 1),
        ],
    )
    def test_rounds_up_to_at_least_one_second(self, retry_after, expected):
        assert retry_after_seconds(Lease(granted=False, retry_after=retry_after)) == expected


class TestRateLimitedResponse:
    def test_problem_body_and_headers(self):
        response = rate_limited_response(Lease(granted=False, retry_after=4.5))

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "5"
        assert response.media_type == "application/problem+json"
        assert json.loads(response.body) == {
            "title": "Too Many Requests",
            "status": 429,
            "detail": "Too many requests.",
        }

    def test_defaults_retry_after_without_hint(self):
        response = rate_limited_response(Lease(granted=False))
        assert response.headers["Retry-After"] == "1"
