"""
Starlette authentication backend for JWT bearer tokens.

Requests without an ``Authorization`` header are anonymous. A header
that is present but invalid fails the request with a 401.
"""

from __future__ import annotations

import logging
from typing import Optional

import jwt
from starlette.authentication import (
    AuthCredentials,
    AuthenticationBackend,
    AuthenticationError,
    BaseUser,
)
from starlette.requests import HTTPConnection
from starlette.responses import Response

from todoapp.api.problems import problem_response
from todoapp.auth.tokens import decode_token
from todoapp.config.settings import AuthSettings

logger = logging.getLogger(__name__)


class TodoUser(BaseUser):
    """An authenticated caller, identified by the token subject."""

    def __init__(self, user_id: str, name: Optional[str] = None, scopes: tuple[str, ...] = ()) -> None:
        self.user_id = user_id
        self.name = name
        self.scopes = scopes

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return self.name or self.user_id

    @property
    def identity(self) -> str:
        return self.user_id

    def __repr__(self) -> str:
        return f"TodoUser({self.user_id!r})"


class BearerTokenBackend(AuthenticationBackend):
    def __init__(self, settings: Optional[AuthSettings] = None) -> None:
        self._settings = settings or AuthSettings()

    async def authenticate(self, conn: HTTPConnection):
        header = conn.headers.get("Authorization")
        if not header:
            return None

        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthenticationError("Invalid authorization header.")

        try:
            claims = decode_token(token.strip(), self._settings)
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected bearer token: %s", exc)
            raise AuthenticationError("Invalid bearer token.") from exc

        scopes = tuple(str(claims.get("scope", "")).split())
        user = TodoUser(str(claims["sub"]), name=claims.get("name"), scopes=scopes)
        return AuthCredentials(["authenticated", *scopes]), user


def on_auth_error(conn: HTTPConnection, exc: AuthenticationError) -> Response:
    return problem_response(401, str(exc), headers={"WWW-Authenticate": "Bearer"})
