"""HS256 bearer tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

import jwt

from todoapp.config.settings import AuthSettings


def issue_token(
    user_id: str,
    name: Optional[str] = None,
    scopes: Iterable[str] = (),
    settings: Optional[AuthSettings] = None,
    lifetime: Optional[timedelta] = None,
) -> str:
    """Mint a signed token whose subject is ``user_id``."""
    settings = settings or AuthSettings()
    now = datetime.now(timezone.utc)
    lifetime = lifetime if lifetime is not None else timedelta(minutes=settings.token_lifetime_minutes)

    claims: dict[str, Any] = {
        "sub": user_id,
        "iss": settings.issuer,
        "aud": settings.audience,
        "iat": now,
        "exp": now + lifetime,
    }
    if name:
        claims["name"] = name
    scopes = list(scopes)
    if scopes:
        claims["scope"] = " ".join(scopes)
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Optional[AuthSettings] = None) -> dict[str, Any]:
    """
    Verify a token and return its claims.

    Raises:
        jwt.InvalidTokenError: bad signature, expired, wrong issuer or
            audience, or missing subject.
    """
    settings = settings or AuthSettings()
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.audience,
        issuer=settings.issuer,
        options={"require": ["sub", "exp"]},
    )
