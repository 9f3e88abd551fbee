"""Identity resolution and partition keys for per-user rate limiting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from todoapp.config.settings import READ_SECTION, WRITE_SECTION

ANONYMOUS = "anonymous"

# Methods that only retrieve data and use the "Read" limits
_READ_METHODS = frozenset({"GET", "HEAD"})


def is_authenticated(principal: Any) -> bool:
    """True only for a principal that reports itself as authenticated."""
    return principal is not None and bool(getattr(principal, "is_authenticated", False))


def resolve_identity(principal: Any) -> str:
    """
    Return the stable identifier of an authenticated principal.

    A missing or unauthenticated principal resolves to ``"anonymous"``.
    An authenticated principal always resolves to its own identity, even
    when that is empty or happens to read ``"anonymous"``; use
    ``is_authenticated`` to tell the two apart.
    """
    if not is_authenticated(principal):
        return ANONYMOUS
    try:
        identity = principal.identity
    except (AttributeError, NotImplementedError):
        return ""
    return "" if identity is None else str(identity)


def operation_class(method: str) -> str:
    """``"Read"`` for retrieval methods, ``"Write"`` for everything else."""
    return READ_SECTION if method.upper() in _READ_METHODS else WRITE_SECTION


@dataclass(frozen=True)
class PartitionKey:
    """An independent rate limit scope: operation class plus user."""

    operation_class: str
    user_id: str = ""

    @property
    def is_anonymous(self) -> bool:
        return self.operation_class == ANONYMOUS

    def __str__(self) -> str:
        if self.is_anonymous:
            return ANONYMOUS
        return f"{self.operation_class}-RateLimit-{self.user_id}"


# All unauthenticated traffic shares this key and is never throttled
ANONYMOUS_KEY = PartitionKey(operation_class=ANONYMOUS)


def build_partition_key(method: str, identity: str, authenticated: bool) -> PartitionKey:
    """
    Derive the partition for a request from its method and caller.

    Only ``authenticated`` decides whether the caller lands in the
    unthrottled anonymous partition. The identity string is used verbatim
    as the user part of the key.
    """
    if not authenticated:
        return ANONYMOUS_KEY
    return PartitionKey(operation_class=operation_class(method), user_id=identity)
