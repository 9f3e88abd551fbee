"""JWT bearer authentication."""

from todoapp.auth.backend import BearerTokenBackend, TodoUser, on_auth_error
from todoapp.auth.tokens import decode_token, issue_token

__all__ = [
    "BearerTokenBackend",
    "TodoUser",
    "on_auth_error",
    "decode_token",
    "issue_token",
]
