"""Explicit user session handle threaded through pipeline operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from leadboard.core.exceptions import AuthenticationRequired


@dataclass(frozen=True)
class UserSession:
    user_id: str
    email: str | None = None


def from_claims(claims: dict[str, Any]) -> UserSession:
    """Build a session from verified token claims."""
    user_id = str(claims.get("sub") or "").strip()
    if not user_id:
        raise AuthenticationRequired("Token claims are missing the user identity.")
    if claims.get("token_use", "access") != "access":
        raise AuthenticationRequired("Only access tokens open a session.")
    return UserSession(user_id=user_id, email=claims.get("email"))


def require_user(session: UserSession | None) -> str:
    """Return the authenticated user id or fail before any store call."""
    if session is None or not session.user_id:
        raise AuthenticationRequired("No authenticated user.")
    return session.user_id
