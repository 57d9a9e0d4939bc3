"""Caller identity: HS256 access tokens.

Token payload::

    {
        "sub": <user_id>,
        "roles": ["admin", ...],
        "type": "access",
        "iat": <issued_at>,
        "exp": <expires_at>,
        "jti": <unique_id>
    }

Tokens are issued by the identity provider in production; ``create_access_token``
exists for operators (``mindmesh issue-token``) and tests.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import jwt

from mindmesh.graph_runtime.errors import AdminRequiredError, AuthenticationError

DEFAULT_ACCESS_EXPIRES = 3600  # 1 hour


@dataclass(frozen=True)
class Caller:
    """Authenticated identity attached to a request."""

    user_id: str
    roles: tuple[str, ...] = field(default_factory=tuple)

    def is_admin(self, admin_role: str = "admin") -> bool:
        return admin_role in self.roles


def require_admin(caller: Caller, admin_role: str = "admin") -> Caller:
    """Return *caller* if it holds *admin_role*, else raise ``AdminRequiredError``."""
    if not caller.is_admin(admin_role):
        raise AdminRequiredError(f"User {caller.user_id} lacks the '{admin_role}' role")
    return caller


def create_access_token(
    user_id: str,
    secret: str,
    *,
    roles: list[str] | None = None,
    expires_in: int = DEFAULT_ACCESS_EXPIRES,
    algorithm: str = "HS256",
) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "roles": list(roles or []),
        "type": "access",
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, *, algorithm: str = "HS256") -> Caller:
    """Verify *token* and return the caller it identifies.

    Raises ``AuthenticationError`` for expired, malformed, or non-access
    tokens and for tokens without a subject.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired") from None
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError(f"Invalid token: {exc}") from None

    if payload.get("type") != "access":
        raise AuthenticationError(f"Expected access token, got {payload.get('type')}")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Token has no subject")

    roles = payload.get("roles") or []
    return Caller(user_id=str(user_id), roles=tuple(str(r) for r in roles))
