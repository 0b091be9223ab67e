"""
Access tokens and actor resolution.

Tokens are signed JWTs carrying the user id (`sub`) and role. Every route
that touches leads or users depends on `get_current_actor`, which turns the
bearer token into the explicit Actor passed down to the services.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from config import get_settings
from domain.access_policy import Actor, Role
from domain.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def _signing_key() -> str:
    secret = get_settings().jwt_secret
    if not secret:
        raise RuntimeError(
            "Missing environment variable: JWT_SECRET. "
            "Set JWT_SECRET to a long random string."
        )
    return secret


def create_access_token(user: User, *, now: Optional[datetime] = None) -> str:
    settings = get_settings()
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "sub": str(user.user_id),
        "role": user.role.value,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(hours=settings.access_token_ttl_hours)).timestamp()),
    }
    return jwt.encode(claims, _signing_key(), algorithm=settings.jwt_algorithm)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> Actor:
    try:
        claims = jwt.decode(token, _signing_key(), algorithms=[get_settings().jwt_algorithm])
        return Actor(actor_id=UUID(str(claims["sub"])), role=Role(str(claims.get("role", Role.USER.value))))
    except (JWTError, KeyError, ValueError):
        raise _unauthorized("Invalid or expired token") from None


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Actor:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Authorization header missing")
    return decode_access_token(credentials.credentials)


__all__ = ["create_access_token", "decode_access_token", "get_current_actor"]
