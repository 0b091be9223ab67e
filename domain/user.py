"""
Domain: User accounts (sales agents and admins).

- email is unique (enforced by the store and checked on registration).
- password is only ever held as a salted hash and never serialized in responses.
- At least one admin must exist at all times (enforced at deletion time, see
  domain.access_policy.can_delete_user).
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

from .access_policy import Role
from .time import require_utc_timestamp

_HASH_ALGORITHM = "pbkdf2_sha256"
_HASH_ITERATIONS = 310_000


def hash_password(password: str, *, salt: Optional[str] = None, iterations: int = _HASH_ITERATIONS) -> str:
    """Return an encoded salted PBKDF2-SHA256 hash: `algorithm$iterations$salt$digest`."""

    if not password:
        raise ValueError("password must not be empty")
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"{_HASH_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
    except ValueError:
        return False
    if algorithm != _HASH_ALGORITHM or not password:
        return False
    candidate = hash_password(password, salt=salt, iterations=int(iterations))
    return hmac.compare_digest(candidate.rsplit("$", 1)[1], expected)


@dataclass(frozen=True, slots=True)
class User:
    user_id: UUID
    name: str
    email: str
    role: Role
    created_at: datetime
    password_hash: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


__all__ = ["User", "hash_password", "verify_password"]
