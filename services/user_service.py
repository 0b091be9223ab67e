"""
User management service.

Handles:
- Admin-only registration, listing, editing and deletion of users
- Credential checks for login
- Self-service profile reads and edits

Deletion keeps the at-least-one-admin invariant, refuses an admin's own
account, and hands the deleted user's leads to the admin performing it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID, uuid4

from domain import access_policy
from domain.access_policy import Actor, Role
from domain.directory import UserLeadSummary, user_lead_summary
from domain.errors import ConflictError, InvalidCredentialsError, NotFoundError, ValidationError
from domain.lead import parse_enum, require_text
from domain.time import utc_now
from domain.user import User, hash_password, verify_password
from repositories import lead_repository, user_repository
from services.lead_service import authorize

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset({"name", "email", "password", "role"})


@dataclass(frozen=True, slots=True)
class NewUser:
    name: str
    email: str
    password: str
    role: Optional[str] = None


@dataclass(frozen=True, slots=True)
class UserWithStats:
    user: User
    stats: UserLeadSummary


def _require_user(user_id: UUID) -> User:
    user = user_repository.get_user_by_id(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def _normalize_email(value: object) -> str:
    email = require_text("email", value).lower()
    if "@" not in email:
        raise ValidationError("email must be a valid email address")
    return email


def _ensure_email_free(email: str, owner_id: Optional[UUID] = None) -> None:
    existing = user_repository.get_user_by_email(email)
    if existing is not None and existing.user_id != owner_id:
        raise ConflictError("User already exists")


def _user_changes(changes: Mapping[str, Any], current: User, *, allow_role: bool) -> Dict[str, Any]:
    """
    Validate a user edit. Empty values are ignored, matching a form that only
    submits what changed. A role change is dropped unless `allow_role`.
    """

    unknown = sorted(set(changes) - _EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(unknown)}")

    result: Dict[str, Any] = {}
    if changes.get("name"):
        result["name"] = require_text("name", changes["name"])
    if changes.get("email"):
        email = _normalize_email(changes["email"])
        if email != current.email:
            _ensure_email_free(email, current.user_id)
        result["email"] = email
    if changes.get("password"):
        result["password_hash"] = hash_password(str(changes["password"]))
    if changes.get("role") and allow_role:
        result["role"] = parse_enum(Role, "role", changes["role"])
    return result


def register_user(data: NewUser, actor: Actor, *, now: Optional[datetime] = None) -> User:
    """
    Create a user account. Admin only. Role defaults to `user`.

    Raises:
        AuthorizationError: the actor is not an admin
        ValidationError: missing name, email or password, or unknown role
        ConflictError: the email is already registered
    """

    authorize(access_policy.can_create_user(actor), actor, "create_user")

    email = _normalize_email(data.email)
    if not data.password:
        raise ValidationError("password is required")
    user = User(
        user_id=uuid4(),
        name=require_text("name", data.name),
        email=email,
        role=parse_enum(Role, "role", data.role or Role.USER.value),
        created_at=now or utc_now(),
        password_hash=hash_password(data.password),
    )
    _ensure_email_free(email)

    stored = user_repository.insert_user(user)
    logger.info(
        "User registered",
        extra={"user_id": str(stored.user_id), "role": stored.role.value, "actor_id": str(actor.actor_id)},
    )
    return stored


def authenticate(email: str, password: str) -> User:
    """
    Check credentials.

    Raises:
        InvalidCredentialsError: unknown email or wrong password (indistinguishable)
    """

    user = user_repository.get_user_by_email(email or "")
    if user is None or not verify_password(password or "", user.password_hash):
        logger.info("Login failed")
        raise InvalidCredentialsError()
    return user


def get_profile(actor: Actor) -> User:
    return _require_user(actor.actor_id)


def update_profile(actor: Actor, changes: Mapping[str, Any]) -> User:
    """Edit the actor's own account. Only admins may change their role."""

    current = _require_user(actor.actor_id)
    allow_role = access_policy.can_manage_user_role(actor).allowed
    fields = _user_changes(changes, current, allow_role=allow_role)
    if not fields:
        return current
    updated = user_repository.update_user(actor.actor_id, fields)
    if updated is None:
        raise NotFoundError("User", actor.actor_id)
    return updated


def _summaries(users: List[User]) -> List[UserWithStats]:
    leads = lead_repository.list_leads()
    return [UserWithStats(user=user, stats=user_lead_summary(user.user_id, leads)) for user in users]


def list_users(actor: Actor) -> List[UserWithStats]:
    """All users with their lead counts and whole-percent conversion rate. Admin only."""

    authorize(access_policy.can_list_all_users(actor), actor, "list_users")
    return _summaries(user_repository.list_users())


def get_user(user_id: UUID, actor: Actor) -> UserWithStats:
    authorize(access_policy.can_list_all_users(actor), actor, "get_user", user_id)
    user = _require_user(user_id)
    leads = lead_repository.list_leads(assigned_to=user_id)
    return UserWithStats(user=user, stats=user_lead_summary(user_id, leads))


def update_user(user_id: UUID, changes: Mapping[str, Any], actor: Actor) -> User:
    """Edit any user, including their role. Admin only."""

    authorize(access_policy.can_manage_user_role(actor), actor, "update_user", user_id)
    current = _require_user(user_id)
    fields = _user_changes(changes, current, allow_role=True)
    if not fields:
        return current
    updated = user_repository.update_user(user_id, fields)
    if updated is None:
        raise NotFoundError("User", user_id)
    logger.info("User updated", extra={"user_id": str(user_id), "actor_id": str(actor.actor_id)})
    return updated


def delete_user(user_id: UUID, actor: Actor, *, now: Optional[datetime] = None) -> int:
    """
    Delete a user, reassigning their leads to the acting admin.

    The reassignment and the deletion commit together. The database repeats the
    last-admin check with the admin rows locked, so concurrent deletions
    cannot leave zero admins.

    Returns:
        Number of leads reassigned

    Raises:
        AuthorizationError: the actor is not an admin
        NotFoundError: the user does not exist
        ConflictError: the user is the last remaining admin, or the actor
    """

    # A missing user is judged as a plain user, so non-admins are refused either way.
    target = user_repository.get_user_by_id(user_id)
    target_role = target.role if target is not None else Role.USER
    admin_count = user_repository.count_admins() if target_role is Role.ADMIN else 0
    authorize(
        access_policy.can_delete_user(actor, target_role, admin_count, target_id=user_id),
        actor,
        "delete_user",
        user_id,
    )
    if target is None:
        raise NotFoundError("User", user_id)

    deletion = user_repository.delete_user_reassign_leads(user_id, actor.actor_id, now or utc_now())
    if deletion.reason == "last_admin":
        authorize(
            access_policy.can_delete_user(actor, Role.ADMIN, deletion.admin_count or 0, target_id=user_id),
            actor,
            "delete_user",
            user_id,
        )
    if not deletion.deleted:
        raise NotFoundError("User", user_id)

    logger.info(
        "User deleted",
        extra={
            "user_id": str(user_id),
            "actor_id": str(actor.actor_id),
            "reassigned_leads": deletion.reassigned,
        },
    )
    return deletion.reassigned


__all__ = [
    "NewUser",
    "UserWithStats",
    "register_user",
    "authenticate",
    "get_profile",
    "update_profile",
    "list_users",
    "get_user",
    "update_user",
    "delete_user",
]
