"""
Domain: access policy.

Pure decision functions, no side effects. Every predicate answers one named
question about an actor and a resource and returns a Decision. Callers turn a
denial into an error with `enforce`, which reports role and ownership denials
identically so nothing leaks about which rule applied.

Rules:
- Admins may do everything, subject to the last-admin invariant on deletion.
  An admin never deletes their own account.
- Non-admins may view and mutate only leads assigned to them. Unassigned leads
  are visible to admins only.
- Reassignment, deletion, user management and bulk assignment are admin-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional
from uuid import UUID

from .errors import AuthorizationError, ConflictError


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class DenyReason(str, Enum):
    INSUFFICIENT_ROLE = "insufficient_role"
    NOT_OWNER = "not_owner"
    LAST_ADMIN = "last_admin"
    SELF_DELETE = "self_delete"


@dataclass(frozen=True, slots=True)
class Actor:
    """The authenticated identity performing an operation."""

    actor_id: UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass(frozen=True, slots=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def _deny(reason: DenyReason) -> Decision:
    return Decision(False, reason)


def _admin_only(actor: Actor, resource_owner_id: Optional[UUID] = None) -> Decision:
    return ALLOW if actor.is_admin else _deny(DenyReason.INSUFFICIENT_ROLE)


def can_view_lead(actor: Actor, resource_owner_id: Optional[UUID]) -> Decision:
    if actor.is_admin:
        return ALLOW
    if resource_owner_id is not None and resource_owner_id == actor.actor_id:
        return ALLOW
    return _deny(DenyReason.NOT_OWNER)


def can_mutate_lead(actor: Actor, resource_owner_id: Optional[UUID]) -> Decision:
    return can_view_lead(actor, resource_owner_id)


can_reassign_lead = _admin_only
can_delete_lead = _admin_only
can_list_all_users = _admin_only
can_create_user = _admin_only
can_manage_user_role = _admin_only
can_assign_leads_bulk = _admin_only
can_view_reports = _admin_only


def can_delete_user(
    actor: Actor,
    target_role: Role,
    admin_count: int,
    target_id: Optional[UUID] = None,
) -> Decision:
    """Admins may delete other users, but never the sole remaining admin."""

    if not actor.is_admin:
        return _deny(DenyReason.INSUFFICIENT_ROLE)
    if target_id is not None and target_id == actor.actor_id:
        return _deny(DenyReason.SELF_DELETE)
    if target_role is Role.ADMIN and admin_count <= 1:
        return _deny(DenyReason.LAST_ADMIN)
    return ALLOW


POLICIES: Dict[str, Callable[..., Decision]] = {
    "view_lead": can_view_lead,
    "mutate_lead": can_mutate_lead,
    "reassign_lead": can_reassign_lead,
    "delete_lead": can_delete_lead,
    "list_all_users": can_list_all_users,
    "create_user": can_create_user,
    "manage_user_role": can_manage_user_role,
    "assign_leads_bulk": can_assign_leads_bulk,
    "view_reports": can_view_reports,
    "delete_user": can_delete_user,
}


def check(operation: str, actor: Actor, *args: object) -> Decision:
    """Evaluate the named policy. Unknown operation names are a programming error."""

    try:
        policy = POLICIES[operation]
    except KeyError:
        raise KeyError(f"Unknown policy operation: {operation!r}") from None
    return policy(actor, *args)


def enforce(decision: Decision) -> None:
    """
    Raise the caller-facing error for a denied decision.

    - INSUFFICIENT_ROLE and NOT_OWNER both become the same AuthorizationError.
    - LAST_ADMIN and SELF_DELETE become ConflictError (the actor is allowed,
      the state is not).
    """

    if decision.allowed:
        return
    if decision.reason is DenyReason.LAST_ADMIN:
        raise ConflictError("Cannot delete the last admin user")
    if decision.reason is DenyReason.SELF_DELETE:
        raise ConflictError("Cannot delete your own account")
    raise AuthorizationError(decision.reason.value if decision.reason else None)


__all__ = [
    "Role",
    "DenyReason",
    "Actor",
    "Decision",
    "POLICIES",
    "check",
    "enforce",
    "can_view_lead",
    "can_mutate_lead",
    "can_reassign_lead",
    "can_delete_lead",
    "can_list_all_users",
    "can_create_user",
    "can_manage_user_role",
    "can_assign_leads_bulk",
    "can_view_reports",
    "can_delete_user",
]
