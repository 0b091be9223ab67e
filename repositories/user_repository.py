"""
User repository for managing agent and admin accounts.

Persistence only. Password hashing and role rules live in the domain and
service layers. The one exception is `delete_user_reassign_leads`, whose
database function repeats the last-admin check while it holds the admin rows
locked (see sql/schema.sql).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.access_policy import Role
from domain.user import User
from repositories.client import execute, get_supabase, rows_of
from repositories.serialization import changes_to_row, parse_utc_datetime, to_iso_utc

_USERS_TABLE: str = "users"
_COLUMNS: dict[str, str] = {"user_id": "id"}
_DELETE_USER_FUNCTION: str = "delete_user_reassign_leads"


@dataclass(frozen=True, slots=True)
class UserDeletion:
    """Outcome of `delete_user_reassign_leads`. `reason` is set when nothing was deleted."""

    deleted: bool
    reassigned: int = 0
    reason: Optional[str] = None
    admin_count: Optional[int] = None


def user_to_row(user: User) -> dict[str, Any]:
    return {
        "id": str(user.user_id),
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "password_hash": user.password_hash,
        "created_at": to_iso_utc(user.created_at, name="created_at"),
    }


def row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        user_id=UUID(str(row["id"])),
        name=str(row["name"]),
        email=str(row["email"]),
        role=Role(str(row["role"])),
        created_at=parse_utc_datetime(row["created_at"]),
        password_hash=str(row.get("password_hash") or ""),
    )


def insert_user(user: User) -> User:
    response = execute(get_supabase().table(_USERS_TABLE).insert(user_to_row(user)), "insert user")
    rows = rows_of(response)
    return row_to_user(rows[0]) if rows else user


def get_user_by_id(user_id: UUID) -> Optional[User]:
    """
    Get a user by their ID.

    Returns:
        User domain model or None if not found
    """

    query = get_supabase().table(_USERS_TABLE).select("*").eq("id", str(user_id)).limit(1)
    rows = rows_of(execute(query, "fetch user"))
    return row_to_user(rows[0]) if rows else None


def get_user_by_email(email: str) -> Optional[User]:
    query = get_supabase().table(_USERS_TABLE).select("*").eq("email", email.strip().lower()).limit(1)
    rows = rows_of(execute(query, "fetch user"))
    return row_to_user(rows[0]) if rows else None


def list_users() -> List[User]:
    query = get_supabase().table(_USERS_TABLE).select("*").order("created_at", desc=False)
    return [row_to_user(row) for row in rows_of(execute(query, "list users"))]


def update_user(user_id: UUID, changes: Mapping[str, Any]) -> Optional[User]:
    query = get_supabase().table(_USERS_TABLE).update(changes_to_row(changes, _COLUMNS)).eq("id", str(user_id))
    rows = rows_of(execute(query, "update user"))
    return row_to_user(rows[0]) if rows else None


def delete_user_reassign_leads(user_id: UUID, new_owner_id: UUID, updated_at: datetime) -> UserDeletion:
    """
    Move the user's leads to `new_owner_id` and delete the user, all-or-nothing.

    Returns a UserDeletion with reason "not_found" or "last_admin" when the
    database refused (nothing was written).
    """

    params = {
        "p_user_id": str(user_id),
        "p_new_owner": str(new_owner_id),
        "p_updated_at": to_iso_utc(updated_at),
    }
    response = execute(get_supabase().rpc(_DELETE_USER_FUNCTION, params), "delete user")

    result = getattr(response, "data", None) or {}
    if isinstance(result, list):
        result = result[0] if result else {}
    admin_count = result.get("admin_count")
    return UserDeletion(
        deleted=bool(result.get("deleted")),
        reassigned=int(result.get("reassigned") or 0),
        reason=result.get("reason"),
        admin_count=int(admin_count) if admin_count is not None else None,
    )


def count_admins() -> int:
    query = get_supabase().table(_USERS_TABLE).select("id", count="exact").eq("role", Role.ADMIN.value)
    response = execute(query, "count admins")
    count = getattr(response, "count", None)
    return count if count is not None else len(rows_of(response))


__all__ = [
    "user_to_row",
    "row_to_user",
    "insert_user",
    "get_user_by_id",
    "get_user_by_email",
    "list_users",
    "update_user",
    "UserDeletion",
    "delete_user_reassign_leads",
    "count_admins",
]
