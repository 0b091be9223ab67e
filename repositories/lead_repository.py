"""
Lead repository (persistence).

This module provides *only* persistence operations for the Lead domain entity.
No business rules (ownership, state transitions, scoping) belong here; callers
pass fully resolved changes and queries.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional
from uuid import UUID

from domain.directory import LeadQuery
from domain.lead import CallStatus, Lead, LeadSource, LeadStatus
from repositories.client import execute, get_supabase, rows_of
from repositories.serialization import (
    changes_to_row,
    parse_optional_datetime,
    parse_optional_uuid,
    parse_utc_datetime,
    to_column_value,
    to_iso_utc,
)

# Supabase table name for Lead records.
# Keep this aligned with sql/schema.sql.
_LEADS_TABLE: str = "leads"

# Domain field name -> column name, where they differ.
_COLUMNS: dict[str, str] = {"lead_id": "id"}

# Columns matched by the free-text search.
_SEARCH_COLUMNS: tuple[str, ...] = ("name", "phone", "email")


def lead_to_row(lead: Lead) -> dict[str, Any]:
    """Convert a domain Lead to a Supabase row payload."""

    return {
        "id": str(lead.lead_id),
        "name": lead.name,
        "phone": lead.phone,
        "email": lead.email,
        "source": lead.source.value,
        "call_status": lead.call_status.value,
        "lead_status": lead.lead_status.value,
        "follow_up_date": to_column_value(lead.follow_up_date),
        "last_contacted_date": to_column_value(lead.last_contacted_date),
        "remarks": lead.remarks,
        "assigned_to": to_column_value(lead.assigned_to),
        "created_at": to_iso_utc(lead.created_at, name="created_at"),
        "updated_at": to_iso_utc(lead.updated_at, name="updated_at"),
    }


def row_to_lead(row: Mapping[str, Any]) -> Lead:
    """Convert a Supabase row into a domain Lead."""

    return Lead(
        lead_id=UUID(str(row["id"])),
        name=str(row["name"]),
        phone=str(row["phone"]),
        email=str(row["email"]),
        source=LeadSource(str(row["source"])),
        call_status=CallStatus(str(row.get("call_status") or CallStatus.PENDING.value)),
        lead_status=LeadStatus(str(row.get("lead_status") or LeadStatus.NEW.value)),
        follow_up_date=parse_optional_datetime(row.get("follow_up_date")),
        last_contacted_date=parse_optional_datetime(row.get("last_contacted_date")),
        remarks=row.get("remarks") or "",
        assigned_to=parse_optional_uuid(row.get("assigned_to")),
        created_at=parse_utc_datetime(row["created_at"]),
        updated_at=parse_utc_datetime(row["updated_at"]),
    )


def lead_changes_to_row(changes: Mapping[str, Any]) -> dict[str, Any]:
    return changes_to_row(changes, _COLUMNS)


def insert_lead(lead: Lead) -> Lead:
    """Insert a Lead and return it as stored."""

    response = execute(get_supabase().table(_LEADS_TABLE).insert(lead_to_row(lead)), "insert lead")
    rows = rows_of(response)
    return row_to_lead(rows[0]) if rows else lead


def get_lead_by_id(lead_id: UUID) -> Lead | None:
    """
    Fetch a Lead by ID.

    Returns:
    - Lead if found
    - None if no record exists for the given ID
    """

    query = get_supabase().table(_LEADS_TABLE).select("*").eq("id", str(lead_id)).limit(1)
    rows = rows_of(execute(query, "fetch lead"))
    if not rows:
        return None
    return row_to_lead(rows[0])


def update_lead(lead_id: UUID, changes: Mapping[str, Any]) -> Lead | None:
    """
    Write only the changed fields of one lead.

    Returns the updated Lead, or None if the lead no longer exists.
    """

    query = get_supabase().table(_LEADS_TABLE).update(lead_changes_to_row(changes)).eq("id", str(lead_id))
    rows = rows_of(execute(query, "update lead"))
    if not rows:
        return None
    return row_to_lead(rows[0])


def delete_lead(lead_id: UUID) -> bool:
    """
    Delete a lead. The call_history foreign key cascades, so the lead's call
    records go with it in the same statement.

    Returns True if a row was deleted.
    """

    query = get_supabase().table(_LEADS_TABLE).delete().eq("id", str(lead_id))
    return bool(rows_of(execute(query, "delete lead")))


def _escape_like(term: str) -> str:
    """Make `%`, `_` and `\\` match themselves inside an ilike pattern."""

    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _quote_filter_value(value: str) -> str:
    """Double-quote a PostgREST filter value so `,` `(` `)` and `.` stay literal."""

    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _search_clause(term: str) -> str | None:
    """
    Build the or=(...) filter for a free-text search.

    The term is matched as typed (after trimming): commas, brackets and ilike
    wildcards in it are literal characters, not filter syntax.
    """

    cleaned = term.strip()
    if not cleaned:
        return None
    pattern = _quote_filter_value(f"%{_escape_like(cleaned)}%")
    return ",".join(f"{column}.ilike.{pattern}" for column in _SEARCH_COLUMNS)


def query_leads(query: LeadQuery) -> List[Lead]:
    """
    List leads matching a resolved LeadQuery.

    - search: case-insensitive substring on name, phone or email (any one)
    - call_status / lead_status / assigned_to: exact match
    - follow_up window: [follow_up_from, follow_up_until)
    """

    builder = get_supabase().table(_LEADS_TABLE).select("*")

    if query.search:
        clause = _search_clause(query.search)
        if clause:
            builder = builder.or_(clause)
    if query.call_status is not None:
        builder = builder.eq("call_status", query.call_status.value)
    if query.lead_status is not None:
        builder = builder.eq("lead_status", query.lead_status.value)
    if query.follow_up_from is not None:
        builder = builder.gte("follow_up_date", to_iso_utc(query.follow_up_from))
    if query.follow_up_until is not None:
        builder = builder.lt("follow_up_date", to_iso_utc(query.follow_up_until))
    if query.unassigned_only:
        builder = builder.is_("assigned_to", "null")
    elif query.assigned_to is not None:
        builder = builder.eq("assigned_to", str(query.assigned_to))

    builder = builder.order(query.order_by, desc=query.descending)

    rows = rows_of(execute(builder, "list leads"))
    return [row_to_lead(row) for row in rows]


def list_leads(created_since: Optional[datetime] = None, assigned_to: Optional[UUID] = None) -> List[Lead]:
    """Unfiltered read used by reporting. Optionally bounded by creation time and owner."""

    builder = get_supabase().table(_LEADS_TABLE).select("*")
    if created_since is not None:
        builder = builder.gte("created_at", to_iso_utc(created_since))
    if assigned_to is not None:
        builder = builder.eq("assigned_to", str(assigned_to))
    rows = rows_of(execute(builder.order("created_at", desc=True), "list leads"))
    return [row_to_lead(row) for row in rows]


def assign_leads(lead_ids: Iterable[UUID], user_id: UUID, updated_at: datetime) -> int:
    """
    Point every existing lead in `lead_ids` at `user_id`.

    Ids that do not exist are ignored. Returns the number of leads updated.
    """

    ids = [str(lead_id) for lead_id in lead_ids]
    if not ids:
        return 0
    payload = {"assigned_to": str(user_id), "updated_at": to_iso_utc(updated_at)}
    query = get_supabase().table(_LEADS_TABLE).update(payload).in_("id", ids)
    return len(rows_of(execute(query, "assign leads")))


__all__ = [
    "lead_to_row",
    "row_to_lead",
    "lead_changes_to_row",
    "insert_lead",
    "get_lead_by_id",
    "update_lead",
    "delete_lead",
    "query_leads",
    "list_leads",
    "assign_leads",
]
