"""
Call history repository (persistence).

Call history is append-only. The only write path is `record_call_atomic`,
which applies the lead changes and inserts the history row inside one
PostgreSQL transaction (see `record_call_disposition` in sql/schema.sql), so
a failure leaves neither change behind.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple
from uuid import UUID

from domain.lead import CallDisposition, CallHistory, CallStatus, Lead
from repositories.client import execute, get_supabase, rows_of
from repositories.lead_repository import lead_changes_to_row, row_to_lead
from repositories.serialization import parse_utc_datetime, to_iso_utc

_CALL_HISTORY_TABLE: str = "call_history"
_RECORD_CALL_FUNCTION: str = "record_call_disposition"


def call_history_to_row(call: CallHistory) -> dict[str, Any]:
    return {
        "id": str(call.call_id),
        "lead_id": str(call.lead_id),
        "user_id": str(call.user_id),
        "date": to_iso_utc(call.date, name="date"),
        "status": call.status.value,
        "disposition": call.disposition.value if call.disposition else None,
        "remarks": call.remarks,
    }


def row_to_call_history(row: Mapping[str, Any]) -> CallHistory:
    disposition = row.get("disposition")
    return CallHistory(
        call_id=UUID(str(row["id"])),
        lead_id=UUID(str(row["lead_id"])),
        user_id=UUID(str(row["user_id"])),
        date=parse_utc_datetime(row["date"]),
        status=CallStatus(str(row["status"])),
        disposition=CallDisposition(str(disposition)) if disposition else None,
        remarks=row.get("remarks") or "",
    )


def list_call_history(lead_id: UUID) -> List[CallHistory]:
    """Call records for one lead, newest first."""

    query = (
        get_supabase()
        .table(_CALL_HISTORY_TABLE)
        .select("*")
        .eq("lead_id", str(lead_id))
        .order("date", desc=True)
    )
    return [row_to_call_history(row) for row in rows_of(execute(query, "list call history"))]


def record_call_atomic(
    lead_id: UUID,
    changes: Mapping[str, Any],
    call: CallHistory,
    expected_owner: Optional[UUID] = None,
) -> Optional[Tuple[Lead, CallHistory]]:
    """
    Apply `changes` to the lead and append `call`, all-or-nothing.

    With `expected_owner`, the write only happens while the locked lead is
    still assigned to that user.

    Returns:
    - (updated Lead, stored CallHistory) on success
    - None if the lead no longer exists or has changed owner (nothing was written)

    Raises:
    - PersistenceError if the transaction fails (nothing was written)
    """

    params = {
        "p_lead_id": str(lead_id),
        "p_lead_changes": lead_changes_to_row(changes),
        "p_call": call_history_to_row(call),
        "p_expected_owner": str(expected_owner) if expected_owner is not None else None,
    }
    response = execute(get_supabase().rpc(_RECORD_CALL_FUNCTION, params), "record call disposition")

    result = getattr(response, "data", None) or {}
    if isinstance(result, list):
        result = result[0] if result else {}
    if not result.get("lead"):
        return None
    return row_to_lead(result["lead"]), row_to_call_history(result["call_history"])


__all__ = [
    "call_history_to_row",
    "row_to_call_history",
    "list_call_history",
    "record_call_atomic",
]
