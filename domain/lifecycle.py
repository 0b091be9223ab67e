"""
Domain: lead lifecycle state machine.

Pure functions that enact the lead state transitions. No I/O; every timestamp
and identifier is passed in explicitly so transitions are deterministic.

Transitions:
- create: New/Pending lead, owned by the actor unless an admin names an owner.
- update: merge a patch of editable fields; non-admins cannot reassign (the
  field is dropped, never rejected).
- record call: map the call outcome onto call_status / lead_status, stamp
  last_contacted_date, optionally move the follow-up, overwrite remarks, and
  produce exactly one CallHistory record carrying the raw outcome.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple
from uuid import UUID

from .access_policy import Actor, can_reassign_lead
from .errors import ValidationError
from .lead import (
    CallDisposition,
    CallDispositionInput,
    CallHistory,
    CallStatus,
    Lead,
    LeadSource,
    LeadStatus,
    NewLead,
    parse_enum,
    require_text,
)

CALL_STATUS_BY_TAG: Dict[str, CallStatus] = {
    "connected": CallStatus.CONNECTED,
}

DISPOSITION_BY_PROGRESS: Dict[str, CallDisposition] = {
    "interested": CallDisposition.INTERESTED,
    "not_interested": CallDisposition.NOT_INTERESTED,
    "admission_taken": CallDisposition.ADMISSION_TAKEN,
}

LEAD_STATUS_BY_DISPOSITION: Dict[CallDisposition, LeadStatus] = {
    CallDisposition.INTERESTED: LeadStatus.INTERESTED,
    CallDisposition.NOT_INTERESTED: LeadStatus.NOT_INTERESTED,
    CallDisposition.ADMISSION_TAKEN: LeadStatus.ADMISSION_TAKEN,
}

# Fields a general update may touch. last_contacted_date is deliberately absent:
# only recording a call may set it.
UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "phone",
        "email",
        "source",
        "call_status",
        "lead_status",
        "follow_up_date",
        "remarks",
        "assigned_to",
    }
)


def resolve_call_status(tag: Optional[str]) -> CallStatus:
    """`connected` maps to Connected; anything else is Not Connected."""

    return CALL_STATUS_BY_TAG.get(tag or "", CallStatus.NOT_CONNECTED)


def resolve_disposition(lead_progress: Optional[str]) -> Optional[CallDisposition]:
    """Absent or unrecognized progress tags have no disposition."""

    return DISPOSITION_BY_PROGRESS.get(lead_progress or "")


def resolve_lead_status(lead_progress: Optional[str], current: LeadStatus) -> LeadStatus:
    """Map a progress tag to a lead status, keeping `current` when there is nothing to map."""

    disposition = resolve_disposition(lead_progress)
    if disposition is None:
        return current
    return LEAD_STATUS_BY_DISPOSITION[disposition]


def _normalize_email(value: object) -> str:
    return require_text("email", value).lower()


def _coerce_timestamp(field: str, value: object) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, datetime):
        raise ValidationError(f"{field} must be a timestamp")
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"{field} must be timezone-aware")
    return value.astimezone(timezone.utc)


def _coerce_owner(value: object) -> Optional[UUID]:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError("assigned_to must be a user id") from None


def new_lead(data: NewLead, actor: Actor, lead_id: UUID, now: datetime) -> Lead:
    """
    Build a freshly created lead.

    Ownership: an admin may name an explicit owner; everyone else (and an admin
    who names nobody) owns the lead they create.
    """

    owner = data.assigned_to if data.assigned_to is not None and can_reassign_lead(actor) else actor.actor_id
    return Lead(
        lead_id=lead_id,
        name=require_text("name", data.name),
        phone=require_text("phone", data.phone),
        email=_normalize_email(data.email),
        source=parse_enum(LeadSource, "source", data.source),
        created_at=now,
        updated_at=now,
        call_status=CallStatus.PENDING,
        lead_status=LeadStatus.NEW,
        follow_up_date=None,
        last_contacted_date=None,
        remarks="",
        assigned_to=owner,
    )


def sanitize_patch(patch: Mapping[str, Any], actor: Actor) -> Dict[str, Any]:
    """
    Validate and normalize an update patch.

    - Unknown or read-only fields raise ValidationError.
    - assigned_to is silently dropped for non-admins.
    """

    unknown = sorted(set(patch) - UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(unknown)}")

    changes: Dict[str, Any] = {}
    for field, value in patch.items():
        if field == "assigned_to":
            if not can_reassign_lead(actor):
                continue
            changes[field] = _coerce_owner(value)
        elif field in ("name", "phone"):
            changes[field] = require_text(field, value)
        elif field == "email":
            changes[field] = _normalize_email(value)
        elif field == "source":
            changes[field] = parse_enum(LeadSource, field, value)
        elif field == "call_status":
            changes[field] = parse_enum(CallStatus, field, value)
        elif field == "lead_status":
            changes[field] = parse_enum(LeadStatus, field, value)
        elif field == "follow_up_date":
            changes[field] = _coerce_timestamp(field, value)
        elif field == "remarks":
            changes[field] = "" if value is None else str(value)
    return changes


def apply_update(
    lead: Lead, patch: Mapping[str, Any], actor: Actor, now: datetime
) -> Tuple[Lead, Dict[str, Any]]:
    """
    Merge `patch` into `lead` and refresh updated_at.

    Returns the new lead and the field changes to persist (always including
    updated_at, so an empty patch still advances it).
    """

    changes = sanitize_patch(patch, actor)
    changes["updated_at"] = now
    return replace(lead, **changes), changes


def apply_call_disposition(
    lead: Lead,
    call: CallDispositionInput,
    actor: Actor,
    call_id: UUID,
    now: datetime,
) -> Tuple[Lead, Dict[str, Any], CallHistory]:
    """
    Apply one recorded call to `lead`.

    Returns (updated lead, field changes to persist, call history record).
    The changes and the history record must be committed together.
    """

    status = resolve_call_status(call.call_status)
    disposition = resolve_disposition(call.lead_progress)
    remarks = call.remarks if call.remarks is not None else ""

    changes: Dict[str, Any] = {
        "call_status": status,
        "lead_status": resolve_lead_status(call.lead_progress, lead.lead_status),
        # Stamped even for unanswered calls: it records the attempt time.
        "last_contacted_date": now,
        "remarks": remarks,
        "updated_at": now,
    }
    follow_up = _coerce_timestamp("follow_up_date", call.follow_up_date)
    if follow_up is not None:
        changes["follow_up_date"] = follow_up

    history = CallHistory(
        call_id=call_id,
        lead_id=lead.lead_id,
        user_id=actor.actor_id,
        date=now,
        status=status,
        disposition=disposition,
        remarks=remarks,
    )
    return replace(lead, **changes), changes, history


__all__ = [
    "CALL_STATUS_BY_TAG",
    "DISPOSITION_BY_PROGRESS",
    "LEAD_STATUS_BY_DISPOSITION",
    "UPDATABLE_FIELDS",
    "resolve_call_status",
    "resolve_disposition",
    "resolve_lead_status",
    "new_lead",
    "sanitize_patch",
    "apply_update",
    "apply_call_disposition",
]
