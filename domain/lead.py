"""
Domain: Lead and CallHistory entities.

Contract excerpts implemented here:
- A Lead is uniquely identified by lead_id (UUID) and is owned by the system;
  assigned_to is a non-owning reference to a User (None means unassigned).
- name, phone and email are required and non-empty; source is one of a fixed
  enumeration.
- call_status defaults to Pending, lead_status defaults to New.
- last_contacted_date is set only by recording a call.
- CallHistory records are append-only: created exactly once per recorded call,
  never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .errors import ValidationError
from .time import require_utc_timestamp


class LeadSource(str, Enum):
    WEBSITE = "Website"
    REFERRAL = "Referral"
    SOCIAL_MEDIA = "Social Media"
    EVENT = "Event"
    EMAIL_CAMPAIGN = "Email Campaign"
    OTHER = "Other"


class CallStatus(str, Enum):
    PENDING = "Pending"
    CONNECTED = "Connected"
    NOT_CONNECTED = "Not Connected"


class LeadStatus(str, Enum):
    NEW = "New"
    INTERESTED = "Interested"
    NOT_INTERESTED = "Not Interested"
    # Terminal in practice: no transition is defined out of it.
    ADMISSION_TAKEN = "Admission Taken"


class CallDisposition(str, Enum):
    INTERESTED = "Interested"
    NOT_INTERESTED = "Not Interested"
    ADMISSION_TAKEN = "Admission Taken"


def parse_enum(enum_type: type[Enum], field: str, value: object) -> Enum:
    """Coerce a raw value into `enum_type`, raising ValidationError when it is not a member."""

    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(f"{field} must be one of: {allowed}") from None


def require_text(field: str, value: object) -> str:
    """Return `value` stripped, raising ValidationError if it is missing or blank."""

    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


@dataclass(frozen=True, slots=True)
class NewLead:
    """Input for creating a lead. `assigned_to` is only honoured for admins."""

    name: str
    phone: str
    email: str
    source: str
    assigned_to: Optional[UUID] = None


@dataclass(frozen=True, slots=True)
class CallDispositionInput:
    """
    Raw outcome of one call attempt as reported by the agent.

    call_status: "connected" or anything else (treated as not connected)
    lead_progress: "interested" | "not_interested" | "admission_taken" | None
    """

    call_status: str
    lead_progress: Optional[str] = None
    follow_up_date: Optional[datetime] = None
    remarks: str = ""


@dataclass(frozen=True, slots=True)
class Lead:
    """
    Pure domain entity for a Lead.

    Immutability:
    - Frozen; state transitions return new instances (see domain.lifecycle).
    """

    lead_id: UUID
    name: str
    phone: str
    email: str
    source: LeadSource
    created_at: datetime
    updated_at: datetime
    call_status: CallStatus = CallStatus.PENDING
    lead_status: LeadStatus = LeadStatus.NEW
    follow_up_date: Optional[datetime] = None
    last_contacted_date: Optional[datetime] = None
    remarks: str = ""
    assigned_to: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("updated_at", self.updated_at)
        if self.follow_up_date is not None:
            require_utc_timestamp("follow_up_date", self.follow_up_date)
        if self.last_contacted_date is not None:
            require_utc_timestamp("last_contacted_date", self.last_contacted_date)

    @property
    def is_converted(self) -> bool:
        return self.lead_status is LeadStatus.ADMISSION_TAKEN

    @property
    def is_assigned(self) -> bool:
        return self.assigned_to is not None


@dataclass(frozen=True, slots=True)
class CallHistory:
    """Immutable record of a single call attempt against a lead."""

    call_id: UUID
    lead_id: UUID
    user_id: UUID
    date: datetime
    status: CallStatus
    disposition: Optional[CallDisposition] = None
    remarks: str = ""

    def __post_init__(self) -> None:
        require_utc_timestamp("date", self.date)
        if self.status is CallStatus.PENDING:
            raise ValueError("call history status must be Connected or Not Connected")


__all__ = [
    "LeadSource",
    "CallStatus",
    "LeadStatus",
    "CallDisposition",
    "NewLead",
    "CallDispositionInput",
    "Lead",
    "CallHistory",
    "parse_enum",
    "require_text",
]
