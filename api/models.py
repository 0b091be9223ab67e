"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Password hashes never appear in any response model.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.access_policy import Role
from domain.directory import (
    DashboardStats,
    LeadStats,
    MonthlyTrend,
    SourceConversion,
    SourceCount,
    TeamMemberPerformance,
)
from domain.lead import CallHistory, CallStatus, Lead, LeadSource, LeadStatus
from domain.user import User


def _assume_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# Lead Models
# ============================================================================

class LeadCreateRequest(BaseModel):
    """Request to create a lead. `assigned_to` is honoured for admins only."""
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    source: LeadSource
    assigned_to: Optional[UUID] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Asha Rao",
                "phone": "+91 98450 00000",
                "email": "asha@example.com",
                "source": "Website",
            }
        }
    )


class LeadUpdateRequest(BaseModel):
    """Partial lead edit. Only fields present in the request body are applied."""
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    source: Optional[LeadSource] = None
    call_status: Optional[CallStatus] = None
    lead_status: Optional[LeadStatus] = None
    follow_up_date: Optional[datetime] = None
    remarks: Optional[str] = None
    assigned_to: Optional[UUID] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("follow_up_date")
    @classmethod
    def follow_up_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _assume_utc(value)


class CallDispositionRequest(BaseModel):
    """Outcome of one call attempt."""
    call_status: str = Field(..., description="'connected' or 'not_connected'")
    lead_progress: Optional[str] = Field(
        None, description="'interested', 'not_interested' or 'admission_taken'; omit to keep the lead status"
    )
    follow_up_date: Optional[datetime] = None
    remarks: str = ""

    @field_validator("follow_up_date")
    @classmethod
    def follow_up_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _assume_utc(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "call_status": "connected",
                "lead_progress": "interested",
                "follow_up_date": "2025-01-08T10:00:00Z",
                "remarks": "Wants the brochure; call back next week",
            }
        }
    )


class LeadResponse(BaseModel):
    id: UUID
    name: str
    phone: str
    email: str
    source: LeadSource
    call_status: CallStatus
    lead_status: LeadStatus
    follow_up_date: Optional[datetime] = None
    last_contacted_date: Optional[datetime] = None
    remarks: str
    assigned_to: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, lead: Lead) -> "LeadResponse":
        return cls(
            id=lead.lead_id,
            name=lead.name,
            phone=lead.phone,
            email=lead.email,
            source=lead.source,
            call_status=lead.call_status,
            lead_status=lead.lead_status,
            follow_up_date=lead.follow_up_date,
            last_contacted_date=lead.last_contacted_date,
            remarks=lead.remarks,
            assigned_to=lead.assigned_to,
            created_at=lead.created_at,
            updated_at=lead.updated_at,
        )


class CallHistoryResponse(BaseModel):
    id: UUID
    lead_id: UUID
    user_id: UUID
    date: datetime
    status: str
    disposition: Optional[str] = None
    remarks: str

    @classmethod
    def from_domain(cls, call: CallHistory) -> "CallHistoryResponse":
        return cls(
            id=call.call_id,
            lead_id=call.lead_id,
            user_id=call.user_id,
            date=call.date,
            status=call.status.value,
            disposition=call.disposition.value if call.disposition else None,
            remarks=call.remarks,
        )


class LeadDetailResponse(BaseModel):
    lead: LeadResponse
    call_history: List[CallHistoryResponse]


class CallResultResponse(BaseModel):
    lead: LeadResponse
    call_history: CallHistoryResponse


class LeadStatsResponse(BaseModel):
    total_leads: int
    today_follow_ups: int
    connected_calls: int
    conversion_rate: int

    @classmethod
    def from_domain(cls, stats: LeadStats) -> "LeadStatsResponse":
        return cls(
            total_leads=stats.total_leads,
            today_follow_ups=stats.today_follow_ups,
            connected_calls=stats.connected_calls,
            conversion_rate=stats.conversion_rate,
        )


# ============================================================================
# User Models
# ============================================================================

class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    role: Role
    created_at: datetime

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(id=user.user_id, name=user.name, email=user.email, role=user.role, created_at=user.created_at)


class LoginResponse(UserResponse):
    token: str


class UserWithStatsResponse(UserResponse):
    leads: int
    conversions: int
    conversion_rate: int


class UserCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    role: Optional[Role] = None


class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[Role] = None

    model_config = ConfigDict(extra="forbid")


class AssignLeadsRequest(BaseModel):
    user_id: UUID
    lead_ids: List[UUID] = Field(default_factory=list)


class AssignLeadsResponse(BaseModel):
    message: str
    assigned: int


class MessageResponse(BaseModel):
    message: str


# ============================================================================
# Admin Reporting Models
# ============================================================================

class DashboardStatsResponse(BaseModel):
    total_leads: int
    conversions: int
    conversion_rate: str
    avg_response_time: str

    @classmethod
    def from_domain(cls, stats: DashboardStats) -> "DashboardStatsResponse":
        return cls(
            total_leads=stats.total_leads,
            conversions=stats.conversions,
            conversion_rate=stats.conversion_rate,
            avg_response_time=stats.avg_response_time,
        )


class TeamMemberResponse(BaseModel):
    id: UUID
    name: str
    email: str
    leads: int
    conversions: int
    conversion_rate: str

    @classmethod
    def from_domain(cls, row: TeamMemberPerformance) -> "TeamMemberResponse":
        return cls(
            id=row.user_id,
            name=row.name,
            email=row.email,
            leads=row.leads,
            conversions=row.conversions,
            conversion_rate=row.conversion_rate,
        )


class SourceCountResponse(BaseModel):
    source: LeadSource
    count: int

    @classmethod
    def from_domain(cls, row: SourceCount) -> "SourceCountResponse":
        return cls(source=row.source, count=row.count)


class SourceConversionResponse(BaseModel):
    source: LeadSource
    total: int
    converted: int
    rate: str

    @classmethod
    def from_domain(cls, row: SourceConversion) -> "SourceConversionResponse":
        return cls(source=row.source, total=row.total, converted=row.converted, rate=row.rate)


class MonthlyTrendResponse(BaseModel):
    month: str
    leads: int
    conversions: int

    @classmethod
    def from_domain(cls, row: MonthlyTrend) -> "MonthlyTrendResponse":
        return cls(month=row.month, leads=row.leads, conversions=row.conversions)


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str

    model_config = ConfigDict(json_schema_extra={"example": {"detail": "Not authorized"}})
