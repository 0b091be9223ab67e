"""
Leads API Endpoints.

Endpoints for listing, creating, editing and deleting leads, and for recording
call outcomes against them.
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from api.models import (
    CallDispositionRequest,
    CallHistoryResponse,
    CallResultResponse,
    ErrorResponse,
    LeadCreateRequest,
    LeadDetailResponse,
    LeadResponse,
    LeadStatsResponse,
    LeadUpdateRequest,
    MessageResponse,
)
from api.security import get_current_actor
from domain.access_policy import Actor
from domain.directory import LeadFilters
from domain.lead import CallDispositionInput, CallStatus, LeadStatus, NewLead
from services import directory_service, lead_service

router = APIRouter(responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}})


@router.get(
    "/leads",
    response_model=List[LeadResponse],
    summary="List Leads",
    description="List leads with optional search and filters, newest first.",
)
def list_leads(
    search: Optional[str] = Query(None, description="Case-insensitive match on name, phone or email"),
    call_status: Optional[CallStatus] = Query(None),
    lead_status: Optional[LeadStatus] = Query(None),
    follow_up_date: Optional[date] = Query(None, description="Calendar day (UTC)"),
    assigned_to: Optional[UUID] = Query(None),
    actor: Actor = Depends(get_current_actor),
):
    """
    List leads.

    Agents see only their own leads unless they filter by an assignee.
    Admins see every lead.

    **Example usage:**
    - Search: `GET /api/v1/leads?search=rao`
    - Due on a day: `GET /api/v1/leads?follow_up_date=2025-01-08`
    - Combine filters: `GET /api/v1/leads?call_status=Connected&lead_status=Interested`
    """
    filters = LeadFilters(
        search=search,
        call_status=call_status,
        lead_status=lead_status,
        follow_up_date=follow_up_date,
        assigned_to=assigned_to,
    )
    leads = directory_service.list_leads(filters, actor)
    return [LeadResponse.from_domain(lead) for lead in leads]


@router.get(
    "/leads/today-followups",
    response_model=List[LeadResponse],
    summary="Today's Follow-ups",
)
def todays_follow_ups(actor: Actor = Depends(get_current_actor)):
    """Leads with a follow-up scheduled today (UTC), earliest first."""
    return [LeadResponse.from_domain(lead) for lead in directory_service.todays_follow_ups(actor)]


@router.get("/leads/stats", response_model=LeadStatsResponse, summary="Lead Statistics")
def lead_stats(actor: Actor = Depends(get_current_actor)):
    return LeadStatsResponse.from_domain(directory_service.lead_stats(actor))


@router.get("/leads/{lead_id}", response_model=LeadDetailResponse, summary="Lead Detail")
def get_lead(lead_id: UUID, actor: Actor = Depends(get_current_actor)):
    """A lead together with its call history, newest call first."""
    detail = lead_service.get_lead_detail(lead_id, actor)
    return LeadDetailResponse(
        lead=LeadResponse.from_domain(detail.lead),
        call_history=[CallHistoryResponse.from_domain(call) for call in detail.call_history],
    )


@router.post(
    "/leads",
    response_model=LeadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Lead",
)
def create_lead(request: LeadCreateRequest, actor: Actor = Depends(get_current_actor)):
    lead = lead_service.create_lead(
        NewLead(
            name=request.name,
            phone=request.phone,
            email=request.email,
            source=request.source.value,
            assigned_to=request.assigned_to,
        ),
        actor,
    )
    return LeadResponse.from_domain(lead)


@router.put("/leads/{lead_id}", response_model=LeadResponse, summary="Update Lead")
def update_lead(lead_id: UUID, request: LeadUpdateRequest, actor: Actor = Depends(get_current_actor)):
    """
    Apply a partial edit. Only the fields present in the body change.

    A reassignment (`assigned_to`) from a non-admin is ignored.
    """
    patch = request.model_dump(exclude_unset=True)
    return LeadResponse.from_domain(lead_service.update_lead(lead_id, patch, actor))


@router.post("/leads/{lead_id}/call", response_model=CallResultResponse, summary="Record Call")
def record_call(lead_id: UUID, request: CallDispositionRequest, actor: Actor = Depends(get_current_actor)):
    """
    Record the outcome of a call.

    **Effects:**
    - `call_status` becomes Connected or Not Connected
    - `lead_progress` moves the lead status; omitted leaves it unchanged
    - last contacted date is stamped, remarks overwritten
    - one call history record is appended
    """
    result = lead_service.record_call(
        lead_id,
        CallDispositionInput(
            call_status=request.call_status,
            lead_progress=request.lead_progress,
            follow_up_date=request.follow_up_date,
            remarks=request.remarks,
        ),
        actor,
    )
    return CallResultResponse(
        lead=LeadResponse.from_domain(result.lead),
        call_history=CallHistoryResponse.from_domain(result.call_history),
    )


@router.delete("/leads/{lead_id}", response_model=MessageResponse, summary="Delete Lead")
def delete_lead(lead_id: UUID, actor: Actor = Depends(get_current_actor)):
    lead_service.delete_lead(lead_id, actor)
    return MessageResponse(message="Lead deleted successfully")
