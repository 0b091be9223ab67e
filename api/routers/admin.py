"""
Admin API Endpoints.

Reporting reads for the admin dashboard. Every endpoint is admin-only.
"""

from typing import List

from fastapi import APIRouter, Depends

from api.models import (
    DashboardStatsResponse,
    ErrorResponse,
    LeadResponse,
    MonthlyTrendResponse,
    SourceConversionResponse,
    SourceCountResponse,
    TeamMemberResponse,
)
from api.security import get_current_actor
from domain.access_policy import Actor
from services import directory_service, reporting_service

router = APIRouter(responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}})


@router.get("/admin/dashboard-stats", response_model=DashboardStatsResponse, summary="Dashboard Statistics")
def dashboard_stats(actor: Actor = Depends(get_current_actor)):
    """Totals, conversion rate (`"N%"`) and average hours to first contact (`"Nh"`)."""
    return DashboardStatsResponse.from_domain(reporting_service.dashboard_stats(actor))


@router.get("/admin/team-performance", response_model=List[TeamMemberResponse], summary="Team Performance")
def team_performance(actor: Actor = Depends(get_current_actor)):
    return [TeamMemberResponse.from_domain(row) for row in reporting_service.team_performance(actor)]


@router.get("/admin/unassigned-leads", response_model=List[LeadResponse], summary="Unassigned Leads")
def unassigned_leads(actor: Actor = Depends(get_current_actor)):
    return [LeadResponse.from_domain(lead) for lead in directory_service.unassigned_leads(actor)]


@router.get("/admin/lead-sources", response_model=List[SourceCountResponse], summary="Lead Sources")
def lead_sources(actor: Actor = Depends(get_current_actor)):
    return [SourceCountResponse.from_domain(row) for row in reporting_service.source_distribution(actor)]


@router.get(
    "/admin/conversion-by-source",
    response_model=List[SourceConversionResponse],
    summary="Conversion by Source",
)
def conversion_by_source(actor: Actor = Depends(get_current_actor)):
    return [SourceConversionResponse.from_domain(row) for row in reporting_service.conversion_by_source(actor)]


@router.get("/admin/monthly-trends", response_model=List[MonthlyTrendResponse], summary="Monthly Trends")
def monthly_trends(actor: Actor = Depends(get_current_actor)):
    """Leads created and converted per month over the trailing six months, keyed `YYYY-MM`."""
    return [MonthlyTrendResponse.from_domain(row) for row in reporting_service.monthly_trends(actor)]
