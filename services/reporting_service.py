"""
Admin reporting service.

Simple counts and rates over the current lead set. All reads are admin-only.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from domain import access_policy, directory
from domain.access_policy import Actor
from domain.directory import (
    DashboardStats,
    MonthlyTrend,
    SourceConversion,
    SourceCount,
    TeamMemberPerformance,
)
from domain.time import utc_now
from repositories import lead_repository, user_repository
from services.lead_service import authorize


def _require_admin(actor: Actor, operation: str) -> None:
    authorize(access_policy.check("view_reports", actor), actor, operation)


def dashboard_stats(actor: Actor) -> DashboardStats:
    _require_admin(actor, "dashboard_stats")
    return directory.dashboard_stats(lead_repository.list_leads())


def team_performance(actor: Actor) -> List[TeamMemberPerformance]:
    """Per-user assigned, converted and conversion rate (one decimal)."""

    _require_admin(actor, "team_performance")
    users = user_repository.list_users()
    return directory.team_performance(users, lead_repository.list_leads())


def source_distribution(actor: Actor) -> List[SourceCount]:
    _require_admin(actor, "source_distribution")
    return directory.source_distribution(lead_repository.list_leads())


def conversion_by_source(actor: Actor) -> List[SourceConversion]:
    _require_admin(actor, "conversion_by_source")
    return directory.conversion_by_source(lead_repository.list_leads())


def monthly_trends(actor: Actor, *, now: Optional[datetime] = None) -> List[MonthlyTrend]:
    """Leads and conversions per month over the trailing six calendar months."""

    _require_admin(actor, "monthly_trends")
    now = now or utc_now()
    since = directory.trailing_months_start(now)
    return directory.monthly_trends(lead_repository.list_leads(created_since=since), now)


__all__ = [
    "dashboard_stats",
    "team_performance",
    "source_distribution",
    "conversion_by_source",
    "monthly_trends",
]
