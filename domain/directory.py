"""
Domain: lead directory rules (pure).

Read-side rules shared by listing and reporting:
- Ownership scoping: non-admins only ever see leads assigned to them unless
  they name an assignee explicitly.
- Follow-up filters match a whole UTC calendar day, [day, day + 1).
- Conversion rates: whole percent (rounded half up) for personal stats and
  user listings, one decimal place as a string for team and source
  breakdowns. Both are zero when there are no leads.
- Monthly trends bucket leads created since the first day of the month six
  months back, keyed "YYYY-MM".
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union
from uuid import UUID

from .access_policy import Actor
from .errors import AuthorizationError
from .lead import CallStatus, Lead, LeadSource, LeadStatus
from .time import day_window
from .user import User

TREND_MONTHS = 6


@dataclass(frozen=True, slots=True)
class LeadFilters:
    """Filters a caller may supply when listing leads. All optional."""

    search: Optional[str] = None
    call_status: Optional[CallStatus] = None
    lead_status: Optional[LeadStatus] = None
    follow_up_date: Optional[Union[date, datetime]] = None
    assigned_to: Optional[UUID] = None


@dataclass(frozen=True, slots=True)
class LeadQuery:
    """Resolved query handed to the repository."""

    search: Optional[str] = None
    call_status: Optional[CallStatus] = None
    lead_status: Optional[LeadStatus] = None
    follow_up_from: Optional[datetime] = None
    follow_up_until: Optional[datetime] = None
    assigned_to: Optional[UUID] = None
    unassigned_only: bool = False
    order_by: str = "created_at"
    descending: bool = True


def _as_day_start(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def scope_for_actor(actor: Actor, assigned_to: Optional[UUID] = None) -> Optional[UUID]:
    """Assignee to filter by: the explicit one if given, else the actor for non-admins."""

    if assigned_to is not None:
        return assigned_to
    return None if actor.is_admin else actor.actor_id


def build_lead_query(
    filters: LeadFilters,
    actor: Actor,
    *,
    restrict_assignee_filter: bool = False,
) -> LeadQuery:
    """
    Resolve caller filters into a repository query.

    With `restrict_assignee_filter`, a non-admin naming someone else's id is
    refused instead of being served that assignee's leads.
    """

    if (
        restrict_assignee_filter
        and not actor.is_admin
        and filters.assigned_to is not None
        and filters.assigned_to != actor.actor_id
    ):
        raise AuthorizationError("not_owner")

    follow_up_from = follow_up_until = None
    if filters.follow_up_date is not None:
        follow_up_from, follow_up_until = day_window(_as_day_start(filters.follow_up_date))

    search = filters.search.strip() if filters.search else None
    return LeadQuery(
        search=search or None,
        call_status=filters.call_status,
        lead_status=filters.lead_status,
        follow_up_from=follow_up_from,
        follow_up_until=follow_up_until,
        assigned_to=scope_for_actor(actor, filters.assigned_to),
    )


def todays_follow_up_query(actor: Actor, now: datetime) -> LeadQuery:
    start, end = day_window(now)
    return LeadQuery(
        follow_up_from=start,
        follow_up_until=end,
        assigned_to=scope_for_actor(actor),
        order_by="follow_up_date",
        descending=False,
    )


def unassigned_query() -> LeadQuery:
    return LeadQuery(unassigned_only=True)


# ---------------------------------------------------------------------------
# Rates
# ---------------------------------------------------------------------------


def conversion_rate_percent(converted: int, total: int) -> int:
    """Whole-number percentage, rounded half up. 0 when total is 0."""

    if total <= 0:
        return 0
    ratio = Decimal(converted) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def conversion_rate_decimal(converted: int, total: int) -> str:
    """Percentage with one decimal place as a string. "0.0" when total is 0."""

    if total <= 0:
        return "0.0"
    ratio = Decimal(converted) * 100 / Decimal(total)
    return str(ratio.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _hours_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LeadStats:
    total_leads: int
    today_follow_ups: int
    connected_calls: int
    converted_leads: int
    conversion_rate: int


@dataclass(frozen=True, slots=True)
class DashboardStats:
    total_leads: int
    conversions: int
    conversion_rate: str
    avg_response_time: str


@dataclass(frozen=True, slots=True)
class UserLeadSummary:
    leads: int
    conversions: int
    conversion_rate: int


@dataclass(frozen=True, slots=True)
class TeamMemberPerformance:
    user_id: UUID
    name: str
    email: str
    leads: int
    conversions: int
    conversion_rate: str


@dataclass(frozen=True, slots=True)
class SourceCount:
    source: LeadSource
    count: int


@dataclass(frozen=True, slots=True)
class SourceConversion:
    source: LeadSource
    total: int
    converted: int
    rate: str


@dataclass(frozen=True, slots=True)
class MonthlyTrend:
    month: str
    leads: int
    conversions: int


def summarize_leads(leads: Sequence[Lead], now: datetime) -> LeadStats:
    """Personal dashboard counts over an already-scoped set of leads."""

    start, end = day_window(now)
    total = len(leads)
    converted = sum(1 for lead in leads if lead.is_converted)
    return LeadStats(
        total_leads=total,
        today_follow_ups=sum(
            1 for lead in leads if lead.follow_up_date is not None and start <= lead.follow_up_date < end
        ),
        connected_calls=sum(1 for lead in leads if lead.call_status is CallStatus.CONNECTED),
        converted_leads=converted,
        conversion_rate=conversion_rate_percent(converted, total),
    )


def average_response_hours(leads: Iterable[Lead]) -> int:
    """Mean time from creation to last contact, in whole hours. 0 when nobody was contacted."""

    durations = [
        lead.last_contacted_date - lead.created_at
        for lead in leads
        if lead.last_contacted_date is not None
    ]
    if not durations:
        return 0
    total_seconds = Decimal(str(sum(durations, timedelta()).total_seconds()))
    return _hours_half_up(total_seconds / len(durations) / 3600)


def dashboard_stats(leads: Sequence[Lead]) -> DashboardStats:
    total = len(leads)
    converted = sum(1 for lead in leads if lead.is_converted)
    return DashboardStats(
        total_leads=total,
        conversions=converted,
        conversion_rate=f"{conversion_rate_percent(converted, total)}%",
        avg_response_time=f"{average_response_hours(leads)}h",
    )


def _leads_by_owner(leads: Iterable[Lead]) -> Dict[UUID, List[Lead]]:
    grouped: Dict[UUID, List[Lead]] = {}
    for lead in leads:
        if lead.assigned_to is not None:
            grouped.setdefault(lead.assigned_to, []).append(lead)
    return grouped


def user_lead_summary(user_id: UUID, leads: Iterable[Lead]) -> UserLeadSummary:
    owned = [lead for lead in leads if lead.assigned_to == user_id]
    converted = sum(1 for lead in owned if lead.is_converted)
    return UserLeadSummary(
        leads=len(owned),
        conversions=converted,
        conversion_rate=conversion_rate_percent(converted, len(owned)),
    )


def team_performance(users: Sequence[User], leads: Iterable[Lead]) -> List[TeamMemberPerformance]:
    by_owner = _leads_by_owner(leads)
    rows: List[TeamMemberPerformance] = []
    for user in users:
        owned = by_owner.get(user.user_id, [])
        converted = sum(1 for lead in owned if lead.is_converted)
        rows.append(
            TeamMemberPerformance(
                user_id=user.user_id,
                name=user.name,
                email=user.email,
                leads=len(owned),
                conversions=converted,
                conversion_rate=conversion_rate_decimal(converted, len(owned)),
            )
        )
    return rows


def source_distribution(leads: Iterable[Lead]) -> List[SourceCount]:
    counts = Counter(lead.source for lead in leads)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0].value))
    return [SourceCount(source=source, count=count) for source, count in ordered]


def conversion_by_source(leads: Iterable[Lead]) -> List[SourceConversion]:
    totals: Counter[LeadSource] = Counter()
    converted: Counter[LeadSource] = Counter()
    for lead in leads:
        totals[lead.source] += 1
        if lead.is_converted:
            converted[lead.source] += 1
    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0].value))
    return [
        SourceConversion(
            source=source,
            total=total,
            converted=converted[source],
            rate=conversion_rate_decimal(converted[source], total),
        )
        for source, total in ordered
    ]


def trailing_months_start(now: datetime, months: int = TREND_MONTHS) -> datetime:
    """First instant (UTC) of the calendar month `months` before the one containing `now`."""

    now = now.astimezone(timezone.utc)
    month_index = now.year * 12 + (now.month - 1) - months
    return datetime(month_index // 12, month_index % 12 + 1, 1, tzinfo=timezone.utc)


def month_key(value: datetime) -> str:
    value = value.astimezone(timezone.utc)
    return f"{value.year}-{value.month:02d}"


def monthly_trends(leads: Iterable[Lead], now: datetime, months: int = TREND_MONTHS) -> List[MonthlyTrend]:
    """Lead and conversion counts per month, oldest month first. Months without leads are omitted."""

    start = trailing_months_start(now, months)
    created: Counter[str] = Counter()
    conversions: Counter[str] = Counter()
    for lead in leads:
        if lead.created_at < start:
            continue
        key = month_key(lead.created_at)
        created[key] += 1
        if lead.is_converted:
            conversions[key] += 1
    return [
        MonthlyTrend(month=key, leads=created[key], conversions=conversions[key])
        for key in sorted(created)
    ]


__all__ = [
    "LeadFilters",
    "LeadQuery",
    "LeadStats",
    "DashboardStats",
    "UserLeadSummary",
    "TeamMemberPerformance",
    "SourceCount",
    "SourceConversion",
    "MonthlyTrend",
    "scope_for_actor",
    "build_lead_query",
    "todays_follow_up_query",
    "unassigned_query",
    "conversion_rate_percent",
    "conversion_rate_decimal",
    "summarize_leads",
    "average_response_hours",
    "dashboard_stats",
    "user_lead_summary",
    "team_performance",
    "source_distribution",
    "conversion_by_source",
    "trailing_months_start",
    "month_key",
    "monthly_trends",
]
