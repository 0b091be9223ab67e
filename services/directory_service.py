"""
Lead directory service.

Read-side listing and bulk assignment. Ownership scoping is resolved in
domain.directory before anything reaches the repository; every call reads
current state from the store.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from config import get_settings
from domain import access_policy
from domain.access_policy import Actor
from domain.directory import (
    LeadFilters,
    LeadStats,
    build_lead_query,
    scope_for_actor,
    summarize_leads,
    todays_follow_up_query,
    unassigned_query,
)
from domain.errors import NotFoundError
from domain.lead import Lead
from domain.time import utc_now
from repositories import lead_repository, user_repository
from services.lead_service import authorize

logger = logging.getLogger(__name__)


def list_leads(filters: LeadFilters, actor: Actor) -> List[Lead]:
    """
    List leads, newest first.

    Non-admins without an explicit assignee filter only see their own leads.
    """

    query = build_lead_query(
        filters,
        actor,
        restrict_assignee_filter=get_settings().restrict_assignee_filter,
    )
    return lead_repository.query_leads(query)


def todays_follow_ups(actor: Actor, *, now: Optional[datetime] = None) -> List[Lead]:
    """Leads due for follow-up today (UTC), earliest first."""

    return lead_repository.query_leads(todays_follow_up_query(actor, now or utc_now()))


def lead_stats(actor: Actor, *, now: Optional[datetime] = None) -> LeadStats:
    """Dashboard counts over the actor's leads (all leads for admins)."""

    leads = lead_repository.list_leads(assigned_to=scope_for_actor(actor))
    return summarize_leads(leads, now or utc_now())


def unassigned_leads(actor: Actor) -> List[Lead]:
    authorize(access_policy.check("view_reports", actor), actor, "unassigned_leads")
    return lead_repository.query_leads(unassigned_query())


def assign_leads_bulk(
    user_id: UUID,
    lead_ids: Iterable[UUID],
    actor: Actor,
    *,
    now: Optional[datetime] = None,
) -> int:
    """
    Assign every existing lead in `lead_ids` to `user_id`. Admin only.

    Unknown lead ids are skipped without failing the batch.

    Returns:
        Number of leads actually reassigned

    Raises:
        AuthorizationError: the actor is not an admin
        NotFoundError: `user_id` is not an existing user
    """

    authorize(access_policy.can_assign_leads_bulk(actor), actor, "assign_leads_bulk", user_id)
    if user_repository.get_user_by_id(user_id) is None:
        raise NotFoundError("User", user_id)

    ids = list(dict.fromkeys(lead_ids))
    assigned = lead_repository.assign_leads(ids, user_id, now or utc_now())
    logger.info(
        "Leads assigned",
        extra={
            "user_id": str(user_id),
            "actor_id": str(actor.actor_id),
            "requested": len(ids),
            "assigned": assigned,
        },
    )
    return assigned


__all__ = [
    "list_leads",
    "todays_follow_ups",
    "lead_stats",
    "unassigned_leads",
    "assign_leads_bulk",
]
