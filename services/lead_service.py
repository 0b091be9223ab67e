"""
Lead lifecycle service.

Handles:
- Creating, editing and deleting leads
- Recording call dispositions (lead update + call history, all-or-nothing)
- Lead detail reads with call history

Every operation takes the acting identity explicitly; authorization is decided
by domain.access_policy and state transitions by domain.lifecycle. This module
only sequences reads, decisions and writes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional
from uuid import UUID, uuid4

from domain import access_policy
from domain.access_policy import Actor, Decision
from domain.errors import NotFoundError, ValidationError
from domain.lead import CallDispositionInput, CallHistory, Lead, NewLead
from domain.lifecycle import apply_call_disposition, apply_update, new_lead
from domain.time import utc_now
from repositories import call_history_repository, lead_repository, user_repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CallResult:
    """Outcome of recording a call: the updated lead and the new history record."""

    lead: Lead
    call_history: CallHistory


@dataclass(frozen=True, slots=True)
class LeadDetail:
    lead: Lead
    call_history: List[CallHistory]


def authorize(decision: Decision, actor: Actor, operation: str, resource_id: object = None) -> None:
    """Enforce a policy decision, logging the internal reason for denials."""

    if not decision.allowed:
        logger.info(
            f"Denied {operation}",
            extra={
                "operation": operation,
                "actor_id": str(actor.actor_id),
                "role": actor.role.value,
                "resource_id": str(resource_id) if resource_id is not None else None,
                "reason": decision.reason.value if decision.reason else None,
            },
        )
    access_policy.enforce(decision)


def _authorized_lead(
    lead_id: UUID,
    actor: Actor,
    operation: str,
    policy: Callable[[Actor, Optional[UUID]], Decision],
) -> Lead:
    """
    Load a lead the actor may act on.

    A missing lead is judged as an unassigned one, so a non-admin gets the same
    AuthorizationError for an unknown id as for someone else's lead. Only
    admins see NotFoundError.
    """

    lead = lead_repository.get_lead_by_id(lead_id)
    authorize(policy(actor, lead.assigned_to if lead is not None else None), actor, operation, lead_id)
    if lead is None:
        raise NotFoundError("Lead", lead_id)
    return lead


def _require_owner_exists(owner_id: Optional[UUID]) -> None:
    if owner_id is not None and user_repository.get_user_by_id(owner_id) is None:
        raise ValidationError("assigned_to does not reference an existing user")


def create_lead(data: NewLead, actor: Actor, *, now: Optional[datetime] = None) -> Lead:
    """
    Create a lead owned by the actor (or, for admins, by an explicit owner).

    Raises:
        ValidationError: blank name/phone/email, unknown source, or unknown owner
    """

    lead = new_lead(data, actor, uuid4(), now or utc_now())
    if lead.assigned_to != actor.actor_id:
        _require_owner_exists(lead.assigned_to)

    stored = lead_repository.insert_lead(lead)
    logger.info(
        "Lead created",
        extra={"lead_id": str(stored.lead_id), "actor_id": str(actor.actor_id), "assigned_to": str(stored.assigned_to)},
    )
    return stored


def update_lead(
    lead_id: UUID,
    patch: Mapping[str, Any],
    actor: Actor,
    *,
    now: Optional[datetime] = None,
) -> Lead:
    """
    Merge editable fields into a lead.

    Non-admins cannot reassign: an assigned_to in their patch is dropped.

    Raises:
        NotFoundError: the lead does not exist (admins only)
        AuthorizationError: the actor may not edit this lead, or a non-admin
            named an unknown id
        ValidationError: unknown, read-only or malformed fields
    """

    lead = _authorized_lead(lead_id, actor, "update_lead", access_policy.can_mutate_lead)

    updated, changes = apply_update(lead, patch, actor, now or utc_now())
    if "assigned_to" in changes:
        _require_owner_exists(changes["assigned_to"])

    stored = lead_repository.update_lead(lead_id, changes)
    if stored is None:
        raise NotFoundError("Lead", lead_id)
    logger.info(
        "Lead updated",
        extra={"lead_id": str(lead_id), "actor_id": str(actor.actor_id), "fields": sorted(changes)},
    )
    return stored


def record_call(
    lead_id: UUID,
    call: CallDispositionInput,
    actor: Actor,
    *,
    now: Optional[datetime] = None,
) -> CallResult:
    """
    Record one call attempt against a lead.

    Process:
    1. Load the lead and check the actor may mutate it
    2. Compute the transition (call status, lead status, timestamps, remarks)
    3. Commit the lead changes and the call history record in one transaction,
       provided a non-admin still owns the lead

    Raises:
        NotFoundError: an admin named a lead that does not exist (or vanished
            before commit)
        AuthorizationError: the actor may not call this lead, including a
            non-admin whose lead was deleted or reassigned before commit
        PersistenceError: the transaction failed; nothing was written
    """

    lead = _authorized_lead(lead_id, actor, "record_call", access_policy.can_mutate_lead)

    _, changes, history = apply_call_disposition(lead, call, actor, uuid4(), now or utc_now())

    # Admins may call any lead; anyone else only while it is still theirs at commit.
    expected_owner = None if actor.is_admin else actor.actor_id
    result = call_history_repository.record_call_atomic(lead_id, changes, history, expected_owner)
    if result is None:
        # Deleted or reassigned since it was read.
        authorize(access_policy.can_mutate_lead(actor, None), actor, "record_call", lead_id)
        raise NotFoundError("Lead", lead_id)

    stored_lead, stored_call = result
    logger.info(
        "Call recorded",
        extra={
            "lead_id": str(lead_id),
            "actor_id": str(actor.actor_id),
            "call_status": stored_call.status.value,
            "disposition": stored_call.disposition.value if stored_call.disposition else None,
        },
    )
    return CallResult(lead=stored_lead, call_history=stored_call)


def delete_lead(lead_id: UUID, actor: Actor) -> None:
    """
    Delete a lead and, by cascade, its call history. Admin only.

    Raises:
        AuthorizationError: the actor is not an admin
        NotFoundError: the lead does not exist
    """

    authorize(access_policy.can_delete_lead(actor), actor, "delete_lead", lead_id)
    if not lead_repository.delete_lead(lead_id):
        raise NotFoundError("Lead", lead_id)
    logger.info("Lead deleted", extra={"lead_id": str(lead_id), "actor_id": str(actor.actor_id)})


def get_lead_detail(lead_id: UUID, actor: Actor) -> LeadDetail:
    """Lead plus its call history (newest first)."""

    lead = _authorized_lead(lead_id, actor, "view_lead", access_policy.can_view_lead)
    return LeadDetail(lead=lead, call_history=call_history_repository.list_call_history(lead_id))


__all__ = [
    "CallResult",
    "LeadDetail",
    "authorize",
    "create_lead",
    "update_lead",
    "record_call",
    "delete_lead",
    "get_lead_detail",
]
