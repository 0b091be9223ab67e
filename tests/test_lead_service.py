"""
Tests for `services/lead_service.py` against the in-memory Supabase client.

Covers contract rules:
- Create / update / record call / delete enforce ownership and role rules.
- Non-admins get the same error for an unknown lead id as for a foreign lead.
- A call only commits while a non-admin still owns the lead.
- last_contacted_date is set if and only if a call has been recorded.
- A call disposition commits the lead change and history record together;
  a failed transaction leaves neither behind.
- Deleting a lead removes its call history.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

import pytest

from domain.errors import AuthorizationError, NotFoundError, PersistenceError, ValidationError
from domain.lead import CallDisposition, CallDispositionInput, CallStatus, LeadStatus, NewLead
from fakes import make_lead
from repositories import lead_repository
from services import lead_service

MISSING = UUID(int=404)


@pytest.fixture
def own_lead(db, agent):
    return db.add_lead(make_lead(1, assigned_to=agent.user_id))


@pytest.fixture
def foreign_lead(db, other_agent):
    return db.add_lead(make_lead(2, assigned_to=other_agent.user_id))


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


def test_create_lead_persists_defaults(db, agent_actor, now) -> None:
    lead = lead_service.create_lead(
        NewLead(name="Asha", phone="555", email="ASHA@example.com", source="Website"),
        agent_actor,
        now=now,
    )

    assert lead.assigned_to == agent_actor.actor_id
    assert lead.call_status is CallStatus.PENDING
    assert lead.lead_status is LeadStatus.NEW
    assert lead.last_contacted_date is None

    row = db.lead_row(lead.lead_id)
    assert row["email"] == "asha@example.com"
    assert row["assigned_to"] == str(agent_actor.actor_id)


def test_admin_creates_lead_for_agent(admin_actor, agent, now) -> None:
    lead = lead_service.create_lead(
        NewLead(name="A", phone="1", email="a@x.io", source="Event", assigned_to=agent.user_id),
        admin_actor,
        now=now,
    )
    assert lead.assigned_to == agent.user_id


def test_admin_cannot_assign_to_unknown_user(admin_actor, now) -> None:
    with pytest.raises(ValidationError):
        lead_service.create_lead(
            NewLead(name="A", phone="1", email="a@x.io", source="Event", assigned_to=MISSING),
            admin_actor,
            now=now,
        )


def test_create_rejects_blank_fields(db, agent_actor) -> None:
    with pytest.raises(ValidationError):
        lead_service.create_lead(NewLead(name="", phone="1", email="a@x.io", source="Event"), agent_actor)
    assert db.tables["leads"] == []


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


def test_agent_updates_own_lead(own_lead, agent_actor, now) -> None:
    updated = lead_service.update_lead(
        own_lead.lead_id, {"remarks": "Asked for fees", "lead_status": "Interested"}, agent_actor, now=now
    )
    assert updated.remarks == "Asked for fees"
    assert updated.lead_status is LeadStatus.INTERESTED
    assert updated.updated_at == now


def test_agent_cannot_update_foreign_lead(db, foreign_lead, agent_actor) -> None:
    before = dict(db.lead_row(foreign_lead.lead_id))
    with pytest.raises(AuthorizationError):
        lead_service.update_lead(foreign_lead.lead_id, {"remarks": "mine now"}, agent_actor)
    assert db.lead_row(foreign_lead.lead_id) == before


def test_agent_reassignment_is_silently_ignored(own_lead, other_agent, agent_actor, now) -> None:
    updated = lead_service.update_lead(
        own_lead.lead_id, {"assigned_to": other_agent.user_id, "remarks": "note"}, agent_actor, now=now
    )
    assert updated.assigned_to == agent_actor.actor_id
    assert updated.remarks == "note"


def test_admin_reassigns_lead(own_lead, other_agent, admin_actor, now) -> None:
    updated = lead_service.update_lead(own_lead.lead_id, {"assigned_to": other_agent.user_id}, admin_actor, now=now)
    assert updated.assigned_to == other_agent.user_id


def test_empty_patch_advances_updated_at(own_lead, agent_actor, now) -> None:
    first = lead_service.update_lead(own_lead.lead_id, {}, agent_actor, now=now)
    second = lead_service.update_lead(own_lead.lead_id, {}, agent_actor, now=now + timedelta(minutes=1))

    assert first.updated_at == now
    assert second.updated_at > first.updated_at
    assert second.name == own_lead.name


def test_update_missing_lead(admin_actor) -> None:
    with pytest.raises(NotFoundError):
        lead_service.update_lead(MISSING, {"remarks": "x"}, admin_actor)


def test_update_cannot_set_last_contacted(own_lead, agent_actor, now) -> None:
    with pytest.raises(ValidationError):
        lead_service.update_lead(own_lead.lead_id, {"last_contacted_date": now}, agent_actor)


# ---------------------------------------------------------------------------
# record call
# ---------------------------------------------------------------------------


def test_record_call_updates_lead_and_appends_history(db, own_lead, agent_actor, now) -> None:
    follow_up = now + timedelta(days=3)
    result = lead_service.record_call(
        own_lead.lead_id,
        CallDispositionInput(
            call_status="connected", lead_progress="interested", follow_up_date=follow_up, remarks="Call back"
        ),
        agent_actor,
        now=now,
    )

    assert result.lead.call_status is CallStatus.CONNECTED
    assert result.lead.lead_status is LeadStatus.INTERESTED
    assert result.lead.last_contacted_date == now
    assert result.lead.follow_up_date == follow_up
    assert result.call_history.disposition is CallDisposition.INTERESTED
    assert result.call_history.user_id == agent_actor.actor_id

    calls = db.calls_for(own_lead.lead_id)
    assert len(calls) == 1
    assert calls[0]["status"] == "Connected"
    assert calls[0]["disposition"] == "Interested"


def test_last_contacted_set_iff_history_exists(db, own_lead, agent_actor, now) -> None:
    assert db.lead_row(own_lead.lead_id)["last_contacted_date"] is None
    assert db.calls_for(own_lead.lead_id) == []

    lead_service.record_call(own_lead.lead_id, CallDispositionInput(call_status="not_connected"), agent_actor, now=now)

    assert db.lead_row(own_lead.lead_id)["last_contacted_date"] is not None
    assert len(db.calls_for(own_lead.lead_id)) == 1


def test_record_call_without_progress_keeps_status(db, agent, agent_actor, now) -> None:
    lead = db.add_lead(make_lead(3, assigned_to=agent.user_id, lead_status=LeadStatus.INTERESTED))
    result = lead_service.record_call(
        lead.lead_id, CallDispositionInput(call_status="not_connected"), agent_actor, now=now
    )

    assert result.lead.lead_status is LeadStatus.INTERESTED
    assert result.lead.call_status is CallStatus.NOT_CONNECTED
    assert result.call_history.disposition is None


def test_admission_taken_converts(own_lead, agent_actor, now) -> None:
    result = lead_service.record_call(
        own_lead.lead_id,
        CallDispositionInput(call_status="connected", lead_progress="admission_taken"),
        agent_actor,
        now=now,
    )
    assert result.lead.is_converted


def test_agent_cannot_call_foreign_lead(db, foreign_lead, agent_actor) -> None:
    with pytest.raises(AuthorizationError):
        lead_service.record_call(foreign_lead.lead_id, CallDispositionInput(call_status="connected"), agent_actor)
    assert db.calls_for(foreign_lead.lead_id) == []
    assert db.rpc_calls == []


def test_agent_cannot_call_unassigned_lead(db, agent_actor) -> None:
    lead = db.add_lead(make_lead(4))
    with pytest.raises(AuthorizationError):
        lead_service.record_call(lead.lead_id, CallDispositionInput(call_status="connected"), agent_actor)


def test_failed_transaction_leaves_nothing(db, own_lead, agent_actor, now) -> None:
    before = dict(db.lead_row(own_lead.lead_id))
    db.fail_on("rpc:record_call_disposition")

    with pytest.raises(PersistenceError):
        lead_service.record_call(
            own_lead.lead_id,
            CallDispositionInput(call_status="connected", lead_progress="admission_taken"),
            agent_actor,
            now=now,
        )

    assert db.lead_row(own_lead.lead_id) == before
    assert db.calls_for(own_lead.lead_id) == []


def test_record_call_missing_lead(admin_actor) -> None:
    with pytest.raises(NotFoundError):
        lead_service.record_call(MISSING, CallDispositionInput(call_status="connected"), admin_actor)


def test_agent_cannot_tell_missing_from_foreign(foreign_lead, agent_actor) -> None:
    call = CallDispositionInput(call_status="connected")
    attempts = [
        lambda lead_id: lead_service.get_lead_detail(lead_id, agent_actor),
        lambda lead_id: lead_service.update_lead(lead_id, {"remarks": "x"}, agent_actor),
        lambda lead_id: lead_service.record_call(lead_id, call, agent_actor),
    ]
    for attempt in attempts:
        with pytest.raises(AuthorizationError) as missing:
            attempt(MISSING)
        with pytest.raises(AuthorizationError) as foreign:
            attempt(foreign_lead.lead_id)
        assert str(missing.value) == str(foreign.value)


def test_call_refused_when_lead_reassigned_before_commit(
    monkeypatch, db, own_lead, other_agent, agent_actor, now
) -> None:
    # The agent read the lead while it was still theirs; it moved before the write.
    monkeypatch.setattr(lead_repository, "get_lead_by_id", lambda lead_id: own_lead)
    db.lead_row(own_lead.lead_id)["assigned_to"] = str(other_agent.user_id)

    with pytest.raises(AuthorizationError):
        lead_service.record_call(
            own_lead.lead_id, CallDispositionInput(call_status="connected"), agent_actor, now=now
        )

    assert db.calls_for(own_lead.lead_id) == []
    assert db.lead_row(own_lead.lead_id)["call_status"] == CallStatus.PENDING.value
    assert db.rpc_calls[0][1]["p_expected_owner"] == str(agent_actor.actor_id)


def test_admin_call_has_no_owner_condition(db, own_lead, admin_actor, now) -> None:
    result = lead_service.record_call(
        own_lead.lead_id, CallDispositionInput(call_status="connected"), admin_actor, now=now
    )

    assert result.lead.assigned_to == own_lead.assigned_to
    assert db.rpc_calls[0][1]["p_expected_owner"] is None


# ---------------------------------------------------------------------------
# delete and detail
# ---------------------------------------------------------------------------


def test_delete_cascades_call_history(db, own_lead, agent_actor, admin_actor, now) -> None:
    lead_service.record_call(own_lead.lead_id, CallDispositionInput(call_status="connected"), agent_actor, now=now)
    assert db.calls_for(own_lead.lead_id)

    lead_service.delete_lead(own_lead.lead_id, admin_actor)

    assert db.lead_row(own_lead.lead_id) is None
    assert db.calls_for(own_lead.lead_id) == []


def test_agent_cannot_delete(db, own_lead, agent_actor) -> None:
    with pytest.raises(AuthorizationError):
        lead_service.delete_lead(own_lead.lead_id, agent_actor)
    assert db.lead_row(own_lead.lead_id) is not None


def test_delete_missing_lead(admin_actor) -> None:
    with pytest.raises(NotFoundError):
        lead_service.delete_lead(MISSING, admin_actor)


def test_lead_detail_history_newest_first(db, own_lead, agent_actor, now) -> None:
    lead_service.record_call(own_lead.lead_id, CallDispositionInput(call_status="not_connected"), agent_actor, now=now)
    later = now + timedelta(hours=2)
    lead_service.record_call(
        own_lead.lead_id, CallDispositionInput(call_status="connected", lead_progress="interested"), agent_actor, now=later
    )

    detail = lead_service.get_lead_detail(own_lead.lead_id, agent_actor)

    assert detail.lead.lead_id == own_lead.lead_id
    assert [call.date for call in detail.call_history] == [later, now]


def test_lead_detail_hidden_from_other_agents(foreign_lead, agent_actor) -> None:
    with pytest.raises(AuthorizationError):
        lead_service.get_lead_detail(foreign_lead.lead_id, agent_actor)


def test_persistence_errors_are_wrapped(db, own_lead, admin_actor) -> None:
    db.fail_on("delete:leads")
    with pytest.raises(PersistenceError):
        lead_service.delete_lead(own_lead.lead_id, admin_actor)
    assert db.lead_row(own_lead.lead_id) is not None
