"""
Tests for `domain/lead.py`.

Covers contract rules:
- Timestamps are required and must be UTC.
- A new Lead defaults to Pending / New with no contact history.
- Leads are immutable; transitions build new instances.
- CallHistory records are never Pending.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest

from domain.errors import ValidationError
from domain.lead import (
    CallHistory,
    CallStatus,
    Lead,
    LeadSource,
    LeadStatus,
    parse_enum,
    require_text,
)

T0 = datetime(2025, 1, 1, 12, tzinfo=timezone.utc)


def _lead(**overrides) -> Lead:
    values = dict(
        lead_id=UUID(int=1),
        name="Asha Rao",
        phone="555-0101",
        email="asha@example.com",
        source=LeadSource.REFERRAL,
        created_at=T0,
        updated_at=T0,
    )
    values.update(overrides)
    return Lead(**values)


def test_lead_defaults() -> None:
    lead = _lead()

    assert lead.call_status is CallStatus.PENDING
    assert lead.lead_status is LeadStatus.NEW
    assert lead.follow_up_date is None
    assert lead.last_contacted_date is None
    assert lead.remarks == ""
    assert lead.assigned_to is None
    assert not lead.is_assigned
    assert not lead.is_converted


def test_lead_timestamps_must_be_utc() -> None:
    with pytest.raises(ValueError):
        _lead(created_at=datetime(2025, 1, 1, 12))

    ist = timezone(timedelta(hours=5, minutes=30))
    with pytest.raises(ValueError):
        _lead(follow_up_date=datetime(2025, 1, 2, 9, tzinfo=ist))


def test_lead_is_immutable() -> None:
    lead = _lead()
    with pytest.raises(FrozenInstanceError):
        lead.name = "Someone else"  # type: ignore[misc]


def test_admission_taken_counts_as_converted() -> None:
    assert _lead(lead_status=LeadStatus.ADMISSION_TAKEN).is_converted
    assert not _lead(lead_status=LeadStatus.INTERESTED).is_converted


def test_call_history_rejects_pending_status() -> None:
    with pytest.raises(ValueError):
        CallHistory(
            call_id=UUID(int=9),
            lead_id=UUID(int=1),
            user_id=UUID(int=2),
            date=T0,
            status=CallStatus.PENDING,
        )


def test_parse_enum_reports_allowed_values() -> None:
    assert parse_enum(LeadSource, "source", "Social Media") is LeadSource.SOCIAL_MEDIA
    with pytest.raises(ValidationError, match="source must be one of"):
        parse_enum(LeadSource, "source", "Billboard")


def test_require_text_strips_and_rejects_blank() -> None:
    assert require_text("name", "  Asha ") == "Asha"
    with pytest.raises(ValidationError, match="name is required"):
        require_text("name", "   ")
    with pytest.raises(ValidationError):
        require_text("name", None)
