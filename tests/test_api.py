"""
Tests for the HTTP layer (`api/`).

Exercises routing, bearer-token authentication and the mapping of domain
errors onto status codes. Business rules are covered by the service tests.
"""

from __future__ import annotations

from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.security import create_access_token
from domain.lead import LeadStatus
from domain.user import User
from fakes import TEST_PASSWORD, make_lead


@pytest.fixture
def client(monkeypatch, db) -> TestClient:
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    return TestClient(app)


def _auth(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_login_returns_token_without_hash(client, agent) -> None:
    response = client.post("/api/v1/users/login", json={"email": "alex@example.com", "password": TEST_PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == str(agent.user_id)
    assert body["role"] == "user"
    assert body["token"]
    assert "password_hash" not in body

    profile = client.get("/api/v1/users/profile", headers={"Authorization": f"Bearer {body['token']}"})
    assert profile.status_code == 200
    assert profile.json()["email"] == "alex@example.com"


def test_login_failure_is_401(client, agent) -> None:
    response = client.post("/api/v1/users/login", json={"email": "alex@example.com", "password": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid email or password"}


def test_missing_or_bad_token_is_401(client, agent) -> None:
    assert client.get("/api/v1/leads").status_code == 401
    assert client.get("/api/v1/leads", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_create_and_list_leads(client, agent) -> None:
    created = client.post(
        "/api/v1/leads",
        json={"name": "Asha Rao", "phone": "555-0101", "email": "Asha@Example.com", "source": "Website"},
        headers=_auth(agent),
    )
    assert created.status_code == 201
    lead = created.json()
    assert lead["assigned_to"] == str(agent.user_id)
    assert lead["call_status"] == "Pending"
    assert lead["lead_status"] == "New"
    assert lead["email"] == "asha@example.com"

    listed = client.get("/api/v1/leads", params={"search": "rao"}, headers=_auth(agent))
    assert listed.status_code == 200
    assert [row["id"] for row in listed.json()] == [lead["id"]]


def test_foreign_lead_is_403_with_generic_message(client, db, agent, other_agent) -> None:
    lead = db.add_lead(make_lead(1, assigned_to=other_agent.user_id))
    response = client.get(f"/api/v1/leads/{lead.lead_id}", headers=_auth(agent))

    assert response.status_code == 403
    assert response.json() == {"detail": "Not authorized"}


def test_missing_lead_is_404(client, admin) -> None:
    response = client.get(f"/api/v1/leads/{UUID(int=404)}", headers=_auth(admin))
    assert response.status_code == 404
    assert response.json() == {"detail": "Lead not found"}


def test_missing_lead_looks_forbidden_to_agents(client, agent) -> None:
    missing = f"/api/v1/leads/{UUID(int=404)}"

    for response in (
        client.get(missing, headers=_auth(agent)),
        client.put(missing, json={"remarks": "hello"}, headers=_auth(agent)),
    ):
        assert response.status_code == 403
        assert response.json() == {"detail": "Not authorized"}


def test_read_only_field_is_400(client, db, agent) -> None:
    lead = db.add_lead(make_lead(1, assigned_to=agent.user_id))
    response = client.put(
        f"/api/v1/leads/{lead.lead_id}",
        json={"last_contacted_date": "2025-01-08T09:30:00Z"},
        headers=_auth(agent),
    )
    assert response.status_code == 400


def test_partial_update(client, db, agent) -> None:
    lead = db.add_lead(make_lead(1, assigned_to=agent.user_id))
    response = client.put(
        f"/api/v1/leads/{lead.lead_id}",
        json={"remarks": "Prefers evenings", "follow_up_date": "2025-01-10T18:00:00"},
        headers=_auth(agent),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["remarks"] == "Prefers evenings"
    assert body["name"] == lead.name
    assert body["follow_up_date"].startswith("2025-01-10T18:00:00")


def test_record_call_and_detail(client, db, agent) -> None:
    lead = db.add_lead(make_lead(1, assigned_to=agent.user_id))
    response = client.post(
        f"/api/v1/leads/{lead.lead_id}/call",
        json={"call_status": "connected", "lead_progress": "admission_taken", "remarks": "Enrolled"},
        headers=_auth(agent),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["lead"]["call_status"] == "Connected"
    assert body["lead"]["lead_status"] == "Admission Taken"
    assert body["lead"]["last_contacted_date"] is not None
    assert body["call_history"]["disposition"] == "Admission Taken"

    detail = client.get(f"/api/v1/leads/{lead.lead_id}", headers=_auth(agent)).json()
    assert len(detail["call_history"]) == 1
    assert detail["call_history"][0]["remarks"] == "Enrolled"


def test_record_call_store_failure_is_opaque_500(client, db, agent) -> None:
    lead = db.add_lead(make_lead(1, assigned_to=agent.user_id))
    db.fail_on("rpc:record_call_disposition")

    response = client.post(
        f"/api/v1/leads/{lead.lead_id}/call", json={"call_status": "connected"}, headers=_auth(agent)
    )

    assert response.status_code == 500
    assert response.json() == {"detail": "Server error"}
    assert db.calls_for(lead.lead_id) == []


def test_lead_stats_and_follow_ups_routes(client, db, agent) -> None:
    db.add_lead(make_lead(1, assigned_to=agent.user_id, lead_status=LeadStatus.ADMISSION_TAKEN))

    stats = client.get("/api/v1/leads/stats", headers=_auth(agent))
    assert stats.status_code == 200
    assert stats.json()["total_leads"] == 1
    assert stats.json()["conversion_rate"] == 100

    follow_ups = client.get("/api/v1/leads/today-followups", headers=_auth(agent))
    assert follow_ups.status_code == 200


def test_delete_lead_admin_only(client, db, admin, agent) -> None:
    lead = db.add_lead(make_lead(1, assigned_to=agent.user_id))

    assert client.delete(f"/api/v1/leads/{lead.lead_id}", headers=_auth(agent)).status_code == 403
    assert client.delete(f"/api/v1/leads/{lead.lead_id}", headers=_auth(admin)).status_code == 200
    assert db.lead_row(lead.lead_id) is None


def test_register_duplicate_is_409(client, admin, agent) -> None:
    response = client.post(
        "/api/v1/users",
        json={"name": "Dup", "email": "alex@example.com", "password": "pw"},
        headers=_auth(admin),
    )
    assert response.status_code == 409


def test_delete_own_account_is_409(client, admin) -> None:
    response = client.delete(f"/api/v1/users/{admin.user_id}", headers=_auth(admin))
    assert response.status_code == 409
    assert response.json() == {"detail": "Cannot delete your own account"}


def test_assign_leads(client, db, admin, agent) -> None:
    db.add_lead(make_lead(1))
    db.add_lead(make_lead(2))

    response = client.post(
        "/api/v1/users/assign-leads",
        json={"user_id": str(agent.user_id), "lead_ids": [str(UUID(int=1)), str(UUID(int=2)), str(UUID(int=99))]},
        headers=_auth(admin),
    )

    assert response.status_code == 200
    assert response.json()["assigned"] == 2


def test_list_users_includes_stats(client, admin, agent) -> None:
    response = client.get("/api/v1/users", headers=_auth(admin))

    assert response.status_code == 200
    rows = {row["email"]: row for row in response.json()}
    assert rows["alex@example.com"]["leads"] == 0
    assert rows["alex@example.com"]["conversion_rate"] == 0
    assert all("password_hash" not in row for row in rows.values())


@pytest.mark.parametrize(
    "path",
    [
        "/api/v1/admin/dashboard-stats",
        "/api/v1/admin/team-performance",
        "/api/v1/admin/unassigned-leads",
        "/api/v1/admin/lead-sources",
        "/api/v1/admin/conversion-by-source",
        "/api/v1/admin/monthly-trends",
    ],
)
def test_admin_reports(client, admin, agent, path: str) -> None:
    assert client.get(path, headers=_auth(agent)).status_code == 403
    assert client.get(path, headers=_auth(admin)).status_code == 200


def test_dashboard_stats_strings(client, db, admin) -> None:
    db.add_lead(make_lead(1, lead_status=LeadStatus.ADMISSION_TAKEN))
    db.add_lead(make_lead(2))

    body = client.get("/api/v1/admin/dashboard-stats", headers=_auth(admin)).json()
    assert body == {"total_leads": 2, "conversions": 1, "conversion_rate": "50%", "avg_response_time": "0h"}
