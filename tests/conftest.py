"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides an in-memory Supabase client
plus a small cast of users (one admin, two agents).
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from uuid import UUID

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import get_settings  # noqa: E402
from domain.access_policy import Actor, Role  # noqa: E402
from domain.user import User  # noqa: E402
from fakes import FakeSupabase, make_user  # noqa: E402
from repositories import client as supabase_client  # noqa: E402

ADMIN_ID = UUID("00000000-0000-0000-0000-0000000000a1")
AGENT_ID = UUID("00000000-0000-0000-0000-0000000000b1")
OTHER_AGENT_ID = UUID("00000000-0000-0000-0000-0000000000b2")


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached per process; tests that patch the environment need a clean read."""

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 1, 8, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def db(monkeypatch) -> FakeSupabase:
    fake = FakeSupabase()
    monkeypatch.setattr(supabase_client, "_client", fake)
    return fake


@pytest.fixture
def admin(db) -> User:
    return db.add_user(make_user(ADMIN_ID, "Ada Admin", "admin@example.com", Role.ADMIN))


@pytest.fixture
def agent(db) -> User:
    return db.add_user(make_user(AGENT_ID, "Alex Agent", "alex@example.com", Role.USER))


@pytest.fixture
def other_agent(db) -> User:
    return db.add_user(make_user(OTHER_AGENT_ID, "Blair Agent", "blair@example.com", Role.USER))


@pytest.fixture
def admin_actor(admin) -> Actor:
    return Actor(actor_id=admin.user_id, role=Role.ADMIN)


@pytest.fixture
def agent_actor(agent) -> Actor:
    return Actor(actor_id=agent.user_id, role=Role.USER)


@pytest.fixture
def other_actor(other_agent) -> Actor:
    return Actor(actor_id=other_agent.user_id, role=Role.USER)
