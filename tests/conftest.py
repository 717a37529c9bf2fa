# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up test environment variables before any imports
# - Swaps the Supabase and Redis singletons for in-memory doubles
# - Provides a TestClient and helpers to register users in any role
# =============================================================================

import itertools
import os
from dataclasses import dataclass, field

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")

import pytest
from fastapi.testclient import TestClient

from lib.redis_client import RedisClient
from lib.supabase_client import SupabaseClient
from tests.fakes import FakeRedis, FakeSupabase

API = "/api/v1"
DEFAULT_PASSWORD = "correct-horse-42"


# =============================================================================
# Backends
# =============================================================================

@pytest.fixture(autouse=True)
def fake_db():
    """Fresh in-memory database for every test."""
    db = FakeSupabase()
    SupabaseClient._instance = db
    yield db
    SupabaseClient._instance = None


@pytest.fixture(autouse=True)
def fake_redis():
    """Fresh in-memory Redis for every test."""
    redis = FakeRedis()
    RedisClient._instance = redis
    yield redis
    RedisClient._instance = None


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def client():
    """TestClient without lifespan, so no pub/sub listener is started."""
    from app.main import app

    return TestClient(app)


@dataclass
class TestUser:
    """A registered account and its tokens."""
    __test__ = False

    id: str
    username: str
    email: str
    access: str
    refresh: str
    password: str = DEFAULT_PASSWORD
    role: str = "member"
    headers: dict = field(default_factory=dict)


@pytest.fixture
def make_user(client, fake_db):
    """
    Register a user through the API and optionally change their role.

    Usage:
        admin = make_user(role="admin")
        client.get(f"{API}/admin/users", headers=admin.headers)
    """
    counter = itertools.count(1)

    def _make(role: str = "member", username: str | None = None, password: str = DEFAULT_PASSWORD) -> TestUser:
        username = username or f"{role}{next(counter)}"
        response = client.post(f"{API}/auth/register", json={
            "email": f"{username}@example.com",
            "password": password,
            "username": username,
        })
        assert response.status_code == 201, response.text
        body = response.json()

        if role != "member":
            # Roles are read from the users table on every request
            fake_db.set("users", body["user"]["id"], role=role)

        return TestUser(
            id=body["user"]["id"],
            username=username,
            email=f"{username}@example.com",
            access=body["token"]["access"],
            refresh=body["token"]["refresh"],
            password=password,
            role=role,
            headers={"Authorization": f"Bearer {body['token']['access']}"},
        )

    return _make


@pytest.fixture
def member(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role="admin")


@pytest.fixture
def seller(make_user):
    return make_user(role="seller")
