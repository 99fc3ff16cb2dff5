#!/usr/bin/env python3
"""
Pytest configuration and fixtures for issuetracker tests.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to Python path so `apps.api` resolves without installation
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from apps.api.app import create_app  # noqa: E402
from apps.api.models import Issue, IssueStatus, IssuePriority, IssueSeverity, User  # noqa: E402
from apps.api.utils.memory_store import MemoryStore  # noqa: E402

TEST_JWT_SECRET = "test-jwt-secret-that-is-long-enough-for-hs256"

# Fixed clock used by service-level tests
NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    """Fresh in-memory store"""
    return MemoryStore()


@pytest.fixture
def app(store):
    """Flask app wired to the in-memory store"""
    app = create_app(
        config={
            "TESTING": True,
            "SECRET_KEY": "test-secret-key-that-is-at-least-32-chars",
            "JWT_SECRET": TEST_JWT_SECRET,
            "RATELIMIT_ENABLED": False,
            "ANALYTICS_MAX_WORKERS": 4,
            "STORE_BACKEND": "memory",
        },
        store=store,
    )
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def register(client):
    """Register a user through the API; returns (token, user)"""
    def _register(name="Alice", email="alice@example.com", password="secret123"):
        response = client.post("/api/auth/register", json={
            "name": name, "email": email, "password": password
        })
        assert response.status_code == 200, response.get_json()
        data = response.get_json()
        return data["token"], data["user"]
    return _register


def auth(token):
    """Authorization header for a bearer token"""
    return {"Authorization": f"Bearer {token}"}


def add_user(store, name="Alice", email=None):
    """Insert a user directly into the store"""
    return store.create_user(User(
        name=name,
        email=email or f"{name.lower()}@example.com",
        password_hash="x",
    ))


def add_issue(store, created_by, created_at=NOW, **kwargs):
    """Insert an issue directly into the store with explicit timestamps"""
    status = IssueStatus(kwargs.pop("status", "Open"))
    priority = IssuePriority(kwargs.pop("priority", "Medium"))
    severity = IssueSeverity(kwargs.pop("severity", "Minor"))
    issue = Issue(
        title=kwargs.pop("title", "An issue"),
        description=kwargs.pop("description", "Something is broken"),
        status=status,
        priority=priority,
        severity=severity,
        created_by=created_by,
        created_at=created_at,
        updated_at=kwargs.pop("updated_at", created_at),
        **kwargs,
    )
    return store.create_issue(issue)
