#!/usr/bin/env python3
"""
Unit tests for the in-memory store.
"""

from datetime import timedelta

import pytest

from apps.api.errors import Conflict
from apps.api.models import is_valid_id
from apps.api.utils.memory_store import generate_id
from apps.api.utils.providers import IssueQuery

from conftest import NOW, add_issue, add_user


class TestIds:
    """Tests for id generation."""

    def test_generated_ids_are_valid(self):
        ids = {generate_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(is_valid_id(i) for i in ids)


class TestUsers:
    """Tests for user persistence."""

    def test_create_and_find_by_email(self, store):
        user = add_user(store, "Alice")

        assert is_valid_id(user.id)
        assert store.find_user_by_email("ALICE@example.com").id == user.id
        assert store.get_user(user.id).name == "Alice"

    def test_returned_copies_are_detached(self, store):
        user = add_user(store, "Alice")
        user.name = "Mallory"

        assert store.get_user(user.id).name == "Alice"

    def test_update_reindexes_email(self, store):
        user = add_user(store, "Alice")

        store.update_user(user.id, {"email": "new@example.com"})

        assert store.find_user_by_email("alice@example.com") is None
        assert store.find_user_by_email("new@example.com").id == user.id

    def test_get_users_skips_missing(self, store):
        alice = add_user(store, "Alice")

        users = store.get_users([alice.id, generate_id()])

        assert list(users) == [alice.id]

    def test_delete(self, store):
        user = add_user(store, "Alice")

        assert store.delete_user(user.id)
        assert not store.delete_user(user.id)
        assert store.find_user_by_email("alice@example.com") is None

    def test_missing_user_update_returns_none(self, store):
        assert store.update_user(generate_id(), {"name": "x"}) is None

    def test_duplicate_email_rejected_on_create(self, store):
        alice = add_user(store, "Alice")

        with pytest.raises(Conflict, match="User already exists"):
            add_user(store, "Other", email="ALICE@example.com")

        assert store.find_user_by_email("alice@example.com").id == alice.id

    def test_update_to_taken_email_rejected(self, store):
        alice = add_user(store, "Alice")
        bob = add_user(store, "Bob")

        with pytest.raises(Conflict, match="Email already in use"):
            store.update_user(alice.id, {"email": "bob@example.com"})

        assert store.get_user(alice.id).email == "alice@example.com"
        assert store.find_user_by_email("bob@example.com").id == bob.id


class TestIssueQueries:
    """Tests for issue filtering, sorting and grouping."""

    def test_filters(self, store):
        alice = add_user(store, "Alice")
        bob = add_user(store, "Bob")
        add_issue(store, alice.id, status="Open", assigned_to=bob.id)
        add_issue(store, alice.id, status="Closed")
        add_issue(store, bob.id, status="Open", title="Login broken")

        assert store.count_issues(IssueQuery(created_by=alice.id)) == 2
        assert store.count_issues(IssueQuery(assigned_to=bob.id)) == 1
        assert store.count_issues(IssueQuery(involving=bob.id)) == 2
        assert store.count_issues(IssueQuery(assigned=True)) == 1
        assert store.count_issues(IssueQuery(status_in=("Open", "In Progress"))) == 2
        assert store.count_issues(IssueQuery(search="LOGIN")) == 1

    def test_created_since(self, store):
        alice = add_user(store, "Alice")
        add_issue(store, alice.id, created_at=NOW - timedelta(days=2))
        add_issue(store, alice.id, created_at=NOW - timedelta(days=10))

        assert store.count_issues(IssueQuery(created_since=NOW - timedelta(days=7))) == 1

    def test_sort_by_priority_rank(self, store):
        alice = add_user(store, "Alice")
        for priority in ("Low", "Critical", "Medium", "High"):
            add_issue(store, alice.id, priority=priority, title=priority)

        issues = store.find_issues(IssueQuery(), sort=[("priorityRank", True)])

        assert [i.title for i in issues] == ["Critical", "High", "Medium", "Low"]

    def test_multi_key_sort_and_pagination(self, store):
        alice = add_user(store, "Alice")
        for offset in range(5):
            add_issue(store, alice.id, priority="High", title=f"h{offset}",
                      created_at=NOW - timedelta(hours=offset))
        add_issue(store, alice.id, priority="Critical", title="c", created_at=NOW - timedelta(days=3))

        sort = [("priorityRank", True), ("createdAt", True)]
        first = store.find_issues(IssueQuery(), sort=sort, limit=3)
        second = store.find_issues(IssueQuery(), sort=sort, limit=3, offset=3)

        assert [i.title for i in first] == ["c", "h0", "h1"]
        assert [i.title for i in second] == ["h2", "h3", "h4"]

    def test_count_by(self, store):
        alice = add_user(store, "Alice")
        add_issue(store, alice.id, status="Open")
        add_issue(store, alice.id, status="Open")
        add_issue(store, alice.id, status="Resolved")

        assert store.count_by(IssueQuery(), "status") == {"Open": 2, "Resolved": 1}
        assert store.count_by(IssueQuery(), "createdBy") == {alice.id: 3}

    def test_count_by_month(self, store):
        alice = add_user(store, "Alice")
        add_issue(store, alice.id, created_at=NOW)
        add_issue(store, alice.id, created_at=NOW - timedelta(days=40))

        assert store.count_by_month(IssueQuery()) == {(2024, 6): 1, (2024, 5): 1}

    def test_resolution_summary(self, store):
        alice = add_user(store, "Alice")
        add_issue(store, alice.id, status="Resolved", created_at=NOW - timedelta(days=3),
                  resolved_at=NOW - timedelta(days=2))
        add_issue(store, alice.id, status="Closed", created_at=NOW - timedelta(days=3),
                  resolved_at=NOW)
        add_issue(store, alice.id, status="Open")

        summary = store.resolution_summary(IssueQuery())

        assert summary.total_resolved == 2
        assert summary.min_ms == timedelta(days=1).total_seconds() * 1000
        assert summary.max_ms == timedelta(days=3).total_seconds() * 1000
        assert summary.avg_ms == timedelta(days=2).total_seconds() * 1000


class TestIssueUpdates:
    """Tests for issue update and delete."""

    def test_update_merges_fields(self, store):
        alice = add_user(store, "Alice")
        issue = add_issue(store, alice.id, assigned_to=alice.id)

        updated = store.update_issue(issue.id, {"status": "In Progress", "assignedTo": None})

        assert updated.status.value == "In Progress"
        assert updated.assigned_to is None
        assert updated.title == issue.title

    def test_delete(self, store):
        alice = add_user(store, "Alice")
        issue = add_issue(store, alice.id)

        assert store.delete_issue(issue.id)
        assert store.get_issue(issue.id) is None
        assert store.update_issue(issue.id, {"title": "x"}) is None
