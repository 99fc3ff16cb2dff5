#!/usr/bin/env python3
"""
Unit tests for the issue CRUD service.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest

from apps.api.errors import NotFound
from apps.api.services import issue_service
from apps.api.utils.memory_store import generate_id

from conftest import NOW, add_issue, add_user


def _params(**overrides):
    params = {"page": 1, "limit": 10, "sortBy": "createdAt", "sortOrder": "desc"}
    params.update(overrides)
    return params


class TestListIssues:
    """Tests for list_issues."""

    def test_pagination_and_global_status_counts(self, store):
        alice = add_user(store, "Alice")
        for i in range(12):
            add_issue(store, alice.id, title=f"Issue {i}", created_at=NOW - timedelta(minutes=i))
        add_issue(store, alice.id, status="Closed", created_at=NOW - timedelta(days=1))

        result = issue_service.list_issues(store, _params(page=2, limit=5, status="Open"))

        assert [i["title"] for i in result["issues"]] == [f"Issue {i}" for i in range(5, 10)]
        assert result["pagination"] == {"total": 12, "page": 2, "pages": 3, "limit": 5}
        # Global, not filtered by status=Open
        assert result["statusCounts"] == {"Open": 12, "Closed": 1}

    def test_sort_by_priority_uses_rank(self, store):
        alice = add_user(store, "Alice")
        for priority in ("High", "Low", "Critical", "Medium"):
            add_issue(store, alice.id, title=priority, priority=priority)

        result = issue_service.list_issues(store, _params(sortBy="priority", sortOrder="asc"))

        assert [i["title"] for i in result["issues"]] == ["Low", "Medium", "High", "Critical"]

    def test_search(self, store):
        alice = add_user(store, "Alice")
        add_issue(store, alice.id, title="Login fails")
        add_issue(store, alice.id, title="Other", description="Cannot LOGIN on mobile")
        add_issue(store, alice.id, title="Crash")

        result = issue_service.list_issues(store, _params(search="login"))

        assert result["pagination"]["total"] == 2

    def test_attaches_users(self, store):
        alice = add_user(store, "Alice")
        bob = add_user(store, "Bob")
        add_issue(store, alice.id, assigned_to=bob.id)

        issue = issue_service.list_issues(store, _params())["issues"][0]

        assert issue["createdBy"]["name"] == "Alice"
        assert issue["assignedTo"]["_id"] == bob.id

    def test_dangling_user_is_null(self, store):
        ghost = generate_id()
        add_issue(store, ghost)

        issue = issue_service.list_issues(store, _params())["issues"][0]

        assert issue["createdBy"] is None

    def test_users_resolved_in_one_batch(self, store):
        alice = add_user(store, "Alice")
        for _ in range(3):
            add_issue(store, alice.id, assigned_to=alice.id)

        with patch.object(store, "get_users", wraps=store.get_users) as spy:
            issue_service.list_issues(store, _params())

        spy.assert_called_once_with([alice.id])


class TestCreateIssue:
    """Tests for create_issue."""

    def test_create(self, store):
        alice = add_user(store, "Alice")

        issue = issue_service.create_issue(store, alice.id, {
            "title": "Bug", "description": "Broken", "priority": "High"
        })

        assert issue["createdBy"]["_id"] == alice.id
        assert issue["status"] == "Open"
        assert issue["severity"] == "Minor"
        assert issue["resolvedAt"] is None
        assert store.get_issue(issue["id"]).priority_rank == 3

    def test_create_resolved_stamps_resolved_at(self, store):
        alice = add_user(store, "Alice")

        issue = issue_service.create_issue(store, alice.id, {
            "title": "Bug", "description": "Broken", "status": "Closed"
        })

        assert issue["resolvedAt"] is not None


class TestUpdateIssue:
    """Tests for update_issue."""

    def test_resolved_at_stamped_once(self, store):
        alice = add_user(store, "Alice")
        issue = add_issue(store, alice.id)

        first = issue_service.update_issue(store, issue.id, {"status": "Resolved"})
        assert first["resolvedAt"] is not None

        issue_service.update_issue(store, issue.id, {"status": "Open"})
        reopened = issue_service.update_issue(store, issue.id, {"status": "Closed"})

        assert reopened["resolvedAt"] == first["resolvedAt"]

    def test_updated_at_refreshed(self, store):
        alice = add_user(store, "Alice")
        issue = add_issue(store, alice.id, created_at=NOW - timedelta(days=1))

        updated = issue_service.update_issue(store, issue.id, {"title": "Renamed"})

        assert updated["title"] == "Renamed"
        assert updated["updatedAt"] > (NOW - timedelta(days=1)).isoformat()

    def test_priority_change_updates_rank(self, store):
        alice = add_user(store, "Alice")
        issue = add_issue(store, alice.id, priority="Low")

        issue_service.update_issue(store, issue.id, {"priority": "Critical"})

        assert store.get_issue(issue.id).priority_rank == 4

    def test_unassign(self, store):
        alice = add_user(store, "Alice")
        issue = add_issue(store, alice.id, assigned_to=alice.id)

        updated = issue_service.update_issue(store, issue.id, {"assignedTo": None})

        assert updated["assignedTo"] is None

    def test_missing(self, store):
        with pytest.raises(NotFound, match="Issue not found"):
            issue_service.update_issue(store, generate_id(), {"title": "x"})


class TestGetAndDelete:
    """Tests for get_issue and delete_issue."""

    def test_malformed_id_is_not_found(self, store):
        with pytest.raises(NotFound):
            issue_service.get_issue(store, "not-a-valid-id")

    def test_delete(self, store):
        alice = add_user(store, "Alice")
        issue = add_issue(store, alice.id)

        assert issue_service.delete_issue(store, issue.id) == {"msg": "Issue removed"}
        with pytest.raises(NotFound):
            issue_service.get_issue(store, issue.id)
