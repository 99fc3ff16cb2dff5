#!/usr/bin/env python3
"""
Provider Interfaces for Issue Tracker

Defines the store provider protocol that services receive by dependency
injection, plus the query value objects shared by every backend.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol, Optional, List, Dict, Any, Tuple, Sequence

from apps.api.models import User, Issue


# Store document field -> Issue attribute, for sortable fields
SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "priorityRank": "priority_rank",
    "title": "title",
    "status": "status",
    "severity": "severity",
}

# Groupable store document fields -> Issue attribute
GROUP_FIELDS = {
    "status": "status",
    "priority": "priority",
    "severity": "severity",
    "createdBy": "created_by",
    "assignedTo": "assigned_to",
}

SortSpec = Sequence[Tuple[str, bool]]


@dataclass(frozen=True)
class IssueQuery:
    """
    Scope of an issue query.

    Every set attribute narrows the result; unset attributes do not filter.
    `involving` matches issues created by OR assigned to the given user.
    """
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None
    involving: Optional[str] = None
    assigned: bool = False
    status: Optional[str] = None
    priority: Optional[str] = None
    severity: Optional[str] = None
    status_in: Optional[Tuple[str, ...]] = None
    priority_in: Optional[Tuple[str, ...]] = None
    created_since: Optional[datetime] = None
    resolved: bool = False
    search: Optional[str] = None

    def narrow(self, **changes) -> "IssueQuery":
        return replace(self, **changes)

    def matches(self, issue: Issue) -> bool:
        """Evaluate the scope against a single issue"""
        if self.created_by is not None and issue.created_by != self.created_by:
            return False
        if self.assigned_to is not None and issue.assigned_to != self.assigned_to:
            return False
        if self.involving is not None and self.involving not in (issue.created_by, issue.assigned_to):
            return False
        if self.assigned and not issue.assigned_to:
            return False
        if self.status is not None and issue.status.value != self.status:
            return False
        if self.priority is not None and issue.priority.value != self.priority:
            return False
        if self.severity is not None and issue.severity.value != self.severity:
            return False
        if self.status_in is not None and issue.status.value not in self.status_in:
            return False
        if self.priority_in is not None and issue.priority.value not in self.priority_in:
            return False
        if self.created_since is not None and (issue.created_at is None or issue.created_at < self.created_since):
            return False
        if self.resolved and issue.resolved_at is None:
            return False
        if self.search and not self.matches_search(issue):
            return False
        return True

    def matches_search(self, issue: Issue) -> bool:
        needle = (self.search or "").lower()
        return needle in issue.title.lower() or needle in issue.description.lower()


@dataclass(frozen=True)
class ResolutionSummary:
    """Aggregate of resolvedAt - createdAt over resolved issues, in milliseconds"""
    total_resolved: int = 0
    avg_ms: float = 0.0
    min_ms: float = 0.0
    max_ms: float = 0.0


def resolution_summary_from(pairs) -> ResolutionSummary:
    """Build a ResolutionSummary from (created_at, resolved_at) pairs"""
    durations = [
        (resolved_at - created_at).total_seconds() * 1000
        for created_at, resolved_at in pairs
        if created_at is not None and resolved_at is not None
    ]
    if not durations:
        return ResolutionSummary()
    return ResolutionSummary(
        total_resolved=len(durations),
        avg_ms=sum(durations) / len(durations),
        min_ms=min(durations),
        max_ms=max(durations),
    )


class StoreProvider(Protocol):
    """
    Protocol for the document store provider.

    Provides issue and user persistence plus the grouped reads the
    dashboard and analytics aggregators compose.
    """

    def is_available(self) -> bool:
        """Check if the store is available"""
        ...

    def ping(self) -> None:
        """Round-trip to the store; raises StoreUnavailable on failure"""
        ...

    # Issues
    def create_issue(self, issue: Issue) -> Issue:
        """Persist a new issue and return it with its assigned ID"""
        ...

    def get_issue(self, issue_id: str) -> Optional[Issue]:
        """Get issue by ID"""
        ...

    def update_issue(self, issue_id: str, fields: Dict[str, Any]) -> Optional[Issue]:
        """Apply store-level field updates and return the updated issue"""
        ...

    def delete_issue(self, issue_id: str) -> bool:
        """Delete issue"""
        ...

    def find_issues(
        self,
        query: IssueQuery,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Issue]:
        """List issues in scope, sorted by (field, descending) pairs"""
        ...

    def count_issues(self, query: IssueQuery) -> int:
        """Count issues in scope"""
        ...

    def count_by(self, query: IssueQuery, field: str) -> Dict[Any, int]:
        """Group issues in scope by a field and count each group"""
        ...

    def count_by_month(self, query: IssueQuery) -> Dict[Tuple[int, int], int]:
        """Group issues in scope by (year, month) of createdAt"""
        ...

    def resolution_summary(self, query: IssueQuery) -> ResolutionSummary:
        """Resolution time aggregate over resolved issues in scope"""
        ...

    # Users
    def create_user(self, user: User) -> User:
        """Persist a new user; raises Conflict when the email is already registered"""
        ...

    def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID"""
        ...

    def get_users(self, user_ids: List[str]) -> Dict[str, User]:
        """Resolve many user IDs; missing users are absent from the result"""
        ...

    def find_user_by_email(self, email: str) -> Optional[User]:
        """Get user by (normalized) email"""
        ...

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[User]:
        """Update user fields and return the updated user; raises Conflict when the new email belongs to another user"""
        ...

    def delete_user(self, user_id: str) -> bool:
        """Hard-delete a user"""
        ...
