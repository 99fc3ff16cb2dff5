#!/usr/bin/env python3
"""
Dashboard aggregation: one user's personal operational snapshot.

Scopes are issues the user created ("mine") and issues assigned to the
user ("assigned to me"). Each sub-query is a named function so it can be
exercised on its own; `get_dashboard` fans them out in parallel and
composes the response.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any, List

from apps.api.models import IssueStatus, IssuePriority, utcnow
from apps.api.services.breakdowns import TimeWindows, breakdown, chart
from apps.api.services.fanout import run_parallel, DEFAULT_MAX_WORKERS
from apps.api.services.issue_service import serialize_issues
from apps.api.utils.providers import StoreProvider, IssueQuery

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10
HIGH_PRIORITY_LIMIT = 5

STATUS_LABELS = [status.value for status in IssueStatus]
UNRESOLVED_STATUSES = (IssueStatus.OPEN.value, IssueStatus.IN_PROGRESS.value)
NOT_CLOSED_STATUSES = tuple(label for label in STATUS_LABELS if label != IssueStatus.CLOSED.value)
HIGH_PRIORITIES = (IssuePriority.HIGH.value, IssuePriority.CRITICAL.value)


def created_scope(user_id: str) -> IssueQuery:
    return IssueQuery(created_by=user_id)


def assigned_scope(user_id: str) -> IssueQuery:
    return IssueQuery(assigned_to=user_id)


def window_counts(store: StoreProvider, scope: IssueQuery, windows: TimeWindows,
                  include_year: bool = False) -> Dict[str, int]:
    """Issues in scope created within each rolling window"""
    counts = {
        "today": store.count_issues(scope.narrow(created_since=windows.today)),
        "thisWeek": store.count_issues(scope.narrow(created_since=windows.week)),
        "thisMonth": store.count_issues(scope.narrow(created_since=windows.month)),
    }
    if include_year:
        counts["thisYear"] = store.count_issues(scope.narrow(created_since=windows.year))
    return counts


def unresolved_count(store: StoreProvider, scope: IssueQuery) -> int:
    """Issues in scope that are neither Resolved nor Closed"""
    return store.count_issues(scope.narrow(status_in=UNRESOLVED_STATUSES))


def created_summary(store: StoreProvider, user_id: str, windows: TimeWindows) -> Dict[str, Any]:
    """Totals, group counts and time windows over issues the user created"""
    scope = created_scope(user_id)
    return {
        "total": store.count_issues(scope),
        "status": store.count_by(scope, "status"),
        "priority": store.count_by(scope, "priority"),
        "severity": store.count_by(scope, "severity"),
        "windows": window_counts(store, scope, windows),
    }


def assigned_summary(store: StoreProvider, user_id: str) -> Dict[str, Any]:
    """Totals and status counts over issues assigned to the user"""
    scope = assigned_scope(user_id)
    return {
        "total": store.count_issues(scope),
        "status": store.count_by(scope, "status"),
        "unresolved": unresolved_count(store, scope),
    }


def recent_created(store: StoreProvider, user_id: str) -> List[Dict[str, Any]]:
    """Newest issues the user created, with the assignee attached"""
    issues = store.find_issues(created_scope(user_id), sort=[("createdAt", True)], limit=RECENT_LIMIT)
    return serialize_issues(store, issues, assignee=True)


def recent_assigned(store: StoreProvider, user_id: str) -> List[Dict[str, Any]]:
    """Newest issues assigned to the user, with the creator attached"""
    issues = store.find_issues(assigned_scope(user_id), sort=[("createdAt", True)], limit=RECENT_LIMIT)
    return serialize_issues(store, issues, creator=True)


def recent_activity(store: StoreProvider, user_id: str) -> List[Dict[str, Any]]:
    """Most recently updated issues the user created or is assigned"""
    issues = store.find_issues(IssueQuery(involving=user_id), sort=[("updatedAt", True)], limit=RECENT_LIMIT)
    return serialize_issues(store, issues, creator=True, assignee=True)


def high_priority_assigned(store: StoreProvider, user_id: str) -> List[Dict[str, Any]]:
    """High/Critical work assigned to the user and not Closed, most urgent first"""
    scope = assigned_scope(user_id).narrow(
        priority_in=HIGH_PRIORITIES,
        status_in=NOT_CLOSED_STATUSES,
    )
    issues = store.find_issues(
        scope,
        sort=[("priorityRank", True), ("createdAt", True)],
        limit=HIGH_PRIORITY_LIMIT,
    )
    return serialize_issues(store, issues)


def get_dashboard(
    store: StoreProvider,
    user_id: str,
    now: Optional[datetime] = None,
    max_workers: int = DEFAULT_MAX_WORKERS
) -> Dict[str, Any]:
    """Compose the personal dashboard for `user_id` (the authenticated caller)"""
    windows = TimeWindows.anchored_at(now or utcnow())

    r = run_parallel({
        "created": lambda: created_summary(store, user_id, windows),
        "assigned": lambda: assigned_summary(store, user_id),
        "recent_created": lambda: recent_created(store, user_id),
        "recent_assigned": lambda: recent_assigned(store, user_id),
        "recent_activity": lambda: recent_activity(store, user_id),
        "high_priority": lambda: high_priority_assigned(store, user_id),
    }, max_workers=max_workers)

    mine = r["created"]
    assigned = r["assigned"]
    my_total = mine["total"]
    my_status = mine["status"]
    assigned_status = assigned["status"]

    return {
        "userStats": {
            "myIssues": my_total,
            "assignedToMe": assigned["total"],
            "myOpenIssues": my_status.get(IssueStatus.OPEN.value, 0),
            "myInProgressIssues": my_status.get(IssueStatus.IN_PROGRESS.value, 0),
            "myResolvedIssues": my_status.get(IssueStatus.RESOLVED.value, 0),
            "myClosedIssues": my_status.get(IssueStatus.CLOSED.value, 0),
            "assignedOpen": assigned_status.get(IssueStatus.OPEN.value, 0),
            "assignedInProgress": assigned_status.get(IssueStatus.IN_PROGRESS.value, 0),
            "unresolvedAssigned": assigned["unresolved"],
        },
        "timeBased": mine["windows"],
        "breakdowns": {
            "status": breakdown(my_status, my_total, "status"),
            "priority": breakdown(mine["priority"], my_total, "priority"),
            "severity": breakdown(mine["severity"], my_total, "severity"),
        },
        "charts": {
            "byStatus": chart(my_status, STATUS_LABELS),
            "byPriority": chart(mine["priority"]),
            "bySeverity": chart(mine["severity"]),
        },
        "recentIssues": {
            "myIssues": r["recent_created"],
            "assignedToMe": r["recent_assigned"],
        },
        "recentActivity": r["recent_activity"],
        "highPriorityAssigned": r["high_priority"],
    }
