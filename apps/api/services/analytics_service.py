#!/usr/bin/env python3
"""
Analytics aggregation: system-wide and per-user reports.

Sub-queries are independent reads, fanned out in parallel and joined
before the report is composed. A failing sub-query fails the report.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any, List

from apps.api.errors import InvalidInput, NotFound
from apps.api.models import IssueStatus, is_valid_id, utcnow
from apps.api.services.breakdowns import (
    TimeWindows, breakdown, chart, resolution_figures, monthly_trend
)
from apps.api.services.dashboard_service import window_counts, unresolved_count
from apps.api.services.fanout import run_parallel, DEFAULT_MAX_WORKERS
from apps.api.utils.providers import StoreProvider, IssueQuery

logger = logging.getLogger(__name__)

TOP_CONTRIBUTORS = 10


def top_contributors(store: StoreProvider, field: str, count_key: str,
                     limit: int = TOP_CONTRIBUTORS) -> List[Dict[str, Any]]:
    """
    Rank actors by issue count on `field` (createdBy or assignedTo).

    The top `limit` actor IDs are joined to user profiles; an actor with no
    profile is dropped rather than reported with empty fields.
    """
    scope = IssueQuery(assigned=True) if field == "assignedTo" else IssueQuery()
    counts = {
        actor: count
        for actor, count in store.count_by(scope, field).items()
        if actor
    }
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
    users = store.get_users([actor for actor, _ in ranked])

    result = []
    for actor, count in ranked:
        user = users.get(actor)
        if user is None:
            logger.debug(f"Skipping {field} {actor}: no matching user")
            continue
        result.append({
            "userId": actor,
            "userName": user.name,
            "userEmail": user.email,
            count_key: count,
        })
    return result


def trend_counts(store: StoreProvider, scope: IssueQuery, windows: TimeWindows) -> Dict[tuple, int]:
    """(year, month) counts over the trailing year"""
    return store.count_by_month(scope.narrow(created_since=windows.year))


def get_general_analytics(
    store: StoreProvider,
    now: Optional[datetime] = None,
    max_workers: int = DEFAULT_MAX_WORKERS
) -> Dict[str, Any]:
    """System-wide analytics over the whole issue collection"""
    windows = TimeWindows.anchored_at(now or utcnow())
    everything = IssueQuery()

    r = run_parallel({
        "total": lambda: store.count_issues(everything),
        "status": lambda: store.count_by(everything, "status"),
        "priority": lambda: store.count_by(everything, "priority"),
        "severity": lambda: store.count_by(everything, "severity"),
        "windows": lambda: window_counts(store, everything, windows, include_year=True),
        "resolution": lambda: store.resolution_summary(everything),
        "top_creators": lambda: top_contributors(store, "createdBy", "issuesCreated"),
        "top_assignees": lambda: top_contributors(store, "assignedTo", "issuesAssigned"),
        "trend": lambda: trend_counts(store, everything, windows),
    }, max_workers=max_workers)

    total = r["total"]
    status = r["status"]

    return {
        "overview": {
            "totalIssues": total,
            "openIssues": status.get(IssueStatus.OPEN.value, 0),
            "inProgressIssues": status.get(IssueStatus.IN_PROGRESS.value, 0),
            "resolvedIssues": status.get(IssueStatus.RESOLVED.value, 0),
            "closedIssues": status.get(IssueStatus.CLOSED.value, 0),
        },
        "timeBased": r["windows"],
        "breakdowns": {
            "status": breakdown(status, total, "status"),
            "priority": breakdown(r["priority"], total, "priority"),
            "severity": breakdown(r["severity"], total, "severity"),
        },
        "charts": {
            "byStatus": chart(status),
            "byPriority": chart(r["priority"]),
            "bySeverity": chart(r["severity"]),
        },
        "resolution": resolution_figures(r["resolution"], total),
        "userActivity": {
            "topCreators": r["top_creators"],
            "topAssignees": r["top_assignees"],
        },
        "trends": {
            "monthlyTrend": monthly_trend(r["trend"]),
        },
    }


def get_user_analytics(
    store: StoreProvider,
    target_user_id: str,
    now: Optional[datetime] = None,
    max_workers: int = DEFAULT_MAX_WORKERS
) -> Dict[str, Any]:
    """
    Analytics for one user, who need not be the caller.

    The created-by side carries status/priority/severity breakdowns and
    resolution statistics; the assigned side carries the status breakdown
    only.
    """
    if not is_valid_id(target_user_id):
        raise InvalidInput("Invalid user ID")
    user = store.get_user(target_user_id)
    if user is None:
        raise NotFound("User not found")

    windows = TimeWindows.anchored_at(now or utcnow())
    created = IssueQuery(created_by=target_user_id)
    assigned = IssueQuery(assigned_to=target_user_id)

    r = run_parallel({
        "created_total": lambda: store.count_issues(created),
        "created_status": lambda: store.count_by(created, "status"),
        "created_priority": lambda: store.count_by(created, "priority"),
        "created_severity": lambda: store.count_by(created, "severity"),
        "assigned_total": lambda: store.count_issues(assigned),
        "assigned_status": lambda: store.count_by(assigned, "status"),
        "assigned_unresolved": lambda: unresolved_count(store, assigned),
        "windows": lambda: window_counts(store, created, windows, include_year=True),
        "resolution": lambda: store.resolution_summary(created),
        "trend": lambda: trend_counts(store, created, windows),
    }, max_workers=max_workers)

    total_created = r["created_total"]
    total_assigned = r["assigned_total"]
    created_status = r["created_status"]
    assigned_status = r["assigned_status"]

    return {
        "user": user.to_public(),
        "overview": {
            "totalCreated": total_created,
            "totalAssigned": total_assigned,
            "unresolvedAssigned": r["assigned_unresolved"],
            "createdOpen": created_status.get(IssueStatus.OPEN.value, 0),
            "createdInProgress": created_status.get(IssueStatus.IN_PROGRESS.value, 0),
            "createdResolved": created_status.get(IssueStatus.RESOLVED.value, 0),
            "createdClosed": created_status.get(IssueStatus.CLOSED.value, 0),
            "assignedOpen": assigned_status.get(IssueStatus.OPEN.value, 0),
            "assignedInProgress": assigned_status.get(IssueStatus.IN_PROGRESS.value, 0),
            "assignedResolved": assigned_status.get(IssueStatus.RESOLVED.value, 0),
            "assignedClosed": assigned_status.get(IssueStatus.CLOSED.value, 0),
        },
        "timeBased": r["windows"],
        "createdIssues": {
            "breakdowns": {
                "status": breakdown(created_status, total_created, "status"),
                "priority": breakdown(r["created_priority"], total_created, "priority"),
                "severity": breakdown(r["created_severity"], total_created, "severity"),
            },
            "charts": {
                "byStatus": chart(created_status),
                "byPriority": chart(r["created_priority"]),
                "bySeverity": chart(r["created_severity"]),
            },
        },
        "assignedIssues": {
            "breakdowns": {
                "status": breakdown(assigned_status, total_assigned, "status"),
            },
            "charts": {
                "byStatus": chart(assigned_status),
            },
        },
        "resolution": resolution_figures(r["resolution"], total_created),
        "trends": {
            "monthlyTrend": monthly_trend(r["trend"]),
        },
    }
