#!/usr/bin/env python3
"""
Issue CRUD service: list/search/paginate, create, read, update, delete.
"""

import logging
import math
from typing import List, Dict, Any

from apps.api.errors import NotFound, MalformedId
from apps.api.models import (
    Issue, IssueStatus, IssuePriority, IssueSeverity, PRIORITY_RANK,
    is_valid_id, utcnow
)
from apps.api.utils.providers import StoreProvider, IssueQuery

logger = logging.getLogger(__name__)

# API sort keys -> store fields; priority sorts by domain rank
SORTABLE = {
    "createdAt": "createdAt",
    "updatedAt": "updatedAt",
    "title": "title",
    "status": "status",
    "priority": "priorityRank",
    "severity": "severity",
}


def serialize_issues(
    store: StoreProvider,
    issues: List[Issue],
    creator: bool = False,
    assignee: bool = False
) -> List[Dict[str, Any]]:
    """
    Serialize issues, attaching creator and/or assignee profiles.

    User references are resolved with one batched lookup; a reference to a
    user that no longer exists is rendered as null.
    """
    wanted = set()
    for issue in issues:
        if creator and issue.created_by:
            wanted.add(issue.created_by)
        if assignee and issue.assigned_to:
            wanted.add(issue.assigned_to)
    users = store.get_users(sorted(wanted)) if wanted else {}

    result = []
    for issue in issues:
        kwargs = {}
        if creator and issue.created_by:
            kwargs["creator"] = users.get(issue.created_by, False)
        if assignee and issue.assigned_to:
            kwargs["assignee"] = users.get(issue.assigned_to, False)
        result.append(issue.to_json(**kwargs))
    return result


def list_issues(store: StoreProvider, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Filtered, searched, sorted and paginated issue listing.

    `params` is the validated IssueQuerySchema output. statusCounts is a
    global summary and ignores the filters.
    """
    query = IssueQuery(
        status=params.get("status"),
        priority=params.get("priority"),
        severity=params.get("severity"),
        search=params.get("search") or None,
    )
    page = params.get("page", 1)
    limit = params.get("limit", 10)
    sort_field = SORTABLE[params.get("sortBy", "createdAt")]
    descending = params.get("sortOrder", "desc") == "desc"

    issues = store.find_issues(
        query,
        sort=[(sort_field, descending)],
        limit=limit,
        offset=(page - 1) * limit,
    )
    total = store.count_issues(query)
    status_counts = store.count_by(IssueQuery(), "status")

    return {
        "issues": serialize_issues(store, issues, creator=True, assignee=True),
        "pagination": {
            "total": total,
            "page": page,
            "pages": math.ceil(total / limit) if limit else 0,
            "limit": limit,
        },
        "statusCounts": status_counts,
    }


def _load(store: StoreProvider, issue_id: str) -> Issue:
    if not is_valid_id(issue_id):
        raise NotFound("Issue not found")
    try:
        issue = store.get_issue(issue_id)
    except MalformedId:
        raise NotFound("Issue not found")
    if issue is None:
        raise NotFound("Issue not found")
    return issue


def get_issue(store: StoreProvider, issue_id: str) -> Dict[str, Any]:
    issue = _load(store, issue_id)
    return serialize_issues(store, [issue], creator=True, assignee=True)[0]


def create_issue(store: StoreProvider, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Create an issue owned by `user_id` from validated IssueCreateSchema output"""
    now = utcnow()
    issue = Issue(
        title=data["title"],
        description=data["description"],
        status=IssueStatus(data.get("status") or IssueStatus.OPEN.value),
        priority=IssuePriority(data.get("priority") or IssuePriority.MEDIUM.value),
        severity=IssueSeverity(data.get("severity") or IssueSeverity.MINOR.value),
        created_by=user_id,
        assigned_to=data.get("assignedTo"),
        found_date=data.get("foundDate"),
        created_at=now,
        updated_at=now,
    )
    if issue.is_terminal:
        issue.resolved_at = now

    created = store.create_issue(issue)
    logger.info(f"Issue {created.id} created by {user_id}")
    return serialize_issues(store, [created], creator=True)[0]


def update_issue(store: StoreProvider, issue_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply a partial update from validated IssueUpdateSchema output.

    resolvedAt is stamped on the first transition into Resolved or Closed
    and left untouched afterwards.
    """
    current = _load(store, issue_id)

    fields: Dict[str, Any] = {}
    for key in ("title", "description", "status", "severity"):
        if data.get(key):
            fields[key] = data[key]
    if data.get("priority"):
        fields["priority"] = data["priority"]
        fields["priorityRank"] = PRIORITY_RANK[IssuePriority(data["priority"])]
    if "assignedTo" in data:
        fields["assignedTo"] = data["assignedTo"]
    if "foundDate" in data:
        fields["foundDate"] = data["foundDate"]

    now = utcnow()
    new_status = fields.get("status")
    if (
        new_status in (IssueStatus.RESOLVED.value, IssueStatus.CLOSED.value)
        and current.status.value != new_status
        and current.resolved_at is None
    ):
        fields["resolvedAt"] = now
    fields["updatedAt"] = now

    updated = store.update_issue(issue_id, fields)
    if updated is None:
        raise NotFound("Issue not found")
    return serialize_issues(store, [updated], creator=True, assignee=True)[0]


def delete_issue(store: StoreProvider, issue_id: str) -> Dict[str, str]:
    _load(store, issue_id)
    store.delete_issue(issue_id)
    logger.info(f"Issue {issue_id} deleted")
    return {"msg": "Issue removed"}
