#!/usr/bin/env python3
"""
In-memory store for Issue Tracker

Implements StoreProvider over plain dictionaries. Used for local
development (STORE_BACKEND=memory) and as the store behind the test suite.
Thread-safe: the analytics fan-out reads from several threads at once.
"""

import logging
import secrets
import string
import threading
from collections import Counter
from dataclasses import replace
from typing import Optional, List, Dict, Any, Tuple

from apps.api.errors import Conflict
from apps.api.models import User, Issue, utcnow
from apps.api.utils.providers import (
    IssueQuery, ResolutionSummary, SortSpec, SORT_FIELDS, GROUP_FIELDS,
    resolution_summary_from
)

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_letters + string.digits


def generate_id() -> str:
    """Generate a 20-character alphanumeric document ID"""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(20))


def _sort_value(issue: Issue, attribute: str):
    value = getattr(issue, attribute)
    return value.value if hasattr(value, "value") else value


def sort_issues(issues: List[Issue], sort: Optional[SortSpec]) -> List[Issue]:
    """Stable multi-key sort over (store field, descending) pairs"""
    result = list(issues)
    for field, descending in reversed(list(sort or [])):
        attribute = SORT_FIELDS[field]
        result.sort(key=lambda issue: _sort_value(issue, attribute), reverse=descending)
    return result


class MemoryStore:
    """Dictionary-backed implementation of StoreProvider"""

    def __init__(self):
        self._issues: Dict[str, Issue] = {}
        self._users: Dict[str, User] = {}
        self._email_index: Dict[str, str] = {}  # email -> user_id
        self._lock = threading.RLock()

    def is_available(self) -> bool:
        return True

    def ping(self) -> None:
        return None

    def _snapshot(self, query: IssueQuery) -> List[Issue]:
        with self._lock:
            return [replace(issue) for issue in self._issues.values() if query.matches(issue)]

    # Issue operations
    def create_issue(self, issue: Issue) -> Issue:
        with self._lock:
            stored = replace(issue, id=issue.id or generate_id())
            now = utcnow()
            stored.created_at = stored.created_at or now
            stored.updated_at = stored.updated_at or now
            self._issues[stored.id] = stored
            return replace(stored)

    def get_issue(self, issue_id: str) -> Optional[Issue]:
        with self._lock:
            issue = self._issues.get(issue_id)
            return replace(issue) if issue else None

    def update_issue(self, issue_id: str, fields: Dict[str, Any]) -> Optional[Issue]:
        with self._lock:
            issue = self._issues.get(issue_id)
            if issue is None:
                return None
            data = issue.to_dict()
            data.update(fields)
            updated = Issue.from_dict(issue_id, data)
            self._issues[issue_id] = updated
            return replace(updated)

    def delete_issue(self, issue_id: str) -> bool:
        with self._lock:
            return self._issues.pop(issue_id, None) is not None

    def find_issues(
        self,
        query: IssueQuery,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Issue]:
        issues = sort_issues(self._snapshot(query), sort)
        end = offset + limit if limit is not None else None
        return issues[offset:end]

    def count_issues(self, query: IssueQuery) -> int:
        return len(self._snapshot(query))

    def count_by(self, query: IssueQuery, field: str) -> Dict[Any, int]:
        attribute = GROUP_FIELDS[field]
        counts = Counter(_sort_value(issue, attribute) for issue in self._snapshot(query))
        return dict(counts)

    def count_by_month(self, query: IssueQuery) -> Dict[Tuple[int, int], int]:
        counts = Counter(
            (issue.created_at.year, issue.created_at.month)
            for issue in self._snapshot(query)
            if issue.created_at is not None
        )
        return dict(counts)

    def resolution_summary(self, query: IssueQuery) -> ResolutionSummary:
        issues = self._snapshot(query.narrow(resolved=True))
        return resolution_summary_from((issue.created_at, issue.resolved_at) for issue in issues)

    # User operations
    def create_user(self, user: User) -> User:
        with self._lock:
            if user.email.lower() in self._email_index:
                raise Conflict("User already exists")
            stored = replace(user, id=user.id or generate_id())
            now = utcnow()
            stored.created_at = stored.created_at or now
            stored.updated_at = stored.updated_at or now
            self._users[stored.id] = stored
            self._email_index[stored.email.lower()] = stored.id
            return replace(stored)

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user else None

    def get_users(self, user_ids: List[str]) -> Dict[str, User]:
        with self._lock:
            return {
                user_id: replace(self._users[user_id])
                for user_id in user_ids
                if user_id in self._users
            }

    def find_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            user_id = self._email_index.get(email.lower())
            return self.get_user(user_id) if user_id else None

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            data = user.to_dict()
            data.update(fields)
            updated = User.from_dict(user_id, data)
            owner = self._email_index.get(updated.email.lower())
            if owner is not None and owner != user_id:
                raise Conflict("Email already in use")
            self._email_index.pop(user.email.lower(), None)
            self._email_index[updated.email.lower()] = user_id
            self._users[user_id] = updated
            return replace(updated)

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            user = self._users.pop(user_id, None)
            if user is None:
                return False
            self._email_index.pop(user.email.lower(), None)
            return True
