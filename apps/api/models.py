#!/usr/bin/env python3
"""
Data models for Issue Tracker
"""

import re
from dataclasses import dataclass
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum


class IssueStatus(str, Enum):
    """Issue status enumeration"""
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class IssuePriority(str, Enum):
    """Issue priority enumeration"""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class IssueSeverity(str, Enum):
    """Issue severity enumeration"""
    MINOR = "Minor"
    MAJOR = "Major"
    CRITICAL = "Critical"


# Statuses that count as "resolved" for resolvedAt stamping and unresolved counts
TERMINAL_STATUSES = (IssueStatus.RESOLVED, IssueStatus.CLOSED)

# Domain ordering Critical > High > Medium > Low
PRIORITY_RANK = {
    IssuePriority.LOW: 1,
    IssuePriority.MEDIUM: 2,
    IssuePriority.HIGH: 3,
    IssuePriority.CRITICAL: 4,
}


# Store-assigned document IDs: 20 alphanumeric characters
ID_PATTERN = re.compile(r"^[A-Za-z0-9]{20}$")


def is_valid_id(value) -> bool:
    """Check that a value is a syntactically valid document ID"""
    return isinstance(value, str) and bool(ID_PATTERN.match(value))


def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def _parse_datetime(value):
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _isoformat(value):
    return value.isoformat() if isinstance(value, datetime) else value


@dataclass
class User:
    """User model"""
    id: Optional[str] = None
    name: str = ""
    email: str = ""
    password_hash: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the document store"""
        result = {
            "name": self.name,
            "email": self.email,
            "password": self.password_hash,
        }
        if self.created_at:
            result["createdAt"] = self.created_at
        if self.updated_at:
            result["updatedAt"] = self.updated_at
        return result

    def to_public(self) -> Dict[str, Any]:
        """Public profile; never includes the password hash"""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
        }

    def to_reference(self) -> Dict[str, Any]:
        """Short form used when a user is attached to an issue"""
        return {
            "_id": self.id,
            "name": self.name,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, user_id: str, data: Dict[str, Any]) -> "User":
        """Create from a store document"""
        return cls(
            id=user_id,
            name=data.get("name", ""),
            email=data.get("email", ""),
            password_hash=data.get("password", ""),
            created_at=_parse_datetime(data.get("createdAt")),
            updated_at=_parse_datetime(data.get("updatedAt")),
        )


@dataclass
class Issue:
    """Issue model"""
    id: Optional[str] = None
    title: str = ""
    description: str = ""
    status: IssueStatus = IssueStatus.OPEN
    priority: IssuePriority = IssuePriority.MEDIUM
    severity: IssueSeverity = IssueSeverity.MINOR
    created_by: str = ""
    assigned_to: Optional[str] = None
    found_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    @property
    def priority_rank(self) -> int:
        return PRIORITY_RANK[self.priority]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the document store"""
        result = {
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "priorityRank": self.priority_rank,
            "severity": self.severity.value,
            "createdBy": self.created_by,
            "assignedTo": self.assigned_to,
        }
        if self.found_date:
            result["foundDate"] = self.found_date
        if self.created_at:
            result["createdAt"] = self.created_at
        if self.updated_at:
            result["updatedAt"] = self.updated_at
        if self.resolved_at:
            result["resolvedAt"] = self.resolved_at
        return result

    def to_json(self, creator: Any = None, assignee: Any = None) -> Dict[str, Any]:
        """
        Serialize for API responses.

        creator / assignee replace the raw user references when given; pass
        False to emit null for a reference that could not be resolved.
        """
        created_by = self.created_by
        if creator is not None:
            created_by = creator.to_reference() if creator else None
        assigned_to = self.assigned_to
        if assignee is not None:
            assigned_to = assignee.to_reference() if assignee else None
        return {
            "_id": self.id,
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "severity": self.severity.value,
            "createdBy": created_by,
            "assignedTo": assigned_to,
            "foundDate": _isoformat(self.found_date),
            "resolvedAt": _isoformat(self.resolved_at),
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }

    @classmethod
    def from_dict(cls, issue_id: str, data: Dict[str, Any]) -> "Issue":
        """Create from a store document"""
        return cls(
            id=issue_id,
            title=data.get("title", ""),
            description=data.get("description", ""),
            status=IssueStatus(data.get("status", "Open")),
            priority=IssuePriority(data.get("priority", "Medium")),
            severity=IssueSeverity(data.get("severity", "Minor")),
            created_by=data.get("createdBy", ""),
            assigned_to=data.get("assignedTo"),
            found_date=_parse_datetime(data.get("foundDate")),
            created_at=_parse_datetime(data.get("createdAt")),
            updated_at=_parse_datetime(data.get("updatedAt")),
            resolved_at=_parse_datetime(data.get("resolvedAt")),
        )
