#!/usr/bin/env python3
"""
Input validation schemas for Issue Tracker API endpoints using Marshmallow.
"""

from datetime import timezone

from marshmallow import Schema, fields, validate, ValidationError, EXCLUDE, pre_load

from apps.api.errors import ValidationFailed
from apps.api.models import IssueStatus, IssuePriority, IssueSeverity, ID_PATTERN
from apps.api.services.issue_service import SORTABLE

STATUSES = [status.value for status in IssueStatus]
PRIORITIES = [priority.value for priority in IssuePriority]
SEVERITIES = [severity.value for severity in IssueSeverity]

document_id = validate.Regexp(ID_PATTERN, error="Invalid ID")


class RegisterSchema(Schema):
    """Schema for registering a user"""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=200, error="Name is required"),
        error_messages={"required": "Name is required"}
    )
    email = fields.Email(
        required=True,
        error_messages={"required": "Please include a valid email", "invalid": "Please include a valid email"}
    )
    password = fields.Str(
        required=True,
        validate=validate.Length(min=6, error="Password must be at least 6 characters"),
        error_messages={"required": "Password must be at least 6 characters"}
    )


class LoginSchema(Schema):
    """Schema for logging in"""
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(
        required=True,
        error_messages={"required": "Please include a valid email", "invalid": "Please include a valid email"}
    )
    password = fields.Str(
        required=True,
        error_messages={"required": "Password is required"}
    )


class ProfileUpdateSchema(Schema):
    """Schema for updating the caller's profile"""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(validate=validate.Length(min=1, max=200, error="Name is required"))
    email = fields.Email(error_messages={"invalid": "Please include a valid email"})


class IssueCreateSchema(Schema):
    """Schema for creating a new issue"""
    class Meta:
        unknown = EXCLUDE

    title = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=200, error="Title is required"),
        error_messages={"required": "Title is required", "invalid": "Title must be a string"}
    )
    description = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=10000, error="Description is required"),
        error_messages={"required": "Description is required", "invalid": "Description must be a string"}
    )
    status = fields.Str(validate=validate.OneOf(STATUSES), load_default=IssueStatus.OPEN.value)
    priority = fields.Str(validate=validate.OneOf(PRIORITIES), load_default=IssuePriority.MEDIUM.value)
    severity = fields.Str(validate=validate.OneOf(SEVERITIES), load_default=IssueSeverity.MINOR.value)
    assignedTo = fields.Str(validate=document_id, allow_none=True, load_default=None)
    foundDate = fields.AwareDateTime(default_timezone=timezone.utc, allow_none=True, load_default=None)

    @pre_load
    def strip_title(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("title"), str):
            data = dict(data, title=data["title"].strip())
        return data


class IssueUpdateSchema(Schema):
    """Schema for updating an issue; every field is optional"""
    class Meta:
        unknown = EXCLUDE

    title = fields.Str(validate=validate.Length(min=1, max=200))
    description = fields.Str(validate=validate.Length(min=1, max=10000))
    status = fields.Str(validate=validate.OneOf(STATUSES))
    priority = fields.Str(validate=validate.OneOf(PRIORITIES))
    severity = fields.Str(validate=validate.OneOf(SEVERITIES))
    assignedTo = fields.Str(validate=document_id, allow_none=True)
    foundDate = fields.AwareDateTime(default_timezone=timezone.utc, allow_none=True)


class IssueQuerySchema(Schema):
    """Schema for listing issues"""
    class Meta:
        unknown = EXCLUDE

    status = fields.Str(validate=validate.OneOf(STATUSES))
    priority = fields.Str(validate=validate.OneOf(PRIORITIES))
    severity = fields.Str(validate=validate.OneOf(SEVERITIES))
    search = fields.Str(validate=validate.Length(max=200))
    page = fields.Int(validate=validate.Range(min=1), load_default=1)
    limit = fields.Int(validate=validate.Range(min=1, max=100), load_default=10)
    sortBy = fields.Str(validate=validate.OneOf(list(SORTABLE)), load_default="createdAt")
    sortOrder = fields.Str(validate=validate.OneOf(["asc", "desc"]), load_default="desc")


def _field_errors(messages, prefix=""):
    """Flatten marshmallow's nested messages into [{field, msg}]"""
    errors = []
    for field, value in messages.items():
        name = f"{prefix}{field}"
        if isinstance(value, dict):
            errors.extend(_field_errors(value, prefix=f"{name}."))
        else:
            for msg in value if isinstance(value, list) else [value]:
                errors.append({"field": name, "msg": msg})
    return errors


def _load(schema_class, data):
    schema = schema_class()
    try:
        return schema.load(data)
    except ValidationError as err:
        raise ValidationFailed(_field_errors(err.messages))


def validate_query_params(schema_class, data):
    """Validate query parameters using a schema"""
    return _load(schema_class, data)


def validate_json_body(schema_class, data):
    """Validate JSON body using a schema"""
    return _load(schema_class, data)
