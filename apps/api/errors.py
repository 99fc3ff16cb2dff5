#!/usr/bin/env python3
"""
Error taxonomy for Issue Tracker API
"""

from typing import List, Dict, Any, Optional


class ApiError(Exception):
    """Base class for errors that map directly to an HTTP response"""
    status_code = 500
    default_msg = "Server error"

    def __init__(self, msg: Optional[str] = None):
        self.msg = msg or self.default_msg
        super().__init__(self.msg)

    def to_dict(self) -> Dict[str, Any]:
        return {"msg": self.msg}


class Unauthenticated(ApiError):
    status_code = 401
    default_msg = "User not authenticated"


class ValidationFailed(ApiError):
    """Request body or query failed validation; carries field-level errors"""
    status_code = 400
    default_msg = "Validation failed"

    def __init__(self, errors: List[Dict[str, str]]):
        super().__init__()
        self.errors = errors

    def to_dict(self) -> Dict[str, Any]:
        return {"errors": self.errors}


class InvalidInput(ApiError):
    status_code = 400
    default_msg = "Invalid input"


class Conflict(ApiError):
    status_code = 400
    default_msg = "User already exists"


class InvalidCredentials(ApiError):
    status_code = 400
    default_msg = "Invalid credentials"


class NotFound(ApiError):
    status_code = 404
    default_msg = "Not found"


class MalformedId(Exception):
    """Raised by a store when an identifier cannot address a document"""


class StoreUnavailable(Exception):
    """Raised when the document store cannot be reached"""
