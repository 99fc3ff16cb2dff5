#!/usr/bin/env python3
"""
Authentication and authorization for Issue Tracker
"""

import logging
from datetime import timedelta
from functools import wraps
from typing import Optional

import bcrypt
from flask import request, jsonify, current_app, g
from jose import jwt, JWTError

from apps.api.errors import Unauthenticated
from apps.api.models import utcnow

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    """Salted bcrypt hash of a cleartext password"""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Compare a cleartext password against a stored bcrypt hash"""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def create_token(user_id: str, secret: str, expires_days: int = 7) -> str:
    """Signed session token carrying the user id"""
    payload = {
        "user": {"id": user_id},
        "exp": utcnow() + timedelta(days=expires_days),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_token(token: str, secret: str) -> Optional[str]:
    """Return the user id from a valid token, or None when invalid/expired"""
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        return None
    user = payload.get("user") or {}
    return user.get("id")


def issue_token(user_id: str) -> str:
    """Create a token with the current app's signing configuration"""
    return create_token(
        user_id,
        current_app.config["JWT_SECRET"],
        current_app.config.get("JWT_EXPIRES_DAYS", 7),
    )


def get_bearer_token() -> Optional[str]:
    """Token from the Authorization header, with or without the Bearer prefix"""
    header = request.headers.get("Authorization", "")
    token = header[7:] if header.startswith("Bearer ") else header
    return token.strip() or None


def get_current_user_id() -> Optional[str]:
    """User id set by require_auth for the current request"""
    return g.get("user_id")


def _unauthenticated(msg: str):
    error = Unauthenticated(msg)
    return jsonify(error.to_dict()), error.status_code


def require_auth(f):
    """Decorator to require a valid bearer token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            return _unauthenticated("No token, authorization denied")

        user_id = decode_token(token, current_app.config["JWT_SECRET"])
        if not user_id:
            return _unauthenticated("Token is not valid")

        g.user_id = user_id
        g.token = token
        return f(*args, **kwargs)
    return decorated_function
