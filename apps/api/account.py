#!/usr/bin/env python3
"""
Account endpoints: register, login and the caller's own profile
"""

import logging
from flask import Blueprint, request, jsonify, g

from apps.api.auth import require_auth, issue_token, get_current_user_id
from apps.api.errors import ApiError
from apps.api.extensions import limiter, get_store
from apps.api.schemas import RegisterSchema, LoginSchema, ProfileUpdateSchema, validate_json_body
from apps.api.services import account_service

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("20 per minute")
def register():
    """Register a user and return a session token"""
    try:
        data = validate_json_body(RegisterSchema, request.get_json(silent=True) or {})
        user = account_service.register(get_store(), data["name"], data["email"], data["password"])
        return jsonify({"token": issue_token(user.id), "user": user.to_public()}), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error registering user: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("20 per minute")
def login():
    """Exchange email and password for a session token"""
    try:
        data = validate_json_body(LoginSchema, request.get_json(silent=True) or {})
        user = account_service.login(get_store(), data["email"], data["password"])
        return jsonify({"token": issue_token(user.id), "user": user.to_public()}), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error logging in: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500


@auth_bp.route("/me", methods=["GET"])
@require_auth
def get_me():
    """Current user's profile; echoes the presented token"""
    try:
        user = account_service.get_profile(get_store(), get_current_user_id())
        return jsonify({"token": g.token, "user": user.to_public()}), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error loading profile: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500


@auth_bp.route("/me", methods=["PUT"])
@require_auth
@limiter.limit("30 per minute")
def update_me():
    """Update name and/or email"""
    try:
        data = validate_json_body(ProfileUpdateSchema, request.get_json(silent=True) or {})
        user = account_service.update_profile(get_store(), get_current_user_id(), data)
        return jsonify({"token": issue_token(user.id), "user": user.to_public()}), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error updating profile: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500


@auth_bp.route("/me", methods=["DELETE"])
@require_auth
def delete_me():
    try:
        account_service.delete_account(get_store(), get_current_user_id())
        return jsonify({"msg": "User deleted"}), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error deleting user: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500
