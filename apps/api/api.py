#!/usr/bin/env python3
"""
Issue endpoints and health check
"""

import logging
from flask import Blueprint, request, jsonify

from apps.api.auth import require_auth, get_current_user_id
from apps.api.errors import ApiError
from apps.api.extensions import limiter, get_store
from apps.api.schemas import (
    IssueCreateSchema, IssueUpdateSchema, IssueQuerySchema,
    validate_json_body, validate_query_params
)
from apps.api.services import issue_service

logger = logging.getLogger(__name__)

# Create API blueprint
api_bp = Blueprint("api", __name__, url_prefix="/api")


@api_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint"""
    return jsonify({
        "status": "healthy",
        "store_available": get_store().is_available()
    }), 200


@api_bp.route("/issues", methods=["GET"])
@require_auth
@limiter.limit("200 per minute")
def list_issues():
    """List issues with filtering, search, sorting and pagination"""
    try:
        # Blank query parameters mean "not given"
        args = {key: value for key, value in request.args.items() if value != ""}
        params = validate_query_params(IssueQuerySchema, args)
        return jsonify(issue_service.list_issues(get_store(), params)), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error listing issues: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500


@api_bp.route("/issues/<issue_id>", methods=["GET"])
@require_auth
@limiter.limit("200 per minute")
def get_issue(issue_id: str):
    """Get issue by ID"""
    try:
        return jsonify(issue_service.get_issue(get_store(), issue_id)), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error getting issue {issue_id}: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500


@api_bp.route("/issues", methods=["POST"])
@require_auth
@limiter.limit("100 per minute")
def create_issue():
    """Create a new issue owned by the caller"""
    try:
        data = validate_json_body(IssueCreateSchema, request.get_json(silent=True) or {})
        issue = issue_service.create_issue(get_store(), get_current_user_id(), data)
        return jsonify(issue), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error creating issue: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500


@api_bp.route("/issues/<issue_id>", methods=["PUT"])
@require_auth
@limiter.limit("100 per minute")
def update_issue(issue_id: str):
    """Update an issue"""
    try:
        data = validate_json_body(IssueUpdateSchema, request.get_json(silent=True) or {})
        return jsonify(issue_service.update_issue(get_store(), issue_id, data)), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error updating issue {issue_id}: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500


@api_bp.route("/issues/<issue_id>", methods=["DELETE"])
@require_auth
@limiter.limit("100 per minute")
def delete_issue(issue_id: str):
    try:
        return jsonify(issue_service.delete_issue(get_store(), issue_id)), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error deleting issue {issue_id}: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500
