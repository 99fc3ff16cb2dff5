#!/usr/bin/env python3
"""
Dashboard and analytics endpoints
"""

import logging
from flask import Blueprint, jsonify, current_app

from apps.api.auth import require_auth, get_current_user_id
from apps.api.errors import ApiError
from apps.api.extensions import limiter, get_store
from apps.api.services.analytics_service import get_general_analytics, get_user_analytics
from apps.api.services.dashboard_service import get_dashboard

logger = logging.getLogger(__name__)

insights_bp = Blueprint("insights", __name__, url_prefix="/api")


def _max_workers():
    return current_app.config.get("ANALYTICS_MAX_WORKERS", 8)


@insights_bp.route("/dashboard", methods=["GET"])
@require_auth
@limiter.limit("60 per minute")
def dashboard():
    """Personal dashboard for the caller"""
    try:
        data = get_dashboard(get_store(), get_current_user_id(), max_workers=_max_workers())
        return jsonify(data), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error building dashboard: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500


@insights_bp.route("/analytics", methods=["GET"])
@require_auth
@limiter.limit("60 per minute")
def general_analytics():
    """System-wide analytics"""
    try:
        return jsonify(get_general_analytics(get_store(), max_workers=_max_workers())), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error building analytics: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500


@insights_bp.route("/analytics/user/<user_id>", methods=["GET"])
@require_auth
@limiter.limit("60 per minute")
def user_analytics(user_id: str):
    """Analytics for any user"""
    try:
        data = get_user_analytics(get_store(), user_id, max_workers=_max_workers())
        return jsonify(data), 200

    except ApiError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logger.error(f"Error building analytics for user {user_id}: {e}", exc_info=True)
        return jsonify({"msg": "Server error"}), 500
