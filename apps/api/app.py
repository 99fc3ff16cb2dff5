#!/usr/bin/env python3
"""
Main Flask Application for Issue Tracker API
"""

import os
import logging
import uuid

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException

from apps.api.extensions import talisman, limiter
from apps.api.account import auth_bp
from apps.api.api import api_bp
from apps.api.insights import insights_bp
from apps.api.utils.provider_factory import connect_store

logger = logging.getLogger(__name__)

DEV_SECRET_KEY = "dev-secret-key-change-in-production-issuetracker"


def create_app(config=None, store=None):
    """
    Create and configure Flask application.

    Args:
        config: Optional mapping of config overrides (applied last).
        store: Optional StoreProvider; when omitted one is connected from config.
    """
    app = Flask(__name__)

    # 1. Configure App
    configure_app(app, config)
    configure_logging(app)

    # 2. Connect the store and attach the handle
    if store is None:
        store = connect_store(app.config)
    app.extensions["store"] = store

    # 3. Initialize Extensions
    init_extensions(app)

    # 4. Register Blueprints
    register_blueprints(app)

    # 5. Register Error Handlers
    register_error_handlers(app)

    return app


def _env_bool(name, default="False"):
    return os.getenv(name, default).lower() == "true"


def configure_app(app, overrides=None):
    """Configure Flask application from the environment, then overrides"""
    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        secret_key = DEV_SECRET_KEY
        logger.warning("SECRET_KEY not set. Using fallback development secret key.")
    if len(secret_key) < 32:
        logger.warning(f"SECRET_KEY should be at least 32 characters long. Current length: {len(secret_key)}")

    app.config["SECRET_KEY"] = secret_key
    app.config["JWT_SECRET"] = os.getenv("JWT_SECRET", secret_key)
    app.config["JWT_EXPIRES_DAYS"] = int(os.getenv("JWT_EXPIRES_DAYS", "7"))

    # Store
    app.config["STORE_BACKEND"] = os.getenv("STORE_BACKEND", "firestore")
    app.config["FIREBASE_CREDENTIALS"] = os.getenv("FIREBASE_CREDENTIALS")
    app.config["STORE_CONNECT_RETRIES"] = int(os.getenv("STORE_CONNECT_RETRIES", "5"))
    app.config["STORE_CONNECT_BACKOFF"] = float(os.getenv("STORE_CONNECT_BACKOFF", "1.0"))
    app.config["ANALYTICS_MAX_WORKERS"] = int(os.getenv("ANALYTICS_MAX_WORKERS", "8"))

    # Rate limiting
    app.config["RATELIMIT_DEFAULT"] = os.getenv("RATELIMIT_DEFAULT", "200 per minute")
    app.config["RATELIMIT_ENABLED"] = _env_bool("RATELIMIT_ENABLED", "True")

    # Flask configuration
    app.config["FLASK_DEBUG"] = _env_bool("FLASK_DEBUG")
    app.config["FLASK_PORT"] = int(os.getenv("FLASK_PORT", "5000"))
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO")
    app.json.sort_keys = False

    if overrides:
        app.config.update(overrides)


def configure_logging(app):
    """Configure root logging once"""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )


def init_extensions(app):
    """Initialize Flask extensions"""
    # Security Headers (Talisman)
    talisman.init_app(
        app,
        force_https=False,  # Set to True in production with HTTPS
        strict_transport_security=False,  # Set to True in production
        content_security_policy=None
    )

    # Rate Limiting
    limiter.init_app(app)


def register_blueprints(app):
    """Register Flask blueprints"""
    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(insights_bp)

    @app.route("/")
    def index():
        return jsonify({"message": "Issue Tracker API is running"})


def register_error_handlers(app):
    """Register error handlers"""
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"msg": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"msg": "Method not allowed"}), 405

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify({"msg": "Too many requests"}), 429

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({"msg": e.description}), e.code
        error_id = str(uuid.uuid4())
        app.logger.exception(
            "Unhandled exception",
            extra={'error_id': error_id, 'endpoint': request.endpoint, 'method': request.method, 'path': request.path}
        )
        return jsonify({"msg": "Server error", "error_id": error_id}), 500


if __name__ == "__main__":
    app = create_app()
    port = app.config.get('FLASK_PORT', 5000)
    debug = app.config.get('FLASK_DEBUG', False)
    app.run(host='0.0.0.0', port=port, debug=debug)
