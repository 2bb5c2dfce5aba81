"""
Application factory for ARIOT Web.

Wires together blueprints, DB lifecycle, owned in-memory state, error
handling, and request middleware.
"""
from __future__ import annotations

from time import perf_counter
from typing import Any

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ariot_web.auth import setup_gate
from ariot_web.blueprints.api_debug import ErrorRing
from ariot_web.config import SECRET_KEY
from ariot_web.db import init_db, open_db
from ariot_web.sessions import SurveyTracker
from ariot_web.settings_store import AppSettings
from ariot_web.util.logging import get_logger

log = get_logger(__name__)


def create_app(db_path: str, **overrides: Any) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=SECRET_KEY,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
    )
    app.config.update(overrides)

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------
    init_db(app, db_path)

    # ------------------------------------------------------------------
    # App-owned state (replaces module globals)
    # ------------------------------------------------------------------
    settings = AppSettings()
    con = open_db(db_path)
    try:
        settings.reload(con)
    finally:
        con.close()
    app.extensions["ariot.settings"] = settings
    app.extensions["ariot.surveys"] = SurveyTracker()
    app.extensions["ariot.errors"] = ErrorRing(maxlen=100)

    # ------------------------------------------------------------------
    # Request middleware
    # ------------------------------------------------------------------

    @app.before_request
    def start_timer_and_gate():
        g.request_start = perf_counter()
        return setup_gate(request.path)

    @app.after_request
    def log_request_end(response):
        start = g.get("request_start")
        if start is not None:
            duration_ms = (perf_counter() - start) * 1000
            if duration_ms > 500 or response.status_code >= 400:
                log.debug(
                    "%s %s -> %d (%.1fms)",
                    request.method,
                    request.path,
                    response.status_code,
                    duration_ms,
                    extra={"duration_ms": round(duration_ms, 1)},
                )
        return response

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------

    @app.errorhandler(HTTPException)
    def http_error(exc: HTTPException):
        if exc.response is not None:
            return exc.response
        if request.path.startswith("/api/"):
            return jsonify({"error": exc.description}), exc.code
        return exc

    @app.errorhandler(Exception)
    def unhandled_error(exc: Exception):
        app.extensions["ariot.errors"].capture(exc, request.path, request.method)
        log.error("Unhandled error on %s %s", request.method, request.path, exc_info=exc)
        if request.path.startswith("/api/"):
            return jsonify({"error": "Internal Server Error"}), 500
        return "Error", 500

    # ------------------------------------------------------------------
    # Register blueprints
    # ------------------------------------------------------------------
    from ariot_web.blueprints.api_auth import bp as api_auth_bp
    from ariot_web.blueprints.api_data import bp as api_data_bp
    from ariot_web.blueprints.api_debug import bp as api_debug_bp
    from ariot_web.blueprints.api_integrations import bp as api_integrations_bp
    from ariot_web.blueprints.api_planner import bp as api_planner_bp
    from ariot_web.blueprints.webhook import bp as webhook_bp

    app.register_blueprint(webhook_bp)
    app.register_blueprint(api_auth_bp)
    app.register_blueprint(api_integrations_bp)
    app.register_blueprint(api_data_bp)
    app.register_blueprint(api_planner_bp)
    app.register_blueprint(api_debug_bp)

    log.info("ARIOT Web ready (db=%s)", db_path)
    return app
