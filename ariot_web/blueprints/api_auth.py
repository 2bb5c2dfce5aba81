"""
Setup wizard and login API blueprint for ARIOT Web.
"""
from __future__ import annotations

from flask import Blueprint, abort, jsonify, make_response, request

from ariot_web.auth import get_settings, login_user, logout_user
from ariot_web.db import get_con
from ariot_web.util.logging import get_logger

bp = Blueprint("api_auth", __name__)

log = get_logger(__name__)


@bp.get("/api/app-info")
def api_app_info():
    """Display name and setup state (public)."""
    snap = get_settings().snapshot()
    return jsonify({"name": snap.app_name, "configured": snap.configured})


@bp.post("/api/complete-setup")
def api_complete_setup():
    """Store app name and admin credentials; only allowed once."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    settings = get_settings()
    if settings.configured:
        abort(make_response(jsonify({"error": "Setup already completed"}), 409))
    try:
        settings.complete_setup(
            get_con(),
            payload.get("appName"),
            payload.get("adminUser"),
            payload.get("adminPass"),
        )
    except ValueError as exc:
        abort(make_response(jsonify({"error": str(exc)}), 400))
    return jsonify({"success": True})


@bp.post("/api/login")
def api_login():
    """Start a session for the admin user."""
    payload = request.get_json(silent=True) or request.form.to_dict()
    if not isinstance(payload, dict):
        payload = {}
    user = str(payload.get("user") or "")
    password = str(payload.get("pass") or "")
    if not get_settings().verify_credentials(get_con(), user, password):
        log.warning("Failed login for %r from %s", user, request.remote_addr)
        return jsonify({"error": "Invalid credentials"}), 401
    login_user(user)
    return jsonify({"success": True})


@bp.post("/api/logout")
def api_logout():
    logout_user()
    return jsonify({"success": True})
