"""
Authentication helpers for ARIOT Web.

Management endpoints are protected by a signed-cookie session set at login.
Webhooks are always public.
"""
from __future__ import annotations

from typing import Optional

from flask import abort, current_app, jsonify, make_response, session

from ariot_web.settings_store import AppSettings

SESSION_USER_KEY = "user_id"

# Paths reachable before the setup wizard has been completed.
SETUP_ALLOWLIST = ("/api/app-info", "/api/complete-setup")


def get_settings() -> AppSettings:
    return current_app.extensions["ariot.settings"]


def current_user() -> Optional[str]:
    return session.get(SESSION_USER_KEY)


def login_user(username: str) -> None:
    session.clear()
    session[SESSION_USER_KEY] = username


def logout_user() -> None:
    session.clear()


def require_auth() -> str:
    """
    Require a logged-in session for the current request.

    Returns:
        The logged-in username.

    Raises:
        werkzeug.exceptions.Unauthorized: If no user is logged in.
    """
    user = current_user()
    if not user:
        abort(make_response(jsonify({"error": "Unauthorized"}), 401))
    return user


def setup_gate(path: str):
    """
    Block API calls until the setup wizard has run.

    Used as a before_request hook; returns a response to short-circuit the
    request, or None to continue.
    """
    if not path.startswith("/api/") or path in SETUP_ALLOWLIST:
        return None
    if get_settings().configured:
        return None
    return jsonify({"error": "Setup required"}), 403
