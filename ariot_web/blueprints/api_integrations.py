"""
Integration management API blueprint for ARIOT Web.

Provides endpoints for listing, creating, and deleting integrations, and for
reading the audit log.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, make_response, request, abort

from ariot_web.audit import recent_logs
from ariot_web.auth import require_auth
from ariot_web.db import get_con
from ariot_web.errors import IntegrationConflict, IntegrationInvalid, IntegrationNotFound
from ariot_web.registry import create_integration, delete_integration, list_integrations

bp = Blueprint("api_integrations", __name__)


def _json_abort(status: int, message: str) -> None:
    abort(make_response(jsonify({"error": message}), status))


# ---------------------------------------------------------------------------
# Integrations
# ---------------------------------------------------------------------------


@bp.get("/api/integrations")
def api_integrations_list():
    """List integrations, newest first."""
    require_auth()
    return jsonify([i.to_dict() for i in list_integrations(get_con())])


@bp.post("/api/integrations")
def api_integrations_create():
    """Register a new integration from {name, slug, script}."""
    require_auth()
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        _json_abort(400, "JSON object body required")

    try:
        integration = create_integration(
            get_con(), payload.get("name"), payload.get("slug"), payload.get("script")
        )
    except IntegrationInvalid as exc:
        _json_abort(400, str(exc))
    except IntegrationConflict as exc:
        _json_abort(409, str(exc))

    return jsonify({"success": True, "integration": integration.to_dict()}), 201


@bp.delete("/api/integrations/<int:integration_id>")
def api_integrations_delete(integration_id: int):
    """Delete an integration by id."""
    require_auth()
    try:
        delete_integration(get_con(), integration_id)
    except IntegrationNotFound:
        _json_abort(404, "not_found")
    return jsonify({"success": True})


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------


@bp.get("/api/system-logs")
def api_system_logs():
    """Latest audit entries, newest first."""
    require_auth()
    limit = request.args.get("limit", type=int)
    return jsonify(recent_logs(get_con(), limit))
