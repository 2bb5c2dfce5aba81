"""
Data API blueprint for ARIOT Web.

Provides the map data listing, CSV export, survey sessions, saved points, and
planner scenario storage.
"""
from __future__ import annotations

from flask import Blueprint, Response, abort, current_app, jsonify, make_response, request

from ariot_web.auth import require_auth
from ariot_web.db import get_con
from ariot_web.errors import PersistenceError
from ariot_web.measurements import all_map_points, export_csv, save_point, save_scenario
from ariot_web.sessions import SurveyTracker
from ariot_web.util.logging import get_logger, log_exception

bp = Blueprint("api_data", __name__)

log = get_logger(__name__)


def _tracker() -> SurveyTracker:
    return current_app.extensions["ariot.surveys"]


# ---------------------------------------------------------------------------
# Map data & export
# ---------------------------------------------------------------------------


@bp.get("/api/get-all-data")
def api_get_all_data():
    """Located live measurements and saved points, newest first."""
    require_auth()
    return jsonify(all_map_points(get_con()))


@bp.get("/api/export-csv")
def api_export_csv():
    """Download every measurement and saved point as CSV."""
    require_auth()
    return Response(
        export_csv(get_con()),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=ariot_data.csv"},
    )


# ---------------------------------------------------------------------------
# Survey sessions
# ---------------------------------------------------------------------------


@bp.get("/api/start-session")
def api_start_session():
    user = require_auth()
    session = _tracker().start(user)
    return jsonify({"status": "started", "started_at": session.started_at})


@bp.get("/api/poll-session")
def api_poll_session():
    user = require_auth()
    result = _tracker().poll(get_con(), user)
    if result is None:
        return jsonify({"error": "No active session"}), 400
    return jsonify(result)


# ---------------------------------------------------------------------------
# Saved points & scenarios
# ---------------------------------------------------------------------------


@bp.post("/api/save-point")
def api_save_point():
    """Store a manually placed survey point."""
    require_auth()
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    try:
        point_id = save_point(
            get_con(),
            payload.get("avg_rssi"),
            payload.get("avg_snr"),
            payload.get("lat"),
            payload.get("lng"),
            payload.get("note"),
        )
    except ValueError as exc:
        abort(make_response(jsonify({"error": str(exc)}), 400))
    except PersistenceError:
        log_exception(log, "save-point failed", error_type="persist")
        return jsonify({"error": "Save failed"}), 500
    return jsonify({"success": True, "id": point_id})


@bp.post("/api/save-scenario")
def api_save_scenario():
    """Store a list of planned gateways."""
    require_auth()
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    gateways = payload.get("gateways")
    if not isinstance(gateways, list):
        return Response("Invalid data", status=400, mimetype="text/plain")
    try:
        saved = save_scenario(get_con(), gateways)
    except ValueError as exc:
        abort(make_response(jsonify({"error": str(exc)}), 400))
    except PersistenceError:
        log_exception(log, "save-scenario failed", error_type="persist")
        return jsonify({"error": "Save error"}), 500
    return jsonify({"success": True, "saved": saved})
