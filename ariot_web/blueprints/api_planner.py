"""
Coverage planner API blueprint for ARIOT Web.

Runs the path-loss and clustering helpers over the current map points.
"""
from __future__ import annotations

from flask import Blueprint, abort, jsonify, make_response, request

from ariot_web.auth import require_auth
from ariot_web.config import DEFAULT_FREQUENCY_MHZ, DEFAULT_PATH_LOSS_EXPONENT
from ariot_web.db import get_con
from ariot_web.measurements import all_map_points
from ariot_web.normalize import coerce_number
from ariot_web.planner import simulate_coverage, suggest_gateways

bp = Blueprint("api_planner", __name__)


@bp.post("/api/planner/coverage")
def api_planner_coverage():
    """Estimate coverage radius and covered points for a candidate gateway."""
    require_auth()
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}

    lat = coerce_number(payload.get("lat"))
    lng = coerce_number(payload.get("lng"))
    if lat is None or lng is None:
        abort(make_response(jsonify({"error": "lat and lng are required"}), 400))

    n = coerce_number(payload.get("n"))
    frequency = coerce_number(payload.get("frequency"))
    try:
        result = simulate_coverage(
            (lat, lng),
            all_map_points(get_con()),
            frequency if frequency is not None else DEFAULT_FREQUENCY_MHZ,
            n if n is not None else DEFAULT_PATH_LOSS_EXPONENT,
        )
    except ValueError as exc:
        abort(make_response(jsonify({"error": str(exc)}), 400))
    return jsonify(result)


@bp.post("/api/planner/optimize")
def api_planner_optimize():
    """Suggest gateway sites by clustering weak-signal points."""
    require_auth()
    return jsonify(suggest_gateways(all_map_points(get_con())))
