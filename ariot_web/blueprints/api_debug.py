"""
Debug and observability API blueprint for ARIOT Web.

Provides endpoints for health checks, table row counts, effective
configuration, and recently captured request errors.
"""
from __future__ import annotations

import os
import sqlite3
import threading
import traceback as tb
from typing import Any, Dict, List

from flask import Blueprint, current_app, jsonify, request

from ariot_web.auth import require_auth
from ariot_web.config import (
    DECODER_TIMEOUT_SECONDS,
    DEFAULT_SLUG_PRIORITY,
    POINTS_PER_GATEWAY,
    SENSITIVITY_DBM,
    SURVEY_REQUIRED_SAMPLES,
    SYSTEM_LOG_LIMIT,
    TX_POWER_DBM,
    WEAK_SIGNAL_DBM,
)
from ariot_web.db import get_con, q1
from ariot_web.util.time import utc_now_str

bp = Blueprint("api_debug", __name__)

TABLES = ("integrations", "measurements", "system_logs", "saved_points", "planned_gateways")


# ---------------------------------------------------------------------------
# In-memory error ring buffer
# ---------------------------------------------------------------------------


class ErrorRing:
    """Bounded, thread-safe list of recent unhandled request errors."""

    def __init__(self, maxlen: int = 100) -> None:
        self.maxlen = maxlen
        self._lock = threading.Lock()
        self._entries: List[Dict[str, Any]] = []

    def capture(self, exc: BaseException, path: str, method: str) -> None:
        entry = {
            "ts": utc_now_str(),
            "path": path,
            "method": method,
            "error": str(exc),
            "type": type(exc).__name__,
            "traceback": "".join(tb.format_exception(type(exc), exc, exc.__traceback__)),
        }
        with self._lock:
            self._entries.append(entry)
            del self._entries[: max(0, len(self._entries) - self.maxlen)]

    def latest(self, limit: int) -> List[Dict[str, Any]]:
        with self._lock:
            return list(reversed(self._entries[-limit:]))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _ring() -> ErrorRing:
    return current_app.extensions["ariot.errors"]


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@bp.get("/api/debug/health")
def api_debug_health():
    """Health check: DB connectivity, table counts, WAL size."""
    require_auth()
    db_path = current_app.config["ARIOT_DB_PATH"]

    health: Dict[str, Any] = {
        "status": "ok",
        "db": "unknown",
        "tables": {},
        "wal_size_bytes": None,
    }

    try:
        con = get_con()
        con.execute("SELECT 1")
        health["db"] = "connected"
        for table in TABLES:
            row = q1(con, f"SELECT COUNT(*) AS cnt FROM {table}")
            health["tables"][table] = int(row["cnt"]) if row else 0
    except sqlite3.Error as exc:
        health["db"] = f"error: {exc}"
        health["status"] = "degraded"

    wal_path = os.path.abspath(db_path) + "-wal"
    if os.path.exists(wal_path):
        health["wal_size_bytes"] = os.path.getsize(wal_path)

    return jsonify(health)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@bp.get("/api/debug/config")
def api_debug_config():
    """Runtime configuration: environment variables and constants."""
    require_auth()
    config: Dict[str, Any] = {
        "env": {
            "ARIOT_SECRET_KEY": "***" if os.environ.get("ARIOT_SECRET_KEY") else "(not set)",
            "ARIOT_DEBUG": os.environ.get("ARIOT_DEBUG", "(not set)"),
            "ARIOT_LOG_LEVEL": os.environ.get("ARIOT_LOG_LEVEL", "(not set)"),
            "ARIOT_LOG_FILE": os.environ.get("ARIOT_LOG_FILE", "(not set)"),
        },
        "constants": {
            "DECODER_TIMEOUT_SECONDS": DECODER_TIMEOUT_SECONDS,
            "DEFAULT_SLUG_PRIORITY": list(DEFAULT_SLUG_PRIORITY),
            "SYSTEM_LOG_LIMIT": SYSTEM_LOG_LIMIT,
            "SURVEY_REQUIRED_SAMPLES": SURVEY_REQUIRED_SAMPLES,
            "TX_POWER_DBM": TX_POWER_DBM,
            "SENSITIVITY_DBM": SENSITIVITY_DBM,
            "WEAK_SIGNAL_DBM": WEAK_SIGNAL_DBM,
            "POINTS_PER_GATEWAY": POINTS_PER_GATEWAY,
        },
        "db_path": current_app.config["ARIOT_DB_PATH"],
    }
    return jsonify(config)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


@bp.get("/api/debug/errors")
def api_debug_errors():
    """Recent captured errors from the ring buffer."""
    require_auth()
    ring = _ring()
    limit = request.args.get("limit", type=int) or 50
    limit = max(1, min(limit, ring.maxlen))
    return jsonify({"errors": ring.latest(limit), "total_captured": len(ring)})
