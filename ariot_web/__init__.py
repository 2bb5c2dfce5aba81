"""
ARIOT Web — Flask application for LoRa signal mapping and webhook ingestion.

This package provides the web service that:
- Accepts webhooks from network servers and runs per-integration decoder scripts
- Normalizes decoder output into measurements stored in SQLite
- Records every webhook outcome in a queryable audit log
- Serves map data, CSV export, survey sessions, and a coverage planner

Usage:
    from ariot_web import create_app
    app = create_app(db_path="ariot.db")
    app.run(host="0.0.0.0", port=3001)
"""
from __future__ import annotations

__version__ = "0.1.0"

from ariot_web.app import create_app

__all__ = ["create_app", "__version__"]
