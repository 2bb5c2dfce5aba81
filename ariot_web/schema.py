"""
Schema DDL for ARIOT Web.

Creates every table the application reads or writes. Statements are
idempotent and run once at application start.
"""
from __future__ import annotations

import sqlite3

from ariot_web.util.logging import get_logger

log = get_logger(__name__)


SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS app_config (
        key TEXT PRIMARY KEY,
        value TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS integrations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        endpoint_slug TEXT NOT NULL UNIQUE,
        decoder_script TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS measurements (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        gateway_id TEXT NOT NULL,
        rssi REAL NOT NULL,
        snr REAL NOT NULL,
        frequency REAL NOT NULL,
        spreading_factor REAL,
        latitude REAL,
        longitude REAL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_measurements_created ON measurements(created_at)",
    """
    CREATE TABLE IF NOT EXISTS saved_points (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        note TEXT,
        avg_rssi REAL,
        avg_snr REAL,
        latitude REAL,
        longitude REAL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS planned_gateways (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        latitude REAL,
        longitude REAL,
        radius REAL,
        frequency REAL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS system_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source TEXT NOT NULL,
        level TEXT NOT NULL CHECK (level IN ('info', 'warn', 'error')),
        message TEXT NOT NULL,
        details TEXT,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_system_logs_created ON system_logs(created_at)",
]


def ensure_schema(conn: sqlite3.Connection) -> None:
    """
    Ensure all application tables exist.

    Args:
        conn: Writable SQLite connection.
    """
    with conn:
        for stmt in SCHEMA_STATEMENTS:
            conn.execute(stmt)
    log.debug("Schema verified (%d statements)", len(SCHEMA_STATEMENTS))
