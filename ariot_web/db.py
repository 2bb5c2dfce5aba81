"""
Database helpers for ARIOT Web.

Provides SQLite connection management (one connection per request context),
query helpers (q1/qa/execute), and JSON column helpers.
"""
from __future__ import annotations

import json
import os
import sqlite3
from typing import Any, Dict, List, Optional

from flask import Flask, current_app, g


def open_db(path: str) -> sqlite3.Connection:
    """
    Open a read-write SQLite connection with dict row factory.

    Args:
        path: Path to the SQLite database file (created if missing).

    Returns:
        sqlite3.Connection configured with WAL journaling and dict rows.
    """
    abspath = os.path.abspath(path)
    con = sqlite3.connect(abspath, timeout=5.0, check_same_thread=False)
    con.execute("PRAGMA busy_timeout=5000;")
    con.execute("PRAGMA journal_mode=WAL;")
    con.row_factory = lambda cur, row: {d[0]: row[i] for i, d in enumerate(cur.description)}
    return con


def q1(con: sqlite3.Connection, sql: str, params: Any = ()) -> Optional[Dict[str, Any]]:
    """Execute SQL and return the first row as a dict, or None."""
    cur = con.execute(sql, params)
    return cur.fetchone()


def qa(con: sqlite3.Connection, sql: str, params: Any = ()) -> List[Dict[str, Any]]:
    """Execute SQL and return all rows as a list of dicts."""
    cur = con.execute(sql, params)
    return cur.fetchall()


def execute(con: sqlite3.Connection, sql: str, params: Any = ()) -> sqlite3.Cursor:
    """Execute a single write statement inside its own transaction."""
    with con:
        return con.execute(sql, params)


def dump_json(value: Any) -> str:
    """Serialize a value for a JSON text column."""
    return json.dumps(value, default=str)


def load_json(text: Optional[str]) -> Any:
    """Decode a JSON text column, returning the raw text if it is not JSON."""
    if text is None:
        return None
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return text


# ---------------------------------------------------------------------------
# Request-scoped connection management
# ---------------------------------------------------------------------------


def init_db(app: Flask, db_path: str) -> None:
    """
    Record the database path on the app, create the schema, and register
    connection teardown.

    Args:
        app: Flask application instance.
        db_path: Path to the SQLite database file.
    """
    from ariot_web.schema import ensure_schema

    app.config["ARIOT_DB_PATH"] = db_path
    con = open_db(db_path)
    try:
        ensure_schema(con)
    finally:
        con.close()

    app.teardown_appcontext(close_con)


def get_con() -> sqlite3.Connection:
    """Get the connection bound to the current app context, opening it lazily."""
    if "ariot_db" not in g:
        g.ariot_db = open_db(current_app.config["ARIOT_DB_PATH"])
    return g.ariot_db


def close_con(error: Optional[BaseException] = None) -> None:
    """Close the app-context connection, if one was opened."""
    con = g.pop("ariot_db", None)
    if con is not None:
        con.close()
