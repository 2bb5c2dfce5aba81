"""
Audit log sink for ARIOT Web.

Append-only store of structured events in the ``system_logs`` table. Rows are
never updated or deleted here; the operator-facing query returns the newest
entries first.
"""
from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional

from ariot_web.config import SYSTEM_LOG_LIMIT
from ariot_web.db import dump_json, execute, load_json, qa
from ariot_web.util.time import utc_now_str

LEVELS = ("info", "warn", "error")

SOURCE_WEBHOOK = "webhook"
SOURCE_SYSTEM = "system"


def write_log(
    con: sqlite3.Connection,
    source: str,
    level: str,
    message: str,
    details: Any = None,
) -> int:
    """
    Append one audit entry and return its id.

    Raises:
        ValueError: If level is not one of info/warn/error.
        sqlite3.Error: If the insert fails.
    """
    if level not in LEVELS:
        raise ValueError(f"invalid audit level: {level!r}")
    cur = execute(
        con,
        "INSERT INTO system_logs (source, level, message, details, created_at) VALUES (?, ?, ?, ?, ?)",
        (source, level, message, dump_json(details), utc_now_str()),
    )
    return int(cur.lastrowid)


def recent_logs(con: sqlite3.Connection, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Return the newest audit entries, newest first, with details decoded.

    Args:
        con: SQLite connection.
        limit: Requested row count; clamped to 1..SYSTEM_LOG_LIMIT.
    """
    if limit is None:
        limit = SYSTEM_LOG_LIMIT
    limit = max(1, min(int(limit), SYSTEM_LOG_LIMIT))
    rows = qa(
        con,
        """
        SELECT id, source, level, message, details, created_at
        FROM system_logs
        ORDER BY created_at DESC, id DESC
        LIMIT ?
        """,
        (limit,),
    )
    for row in rows:
        row["details"] = load_json(row.get("details"))
    return rows
