"""
Measurement, saved point, and planned gateway storage for ARIOT Web.

Also builds the combined map listing and the CSV export.
"""
from __future__ import annotations

import csv
import io
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from ariot_web.db import execute, qa
from ariot_web.errors import PersistenceError
from ariot_web.normalize import Measurement, coerce_number
from ariot_web.util.time import utc_now_str

CSV_HEADER = ["type", "gateway", "rssi", "snr", "latitude", "longitude", "timestamp"]


def insert_measurement(con: sqlite3.Connection, m: Measurement) -> int:
    """
    Persist a normalized measurement.

    Raises:
        PersistenceError: If the database write fails.
    """
    try:
        cur = execute(
            con,
            """
            INSERT INTO measurements
                (gateway_id, rssi, snr, frequency, spreading_factor, latitude, longitude, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                m.gateway_id,
                m.rssi,
                m.snr,
                m.frequency,
                m.spreading_factor,
                m.latitude,
                m.longitude,
                utc_now_str(),
            ),
        )
    except sqlite3.Error as exc:
        raise PersistenceError(f"measurement insert failed: {exc}") from exc
    return int(cur.lastrowid)


def readings_since(con: sqlite3.Connection, since: str) -> List[Dict[str, Any]]:
    """Return rssi/snr of measurements created at or after ``since``, oldest first."""
    return qa(
        con,
        """
        SELECT rssi, snr FROM measurements
        WHERE created_at >= ?
        ORDER BY created_at ASC, id ASC
        """,
        (since,),
    )


def _float_or_none(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def all_map_points(con: sqlite3.Connection) -> List[Dict[str, Any]]:
    """Located live measurements and saved points, newest first."""
    rows = qa(
        con,
        """
        SELECT id, 'live' AS type, gateway_id, rssi, snr, latitude, longitude, created_at
        FROM measurements WHERE latitude IS NOT NULL AND longitude IS NOT NULL
        UNION ALL
        SELECT id, 'saved' AS type, 'manual' AS gateway_id, avg_rssi AS rssi, avg_snr AS snr,
               latitude, longitude, created_at
        FROM saved_points WHERE latitude IS NOT NULL AND longitude IS NOT NULL
        ORDER BY created_at DESC
        """,
    )
    for row in rows:
        for key in ("rssi", "snr", "latitude", "longitude"):
            row[key] = _float_or_none(row.get(key))
    return rows


def export_csv(con: sqlite3.Connection) -> str:
    """Render every measurement and saved point as CSV text."""
    rows = qa(
        con,
        """
        SELECT 'live' AS type, gateway_id, rssi, snr, latitude, longitude, created_at
        FROM measurements
        UNION ALL
        SELECT 'saved' AS type, 'manual', avg_rssi, avg_snr, latitude, longitude, created_at
        FROM saved_points
        ORDER BY created_at ASC
        """,
    )
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for r in rows:
        writer.writerow(
            [
                r["type"],
                r.get("gateway_id") or "manual",
                r.get("rssi"),
                r.get("snr"),
                "" if r.get("latitude") is None else r["latitude"],
                "" if r.get("longitude") is None else r["longitude"],
                r.get("created_at"),
            ]
        )
    return buf.getvalue()


def save_point(
    con: sqlite3.Connection,
    avg_rssi: Any,
    avg_snr: Any,
    lat: Any,
    lng: Any,
    note: Optional[str] = None,
) -> int:
    """
    Store a manually placed survey point.

    Raises:
        ValueError: If the coordinates are not numbers.
        PersistenceError: If the database write fails.
    """
    latitude = coerce_number(lat)
    longitude = coerce_number(lng)
    if latitude is None or longitude is None:
        raise ValueError("lat and lng must be numbers")
    try:
        cur = execute(
            con,
            """
            INSERT INTO saved_points (avg_rssi, avg_snr, latitude, longitude, note, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (coerce_number(avg_rssi), coerce_number(avg_snr), latitude, longitude, note or "Manual", utc_now_str()),
        )
    except sqlite3.Error as exc:
        raise PersistenceError(f"saved point insert failed: {exc}") from exc
    return int(cur.lastrowid)


def save_scenario(con: sqlite3.Connection, gateways: Iterable[Dict[str, Any]]) -> int:
    """
    Store a planner scenario (a list of planned gateways) atomically.

    Raises:
        ValueError: If an entry is not an object with numeric lat/lng.
        PersistenceError: If the database write fails.
    """
    now = utc_now_str()
    rows = []
    for g in gateways:
        if not isinstance(g, dict):
            raise ValueError("each gateway must be an object")
        lat = coerce_number(g.get("lat"))
        lng = coerce_number(g.get("lng"))
        if lat is None or lng is None:
            raise ValueError("each gateway needs numeric lat and lng")
        rows.append((lat, lng, coerce_number(g.get("radius")), coerce_number(g.get("freq")), now))
    try:
        with con:
            con.executemany(
                "INSERT INTO planned_gateways (latitude, longitude, radius, frequency, created_at) VALUES (?, ?, ?, ?, ?)",
                rows,
            )
    except sqlite3.Error as exc:
        raise PersistenceError(f"scenario insert failed: {exc}") from exc
    return len(rows)
