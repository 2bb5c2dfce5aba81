"""
Survey sessions for ARIOT Web.

An operator standing at a spot starts a session; polling then waits until
enough live measurements have arrived after the start time and returns their
average. Sessions are kept per logged-in user in an app-owned, lock-guarded
tracker.
"""
from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ariot_web.config import SURVEY_REQUIRED_SAMPLES
from ariot_web.measurements import readings_since
from ariot_web.util.time import utc_now_str


@dataclass
class SurveySession:
    started_at: str


class SurveyTracker:
    """Active survey sessions keyed by user."""

    def __init__(self, required: int = SURVEY_REQUIRED_SAMPLES) -> None:
        self.required = required
        self._lock = threading.Lock()
        self._sessions: Dict[str, SurveySession] = {}

    def start(self, user: str) -> SurveySession:
        session = SurveySession(started_at=utc_now_str())
        with self._lock:
            self._sessions[user] = session
        return session

    def get(self, user: str) -> Optional[SurveySession]:
        with self._lock:
            return self._sessions.get(user)

    def poll(self, con: sqlite3.Connection, user: str) -> Optional[Dict[str, Any]]:
        """
        Check progress of the user's session.

        Returns None when the user has no active session. A completed session
        is removed.
        """
        session = self.get(user)
        if session is None:
            return None

        readings = [r for r in readings_since(con, session.started_at) if r.get("rssi") is not None]
        if len(readings) < self.required:
            return {"status": "pending", "count": len(readings), "required": self.required}

        first = readings[: self.required]
        avg_rssi = sum(float(r["rssi"]) for r in first) / self.required
        avg_snr = sum(float(r["snr"] or 0.0) for r in first) / self.required
        with self._lock:
            if self._sessions.get(user) is session:
                del self._sessions[user]
        return {"status": "complete", "avg_rssi": round(avg_rssi, 2), "avg_snr": round(avg_snr, 2)}
