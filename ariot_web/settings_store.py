"""
Application settings store for ARIOT Web.

Holds the setup-wizard state (app name, admin credentials, configured flag)
persisted in the ``app_config`` table. One AppSettings instance is owned by the
Flask app; it is reloaded from the database only at startup and after setup
completes, and every access goes through its lock.
"""
from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ariot_web.config import DEFAULT_APP_NAME
from ariot_web.db import qa
from ariot_web.util.logging import get_logger

log = get_logger(__name__)

KEY_APP_NAME = "app_name"
KEY_ADMIN_USER = "admin_user"
KEY_ADMIN_PASS = "admin_pass"
KEY_CONFIGURED = "is_configured"

# werkzeug hashes look like "scrypt:32768:8:1$salt$hash" or "pbkdf2:sha256:...$salt$hash"
_HASH_PREFIXES = ("scrypt:", "pbkdf2:")


@dataclass(frozen=True)
class SettingsSnapshot:
    configured: bool
    app_name: str
    admin_user: Optional[str]


def looks_hashed(value: str) -> bool:
    return value.startswith(_HASH_PREFIXES) and value.count("$") >= 2


def _upsert(con: sqlite3.Connection, key: str, value: str) -> None:
    con.execute(
        "INSERT INTO app_config (key, value) VALUES (?, ?) "
        "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
        (key, value),
    )


class AppSettings:
    """Lock-guarded view of the app_config table."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, str] = {}

    def reload(self, con: sqlite3.Connection) -> None:
        """Re-read every key from the database."""
        rows = qa(con, "SELECT key, value FROM app_config")
        with self._lock:
            self._values = {r["key"]: r["value"] for r in rows if r["value"] is not None}

    def snapshot(self) -> SettingsSnapshot:
        with self._lock:
            configured = self._values.get(KEY_CONFIGURED) == "true"
            return SettingsSnapshot(
                configured=configured,
                app_name=(self._values.get(KEY_APP_NAME) if configured else None) or DEFAULT_APP_NAME,
                admin_user=self._values.get(KEY_ADMIN_USER) if configured else None,
            )

    @property
    def configured(self) -> bool:
        return self.snapshot().configured

    def complete_setup(self, con: sqlite3.Connection, app_name: str, admin_user: str, admin_pass: str) -> None:
        """
        Persist the setup wizard answers and reload.

        Raises:
            ValueError: If setup has already been completed or a field is empty.
        """
        if self.configured:
            raise ValueError("setup already completed")
        for label, value in (("appName", app_name), ("adminUser", admin_user), ("adminPass", admin_pass)):
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{label} is required")
        with con:
            _upsert(con, KEY_APP_NAME, app_name.strip())
            _upsert(con, KEY_ADMIN_USER, admin_user.strip())
            _upsert(con, KEY_ADMIN_PASS, generate_password_hash(admin_pass))
            _upsert(con, KEY_CONFIGURED, "true")
        self.reload(con)
        log.info("Setup completed for %s", app_name.strip())

    def verify_credentials(self, con: sqlite3.Connection, username: str, password: str) -> bool:
        """
        Check a login attempt against the stored admin credentials.

        A plaintext password left by an older deployment is accepted once and
        replaced with a hash.
        """
        with self._lock:
            if self._values.get(KEY_CONFIGURED) != "true":
                return False
            stored_user = self._values.get(KEY_ADMIN_USER)
            stored_pass = self._values.get(KEY_ADMIN_PASS) or ""
        if not username or not password or username != stored_user:
            return False

        if looks_hashed(stored_pass):
            return check_password_hash(stored_pass, password)

        if stored_pass and password == stored_pass:
            with con:
                _upsert(con, KEY_ADMIN_PASS, generate_password_hash(password))
            self.reload(con)
            log.warning("Replaced plaintext admin password with a hash")
            return True
        return False
