"""
Integration registry for ARIOT Web.

Maps an endpoint slug to a decoder script and display name. Integrations are
created and deleted by an operator; the webhook pipeline only reads them.
"""
from __future__ import annotations

import re
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ariot_web.audit import SOURCE_SYSTEM, write_log
from ariot_web.config import DEFAULT_SLUG_PRIORITY
from ariot_web.db import execute, q1, qa
from ariot_web.errors import IntegrationConflict, IntegrationInvalid, IntegrationNotFound
from ariot_web.util.logging import get_logger
from ariot_web.util.time import utc_now_str

log = get_logger(__name__)

SLUG_RE = re.compile(r"^[A-Za-z0-9_-]{1,50}$")
NAME_MAX_LEN = 100


@dataclass
class Integration:
    """A registered webhook endpoint and its decoder."""

    id: int
    name: str
    endpoint_slug: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "endpoint_slug": self.endpoint_slug,
            "created_at": self.created_at,
        }


def _validate(name: Any, slug: Any, script: Any) -> None:
    if not isinstance(name, str) or not name.strip():
        raise IntegrationInvalid("name is required")
    if len(name.strip()) > NAME_MAX_LEN:
        raise IntegrationInvalid(f"name must be at most {NAME_MAX_LEN} characters")
    if not isinstance(slug, str) or not SLUG_RE.match(slug):
        raise IntegrationInvalid("slug must be 1-50 characters of letters, digits, '-' or '_'")
    if not isinstance(script, str) or not script.strip():
        raise IntegrationInvalid("script is required")


def create_integration(con: sqlite3.Connection, name: Any, slug: Any, script: Any) -> Integration:
    """
    Register a new integration.

    Raises:
        IntegrationInvalid: If any field fails validation.
        IntegrationConflict: If the slug is already registered.
    """
    _validate(name, slug, script)
    created_at = utc_now_str()
    try:
        cur = execute(
            con,
            "INSERT INTO integrations (name, endpoint_slug, decoder_script, created_at) VALUES (?, ?, ?, ?)",
            (name.strip(), slug, script, created_at),
        )
    except sqlite3.IntegrityError as exc:
        raise IntegrationConflict(f"slug already exists: {slug}") from exc

    integration = Integration(int(cur.lastrowid), name.strip(), slug, created_at)
    write_log(con, SOURCE_SYSTEM, "info", "Integration Created", {"name": integration.name, "slug": slug})
    log.info("Integration created", extra={"slug": slug, "integration_id": integration.id})
    return integration


def list_integrations(con: sqlite3.Connection) -> List[Integration]:
    """Return all integrations, newest first (scripts excluded)."""
    rows = qa(
        con,
        """
        SELECT id, name, endpoint_slug, created_at
        FROM integrations
        ORDER BY created_at DESC, id DESC
        """,
    )
    return [Integration(int(r["id"]), r["name"], r["endpoint_slug"], r["created_at"]) for r in rows]


def delete_integration(con: sqlite3.Connection, integration_id: int) -> None:
    """
    Delete an integration by id.

    Raises:
        IntegrationNotFound: If no integration has that id. Nothing is written.
    """
    row = q1(con, "SELECT endpoint_slug FROM integrations WHERE id = ?", (integration_id,))
    if row is None:
        raise IntegrationNotFound(f"integration {integration_id} not found")
    cur = execute(con, "DELETE FROM integrations WHERE id = ?", (integration_id,))
    if cur.rowcount == 0:
        raise IntegrationNotFound(f"integration {integration_id} not found")
    write_log(
        con,
        SOURCE_SYSTEM,
        "info",
        "Integration Deleted",
        {"id": integration_id, "slug": row["endpoint_slug"]},
    )
    log.info("Integration deleted", extra={"slug": row["endpoint_slug"], "integration_id": integration_id})


def find_script_by_slug(con: sqlite3.Connection, slug: str) -> Optional[str]:
    """Return the decoder script registered under slug, or None."""
    row = q1(con, "SELECT decoder_script FROM integrations WHERE endpoint_slug = ?", (slug,))
    if row is None:
        return None
    return row["decoder_script"]


def resolve_default_slug(con: sqlite3.Connection) -> Optional[str]:
    """Return the first registered slug in DEFAULT_SLUG_PRIORITY order, or None."""
    placeholders = ", ".join("?" for _ in DEFAULT_SLUG_PRIORITY)
    rows = qa(
        con,
        f"SELECT endpoint_slug FROM integrations WHERE endpoint_slug IN ({placeholders})",
        tuple(DEFAULT_SLUG_PRIORITY),
    )
    present = {r["endpoint_slug"] for r in rows}
    for slug in DEFAULT_SLUG_PRIORITY:
        if slug in present:
            return slug
    return None
