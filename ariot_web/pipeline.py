"""
Webhook dispatch pipeline for ARIOT Web.

States, in order::

    ResolveSlug -> LoadScript -> Compile/Invoke -> Normalize -> Persist -> LogOutcome -> Respond

Each terminal state writes exactly one audit entry (source ``webhook``) before
the response is built. The entry's details always carry the slug and the raw
payload so the request can be replayed from the log. Nothing raised inside the
pipeline escapes to Flask.
"""
from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from time import perf_counter
from typing import Any, Dict, Optional

from ariot_web.audit import SOURCE_WEBHOOK, write_log
from ariot_web.errors import (
    DecodeError,
    IntegrationNotFound,
    NoIntegrationConfigured,
    PersistenceError,
    WebhookSystemError,
)
from ariot_web.measurements import insert_measurement
from ariot_web.normalize import normalize
from ariot_web.registry import find_script_by_slug, resolve_default_slug
from ariot_web.sandbox import compile_decoder
from ariot_web.util.logging import get_logger, log_exception

log = get_logger(__name__)

NO_DEFAULT_MESSAGE = (
    'No integration configured for root /webhook. '
    'Please create an integration with slug "webhook" or "chirpstack".'
)


class Outcome(str, Enum):
    PROCESSED = "processed"
    UNLOCATED = "received_without_location"
    NO_INTEGRATION = "no_integration"
    NOT_FOUND = "not_found"
    DECODE_FAILED = "decode_error"
    SYSTEM_ERROR = "system_error"


# outcome -> (audit level, audit message, HTTP status, response body)
OUTCOMES = {
    Outcome.PROCESSED: ("info", "Data Processed Successfully", 200, "OK"),
    Outcome.UNLOCATED: ("info", "Data Received (Waiting for Location Fix)", 200, "OK"),
    Outcome.NO_INTEGRATION: ("warn", "Root Webhook Hit but No Default Integration Found", 404, NO_DEFAULT_MESSAGE),
    Outcome.NOT_FOUND: ("warn", "Endpoint Not Found", 404, "Not Found"),
    Outcome.DECODE_FAILED: ("error", "Decoder Script Failed", 400, "Decoder Error"),
    Outcome.SYSTEM_ERROR: ("error", "System Error", 500, "Error"),
}


@dataclass
class WebhookResult:
    """What the HTTP layer needs to answer a webhook request."""

    outcome: Outcome
    status: int
    body: str
    slug: Optional[str] = None
    measurement_id: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)


def _finish(
    con: sqlite3.Connection,
    outcome: Outcome,
    slug: Optional[str],
    payload: Any,
    started: float,
    measurement_id: Optional[int] = None,
    **extra: Any,
) -> WebhookResult:
    level, message, status, body = OUTCOMES[outcome]
    details: Dict[str, Any] = {"slug": slug, "payload": payload}
    details.update(extra)
    try:
        write_log(con, SOURCE_WEBHOOK, level, message, details)
    except Exception:
        log_exception(log, "Audit log write failed", error_type="audit_write", slug=slug, outcome=outcome.value)

    duration_ms = round((perf_counter() - started) * 1000, 1)
    log.debug(
        "webhook %s -> %s (%d)",
        slug,
        outcome.value,
        status,
        extra={"slug": slug, "outcome": outcome.value, "duration_ms": duration_ms},
    )
    return WebhookResult(outcome, status, body, slug, measurement_id, details)


def _dispatch(con: sqlite3.Connection, slug: str, payload: Any) -> Dict[str, Any]:
    """Run LoadScript through Persist; raise a taxonomy error on failure."""
    try:
        script = find_script_by_slug(con, slug)
    except sqlite3.Error as exc:
        raise WebhookSystemError(f"integration lookup failed: {exc}") from exc
    if script is None:
        raise IntegrationNotFound(slug)

    decoder = compile_decoder(script)
    parsed = decoder(payload)

    measurement = normalize(parsed)
    measurement_id = insert_measurement(con, measurement)
    return {"parsed": parsed, "measurement": measurement, "measurement_id": measurement_id}


def process_webhook(con: sqlite3.Connection, slug: Optional[str], payload: Any) -> WebhookResult:
    """
    Run the full pipeline for one inbound request.

    Args:
        con: SQLite connection.
        slug: Integration slug from the URL path, or None for the bare
            /webhook route (the default slug is then resolved).
        payload: Raw inbound payload.
    """
    started = perf_counter()
    try:
        if slug is None:
            slug = resolve_default_slug(con)
            if slug is None:
                raise NoIntegrationConfigured()
        result = _dispatch(con, slug, payload)
    except NoIntegrationConfigured:
        return _finish(con, Outcome.NO_INTEGRATION, None, payload, started)
    except IntegrationNotFound:
        return _finish(con, Outcome.NOT_FOUND, slug, payload, started)
    except DecodeError as exc:
        log.info("Decoder failed: %s", exc.message, extra={"slug": slug})
        return _finish(con, Outcome.DECODE_FAILED, slug, payload, started, error=exc.message)
    except (PersistenceError, WebhookSystemError) as exc:
        log_exception(log, "Webhook storage failure", error_type=type(exc).__name__, slug=slug)
        return _finish(con, Outcome.SYSTEM_ERROR, slug, payload, started, error=str(exc))
    except Exception as exc:
        log_exception(log, "Unexpected webhook failure", error_type="system", slug=slug)
        return _finish(con, Outcome.SYSTEM_ERROR, slug, payload, started, error=str(exc))

    measurement = result["measurement"]
    outcome = Outcome.PROCESSED if measurement.located else Outcome.UNLOCATED
    return _finish(
        con,
        outcome,
        slug,
        payload,
        started,
        measurement_id=result["measurement_id"],
        parsed=result["parsed"],
        measurement=measurement.to_dict(),
    )
