"""
Webhook blueprint for ARIOT Web.

Public ingestion endpoints. Responses are plain text; the full outcome is in
the audit log.
"""
from __future__ import annotations

from typing import Any, Optional

from flask import Blueprint, Response, request

from ariot_web.db import get_con
from ariot_web.pipeline import process_webhook

bp = Blueprint("webhook", __name__)


def inbound_payload() -> Any:
    """Extract the raw payload: JSON body, else form fields, else body text, else None."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is not None or request.get_data(as_text=True).strip() == "null":
            return data
    if request.form:
        return request.form.to_dict()
    text = request.get_data(as_text=True)
    return text or None


def _respond(slug: Optional[str]) -> Response:
    result = process_webhook(get_con(), slug, inbound_payload())
    return Response(result.body, status=result.status, mimetype="text/plain")


@bp.post("/webhook")
def webhook_root():
    """Dispatch to the default integration (webhook > chirpstack > default)."""
    return _respond(None)


@bp.post("/webhook/<slug>")
def webhook_slug(slug: str):
    """Dispatch to the integration registered under slug."""
    return _respond(slug)
