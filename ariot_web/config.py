"""
Configuration constants and environment parsing for ARIOT Web.

All ARIOT_* environment variables are parsed here and exported as module-level
constants. Blueprints and helpers import from this module rather than reading
os.environ directly.
"""
from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    """Parse an integer from environment, returning default on missing/invalid."""
    val = os.getenv(name)
    if not val:
        return default
    try:
        return max(1, int(float(val)))
    except Exception:
        return default


def _float_env(name: str, default: float) -> float:
    """Parse a float from environment, returning default on missing/invalid."""
    val = os.getenv(name)
    if not val:
        return default
    try:
        return float(val)
    except Exception:
        return default


# ---------------------------------------------------------------------------
# Sessions & setup
# ---------------------------------------------------------------------------
SECRET_KEY: str = os.getenv("ARIOT_SECRET_KEY", "ariot-secret-key-change-in-prod")
"""Key used to sign the session cookie."""

DEFAULT_APP_NAME: str = os.getenv("ARIOT_DEFAULT_APP_NAME", "ARIOT Platform")
"""Display name reported before the setup wizard has been completed."""


# ---------------------------------------------------------------------------
# Webhook pipeline
# ---------------------------------------------------------------------------
DECODER_TIMEOUT_SECONDS: float = max(0.1, _float_env("ARIOT_DECODER_TIMEOUT", 2.0))
"""Wall-clock budget for a single decoder script invocation."""

DEFAULT_SLUG_PRIORITY: tuple = ("webhook", "chirpstack", "default")
"""Slugs tried, in order, when a webhook arrives on the bare /webhook path."""

SYSTEM_LOG_LIMIT: int = _int_env("ARIOT_SYSTEM_LOG_LIMIT", 50)
"""Maximum audit log entries returned by /api/system-logs."""


# ---------------------------------------------------------------------------
# Survey sessions
# ---------------------------------------------------------------------------
SURVEY_REQUIRED_SAMPLES: int = _int_env("ARIOT_SURVEY_SAMPLES", 3)
"""Live readings averaged before a survey session completes."""


# ---------------------------------------------------------------------------
# Coverage planner
# ---------------------------------------------------------------------------
TX_POWER_DBM: float = _float_env("ARIOT_TX_POWER_DBM", 14.0)
"""Transmit power assumed for gateway coverage estimates."""

SENSITIVITY_DBM: float = _float_env("ARIOT_SENSITIVITY_DBM", -115.0)
"""Receiver sensitivity; a point is covered when its estimated RSSI exceeds this."""

WEAK_SIGNAL_DBM: float = _float_env("ARIOT_WEAK_SIGNAL_DBM", -105.0)
"""Points with RSSI below this are candidates for a new gateway."""

POINTS_PER_GATEWAY: int = _int_env("ARIOT_POINTS_PER_GATEWAY", 5)
"""Weak points served per suggested gateway (sets k for k-means)."""

DEFAULT_PATH_LOSS_EXPONENT: float = 2.7
"""Environment factor n used when the caller does not supply one."""

DEFAULT_FREQUENCY_MHZ: float = 868.0
"""Regional ISM default frequency."""
