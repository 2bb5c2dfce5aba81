"""
Normalization of decoder output into canonical measurement records.

Decoders are written by different operators for different network servers,
so the same quantity arrives under several names. FIELD_TABLE lists, per
canonical field, the accepted keys in priority order and the default used when
none of them carries a usable value. Normalization never fails.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

DEFAULT_RSSI = -120.0
DEFAULT_SNR = 0.0
DEFAULT_FREQUENCY = 868.0
DEFAULT_GATEWAY_ID = "gw"

MSG_PROCESSED = "Data Processed Successfully"
MSG_WAITING_FOR_FIX = "Data Received (Waiting for Location Fix)"


@dataclass
class Measurement:
    """Canonical signal-quality record with optional location."""

    gateway_id: str
    rssi: float
    snr: float
    frequency: float
    spreading_factor: Optional[float]
    latitude: Optional[float]
    longitude: Optional[float]

    @property
    def located(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def log_message(self) -> str:
        return MSG_PROCESSED if self.located else MSG_WAITING_FOR_FIX

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def coerce_number(value: Any) -> Optional[float]:
    """Return value as a float, or None if it is not a usable number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def coerce_text(value: Any) -> Optional[str]:
    """Return a non-empty identifier string, or None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# canonical field -> (accepted keys in priority order, coercion, default)
FIELD_TABLE: Dict[str, Tuple[Tuple[str, ...], Callable[[Any], Any], Any]] = {
    "latitude": (("latitude", "lat"), coerce_number, None),
    "longitude": (("longitude", "lng", "lon"), coerce_number, None),
    "spreading_factor": (("spreadingFactor", "sf", "spreading_factor"), coerce_number, None),
    "rssi": (("rssi",), coerce_number, DEFAULT_RSSI),
    "snr": (("snr",), coerce_number, DEFAULT_SNR),
    "frequency": (("frequency",), coerce_number, DEFAULT_FREQUENCY),
    "gateway_id": (("gateway_id",), coerce_text, DEFAULT_GATEWAY_ID),
}


def reconcile(output: Mapping[str, Any], field: str) -> Any:
    """Resolve one canonical field from decoder output."""
    keys, coerce, default = FIELD_TABLE[field]
    for key in keys:
        if key in output:
            value = coerce(output[key])
            if value is not None:
                return value
    return default


def normalize(output: Mapping[str, Any]) -> Measurement:
    """Map a decoder output object onto a Measurement."""
    values = {field: reconcile(output, field) for field in FIELD_TABLE}
    return Measurement(**values)
