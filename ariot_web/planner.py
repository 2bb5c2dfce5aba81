"""Coverage planning helpers.

Log-distance path-loss model used for gateway coverage estimates::

    PL(d) = 20*log10(f_MHz) + 10*n*log10(d_m) - 28
    RSSI  = TX_POWER - PL

and k-means (scipy) to group weak-signal points into suggested gateway sites.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np  # type: ignore
from scipy.cluster.vq import kmeans2  # type: ignore

from ariot_web.config import (
    POINTS_PER_GATEWAY,
    SENSITIVITY_DBM,
    TX_POWER_DBM,
    WEAK_SIGNAL_DBM,
)

EARTH_RADIUS_M = 6_371_000.0


def path_loss_db(distance_m: np.ndarray, frequency_mhz: float, n: float) -> np.ndarray:
    """Path loss in dB; distances below 1 m are clamped to 1 m."""
    d = np.maximum(np.asarray(distance_m, dtype=np.float64), 1.0)
    return 20.0 * math.log10(frequency_mhz) + 10.0 * n * np.log10(d) - 28.0


def max_range_m(frequency_mhz: float, n: float) -> float:
    """Distance at which estimated RSSI falls to the receiver sensitivity."""
    budget = TX_POWER_DBM - SENSITIVITY_DBM + 28.0 - 20.0 * math.log10(frequency_mhz)
    return float(10.0 ** (budget / (10.0 * n)))


def haversine_m(lat0: float, lon0: float, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Great-circle distance from one point to many, in metres."""
    phi0 = math.radians(lat0)
    phi = np.radians(np.asarray(lats, dtype=np.float64))
    dphi = phi - phi0
    dlmb = np.radians(np.asarray(lons, dtype=np.float64) - lon0)
    a = np.sin(dphi / 2.0) ** 2 + math.cos(phi0) * np.cos(phi) * np.sin(dlmb / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def simulate_coverage(
    gateway: Tuple[float, float],
    points: Sequence[Dict[str, Any]],
    frequency_mhz: float,
    n: float,
) -> Dict[str, Any]:
    """
    Estimate which points a gateway at ``gateway`` (lat, lng) would hear.

    Args:
        gateway: (latitude, longitude) of the candidate gateway.
        points: Map points with ``latitude``/``longitude`` keys.
        frequency_mhz: Carrier frequency.
        n: Path-loss exponent (environment factor).
    """
    if frequency_mhz <= 0 or n <= 0:
        raise ValueError("frequency and n must be positive")

    radius = max_range_m(frequency_mhz, n)
    located = [p for p in points if p.get("latitude") is not None and p.get("longitude") is not None]
    covered: List[Dict[str, Any]] = []
    if located:
        lats = np.array([p["latitude"] for p in located], dtype=np.float64)
        lons = np.array([p["longitude"] for p in located], dtype=np.float64)
        dist = haversine_m(gateway[0], gateway[1], lats, lons)
        rssi = TX_POWER_DBM - path_loss_db(dist, frequency_mhz, n)
        for idx in np.flatnonzero(rssi > SENSITIVITY_DBM):
            covered.append(
                {
                    "id": located[idx].get("id"),
                    "type": located[idx].get("type"),
                    "latitude": float(lats[idx]),
                    "longitude": float(lons[idx]),
                    "distance_m": round(float(dist[idx]), 1),
                    "estimated_rssi": round(float(rssi[idx]), 2),
                }
            )
    return {
        "gateway": {"latitude": gateway[0], "longitude": gateway[1]},
        "radius_m": round(radius, 1),
        "covered_count": len(covered),
        "covered": covered,
    }


def kmeans(coords: np.ndarray, k: int, *, iterations: int = 50, seed: int = 0) -> Tuple[np.ndarray, np.ndarray]:
    """k-means with k-means++ seeding via scipy.cluster.vq.kmeans2.

    k is capped at the number of distinct points.

    Returns:
        (centroids [k, 2], labels [N])
    """
    X = np.asarray(coords, dtype=np.float64)
    distinct = np.unique(X, axis=0).shape[0]
    k = max(1, min(int(k), distinct))
    return kmeans2(X, k, iter=iterations, minit="++", missing="warn", seed=seed)


def suggest_gateways(points: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """Cluster weak-signal points and return one suggested gateway per cluster."""
    weak = [
        p
        for p in points
        if p.get("rssi") is not None
        and p.get("latitude") is not None
        and p.get("longitude") is not None
        and float(p["rssi"]) < WEAK_SIGNAL_DBM
    ]
    if not weak:
        return {"weak_count": 0, "k": 0, "suggestions": []}

    coords = np.array([[p["latitude"], p["longitude"]] for p in weak], dtype=np.float64)
    k = max(1, math.ceil(len(weak) / POINTS_PER_GATEWAY))
    centroids, labels = kmeans(coords, k)

    suggestions = []
    for j, (lat, lon) in enumerate(centroids):
        size = int(np.count_nonzero(labels == j))
        if size == 0:
            continue
        suggestions.append({"latitude": float(lat), "longitude": float(lon), "points": size})
    return {"weak_count": len(weak), "k": int(centroids.shape[0]), "suggestions": suggestions}
