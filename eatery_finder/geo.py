"""Geospatial helpers."""
from __future__ import annotations

import math
import re
from typing import Any, Optional, Tuple
from urllib.parse import parse_qs, urlparse

EARTH_RADIUS_KM = 6371.0

_NUM = r"([+-]?\d+(?:\.\d*)?)"
_MAPS_URL_PATTERNS = [
    re.compile(r"[?&]q=" + _NUM + r"," + _NUM),
    # also covers /place/.../@lat,lng and /dir/.../@lat,lng
    re.compile(r"@" + _NUM + r"," + _NUM),
]


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: Any, b: Any) -> float:
    """Great-circle distance between two objects exposing latitude/longitude."""
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def is_valid_coordinate(lat: float, lon: float) -> bool:
    try:
        return -90.0 <= float(lat) <= 90.0 and -180.0 <= float(lon) <= 180.0
    except (TypeError, ValueError):
        return False


def within_radius(center: Any, location: Optional[Any], radius_km: float) -> bool:
    if location is None:
        return False
    return distance_km(center, location) <= radius_km


def parse_google_maps_url(url: str) -> Optional[Tuple[float, float]]:
    """Pull a (lat, lon) pair out of a pasted Google Maps link.

    Handles ``?q=lat,lng``, ``/@lat,lng,zoom``, ``/place/.../@lat,lng``,
    ``/dir/.../@lat,lng`` and ``?ll=lat,lng``. Shortened goo.gl links carry no
    coordinates and return None.
    """
    if not url or not isinstance(url, str):
        return None
    clean = url.strip()

    for pattern in _MAPS_URL_PATTERNS:
        match = pattern.search(clean)
        if not match:
            continue
        lat, lon = float(match.group(1)), float(match.group(2))
        if is_valid_coordinate(lat, lon):
            return lat, lon

    ll = parse_qs(urlparse(clean).query).get("ll")
    if ll:
        parts = ll[0].split(",")
        if len(parts) == 2:
            try:
                lat, lon = float(parts[0]), float(parts[1])
            except ValueError:
                return None
            if is_valid_coordinate(lat, lon):
                return lat, lon
    return None
