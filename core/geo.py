from __future__ import annotations

import math

EARTH_RADIUS_MILES = 3959.0
METERS_PER_DEGREE = 111000.0


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in statute miles between two WGS84 points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def radius_to_degrees(radius_m: float) -> float:
    # Flat approximation; no longitude correction away from the equator.
    return radius_m / METERS_PER_DEGREE


def bounding_box(lat: float, lng: float, radius_m: float) -> tuple[float, float, float, float]:
    """Returns (min_lat, max_lat, min_lng, max_lng) around the center."""
    delta = radius_to_degrees(radius_m)
    return lat - delta, lat + delta, lng - delta, lng + delta
