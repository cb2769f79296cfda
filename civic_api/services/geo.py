"""Great-circle helpers used by the nearby report search."""
from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0
_KM_PER_DEGREE_LAT = math.pi * EARTH_RADIUS_KM / 180.0


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    # None when the box wraps the antimeridian or covers a pole; longitude is then unconstrained.
    min_lng: float | None
    max_lng: float | None


def is_valid_coordinate(latitude: float | None, longitude: float | None) -> bool:
    if latitude is None or longitude is None:
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in kilometres between two points using the haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lng2 - lng1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(latitude: float, longitude: float, radius_km: float) -> BoundingBox:
    """Return a box that contains every point within ``radius_km`` of the centre."""

    delta_lat = radius_km / _KM_PER_DEGREE_LAT
    min_lat = latitude - delta_lat
    max_lat = latitude + delta_lat
    if min_lat <= -90.0 or max_lat >= 90.0:
        return BoundingBox(max(min_lat, -90.0), min(max_lat, 90.0), None, None)

    # Widest longitude span occurs at the box edge closest to a pole.
    widest_lat = max(abs(min_lat), abs(max_lat))
    delta_lng = delta_lat / math.cos(math.radians(widest_lat))
    min_lng = longitude - delta_lng
    max_lng = longitude + delta_lng
    if min_lng < -180.0 or max_lng > 180.0:
        return BoundingBox(min_lat, max_lat, None, None)
    return BoundingBox(min_lat, max_lat, min_lng, max_lng)


__all__ = ["EARTH_RADIUS_KM", "BoundingBox", "bounding_box", "haversine_km", "is_valid_coordinate"]
