"""
Great-circle distance helpers for the check-in geofence
"""

import math

EARTH_RADIUS_METERS = 6371e3


def haversine_distance(lat1, lng1, lat2, lng2):
    """Distance in meters between two lat/lng points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def is_within_geofence(point, center, radius_meters):
    """
    Whether ``point`` lies within ``radius_meters`` of ``center``.

    Both are (lat, lng) tuples. A missing coordinate is never inside.
    """
    if point is None or center is None:
        return False
    lat, lng = point
    if lat is None or lng is None:
        return False
    return haversine_distance(lat, lng, center[0], center[1]) <= radius_meters
