import math

from .errors import InvalidCoordinate

EARTH_RADIUS_KM = 6371.0


def _coordinate(value) -> float:
    if value is None or isinstance(value, bool):
        raise InvalidCoordinate("Missing coordinate")
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidCoordinate(f"Invalid coordinate: {value!r}")
    if not math.isfinite(value):
        raise InvalidCoordinate(f"Invalid coordinate: {value!r}")
    return value


def distance_km(lat1, lon1, lat2, lon2) -> float:
    """Great-circle distance between two points in kilometres (haversine)."""
    lat1, lon1, lat2, lon2 = (_coordinate(v) for v in (lat1, lon1, lat2, lon2))
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # clamp float drift so sqrt(1 - a) never sees a negative
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c
