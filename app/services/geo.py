import math
from typing import Optional, Tuple

EARTH_RADIUS_KM = 6371.0

Coordinates = Tuple[float, float]


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in decimal degrees, in km.

    Range checking belongs to the caller; the schemas reject non-finite and
    out-of-range coordinates before they get here.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_between(primary: Optional[Coordinates], candidate: Optional[Coordinates]) -> Optional[float]:
    """Distance between two optional points; None when either is not pinned."""
    if primary is None or candidate is None:
        return None
    return haversine_km(primary[0], primary[1], candidate[0], candidate[1])
