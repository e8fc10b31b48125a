"""
Geographic distance between profiles
"""
import logging
from typing import Optional

from geopy.distance import geodesic
from geopy.point import Point

from discovery.data_schemas import Profile

logger = logging.getLogger(__name__)


def _point(profile: Profile) -> Optional[Point]:
    coords = profile.coordinates
    if coords is None:
        return None
    try:
        return Point(*coords)
    except ValueError as e:
        logger.warning(f"Ignoring invalid coordinates on profile {profile.id}: {e}")
        return None


def distance_km(a: Profile, b: Profile) -> Optional[float]:
    """Geodesic distance in km, or None when either side hides its location"""
    point_a = _point(a)
    point_b = _point(b)
    if point_a is None or point_b is None:
        return None
    return round(geodesic(point_a, point_b).kilometers, 1)


def same_city(a: Profile, b: Profile) -> bool:
    return bool(a.city and b.city and a.city.strip().lower() == b.city.strip().lower())


def distance_text(requester: Profile, candidate: Profile, distance: Optional[float]) -> Optional[str]:
    """Display text for the distance column"""
    if same_city(requester, candidate):
        return "Same City"
    if distance is not None:
        return f"{distance:.1f} km away"
    return candidate.city
