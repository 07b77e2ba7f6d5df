"""
Geofence validation service.
Uses Haversine formula to calculate distance between points.
"""
import math
from typing import Optional
from ..config import settings
from .errors import LocationRequired, OutOfRange


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in kilometers
    """
    R = settings.earth_radius_km

    # Convert to radians
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    # Haversine formula
    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def validate_clock_in_location(
    point_lat: Optional[float],
    point_lng: Optional[float],
    center_lat: float,
    center_lng: float,
    radius_km: float,
) -> float:
    """
    Check that a clock-in point lies inside the organization's perimeter.

    Args:
        point_lat: Worker latitude (None if the device did not report one)
        point_lng: Worker longitude (None if the device did not report one)
        center_lat: Organization latitude
        center_lng: Organization longitude
        radius_km: Perimeter radius in kilometers

    Returns:
        Distance from the center in kilometers

    Raises:
        LocationRequired: a coordinate is missing (partial points count as missing)
        OutOfRange: the point is farther than radius_km from the center
    """
    if point_lat is None or point_lng is None:
        raise LocationRequired()

    distance = haversine_distance(point_lat, point_lng, center_lat, center_lng)
    if distance > radius_km:
        raise OutOfRange(distance_km=round(distance, 2), radius_km=radius_km)
    return distance
