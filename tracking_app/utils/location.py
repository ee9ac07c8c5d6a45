"""
Location helpers shared by the tracking pipeline and the HTTP layer.
"""

import math
from typing import Mapping, Optional

EARTH_RADIUS_KM = 6371


def get_client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    """
    Pick the client IP from proxy headers, falling back to the socket peer.
    
    X-Forwarded-For may hold a chain of addresses; the first one is the client.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    
    return peer or "unknown"


def is_valid_coordinates(lat: Optional[float], lon: Optional[float]) -> bool:
    if lat is None or lon is None:
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres (haversine), rounded to 2 decimals"""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 2)


def format_location_string(country: Optional[str] = None, city: Optional[str] = None) -> str:
    if country and city:
        return f"{city}, {country}"
    if country:
        return country
    if city:
        return city
    return "Unknown Location"
