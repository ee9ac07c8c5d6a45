"""
IP geolocation with graceful degradation.

Local and private addresses never leave the process. Everything else goes
to the configured provider (ipapi.co by default) with a bounded timeout;
any failure becomes the "unknown" sentinel so a visit is always recorded.
"""

import asyncio
import ipaddress
import json
import logging
from typing import Optional

import requests
from pydantic import BaseModel

from tracking_app.cache.strategies import CacheStrategy
from tracking_app.config import settings
from tracking_app.exceptions import GeolocationDegradedError

logger = logging.getLogger(__name__)

LOCAL_PREFIXES = ("127.", "10.", "192.168.", "172.")


class LocationData(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    country: Optional[str] = None
    city: Optional[str] = None
    ip: Optional[str] = None


def local_location(ip: str) -> LocationData:
    return LocationData(ip=ip, latitude=0, longitude=0, country="Local", city="Local Development")


def unknown_location(ip: str) -> LocationData:
    return LocationData(ip=ip, country="Unknown", city="Unknown")


def is_local_address(ip: Optional[str]) -> bool:
    """Loopback, private-network or unidentifiable client addresses"""
    if not ip or ip == "unknown" or ip == "::1":
        return True
    if ip.startswith(LOCAL_PREFIXES):
        return True
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return address.is_loopback or address.is_private or address.is_link_local


def is_ip_address(ip: str) -> bool:
    try:
        ipaddress.ip_address(ip)
    except ValueError:
        return False
    return True


class GeolocationResolver:
    """
    Resolves an IP address to a coarse location.
    
    Args:
        cache: Optional cache for successful lookups (keyed by IP)
        http: requests-compatible session (injectable for tests)
        api_url: Provider URL template with an ``{ip}`` placeholder
        timeout: Seconds before a lookup is abandoned
    """
    
    def __init__(
        self,
        cache: Optional[CacheStrategy] = None,
        http: Optional[requests.Session] = None,
        api_url: str = settings.geolocation_api_url,
        timeout: float = settings.geolocation_timeout,
        cache_ttl: int = settings.geolocation_cache_ttl,
    ):
        self.cache = cache
        self.http = http or requests.Session()
        self.api_url = api_url
        self.timeout = timeout
        self.cache_ttl = cache_ttl
    
    async def resolve(self, ip: str) -> LocationData:
        if is_local_address(ip):
            return local_location(ip)
        if not is_ip_address(ip):
            # Never forward arbitrary header text to the provider
            return unknown_location(ip)
        
        cache_key = f"geo:{ip}"
        if self.cache is not None:
            cached = await self.cache.get(cache_key)
            if cached:
                return LocationData.model_validate_json(cached)
        
        try:
            location = await asyncio.to_thread(self._lookup, ip)
        except GeolocationDegradedError as e:
            logger.warning("Geolocation degraded for %s: %s", ip, e)
            return unknown_location(ip)
        
        if self.cache is not None:
            await self.cache.set(cache_key, location.model_dump_json(), ttl=self.cache_ttl)
        return location
    
    def _lookup(self, ip: str) -> LocationData:
        """Blocking provider call. Raises GeolocationDegradedError on any failure"""
        try:
            response = self.http.get(
                self.api_url.format(ip=ip),
                headers={"User-Agent": settings.geolocation_user_agent},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GeolocationDegradedError(f"lookup failed: {e}") from e
        
        if not 200 <= response.status_code < 300:
            raise GeolocationDegradedError(f"HTTP {response.status_code}")
        
        try:
            data = response.json()
        except (ValueError, json.JSONDecodeError) as e:
            raise GeolocationDegradedError("malformed response") from e
        
        if not isinstance(data, dict) or data.get("error"):
            raise GeolocationDegradedError(f"provider error: {data!r:.200}")
        
        try:
            return LocationData(
                ip=ip,
                latitude=data.get("latitude"),
                longitude=data.get("longitude"),
                country=data.get("country_name") or None,
                city=data.get("city") or None,
            )
        except ValueError as e:
            raise GeolocationDegradedError("malformed response") from e
