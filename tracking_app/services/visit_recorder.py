"""
Visit tracking pipeline.

    Start -> LinkResolved -> LocationDetermined -> DeviceClassified
          -> Persisted -> Done

with terminal failures NotFound / Expired before anything is written.
"""

import logging
from typing import Optional

from tracking_app.exceptions import ExpiredError, NotFoundError, ValidationError
from tracking_app.models import Link, Visit
from tracking_app.models.visit import IP_ADDRESS_MAX_LENGTH
from tracking_app.services.device_classifier import DeviceClassifier
from tracking_app.services.geolocation import GeolocationResolver, LocationData
from tracking_app.services.link_registry import LinkRegistry
from tracking_app.storage.strategies import TrackingStorage
from tracking_app.utils.location import is_valid_coordinates
from tracking_app.utils.time import utcnow

logger = logging.getLogger(__name__)

# Device fixes less accurate than this (metres) fall back to IP lookup
GPS_ACCURACY_THRESHOLD = 1000


class VisitRecorder:
    """
    Records one visit per tracking request.
    
    Dependencies are injected so tests can swap the resolver's HTTP
    session or the storage implementation.
    """
    
    def __init__(
        self,
        storage: TrackingStorage,
        registry: LinkRegistry,
        resolver: GeolocationResolver,
        classifier: Optional[DeviceClassifier] = None
    ):
        self.storage = storage
        self.registry = registry
        self.resolver = resolver
        self.classifier = classifier or DeviceClassifier()
    
    async def track(
        self,
        link_id: str,
        client_ip: str,
        user_agent: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        accuracy: Optional[float] = None
    ) -> Visit:
        """
        Track a visit to a link.
        
        Raises:
            ValidationError: device coordinates out of range
            NotFoundError: link never existed or was deactivated
            ExpiredError: link is past its expiry (even if not yet swept)
        """
        self._validate_coordinates(latitude, longitude, accuracy)
        
        link = await self._resolve_link(link_id)
        location = await self._determine_location(client_ip, latitude, longitude, accuracy)
        device_info = self.classifier.classify(user_agent)
        
        visit = Visit(
            link_id=link.id,
            ip_address=(client_ip or "unknown")[:IP_ADDRESS_MAX_LENGTH],
            latitude=location.latitude,
            longitude=location.longitude,
            country=location.country,
            city=location.city,
            device=device_info.device,
            browser=device_info.browser,
            user_agent=device_info.user_agent,
            visited_at=utcnow(),
        )
        
        # Insert and counter increment commit together
        visit = await self.storage.record_visit(visit)
        logger.debug(
            "Recorded visit %s for link %s (%s, %s)",
            visit.id, link.id, visit.device, visit.browser
        )
        return visit
    
    async def _resolve_link(self, link_id: str) -> Link:
        link = await self.registry.find_by_id(link_id)
        if link is None or not link.is_active:
            raise NotFoundError("Link not found or inactive")
        
        if link.expires_at is not None and link.expires_at < utcnow():
            raise ExpiredError("Link has expired")
        return link
    
    async def _determine_location(
        self,
        client_ip: str,
        latitude: Optional[float],
        longitude: Optional[float],
        accuracy: Optional[float]
    ) -> LocationData:
        has_device_fix = latitude is not None and longitude is not None
        accurate = accuracy is None or accuracy <= GPS_ACCURACY_THRESHOLD
        if has_device_fix and accurate:
            return LocationData(ip=client_ip, latitude=latitude, longitude=longitude)
        
        # Resolver never raises; failures come back as the unknown sentinel
        ip_location = await self.resolver.resolve(client_ip)
        return LocationData(
            ip=client_ip,
            latitude=latitude if latitude is not None else ip_location.latitude,
            longitude=longitude if longitude is not None else ip_location.longitude,
            country=ip_location.country,
            city=ip_location.city,
        )
    
    @staticmethod
    def _validate_coordinates(
        latitude: Optional[float],
        longitude: Optional[float],
        accuracy: Optional[float]
    ) -> None:
        if latitude is not None or longitude is not None:
            # A lone coordinate is range-checked against 0 for the missing axis
            if not is_valid_coordinates(
                0 if latitude is None else latitude,
                0 if longitude is None else longitude
            ):
                raise ValidationError(
                    "latitude must be within [-90, 90] and longitude within [-180, 180]",
                    field="coordinates"
                )
        if accuracy is not None and accuracy < 0:
            raise ValidationError("accuracy must not be negative", field="accuracy")
