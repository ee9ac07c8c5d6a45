"""
FastAPI dependencies for dependency injection.

Services are built per request from the request's database session;
the cache and the geolocation resolver are process-wide singletons.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from tracking_app.cache.factory import CacheFactory, CacheBackend
from tracking_app.cache.strategies import CacheStrategy
from tracking_app.config import settings
from tracking_app.database.connection import get_db
from tracking_app.services.analytics import AnalyticsAggregator
from tracking_app.services.device_classifier import DeviceClassifier
from tracking_app.services.geolocation import GeolocationResolver
from tracking_app.services.link_registry import LinkRegistry
from tracking_app.services.visit_recorder import VisitRecorder
from tracking_app.storage.strategies import SQLAlchemyTrackingStorage, TrackingStorage


@lru_cache()
def get_cache() -> CacheStrategy:
    """Cache instance (singleton), backend chosen by settings"""
    backend = CacheBackend(settings.cache_backend)
    return CacheFactory.create(backend)


@lru_cache()
def get_geolocation_resolver() -> GeolocationResolver:
    """Resolver (singleton) so its HTTP session is reused across requests"""
    return GeolocationResolver(cache=get_cache())


def get_storage(db: Session = Depends(get_db)) -> TrackingStorage:
    return SQLAlchemyTrackingStorage(db)


def get_link_registry(storage: TrackingStorage = Depends(get_storage)) -> LinkRegistry:
    return LinkRegistry(storage)


def get_visit_recorder(
    storage: TrackingStorage = Depends(get_storage),
    registry: LinkRegistry = Depends(get_link_registry),
    resolver: GeolocationResolver = Depends(get_geolocation_resolver)
) -> VisitRecorder:
    """
    VisitRecorder with all dependencies injected.
    
    Controllers depend on the service; the service depends on
    infrastructure (storage, resolver).
    """
    return VisitRecorder(
        storage=storage,
        registry=registry,
        resolver=resolver,
        classifier=DeviceClassifier()
    )


def get_analytics(storage: TrackingStorage = Depends(get_storage)) -> AnalyticsAggregator:
    return AnalyticsAggregator(storage)
