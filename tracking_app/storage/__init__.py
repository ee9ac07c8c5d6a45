"""
Storage module for links and visits.

Implements the Strategy Pattern so the services depend only on the
``TrackingStorage`` interface.
"""

from .strategies import TrackingStorage, SQLAlchemyTrackingStorage

__all__ = [
    "TrackingStorage",
    "SQLAlchemyTrackingStorage",
]
