"""
Error taxonomy for the tracking core.

Services raise these; the HTTP layer maps them to status codes.
"""

from typing import Optional


class TrackingError(Exception):
    """Base class for all tracking errors"""


class ValidationError(TrackingError):
    """Malformed alias, URL, date or coordinates (rejected before storage)"""
    
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class AliasConflictError(TrackingError):
    """An active link already uses the requested alias"""
    
    def __init__(self, alias: str):
        super().__init__(f"Alias '{alias}' already exists. Please choose a different one.")
        self.alias = alias


class NotFoundError(TrackingError):
    """Alias or link id does not resolve to an active link"""


class ExpiredError(TrackingError):
    """Link exists but is past its expiration timestamp"""


class GeolocationDegradedError(TrackingError):
    """External IP lookup failed; never surfaced to callers"""


class InternalError(TrackingError):
    """Storage or unexpected failure"""
