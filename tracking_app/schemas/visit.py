from pydantic import BaseModel, Field, computed_field, ConfigDict
from typing import Optional
from datetime import datetime
from tracking_app.utils.location import format_location_string


class TrackVisitRequest(BaseModel):
    link_id: str = Field(..., min_length=1, description="Id of the link being visited")
    latitude: Optional[float] = Field(None, ge=-90, le=90, description="Device-reported latitude")
    longitude: Optional[float] = Field(None, ge=-180, le=180, description="Device-reported longitude")
    accuracy: Optional[float] = Field(None, ge=0, description="Device accuracy radius in metres")


class VisitResponse(BaseModel):
    id: str
    link_id: str
    ip_address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    country: Optional[str] = None
    city: Optional[str] = None
    device: Optional[str] = None
    browser: Optional[str] = None
    visited_at: datetime

    @computed_field
    @property
    def location(self) -> str:
        return format_location_string(self.country, self.city)

    model_config = ConfigDict(from_attributes=True)
