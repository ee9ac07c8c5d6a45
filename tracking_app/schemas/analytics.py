from pydantic import BaseModel, ConfigDict
from typing import Dict, List, Optional
from datetime import date, datetime
from tracking_app.schemas.visit import VisitResponse


class CountEntry(BaseModel):
    """One row of a categorical distribution"""
    name: str
    count: int


class MapPoint(BaseModel):
    id: str
    lat: float
    lng: float
    country: Optional[str] = None
    city: Optional[str] = None
    device: Optional[str] = None
    browser: Optional[str] = None
    timestamp: datetime


class ClickStats(BaseModel):
    """Store-side aggregate used by link listings"""
    total_clicks: int = 0
    unique_visitors: int = 0
    countries: List[CountEntry] = []
    recent_visits: List[VisitResponse] = []


class AnalyticsSummary(BaseModel):
    link_id: Optional[str] = None
    start: datetime
    end: datetime

    # Overview
    total_clicks: int = 0
    unique_visitors: int = 0
    countries_count: int = 0
    avg_clicks_per_day: int = 0

    # Timeline
    daily_visits: Dict[date, int] = {}
    hourly_visits: Dict[int, int] = {}

    # Demographics
    countries: List[CountEntry] = []
    cities: List[CountEntry] = []
    devices: List[CountEntry] = []
    browsers: List[CountEntry] = []

    # Geography
    map_points: List[MapPoint] = []

    recent_activity: List[VisitResponse] = []

    model_config = ConfigDict(from_attributes=True)
