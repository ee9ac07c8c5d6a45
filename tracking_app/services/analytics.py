"""
Analytics aggregation over the visit log.

``aggregate`` is pure: it takes an already-selected, time-ordered set of
visits and derives every summary from it. ``AnalyticsAggregator`` only
selects the visits (read-only) and hands them over.
"""

import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from tracking_app.config import settings
from tracking_app.exceptions import ValidationError
from tracking_app.models import Visit
from tracking_app.schemas.analytics import AnalyticsSummary, ClickStats, CountEntry, MapPoint
from tracking_app.schemas.visit import VisitResponse
from tracking_app.storage.strategies import TrackingStorage
from tracking_app.utils.time import to_utc_naive, utcnow

TOP_LOCATIONS = 10
UNKNOWN = "Unknown"


def distribution(values: Iterable[Optional[str]], limit: Optional[int] = None) -> List[CountEntry]:
    """Count values, most frequent first (ties alphabetical), optionally capped"""
    counts = Counter(values)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    if limit is not None:
        ranked = ranked[:limit]
    return [CountEntry(name=name, count=count) for name, count in ranked]


def window_days(start: datetime, end: datetime) -> int:
    """Whole days covered by [start, end), never less than one"""
    seconds = (end - start).total_seconds()
    return max(1, math.ceil(seconds / 86400))


def recent_visits(visits: Sequence[Visit], limit: Optional[int] = None) -> List[Visit]:
    """Most recent visits first; ``limit=None`` returns them all"""
    ordered = sorted(visits, key=lambda visit: visit.visited_at, reverse=True)
    return ordered if limit is None else ordered[:limit]


def aggregate(
    visits: Sequence[Visit],
    start: datetime,
    end: datetime,
    link_id: Optional[str] = None,
    recent_limit: int = 20
) -> AnalyticsSummary:
    total = len(visits)
    days = window_days(start, end)
    
    countries = distribution((v.country for v in visits if v.country), TOP_LOCATIONS)
    cities = distribution((v.city for v in visits if v.city), TOP_LOCATIONS)
    
    daily = Counter(v.visited_at.date() for v in visits)
    hourly = Counter(v.visited_at.hour for v in visits)
    
    return AnalyticsSummary(
        link_id=link_id,
        start=start,
        end=end,
        total_clicks=total,
        unique_visitors=len({v.ip_address for v in visits}),
        countries_count=len(countries),
        # Round half up; total is never negative
        avg_clicks_per_day=int(total / days + 0.5),
        daily_visits=dict(sorted(daily.items())),
        hourly_visits=dict(sorted(hourly.items())),
        countries=countries,
        cities=cities,
        devices=distribution(v.device or UNKNOWN for v in visits),
        browsers=distribution(v.browser or UNKNOWN for v in visits),
        map_points=[
            MapPoint(
                id=v.id,
                lat=v.latitude,
                lng=v.longitude,
                country=v.country,
                city=v.city,
                device=v.device,
                browser=v.browser,
                timestamp=v.visited_at,
            )
            for v in visits
            if v.latitude is not None and v.longitude is not None
        ],
        recent_activity=[
            VisitResponse.model_validate(v) for v in recent_visits(visits, recent_limit)
        ],
    )


class AnalyticsAggregator:
    """Read-only analytics service over the tracking store"""
    
    def __init__(self, storage: TrackingStorage):
        self.storage = storage
    
    async def get_analytics(
        self,
        link_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        days: Optional[int] = None,
        recent_limit: int = settings.recent_activity_limit
    ) -> AnalyticsSummary:
        """
        Summarize visits in [start, end), optionally for one link.
        
        Without an explicit start the window is the last ``days`` days
        (``analytics_default_days`` by default) ending at ``end`` or now.
        """
        end = to_utc_naive(end) or utcnow()
        if start is None:
            days = settings.analytics_default_days if days is None else days
            if days < 1:
                raise ValidationError("days must be at least 1", field="days")
            start = end - timedelta(days=days)
        else:
            start = to_utc_naive(start)
        
        if start > end:
            raise ValidationError("start must not be after end", field="start")
        
        visits = await self.storage.list_visits_in_range(start, end, link_id=link_id)
        return aggregate(visits, start, end, link_id=link_id, recent_limit=recent_limit)
    
    async def get_click_stats(self, link_id: Optional[str] = None) -> ClickStats:
        """All-time totals computed by the store"""
        return await self.storage.get_click_stats(link_id)
