from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from tracking_app.exceptions import ValidationError
from tracking_app.schemas.analytics import AnalyticsSummary
from tracking_app.services.analytics import AnalyticsAggregator
from tracking_app.dependencies import get_analytics

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/", response_model=AnalyticsSummary)
async def get_analytics_summary(
    link_id: Optional[str] = None,
    days: Optional[int] = Query(None, ge=1, le=365),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    analytics: AnalyticsAggregator = Depends(get_analytics)
):
    """Aggregated visit analytics, for one link or all links"""
    try:
        return await analytics.get_analytics(link_id=link_id, start=start, end=end, days=days)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
