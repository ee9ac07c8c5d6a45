from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from tracking_app.exceptions import AliasConflictError, NotFoundError, ValidationError
from tracking_app.schemas.link import LinkCreate, LinkResponse, LinkWithStats
from tracking_app.services.analytics import AnalyticsAggregator
from tracking_app.services.link_registry import LinkRegistry
from tracking_app.dependencies import get_analytics, get_link_registry

router = APIRouter(prefix="/links", tags=["links"])


async def _with_stats(link, analytics: AnalyticsAggregator) -> LinkWithStats:
    stats = await analytics.get_click_stats(link.id)
    return LinkWithStats.model_validate(link).model_copy(
        update={"total_clicks": stats.total_clicks, "unique_visitors": stats.unique_visitors}
    )


@router.post("/", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    link_data: LinkCreate,
    registry: LinkRegistry = Depends(get_link_registry)
):
    """Create a new tracking link"""
    try:
        return await registry.create(
            alias=link_data.alias,
            target_url=link_data.target_url,
            description=link_data.description,
            expires_at=link_data.expires_at,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except AliasConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/", response_model=List[LinkWithStats])
async def list_links(
    registry: LinkRegistry = Depends(get_link_registry),
    analytics: AnalyticsAggregator = Depends(get_analytics)
):
    """All active links with click statistics (expired links are swept first)"""
    links = await registry.list_active()
    return [await _with_stats(link, analytics) for link in links]


@router.get("/{alias}", response_model=LinkWithStats)
async def get_link(
    alias: str,
    registry: LinkRegistry = Depends(get_link_registry),
    analytics: AnalyticsAggregator = Depends(get_analytics)
):
    """Resolve an alias to its active link"""
    try:
        link = await registry.resolve(alias)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")
    return await _with_stats(link, analytics)


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(
    link_id: str,
    registry: LinkRegistry = Depends(get_link_registry)
):
    """Deactivate a link (soft delete, visits are kept)"""
    if not await registry.deactivate(link_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")
