from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.responses import RedirectResponse
from tracking_app.exceptions import ExpiredError, NotFoundError
from tracking_app.services.link_registry import LinkRegistry
from tracking_app.services.visit_recorder import VisitRecorder
from tracking_app.dependencies import get_link_registry, get_visit_recorder
from tracking_app.utils.location import get_client_ip

router = APIRouter(tags=["redirect"])


@router.get("/l/{alias}")
async def redirect_to_target(
    alias: str,
    request: Request,
    registry: LinkRegistry = Depends(get_link_registry),
    recorder: VisitRecorder = Depends(get_visit_recorder)
):
    """
    Resolve an alias, record the visit and redirect.
    
    Flow:
    1. Resolve the active link (expired links are swept first)
    2. Track the visit with IP-based location
    3. Redirect with 302
    """
    try:
        link = await registry.resolve(alias)
        await recorder.track(
            link_id=link.id,
            client_ip=get_client_ip(request.headers, request.client.host if request.client else None),
            user_agent=request.headers.get("user-agent", ""),
        )
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Link not found or inactive"
        )
    except ExpiredError:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Link has expired")
    
    return RedirectResponse(url=link.target_url, status_code=status.HTTP_302_FOUND)
