from fastapi import APIRouter, Depends, HTTPException, Request, status
from tracking_app.exceptions import ExpiredError, NotFoundError, ValidationError
from tracking_app.schemas.visit import TrackVisitRequest, VisitResponse
from tracking_app.services.visit_recorder import VisitRecorder
from tracking_app.dependencies import get_visit_recorder
from tracking_app.utils.location import get_client_ip

router = APIRouter(prefix="/track", tags=["track"])


@router.post("/", response_model=VisitResponse)
async def track_visit(
    visit_data: TrackVisitRequest,
    request: Request,
    recorder: VisitRecorder = Depends(get_visit_recorder)
):
    """
    Record a visit for a link.
    
    Device coordinates are optional; without them (or when they are too
    inaccurate) the location comes from the client IP.
    """
    try:
        return await recorder.track(
            link_id=visit_data.link_id,
            client_ip=get_client_ip(request.headers, request.client.host if request.client else None),
            user_agent=request.headers.get("user-agent", ""),
            latitude=visit_data.latitude,
            longitude=visit_data.longitude,
            accuracy=visit_data.accuracy,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found or inactive")
    except ExpiredError:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Link has expired")
