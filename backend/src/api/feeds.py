"""
Calendar feed API endpoints.

Provides endpoints for:
- Serving the iCalendar document for a feed token (polled by calendar apps)
- Creating, listing and revoking a household's feeds

Design:
- The document endpoint is addressed by the token alone; unknown and
  revoked tokens both return 404, never an empty calendar
- The plain token is returned once, at creation
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.schemas.calendar_feed import (
    CalendarFeedCreate,
    CalendarFeedCreatedResponse,
    CalendarFeedListResponse,
    CalendarFeedResponse,
)
from backend.src.services.calendar_feed_service import CalendarFeedService
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(tags=["Calendar Feeds"])


ICALENDAR_MEDIA_TYPE = "text/calendar; charset=utf-8"


def get_feed_service(db: Session = Depends(get_db)) -> CalendarFeedService:
    """Create CalendarFeedService instance with database session."""
    return CalendarFeedService(db=db)


# ============================================================================
# Feed document
# ============================================================================


@router.get(
    "/feeds/calendar.ics",
    summary="Get calendar feed",
    description="iCalendar document for a feed token",
    response_class=Response,
)
async def get_calendar_feed(
    token: Optional[str] = Query(default=None, description="Feed token"),
    feed_service: CalendarFeedService = Depends(get_feed_service),
) -> Response:
    """
    Render the feed document.

    Example:
        GET /api/feeds/calendar.ics?token=Xy7...
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing token parameter",
        )

    try:
        filename, document = feed_service.render_feed(token)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Calendar feed not found",
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    return Response(
        content=document,
        media_type=ICALENDAR_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# Feed management
# ============================================================================


@router.post(
    "/households/{household_guid}/feeds",
    response_model=CalendarFeedCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create calendar feed",
)
async def create_feed(
    household_guid: str,
    payload: CalendarFeedCreate,
    request: Request,
    feed_service: CalendarFeedService = Depends(get_feed_service),
) -> CalendarFeedCreatedResponse:
    """
    Create a feed and return its token.

    The token is only shown in this response.
    """
    try:
        token, feed = feed_service.create_feed(
            household_guid,
            name=payload.name,
            filter_member=payload.filter_member,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    feed_url = f"{request.url_for('get_calendar_feed')}?token={token}"
    return CalendarFeedCreatedResponse(
        token=token,
        feed_url=feed_url,
        feed=CalendarFeedResponse.model_validate(feed),
    )


@router.get(
    "/households/{household_guid}/feeds",
    response_model=CalendarFeedListResponse,
    summary="List calendar feeds",
)
async def list_feeds(
    household_guid: str,
    include_revoked: bool = Query(default=False),
    feed_service: CalendarFeedService = Depends(get_feed_service),
) -> CalendarFeedListResponse:
    try:
        feeds = feed_service.list_feeds(household_guid, include_revoked=include_revoked)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return CalendarFeedListResponse(
        feeds=[CalendarFeedResponse.model_validate(f) for f in feeds],
        total=len(feeds),
    )


@router.delete(
    "/households/{household_guid}/feeds/{feed_guid}",
    response_model=CalendarFeedResponse,
    summary="Revoke calendar feed",
)
async def revoke_feed(
    household_guid: str,
    feed_guid: str,
    feed_service: CalendarFeedService = Depends(get_feed_service),
) -> CalendarFeedResponse:
    try:
        feed = feed_service.revoke_feed(household_guid, feed_guid)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return CalendarFeedResponse.model_validate(feed)
