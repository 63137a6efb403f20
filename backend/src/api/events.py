"""
Household events API endpoints.

Provides endpoints for:
- Listing expanded occurrences for a visible date range
- Customizing or cancelling a single occurrence (override)
- Restoring a cancelled occurrence
- Exporting a household's events and overrides
- Two-phase bulk import (preview conflicts, then apply resolutions)

Design:
- Uses dependency injection for services
- All endpoints use GUID format (hsh_xxx, evt_xxx) for identifiers
- Service exceptions map to 404 (NotFoundError) and 400 (ValidationError)
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.models import EventInstance
from backend.src.schemas.event_import import (
    EventExportResponse,
    ImportPreviewResponse,
    ImportRequest,
    ImportResolveRequest,
    ImportResolveResponse,
)
from backend.src.schemas.occurrence import (
    OccurrenceListResponse,
    OverrideRequest,
    OverrideResponse,
)
from backend.src.services.event_service import EventService
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.services.import_service import ImportService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/households",
    tags=["Events"],
)


# ============================================================================
# Dependencies
# ============================================================================


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    """Create EventService instance with database session."""
    return EventService(db=db)


def get_import_service(db: Session = Depends(get_db)) -> ImportService:
    """Create ImportService instance with database session."""
    return ImportService(db=db)


def _override_response(
    event_guid: str,
    occurrence_date: date,
    instance: Optional[EventInstance],
) -> OverrideResponse:
    if instance is None:
        return OverrideResponse(event_guid=event_guid, date=occurrence_date)
    return OverrideResponse(
        guid=instance.guid,
        event_guid=event_guid,
        date=instance.occurrence_date,
        cancelled=instance.cancelled,
        transportation=instance.transportation,
        participants=instance.participants,
    )


# ============================================================================
# Occurrences
# ============================================================================


@router.get(
    "/{household_guid}/occurrences",
    response_model=OccurrenceListResponse,
    summary="List occurrences",
    description="Expand recurring events into dated occurrences for a date range",
)
async def list_occurrences(
    household_guid: str,
    start_date: date = Query(..., description="First date (inclusive)"),
    end_date: date = Query(..., description="Last date (inclusive)"),
    event_service: EventService = Depends(get_event_service),
) -> OccurrenceListResponse:
    """
    List expanded occurrences.

    Malformed recurrence data does not fail the request; it is skipped and
    reported in the issues list.

    Example:
        GET /api/households/hsh_xxx/occurrences?start_date=2026-03-02&end_date=2026-03-08
    """
    try:
        listing = event_service.list_occurrences(household_guid, start_date, end_date)
        return OccurrenceListResponse(**listing)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


# ============================================================================
# Overrides
# ============================================================================


@router.put(
    "/{household_guid}/events/{event_guid}/overrides/{occurrence_date}",
    response_model=OverrideResponse,
    summary="Override one occurrence",
    description="Cancel an occurrence or replace its transportation/participants for that date",
)
async def set_override(
    household_guid: str,
    event_guid: str,
    occurrence_date: date,
    request: OverrideRequest,
    event_service: EventService = Depends(get_event_service),
) -> OverrideResponse:
    """
    Create or replace the override for one date.

    Sending cancelled=false with no transportation and no participants
    removes the override.
    """
    try:
        instance = event_service.set_override(
            household_guid,
            event_guid,
            occurrence_date,
            cancelled=request.cancelled,
            transportation=request.transportation.to_document() if request.transportation else None,
            participants=request.participants,
        )
        return _override_response(event_guid, occurrence_date, instance)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


@router.delete(
    "/{household_guid}/events/{event_guid}/overrides/{occurrence_date}",
    response_model=OverrideResponse,
    summary="Restore one occurrence",
    description="Un-cancel an occurrence; other overridden values are kept",
)
async def restore_override(
    household_guid: str,
    event_guid: str,
    occurrence_date: date,
    event_service: EventService = Depends(get_event_service),
) -> OverrideResponse:
    try:
        instance = event_service.restore_override(household_guid, event_guid, occurrence_date)
        return _override_response(event_guid, occurrence_date, instance)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# ============================================================================
# Export / Import
# ============================================================================


@router.get(
    "/{household_guid}/events/export",
    response_model=EventExportResponse,
    summary="Export events",
    description="Export all events and overrides of a household",
)
async def export_events(
    household_guid: str,
    import_service: ImportService = Depends(get_import_service),
) -> EventExportResponse:
    try:
        return EventExportResponse(**import_service.export_events(household_guid))

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/{household_guid}/events/import",
    response_model=ImportPreviewResponse,
    response_model_exclude_none=True,
    summary="Preview event import",
    description="Validate uploaded events and report duplicates without writing",
)
async def preview_import(
    household_guid: str,
    request: ImportRequest,
    import_service: ImportService = Depends(get_import_service),
) -> ImportPreviewResponse:
    """
    Phase 1 of the import.

    Returns conflicts for review when any uploaded record matches an
    existing event by id or scores above the fuzzy threshold; otherwise the
    clean records ready to import.
    """
    try:
        return ImportPreviewResponse(**import_service.preview_import(household_guid, request.events))

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/{household_guid}/events/import/resolve",
    response_model=ImportResolveResponse,
    summary="Apply event import",
    description="Skip, update or create each uploaded event according to the operator's decisions",
)
async def resolve_import(
    household_guid: str,
    request: ImportResolveRequest,
    import_service: ImportService = Depends(get_import_service),
) -> ImportResolveResponse:
    try:
        counts = import_service.resolve_import(
            household_guid,
            request.events,
            {key: value.value for key, value in request.resolutions.items()},
            request.targets,
        )
        return ImportResolveResponse(**counts)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
