"""
Pydantic schemas for API request/response validation.

This module exports all schema classes for use in API endpoints.
"""

from backend.src.schemas.occurrence import (
    TransportMethod,
    ParticipantInfo,
    TransportationInfo,
    OccurrenceResponse,
    ExpansionIssueResponse,
    OccurrenceListResponse,
    TransportationInput,
    OverrideRequest,
    OverrideResponse,
)
from backend.src.schemas.calendar_feed import (
    CalendarFeedCreate,
    CalendarFeedResponse,
    CalendarFeedCreatedResponse,
    CalendarFeedListResponse,
)
from backend.src.schemas.event_import import (
    ImportResolution,
    EventDocument,
    ImportRequest,
    ImportResolveRequest,
    ImportSummary,
    ImportConflict,
    ImportPreviewResponse,
    ImportResolveResponse,
    EventExportResponse,
)

__all__ = [
    # Occurrences and overrides
    "TransportMethod",
    "ParticipantInfo",
    "TransportationInfo",
    "OccurrenceResponse",
    "ExpansionIssueResponse",
    "OccurrenceListResponse",
    "TransportationInput",
    "OverrideRequest",
    "OverrideResponse",
    # Calendar feeds
    "CalendarFeedCreate",
    "CalendarFeedResponse",
    "CalendarFeedCreatedResponse",
    "CalendarFeedListResponse",
    # Export / import
    "ImportResolution",
    "EventDocument",
    "ImportRequest",
    "ImportResolveRequest",
    "ImportSummary",
    "ImportConflict",
    "ImportPreviewResponse",
    "ImportResolveResponse",
    "EventExportResponse",
]
