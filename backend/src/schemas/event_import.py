"""
Pydantic schemas for event export and two-phase import.

Provides data validation and serialization for:
- Uploaded event documents (one per record, validated individually)
- Phase 1 preview: conflicts and summary counts
- Phase 2 resolution: per-record skip / update / create decisions
- Household export documents

Design:
- Upload requests carry raw dicts so one malformed record is counted as
  skipped_invalid instead of rejecting the whole upload
- Event documents use the export shape: snake_case at the top level,
  camelCase inside recurrence_slots and transportation
"""

import enum
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from backend.src.models import ActivityCategory


class ImportResolution(str, enum.Enum):
    """Operator decision for one uploaded record."""
    SKIP = "skip"
    UPDATE = "update"
    CREATE = "create"


# ============================================================================
# Event documents
# ============================================================================


class EventDocument(BaseModel):
    """
    One uploaded or exported event.

    Required:
        title, start_date, category

    Optional:
        id: Event GUID of an existing event (exports carry it)
        household_id: Household GUID; must match the target household
        recurrence_slots: Weekly slots ({dayOfWeek, startTime, endTime,
            transportation?}); kept as given, malformed slots are reported
            when the event is expanded
    """

    id: Optional[str] = None
    household_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=255)
    start_date: date
    end_date: Optional[date] = None
    category: ActivityCategory
    participants: List[str] = Field(default_factory=list)
    recurrence_slots: List[Dict[str, Any]] = Field(default_factory=list)
    transportation: Optional[Dict[str, Any]] = None
    location: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = None
    notes: Optional[str] = None

    model_config = {
        "extra": "ignore",
    }

    @field_validator("title")
    @classmethod
    def validate_title_not_whitespace(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be empty or whitespace")
        return v.strip()

    @model_validator(mode="after")
    def validate_window(self) -> "EventDocument":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


# ============================================================================
# Requests
# ============================================================================


class ImportRequest(BaseModel):
    """Phase 1: uploaded records to check for conflicts."""

    events: List[Dict[str, Any]]


class ImportResolveRequest(BaseModel):
    """
    Phase 2: uploaded records plus operator decisions.

    resolutions and targets are keyed by the record's position in events
    (as a string). A record without a resolution is created.
    """

    events: List[Dict[str, Any]]
    resolutions: Dict[str, ImportResolution] = Field(default_factory=dict)
    targets: Dict[str, str] = Field(
        default_factory=dict,
        description="Existing event GUID to update, per record position",
    )


# ============================================================================
# Responses
# ============================================================================


class ImportSummary(BaseModel):
    total_uploaded: int
    conflicts: int
    ready_to_import: int
    skipped_invalid: int


class ImportConflict(BaseModel):
    """An uploaded record that collides with an existing event."""

    index: int = Field(..., description="Position of the record in the upload")
    uploaded_event: Dict[str, Any]
    existing_event: Dict[str, Any]
    match_score: int = Field(..., ge=0, le=100)
    match_reasons: List[str]
    exact_id: bool = False


class ImportPreviewResponse(BaseModel):
    """Response for phase 1: conflicts to review, or the clean records."""

    message: Optional[str] = None
    summary: ImportSummary
    conflicts: List[ImportConflict] = Field(default_factory=list)
    valid_events: List[Dict[str, Any]] = Field(default_factory=list)


class ImportResolveResponse(BaseModel):
    imported: int
    updated: int
    skipped: int
    errors: int


class EventExportResponse(BaseModel):
    """Household export document."""

    events: List[Dict[str, Any]]
    instances: List[Dict[str, Any]]
    exported_at: datetime
