"""
Pydantic schemas for occurrence listing and per-date overrides.

Provides data validation and serialization for:
- Expanded occurrence listings (with data-quality issues)
- Occurrence override requests and responses

Design:
- Occurrences are derived values and carry no GUID of their own; they are
  identified by (event_guid, date, slot_index)
- Transportation in requests uses the stored camelCase shape so the same
  document can be written back unchanged
"""

import enum
from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator


class TransportMethod(str, enum.Enum):
    """How a participant gets to or from an activity."""
    CAR = "car"
    BUS = "bus"
    WALK = "walk"
    BIKE = "bike"


# ============================================================================
# Occurrence listing
# ============================================================================


class ParticipantInfo(BaseModel):
    """Participant reference with resolved display name."""
    id: str
    name: str


class TransportationInfo(BaseModel):
    """Resolved transportation for one occurrence."""
    drop_off_method: Optional[str] = None
    drop_off_person: Optional[str] = None
    pick_up_method: Optional[str] = None
    pick_up_person: Optional[str] = None


class OccurrenceResponse(BaseModel):
    """One expanded occurrence."""

    event_guid: str
    slot_index: int
    date: date
    start_time: str = Field(..., description="Local start time (HH:MM)")
    end_time: str = Field(..., description="Local end time (HH:MM)")
    start: datetime = Field(..., description="Start instant (UTC)")
    end: datetime = Field(..., description="End instant (UTC)")
    title: str
    category: str
    location: Optional[str] = None
    notes: Optional[str] = None
    participants: List[ParticipantInfo] = Field(default_factory=list)
    transportation: Optional[TransportationInfo] = None
    overridden: bool = False


class ExpansionIssueResponse(BaseModel):
    """Malformed recurrence data skipped during expansion."""
    event_guid: Optional[str] = None
    slot_index: Optional[int] = None
    reason: str


class OccurrenceListResponse(BaseModel):
    """Response for GET /households/{guid}/occurrences."""

    household_guid: str
    timezone: str
    start_date: date
    end_date: date
    occurrences: List[OccurrenceResponse]
    issues: List[ExpansionIssueResponse] = Field(default_factory=list)


# ============================================================================
# Overrides
# ============================================================================


class TransportationInput(BaseModel):
    """
    Transportation override in the stored camelCase shape.

    Person values are member GUIDs or legacy role identifiers.
    """

    dropOffMethod: Optional[TransportMethod] = None
    dropOffPerson: Optional[str] = Field(default=None, max_length=64)
    pickUpMethod: Optional[TransportMethod] = None
    pickUpPerson: Optional[str] = Field(default=None, max_length=64)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class OverrideRequest(BaseModel):
    """
    Schema for customizing a single occurrence.

    Fields left null inherit from the slot or event. An empty participants
    list means nobody attends on that date.
    """

    cancelled: bool = Field(default=False)
    transportation: Optional[TransportationInput] = None
    participants: Optional[List[str]] = None

    @field_validator("participants")
    @classmethod
    def validate_participants(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None and any(not p or not p.strip() for p in v):
            raise ValueError("Participant identifiers cannot be empty")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "cancelled": False,
                "transportation": {"dropOffMethod": "car", "dropOffPerson": "parent1"},
                "participants": None,
            }
        }
    }


class OverrideResponse(BaseModel):
    """Stored override; guid is null when nothing is overridden any more."""

    guid: Optional[str] = None
    event_guid: str
    date: date
    cancelled: bool = False
    transportation: Optional[dict] = None
    participants: Optional[List[str]] = None
