"""
FamilyEvent model for recurring household activities.

A FamilyEvent is the compact weekly rule from which dated occurrences are
expanded on demand. Occurrences themselves are never stored; only per-date
exceptions are (see EventInstance).

Design Rationale:
- recurrence_slots is a JSON list of {dayOfWeek, startTime, endTime,
  transportation?} objects, kept verbatim so malformed slots survive
  storage and are reported at expansion time instead of being lost
- participants holds raw member reference strings (member GUIDs or legacy
  role identifiers); they are canonicalized when records are loaded
- end_date NULL means the pattern is open-ended
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, ForeignKey, Index
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin
from backend.src.models.types import JSONBType


class ActivityCategory(str, enum.Enum):
    """Closed set of activity categories."""
    SPORTS = "sports"
    EDUCATION = "education"
    SOCIAL = "social"
    CHORES = "chores"
    HEALTH = "health"
    OTHER = "other"


class FamilyEvent(Base, GuidMixin):
    """
    Recurring family event model.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (evt_xxx, inherited from GuidMixin)
        household_id: Owning household
        title: Activity title
        description: Free-text description
        category: One of ActivityCategory values
        participants: JSON list of member reference strings
        recurrence_slots: JSON list of weekly slots
        transportation: Event-level default transportation (JSON)
        start_date: First date of the recurring pattern
        end_date: Last date of the pattern (NULL = open-ended)
        location: Location text
        notes: Notes appended to feed descriptions
        created_at: Creation timestamp
        updated_at: Last update timestamp

    Relationships:
        household: Owning household (many-to-one)
        instances: Per-date overrides (one-to-many, CASCADE on delete)
    """

    __tablename__ = "family_events"

    GUID_PREFIX = "evt"

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(
        Integer,
        ForeignKey("households.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(20), nullable=False, default=ActivityCategory.OTHER.value)
    participants = Column(JSONBType, nullable=False, default=list)
    recurrence_slots = Column(JSONBType, nullable=False, default=list)
    transportation = Column(JSONBType, nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    location = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    household = relationship("Household", back_populates="events")
    instances = relationship(
        "EventInstance",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_family_events_household_start", "household_id", "start_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<FamilyEvent("
            f"id={self.id}, "
            f"title='{self.title}', "
            f"start={self.start_date}, "
            f"end={self.end_date}"
            f")>"
        )
