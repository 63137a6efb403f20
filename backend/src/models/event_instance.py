"""
EventInstance model for per-date occurrence overrides.

An EventInstance is created lazily the first time a single date of a
recurring event is customized. It can cancel the occurrence or replace its
transportation and participants for that date only.

Design Rationale:
- Keyed by (event_id, occurrence_date); the pair is unique
- Cancelled rows are kept so an operator can restore the occurrence
- A row with cancelled=False and no overrides carries no information and
  is deleted by the override service rather than stored
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, Boolean, DateTime, Date, ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin
from backend.src.models.types import JSONBType


class EventInstance(Base, GuidMixin):
    """
    Occurrence override model.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (ovr_xxx, inherited from GuidMixin)
        event_id: Overridden FamilyEvent
        household_id: Owning household (denormalized for range queries)
        occurrence_date: Calendar date the override applies to
        cancelled: Whether the occurrence is cancelled
        transportation: Transportation override (JSON, NULL = inherit)
        participants: Participant override (JSON list, NULL = inherit)
    """

    __tablename__ = "event_instances"

    GUID_PREFIX = "ovr"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(
        Integer,
        ForeignKey("family_events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    household_id = Column(
        Integer,
        ForeignKey("households.id", ondelete="CASCADE"),
        nullable=False,
    )
    occurrence_date = Column(Date, nullable=False)
    cancelled = Column(Boolean, nullable=False, default=False)
    transportation = Column(JSONBType, nullable=True)
    participants = Column(JSONBType, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    event = relationship("FamilyEvent", back_populates="instances")

    __table_args__ = (
        UniqueConstraint("event_id", "occurrence_date", name="uq_event_instances_event_date"),
        Index("idx_event_instances_household_date", "household_id", "occurrence_date"),
    )

    @property
    def is_empty(self) -> bool:
        """True when the row no longer changes anything about the occurrence."""
        return not self.cancelled and not self.transportation and self.participants is None

    def __repr__(self) -> str:
        return (
            f"<EventInstance(event_id={self.event_id}, "
            f"date={self.occurrence_date}, cancelled={self.cancelled})>"
        )
