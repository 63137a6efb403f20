"""
Household model.

A household is the tenant boundary: every member, event, override and
calendar feed belongs to exactly one household.

Design Rationale:
- timezone is the IANA zone in which recurrence slot times are interpreted
- legacy_names maps the five fixed legacy roles (parent1, parent2, kid1,
  kid2, housekeeper) to the display names configured before dynamic
  member records existed
"""

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship, validates

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin
from backend.src.models.types import JSONBType


def is_valid_timezone(name: str) -> bool:
    """True when name is a key of the IANA time zone database."""
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


class Household(Base, GuidMixin):
    """
    Household (tenant) model.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid: UUIDv7 for external identification (inherited from GuidMixin)
        guid: GUID string property (hsh_xxx, inherited from GuidMixin)
        name: Household display name
        timezone: IANA timezone for slot times (default UTC)
        legacy_names: Display names for legacy role identifiers
        created_at: Creation timestamp
        updated_at: Last update timestamp

    Relationships:
        members: Family members (one-to-many, CASCADE on delete)
        events: Recurring family events (one-to-many, CASCADE on delete)
        feeds: Calendar feed tokens (one-to-many, CASCADE on delete)
    """

    __tablename__ = "households"

    GUID_PREFIX = "hsh"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")
    legacy_names = Column(JSONBType, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    members = relationship(
        "FamilyMember",
        back_populates="household",
        cascade="all, delete-orphan",
        order_by="FamilyMember.display_order",
    )
    events = relationship(
        "FamilyEvent",
        back_populates="household",
        cascade="all, delete-orphan",
    )
    feeds = relationship(
        "CalendarFeed",
        back_populates="household",
        cascade="all, delete-orphan",
    )

    @validates("timezone")
    def validate_timezone(self, key: str, value: str) -> str:
        """
        Reject zone names that slot times could not be resolved in.

        Raises:
            ValueError: If value is empty or unknown to the zone database
        """
        value = (value or "").strip()
        if not value or not is_valid_timezone(value):
            raise ValueError(f"Invalid timezone '{value}': expected an IANA zone name")
        return value

    def __repr__(self) -> str:
        return f"<Household(id={self.id}, name='{self.name}', timezone='{self.timezone}')>"
