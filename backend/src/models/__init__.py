"""
SQLAlchemy models for the FamilyHub backend.

This module provides the declarative base class and imports all models
to ensure they are registered with SQLAlchemy's metadata.
"""

from sqlalchemy.orm import declarative_base

# All models inherit from this Base class
Base = declarative_base()


# Import all models here so they are registered with Base.metadata
# This is required for Alembic autogenerate to detect models
from backend.src.models.household import Household
from backend.src.models.family_member import FamilyMember, MemberType
from backend.src.models.family_event import FamilyEvent, ActivityCategory
from backend.src.models.event_instance import EventInstance
from backend.src.models.calendar_feed import CalendarFeed

__all__ = [
    "Base",
    "Household",
    "FamilyMember",
    "MemberType",
    "FamilyEvent",
    "ActivityCategory",
    "EventInstance",
    "CalendarFeed",
]
