"""
Service layer for business logic.

This module exports all service classes for use in API endpoints.
The expansion, feed serialization and reconciliation engines are pure and
never touch the database; the remaining services wrap them at the
database boundary.
"""

from backend.src.services.exceptions import (
    ServiceError,
    NotFoundError,
    ValidationError,
)
from backend.src.services.occurrence_service import expand_occurrences, ExpansionResult
from backend.src.services.feed_service import FeedSerializer
from backend.src.services.reconciliation_service import ReconciliationService
from backend.src.services.event_service import EventService, MemberDirectory
from backend.src.services.calendar_feed_service import CalendarFeedService
from backend.src.services.import_service import ImportService

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ValidationError",
    "expand_occurrences",
    "ExpansionResult",
    "FeedSerializer",
    "ReconciliationService",
    "EventService",
    "MemberDirectory",
    "CalendarFeedService",
    "ImportService",
]
