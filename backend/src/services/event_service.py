"""
Event service: the record source for recurring household events.

Provides business logic for loading a household's events and per-date
overrides as canonical value records, listing expanded occurrences for the
UI, and customizing or restoring single occurrences.

Design:
- Member references are canonicalized here, once, through MemberDirectory;
  the expansion, feed and reconciliation engines only see MemberRef values
- Override rows are created lazily and deleted again as soon as they no
  longer change anything
- Range queries use calendar dates, never string comparison
"""

from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.src.models import Household, FamilyMember, FamilyEvent, EventInstance
from backend.src.services.calendar_records import (
    LEGACY_ROLES,
    EventRecord,
    MemberRef,
    OccurrenceOverride,
    Occurrence,
    RecurrenceSlot,
    TransportationDetails,
    format_time_of_day,
)
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.services.guid import GuidService
from backend.src.services.occurrence_service import (
    ExpansionIssue,
    day_of_week,
    expand_occurrences,
)
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


# Longest range the occurrence listing accepts, in days
MAX_LISTING_RANGE_DAYS = 366


class MemberDirectory:
    """
    Member lookup for one household.

    Canonicalizes raw member identifiers and resolves display names.

    Usage:
        >>> directory = MemberDirectory(household.members, household.legacy_names)
        >>> ref = directory.resolve("kid1")
        >>> directory.name_for(ref)
        'Emma'
    """

    def __init__(
        self,
        members: Iterable[FamilyMember],
        legacy_names: Optional[Dict[str, str]] = None,
    ):
        active = [m for m in members if m.is_active]
        self._names = {m.guid: m.name for m in active}
        self._claims = {m.legacy_role: m.guid for m in active if m.legacy_role}
        self._legacy_names = dict(legacy_names or {})

    def resolve(self, raw: str) -> MemberRef:
        """Canonical reference for a raw stored identifier."""
        if raw in self._claims:
            return MemberRef(MemberRef.MEMBER, self._claims[raw])
        return MemberRef.parse(raw)

    def resolve_all(self, raw_values: Optional[Iterable[str]]) -> Tuple[MemberRef, ...]:
        """Canonical references in first-seen order, duplicates removed."""
        refs = []
        for raw in raw_values or ():
            if not isinstance(raw, str) or not raw:
                continue
            ref = self.resolve(raw)
            if ref not in refs:
                refs.append(ref)
        return tuple(refs)

    def is_known(self, ref: MemberRef) -> bool:
        if ref.is_legacy:
            return ref.key in LEGACY_ROLES
        return ref.key in self._names

    def name_for(self, ref: MemberRef) -> str:
        """
        Display name: member name, then household legacy name, then the
        built-in legacy label, then the raw key.
        """
        if ref.key in self._names:
            return self._names[ref.key]
        if ref.is_legacy:
            return self._legacy_names.get(ref.key) or LEGACY_ROLES.get(ref.key, ref.key)
        return ref.key


class EventService:
    """
    Record source and override management for household events.

    Usage:
        >>> service = EventService(db_session)
        >>> events, overrides = service.load_household_records(
        ...     "hsh_01hgw2bbg...", date(2026, 3, 1), date(2026, 3, 31)
        ... )
    """

    def __init__(self, db: Session):
        """
        Initialize event service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_household(self, guid: str) -> Household:
        """
        Get a household by GUID.

        Raises:
            NotFoundError: If the GUID is malformed or unknown
        """
        uuid_value = GuidService.uuid_or_none(guid, "hsh")
        if uuid_value is None:
            raise NotFoundError("Household", guid)

        household = self.db.query(Household).filter(Household.uuid == uuid_value).first()
        if not household:
            raise NotFoundError("Household", guid)
        return household

    def get_event(self, household: Household, guid: str) -> FamilyEvent:
        """
        Get an event of the given household by GUID.

        Raises:
            NotFoundError: If not found or owned by another household
        """
        uuid_value = GuidService.uuid_or_none(guid, "evt")
        if uuid_value is None:
            raise NotFoundError("Event", guid)

        event = (
            self.db.query(FamilyEvent)
            .filter(FamilyEvent.uuid == uuid_value)
            .filter(FamilyEvent.household_id == household.id)
            .first()
        )
        if not event:
            raise NotFoundError("Event", guid)
        return event

    def member_directory(self, household: Household) -> MemberDirectory:
        return MemberDirectory(household.members, household.legacy_names)

    @staticmethod
    def household_zone(household: Household) -> ZoneInfo:
        """
        Zone in which the household's slot times are local.

        Raises:
            ValidationError: If the stored zone name is not a valid IANA zone
        """
        try:
            return ZoneInfo(household.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.error(
                f"Household {household.guid} has invalid timezone '{household.timezone}'",
                extra={"household_guid": household.guid},
            )
            raise ValidationError(
                f"Household timezone '{household.timezone}' is not a valid IANA zone",
                field="timezone",
            )

    # =========================================================================
    # Row -> record conversion
    # =========================================================================

    @staticmethod
    def to_record(event: FamilyEvent, directory: MemberDirectory) -> EventRecord:
        """Canonical EventRecord for a stored event."""
        slots = tuple(
            RecurrenceSlot.from_dict(raw, directory.resolve)
            for raw in (event.recurrence_slots or [])
        )
        return EventRecord(
            id=event.guid,
            title=event.title,
            category=event.category,
            start_date=event.start_date,
            end_date=event.end_date,
            slots=slots,
            participants=directory.resolve_all(event.participants),
            transportation=TransportationDetails.from_dict(event.transportation, directory.resolve),
            location=event.location,
            notes=event.notes,
            description=event.description,
            updated_at=event.updated_at,
        )

    @staticmethod
    def to_override(instance: EventInstance, directory: MemberDirectory) -> OccurrenceOverride:
        participants = None
        if instance.participants is not None:
            participants = directory.resolve_all(instance.participants)
        return OccurrenceOverride(
            event_id=instance.event.guid,
            date=instance.occurrence_date,
            cancelled=bool(instance.cancelled),
            transportation=TransportationDetails.from_dict(instance.transportation, directory.resolve),
            participants=participants,
        )

    # =========================================================================
    # Record source
    # =========================================================================

    def list_events(self, household: Household) -> List[FamilyEvent]:
        """All events of a household ordered by start date."""
        return (
            self.db.query(FamilyEvent)
            .filter(FamilyEvent.household_id == household.id)
            .order_by(FamilyEvent.start_date, FamilyEvent.id)
            .all()
        )

    def load_household_records(
        self,
        household_guid: str,
        start_date: date,
        end_date: date,
    ) -> Tuple[List[EventRecord], List[OccurrenceOverride]]:
        """
        Load canonical records overlapping a date range.

        Args:
            household_guid: Household GUID (hsh_xxx)
            start_date: First date of the range (inclusive)
            end_date: Last date of the range (inclusive)

        Returns:
            Tuple of (event records ordered by start date, overrides whose
            date falls inside the range)

        Raises:
            NotFoundError: If the household does not exist
        """
        household = self.get_household(household_guid)
        return self._load_records(household, start_date, end_date)

    def _load_records(
        self,
        household: Household,
        start_date: date,
        end_date: date,
    ) -> Tuple[List[EventRecord], List[OccurrenceOverride]]:
        directory = self.member_directory(household)

        events = (
            self.db.query(FamilyEvent)
            .filter(FamilyEvent.household_id == household.id)
            .filter(FamilyEvent.start_date <= end_date)
            .filter(or_(FamilyEvent.end_date.is_(None), FamilyEvent.end_date >= start_date))
            .order_by(FamilyEvent.start_date, FamilyEvent.id)
            .all()
        )
        instances = (
            self.db.query(EventInstance)
            .filter(EventInstance.household_id == household.id)
            .filter(EventInstance.occurrence_date >= start_date)
            .filter(EventInstance.occurrence_date <= end_date)
            .order_by(EventInstance.occurrence_date, EventInstance.id)
            .all()
        )

        records = [self.to_record(e, directory) for e in events]
        overrides = [self.to_override(i, directory) for i in instances]
        return records, overrides

    # =========================================================================
    # Occurrence listing
    # =========================================================================

    def list_occurrences(self, household_guid: str, start_date: date, end_date: date) -> Dict[str, Any]:
        """
        Expand a household's events over a visible range.

        Returns:
            Dict with occurrences, data-quality issues and the range echoed back

        Raises:
            NotFoundError: If the household does not exist
            ValidationError: If the range is inverted or too long
        """
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date", field="end_date")
        if (end_date - start_date).days + 1 > MAX_LISTING_RANGE_DAYS:
            raise ValidationError(
                f"Date range cannot exceed {MAX_LISTING_RANGE_DAYS} days", field="end_date"
            )

        household = self.get_household(household_guid)
        directory = self.member_directory(household)
        events, overrides = self._load_records(household, start_date, end_date)
        result = expand_occurrences(
            events, overrides, start_date, end_date, self.household_zone(household)
        )

        return {
            "household_guid": household.guid,
            "timezone": household.timezone,
            "start_date": start_date,
            "end_date": end_date,
            "occurrences": [self.build_occurrence_response(o, directory) for o in result.occurrences],
            "issues": [self.build_issue_response(i) for i in result.issues],
        }

    @staticmethod
    def build_occurrence_response(occ: Occurrence, directory: MemberDirectory) -> Dict[str, Any]:
        """Build response dict for an occurrence."""
        transportation = None
        if occ.transportation is not None:
            transportation = {
                "drop_off_method": occ.transportation.drop_off_method,
                "drop_off_person": occ.transportation.drop_off_person.key if occ.transportation.drop_off_person else None,
                "pick_up_method": occ.transportation.pick_up_method,
                "pick_up_person": occ.transportation.pick_up_person.key if occ.transportation.pick_up_person else None,
            }

        return {
            "event_guid": occ.event_id,
            "slot_index": occ.slot_index,
            "date": occ.date,
            "start_time": format_time_of_day(occ.start_time),
            "end_time": format_time_of_day(occ.end_time),
            "start": occ.start,
            "end": occ.end,
            "title": occ.title,
            "category": occ.category,
            "location": occ.location,
            "notes": occ.notes,
            "participants": [
                {"id": ref.key, "name": directory.name_for(ref)} for ref in occ.participants
            ],
            "transportation": transportation,
            "overridden": occ.overridden,
        }

    @staticmethod
    def build_issue_response(issue: ExpansionIssue) -> Dict[str, Any]:
        return {
            "event_guid": issue.event_id,
            "slot_index": issue.slot_index,
            "reason": issue.reason,
        }

    # =========================================================================
    # Overrides
    # =========================================================================

    def _validate_override_date(self, event: FamilyEvent, on_date: date) -> None:
        if on_date < event.start_date or (event.end_date is not None and on_date > event.end_date):
            raise ValidationError(
                f"{on_date.isoformat()} is outside the event's validity window",
                field="date",
            )

        weekdays = {
            slot.get("dayOfWeek")
            for slot in (event.recurrence_slots or [])
            if isinstance(slot, dict)
        }
        if day_of_week(on_date) not in weekdays:
            raise ValidationError(
                f"Event has no recurrence slot on {on_date.isoformat()}",
                field="date",
            )

    def _validate_members(self, directory: MemberDirectory, raw_values: Iterable[str], field: str) -> None:
        for raw in raw_values:
            if not directory.is_known(directory.resolve(raw)):
                raise ValidationError(f"Unknown household member: {raw}", field=field)

    def _find_instance(self, event: FamilyEvent, on_date: date) -> Optional[EventInstance]:
        return (
            self.db.query(EventInstance)
            .filter(EventInstance.event_id == event.id)
            .filter(EventInstance.occurrence_date == on_date)
            .first()
        )

    def set_override(
        self,
        household_guid: str,
        event_guid: str,
        on_date: date,
        cancelled: bool = False,
        transportation: Optional[Dict[str, Any]] = None,
        participants: Optional[List[str]] = None,
    ) -> Optional[EventInstance]:
        """
        Create or replace the override for one occurrence.

        Args:
            household_guid: Household GUID
            event_guid: Event GUID
            on_date: Occurrence date
            cancelled: Whether the occurrence is cancelled
            transportation: Replacement transportation (None = inherit)
            participants: Replacement participants (None = inherit, [] = nobody)

        Returns:
            The stored override, or None when the values amount to no
            override and any existing row was removed

        Raises:
            NotFoundError: If the household or event does not exist
            ValidationError: If the date has no occurrence or a member is unknown
        """
        household = self.get_household(household_guid)
        event = self.get_event(household, event_guid)
        self._validate_override_date(event, on_date)

        directory = self.member_directory(household)
        details = TransportationDetails.from_dict(transportation, directory.resolve)
        if details is not None:
            self._validate_members(
                directory, [ref.key for ref in details.responsible_members], "transportation"
            )
        if participants is not None:
            self._validate_members(directory, participants, "participants")

        values = {
            "cancelled": cancelled,
            "transportation": details.to_dict() if details is not None else None,
            "participants": (
                [ref.key for ref in directory.resolve_all(participants)]
                if participants is not None else None
            ),
        }

        instance = self._find_instance(event, on_date)
        if instance is None:
            if not cancelled and details is None and participants is None:
                return None
            instance = EventInstance(
                event_id=event.id,
                household_id=household.id,
                occurrence_date=on_date,
            )
            self.db.add(instance)

        for key, value in values.items():
            setattr(instance, key, value)

        return self._save_or_discard(instance, event)

    def restore_override(self, household_guid: str, event_guid: str, on_date: date) -> Optional[EventInstance]:
        """
        Un-cancel an occurrence.

        Other overridden values are kept; a row left without any override
        is deleted.

        Returns:
            The remaining override, or None when nothing is left
        """
        household = self.get_household(household_guid)
        event = self.get_event(household, event_guid)

        instance = self._find_instance(event, on_date)
        if instance is None:
            return None

        instance.cancelled = False
        return self._save_or_discard(instance, event)

    def _save_or_discard(self, instance: EventInstance, event: FamilyEvent) -> Optional[EventInstance]:
        if instance.is_empty:
            self.db.delete(instance)
            self.db.commit()
            logger.info(f"Removed empty override for {event.guid} on {instance.occurrence_date}")
            return None

        self.db.commit()
        self.db.refresh(instance)
        logger.info(
            f"Saved override for {event.guid} on {instance.occurrence_date}",
            extra={"event_guid": event.guid, "cancelled": instance.cancelled},
        )
        return instance

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def window_dates(today: date, horizon_days: int) -> Tuple[date, date]:
        """Forward window starting today, horizon_days long (inclusive)."""
        return today, today + timedelta(days=horizon_days)
