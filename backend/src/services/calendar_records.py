"""
Value types shared by the occurrence expansion, feed and reconciliation engines.

These are plain frozen dataclasses: the engines receive them as input and
return them as output without touching the database. The record source
(EventService) is the only place that builds them from stored rows, and it
canonicalizes member references on the way in so the engines only ever see
one MemberRef representation.

Design:
- Calendar dates are datetime.date values; instants are timezone-aware
  UTC datetimes. Dates are never compared as strings.
- Slot times stay as the raw strings found in storage; parsing happens in
  the expansion engine so malformed slots can be reported per event.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Callable, ClassVar, Dict, FrozenSet, Optional, Tuple


# Fixed roles used before member records existed, with their default labels
LEGACY_ROLES = {
    "parent1": "Parent 1",
    "parent2": "Parent 2",
    "kid1": "Kid 1",
    "kid2": "Kid 2",
    "housekeeper": "Housekeeper",
}


@dataclass(frozen=True, order=True)
class MemberRef:
    """
    Canonical reference to a household member.

    kind is "member" for dynamic member records (key is the member GUID)
    or "legacy" for one of the fixed legacy roles not claimed by any member.
    """

    MEMBER: ClassVar[str] = "member"
    LEGACY: ClassVar[str] = "legacy"

    kind: str
    key: str

    @classmethod
    def parse(cls, raw: str) -> "MemberRef":
        """Interpret a raw stored identifier without any household context."""
        if raw in LEGACY_ROLES:
            return cls(cls.LEGACY, raw)
        return cls(cls.MEMBER, raw)

    @property
    def is_legacy(self) -> bool:
        return self.kind == self.LEGACY

    def __str__(self) -> str:
        return self.key


MemberResolver = Callable[[str], MemberRef]


def parse_time_of_day(value: Any) -> time:
    """
    Parse a local time-of-day string.

    Accepts "HH:MM" and "HH:MM:SS" (24-hour).

    Raises:
        ValueError: If the value is not a valid time string
    """
    if not isinstance(value, str):
        raise ValueError(f"time must be a string, got {type(value).__name__}")

    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"invalid time '{value}', expected HH:MM")

    return time(*(int(p) for p in parts))


def format_time_of_day(value: time) -> str:
    return value.strftime("%H:%M")


@dataclass(frozen=True)
class TransportationDetails:
    """Drop-off and pick-up legs; either leg may be absent."""

    drop_off_method: Optional[str] = None
    drop_off_person: Optional[MemberRef] = None
    pick_up_method: Optional[str] = None
    pick_up_person: Optional[MemberRef] = None

    @classmethod
    def from_dict(
        cls,
        raw: Optional[Dict[str, Any]],
        resolve: MemberResolver = MemberRef.parse,
    ) -> Optional["TransportationDetails"]:
        """
        Build from the stored camelCase shape.

        The *PersonId keys (member GUIDs) take precedence over the older
        *Person keys. Returns None when nothing is set.
        """
        if not raw:
            return None

        drop_off = raw.get("dropOffPersonId") or raw.get("dropOffPerson")
        pick_up = raw.get("pickUpPersonId") or raw.get("pickUpPerson")

        details = cls(
            drop_off_method=raw.get("dropOffMethod") or None,
            drop_off_person=resolve(drop_off) if drop_off else None,
            pick_up_method=raw.get("pickUpMethod") or None,
            pick_up_person=resolve(pick_up) if pick_up else None,
        )
        return None if details.is_empty else details

    @property
    def is_empty(self) -> bool:
        return not (
            self.drop_off_method or self.drop_off_person
            or self.pick_up_method or self.pick_up_person
        )

    @property
    def responsible_members(self) -> FrozenSet[MemberRef]:
        """Members named as drop-off or pick-up person."""
        return frozenset(p for p in (self.drop_off_person, self.pick_up_person) if p)

    def to_dict(self) -> Dict[str, str]:
        data = {}
        if self.drop_off_method:
            data["dropOffMethod"] = self.drop_off_method
        if self.drop_off_person:
            data["dropOffPerson"] = self.drop_off_person.key
        if self.pick_up_method:
            data["pickUpMethod"] = self.pick_up_method
        if self.pick_up_person:
            data["pickUpPerson"] = self.pick_up_person.key
        return data


@dataclass(frozen=True)
class RecurrenceSlot:
    """
    Weekly slot of a recurring event.

    day_of_week follows the 0 = Sunday .. 6 = Saturday convention of the
    stored documents. Times are kept unparsed.
    """

    day_of_week: Any
    start_time: Any
    end_time: Any
    transportation: Optional[TransportationDetails] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], resolve: MemberResolver = MemberRef.parse) -> "RecurrenceSlot":
        if not isinstance(raw, dict):
            return cls(day_of_week=None, start_time=None, end_time=None)
        return cls(
            day_of_week=raw.get("dayOfWeek"),
            start_time=raw.get("startTime"),
            end_time=raw.get("endTime"),
            transportation=TransportationDetails.from_dict(raw.get("transportation"), resolve),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "dayOfWeek": self.day_of_week,
            "startTime": self.start_time,
            "endTime": self.end_time,
        }
        if self.transportation:
            data["transportation"] = self.transportation.to_dict()
        return data


@dataclass(frozen=True)
class EventRecord:
    """Static description of a recurring family activity."""

    id: Optional[str]
    title: str
    category: str
    start_date: date
    slots: Tuple[RecurrenceSlot, ...] = ()
    participants: Tuple[MemberRef, ...] = ()
    end_date: Optional[date] = None
    transportation: Optional[TransportationDetails] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    description: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def participant_set(self) -> FrozenSet[MemberRef]:
        return frozenset(self.participants)


@dataclass(frozen=True)
class OccurrenceOverride:
    """Per-date exception keyed by (event_id, date)."""

    event_id: str
    date: date
    cancelled: bool = False
    transportation: Optional[TransportationDetails] = None
    participants: Optional[Tuple[MemberRef, ...]] = None

    @property
    def is_noop(self) -> bool:
        """An uncancelled override without values behaves like no override."""
        return not self.cancelled and self.transportation is None and self.participants is None


@dataclass(frozen=True)
class Occurrence:
    """One concrete dated instance of a recurring event. Never persisted."""

    event_id: str
    slot_index: int
    date: date
    start_time: time
    end_time: time
    start: datetime
    end: datetime
    title: str
    category: str
    participants: Tuple[MemberRef, ...] = ()
    transportation: Optional[TransportationDetails] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    cancelled: bool = False
    updated_at: Optional[datetime] = None
    # Position among the event's declared slots for this weekday
    day_ordinal: int = 0
    overridden: bool = field(default=False, compare=False)

    @property
    def key(self) -> Tuple[str, date, int]:
        """Identity of the occurrence: (event_id, date, slot_index)."""
        return (self.event_id, self.date, self.slot_index)
